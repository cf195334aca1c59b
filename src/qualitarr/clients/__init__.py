"""HTTP clients for external rule catalogs."""

from qualitarr.clients.base import BaseCatalogClient
from qualitarr.clients.trash import DEFAULT_TRASH_URL, TrashGuidesClient

__all__ = ["DEFAULT_TRASH_URL", "BaseCatalogClient", "TrashGuidesClient"]
