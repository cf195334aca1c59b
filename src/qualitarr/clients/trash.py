"""Client for the TRaSH Guides custom format catalog."""

from __future__ import annotations

from typing import Any

from qualitarr.clients.base import BaseCatalogClient
from qualitarr.models.formats import MediaType

DEFAULT_TRASH_URL = "https://raw.githubusercontent.com/TRaSH-Guides/Guides/master/docs/json"

# Anime releases use the Sonarr catalog
CATALOG_PATHS: dict[MediaType, str] = {
    MediaType.MOVIE: "/radarr/cf/cf.json",
    MediaType.TV: "/sonarr/cf/cf.json",
    MediaType.ANIME: "/sonarr/cf/cf.json",
}


class TrashGuidesClient(BaseCatalogClient):
    """Fetches raw custom format records from TRaSH Guides.

    Records are returned undecoded so the importer can validate them one
    at a time and report bad records without dropping the whole batch.

    Example:
        async with TrashGuidesClient() as client:
            records = await client.get_custom_formats(MediaType.MOVIE)
    """

    def __init__(self, base_url: str = DEFAULT_TRASH_URL, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)

    async def get_custom_formats(self, media_type: MediaType) -> list[dict[str, Any]]:
        """Fetch the custom format catalog for a media type.

        Args:
            media_type: Which catalog to fetch

        Returns:
            List of raw format records

        Raises:
            httpx.HTTPError: On transport or HTTP failures
            ValueError: If the catalog is not a JSON list
        """
        data = await self._get(CATALOG_PATHS[media_type])
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of formats from {CATALOG_PATHS[media_type]}")
        return [item for item in data if isinstance(item, dict)]
