"""Release restriction model."""

from pydantic import BaseModel, ConfigDict


class Restriction(BaseModel):
    """Required and forbidden release-title terms, optionally scoped by tag."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    must_contain: tuple[str, ...] = ()
    must_not_contain: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
