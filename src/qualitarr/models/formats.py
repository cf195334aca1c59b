"""Custom format models."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - pydantic needs it at runtime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ConditionType(str, Enum):
    """Release attribute a condition is tested against."""

    RELEASE_NAME = "releaseName"
    RELEASE_GROUP = "releaseGroup"
    SOURCE = "source"
    RESOLUTION = "resolution"
    CODEC = "codec"
    AUDIO_CODEC = "audioCodec"
    AUDIO_CHANNELS = "audioChannels"
    LANGUAGE = "language"
    EDITION = "edition"
    SIZE = "size"
    INDEXER_FLAG = "indexerFlag"


class MediaType(str, Enum):
    """Media families with their own upstream rule catalogs."""

    MOVIE = "movie"
    TV = "tv"
    ANIME = "anime"


class Condition(BaseModel):
    """A single test clause of a custom format.

    ``pattern`` is a regular expression for every type except ``size``,
    which uses the ``>N``, ``>=N``, ``<N``, ``<=N`` and ``A-B`` grammar.
    """

    model_config = ConfigDict(frozen=True)

    type: ConditionType
    pattern: str = ""
    negate: bool = False
    required: bool = False


class CustomFormat(BaseModel):
    """A named rule set describing one release characteristic.

    Formats pulled from an external catalog carry ``external_id`` and the
    import metadata; user-defined formats leave those fields unset.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    include_when_renaming: bool = False
    conditions: tuple[Condition, ...] = Field(min_length=1)
    external_id: str | None = None
    category: str | None = None
    media_type: MediaType | None = None
    recommended_score: int | None = None
    last_sync_at: datetime | None = None

    @property
    def is_imported(self) -> bool:
        """Whether this format came from an external catalog."""
        return self.external_id is not None


class CustomFormatScore(BaseModel):
    """Score a profile assigns to a custom format."""

    model_config = ConfigDict(frozen=True)

    profile_id: int
    format_id: int
    score: int


class ImportedFormat(BaseModel):
    """A custom format as delivered by an external catalog, before it has a local id."""

    model_config = ConfigDict(frozen=True)

    external_id: str
    name: str
    conditions: tuple[Condition, ...] = Field(min_length=1)
    include_when_renaming: bool = False
    category: str | None = None
    media_type: MediaType | None = None
    recommended_score: int | None = None
