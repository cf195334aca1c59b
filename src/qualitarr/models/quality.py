"""Quality tier and quality profile models."""

from __future__ import annotations

from enum import Enum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class QualitySource(str, Enum):
    """Source medium of a release."""

    UNKNOWN = "unknown"
    CAM = "cam"
    TELESYNC = "telesync"
    TELECINE = "telecine"
    WORKPRINT = "workprint"
    DVD = "dvd"
    TV = "tv"
    WEBDL = "webdl"
    WEBRIP = "webrip"
    BLURAY = "bluray"
    REMUX = "remux"


class Resolution(str, Enum):
    """Vertical resolution bucket of a release."""

    UNKNOWN = "unknown"
    R480P = "480p"
    R576P = "576p"
    R720P = "720p"
    R1080P = "1080p"
    R2160P = "2160p"


class QualityDefinition(BaseModel):
    """One quality tier: a source and resolution pair with size bounds.

    Sizes are expressed in MB per minute of content. ``weight`` orders tiers
    from worst (0) to best and never changes after seeding.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    source: QualitySource = QualitySource.UNKNOWN
    resolution: Resolution = Resolution.UNKNOWN
    min_size: float = 0
    max_size: float = 0
    preferred_size: float | None = None
    weight: int = 0

    @model_validator(mode="after")
    def _check_size_bounds(self) -> Self:
        if self.min_size < 0 or self.max_size < 0:
            raise ValueError("Size bounds cannot be negative")
        if self.min_size > self.max_size:
            raise ValueError("Minimum size cannot be greater than maximum size")
        if self.preferred_size is not None and not (
            self.min_size <= self.preferred_size <= self.max_size
        ):
            raise ValueError("Preferred size must be between minimum and maximum size")
        return self


class SizeCheck(BaseModel):
    """Outcome of checking a size against a tier's bounds."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    reason: str | None = None


class QualityProfileItem(BaseModel):
    """A tier reference inside a profile. Later items are preferred."""

    model_config = ConfigDict(frozen=True)

    quality_id: int
    enabled: bool = True


class QualityProfile(BaseModel):
    """User preferences: allowed tiers in preference order plus upgrade policy.

    ``min_format_score`` and ``cutoff_format_score`` are optional thresholds
    on the custom format total; unset means no threshold.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    upgrade_allowed: bool = True
    cutoff_quality_id: int | None = None
    items: tuple[QualityProfileItem, ...] = Field(default_factory=tuple)
    min_format_score: int | None = None
    cutoff_format_score: int | None = None

    @property
    def quality_ids(self) -> list[int]:
        """Tier ids in preference order."""
        return [item.quality_id for item in self.items]
