"""Release candidate models consumed by the decision engine."""

from pydantic import BaseModel, ConfigDict


class ReleaseCandidate(BaseModel):
    """A parsed release offered for download.

    Attributes come from an external release-name parser; any of them may be
    missing. ``size`` is in MB per minute of content, the same unit as the
    quality tier bounds.
    """

    model_config = ConfigDict(frozen=True)

    raw_title: str
    release_group: str | None = None
    source: str | None = None
    resolution: str | None = None
    codec: str | None = None
    audio_codec: str | None = None
    audio_channels: str | None = None
    language: str | None = None
    edition: str | None = None
    size: float | None = None
    indexer_flags: tuple[str, ...] | None = None


class ExistingFile(BaseModel):
    """The file already on disk that a candidate may replace."""

    model_config = ConfigDict(frozen=True)

    quality_id: int
    score: int = 0
