"""Profile ranking and custom format scoring."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from qualitarr.criteria import matching_formats

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from qualitarr.models.formats import CustomFormat
    from qualitarr.models.quality import QualityProfile
    from qualitarr.models.release import ReleaseCandidate


@dataclass(frozen=True)
class MatchedFormat:
    """A custom format that matched a release and what it is worth."""

    format_id: int
    name: str
    score: int


@dataclass(frozen=True)
class ScoreResult:
    """Custom format total for one release under one profile."""

    matched_formats: tuple[MatchedFormat, ...] = field(default_factory=tuple)
    total: int = 0

    @property
    def format_names(self) -> list[str]:
        """Names of the matched formats."""
        return [m.name for m in self.matched_formats]


def rank(profile: QualityProfile, quality_id: int) -> int | None:
    """Position of a tier in the profile's preference order.

    Args:
        profile: The quality profile
        quality_id: The tier to locate

    Returns:
        The index in ``profile.items`` (higher is preferred), or None when
        the tier is disabled or not listed
    """
    for index, item in enumerate(profile.items):
        if item.quality_id == quality_id:
            return index if item.enabled else None
    return None


def cutoff_rank(profile: QualityProfile) -> int:
    """Rank at or above which upgrading stops.

    The cutoff tier's position counts whether or not the tier itself is
    enabled. Without a cutoff, or with a cutoff the profile does not list,
    this is the highest rank in the profile.
    """
    max_rank = max(len(profile.items) - 1, 0)
    if profile.cutoff_quality_id is None:
        return max_rank
    for index, item in enumerate(profile.items):
        if item.quality_id == profile.cutoff_quality_id:
            return index
    return max_rank


def score(
    candidate: ReleaseCandidate,
    profile: QualityProfile,
    formats: Iterable[CustomFormat],
    format_scores: Mapping[tuple[int, int], int],
) -> ScoreResult:
    """Sum the profile's scores for every custom format the release matches.

    Scores are looked up by ``(profile.id, format.id)``. A missing entry
    counts as 0 but the format is still reported as matched.

    Args:
        candidate: The parsed release
        profile: The profile whose scores apply
        formats: The custom format catalog
        format_scores: Score table keyed by (profile id, format id)

    Returns:
        ScoreResult with matched formats and their total
    """
    matched = tuple(
        MatchedFormat(
            format_id=custom_format.id,
            name=custom_format.name,
            score=format_scores.get((profile.id, custom_format.id), 0),
        )
        for custom_format, _ in matching_formats(candidate, formats)
    )
    return ScoreResult(matched_formats=matched, total=sum(m.score for m in matched))
