"""Grab / upgrade / reject decisions for release candidates.

The engine is a pure function over an :class:`EvaluationContext`, an
immutable snapshot of one profile with the tiers, custom formats, score
table and restrictions it needs. Build the context once at the boundary
(see :mod:`qualitarr.service`) and evaluate as many candidates against it,
from as many threads or tasks, as needed:

    context = EvaluationContext(profile=profile, catalog=catalog, formats=formats)
    decisions = [evaluate_release(c, context, existing) for c in candidates]
    best = select_best(decisions)

Candidates are compared lexicographically on ``(rank, format score)``: the
profile's tier order decides first and the custom format total only breaks
ties inside one tier.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from qualitarr.restrictions import RestrictionReport, check_restrictions
from qualitarr.scoring import ScoreResult, cutoff_rank, rank, score

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from qualitarr.catalog import QualityCatalog
    from qualitarr.models.formats import CustomFormat
    from qualitarr.models.quality import QualityDefinition, QualityProfile, SizeCheck
    from qualitarr.models.release import ExistingFile, ReleaseCandidate
    from qualitarr.models.restrictions import Restriction

logger = logging.getLogger(__name__)

REASON_NO_EXISTING = "no existing file"
REASON_QUALITY_NOT_WANTED = "quality not wanted by profile"
REASON_SIZE_OUT_OF_BOUNDS = "size outside quality limits"
REASON_BELOW_MIN_SCORE = "format score below minimum"
REASON_UPGRADES_DISABLED = "upgrades disabled"
REASON_CUTOFF_MET = "cutoff already met"
REASON_NOT_BETTER = "not better than existing"
REASON_BETTER = "better than existing"


class DecisionAction(Enum):
    """Terminal outcome of evaluating a candidate.

    Attributes:
        GRAB: Nothing on disk yet; take this release
        UPGRADE: Replace the existing file with this release
        REJECT: The release is not wanted or not better
        SKIP: A release restriction excluded the release before evaluation
    """

    GRAB = "grab"
    UPGRADE = "upgrade"
    REJECT = "reject"
    SKIP = "skip"


@dataclass(frozen=True)
class EvaluationSettings:
    """Caller-supplied evaluation policy.

    Attributes:
        enforce_size_limits: Reject releases whose size falls outside the
            resolved tier's bounds instead of only reporting it
    """

    enforce_size_limits: bool = False


@dataclass(frozen=True)
class EvaluationContext:
    """Everything the engine reads, resolved ahead of time."""

    profile: QualityProfile
    catalog: QualityCatalog
    formats: tuple[CustomFormat, ...] = ()
    format_scores: Mapping[tuple[int, int], int] = field(default_factory=dict)
    restrictions: tuple[Restriction, ...] = ()
    settings: EvaluationSettings = field(default_factory=EvaluationSettings)


@dataclass(frozen=True)
class Decision:
    """The engine's verdict for one candidate."""

    action: DecisionAction
    reason: str
    candidate: ReleaseCandidate
    quality: QualityDefinition | None = None
    rank: int | None = None
    score: ScoreResult | None = None
    size_check: SizeCheck | None = None
    restrictions: RestrictionReport | None = None

    @property
    def accepted(self) -> bool:
        """Whether the release should be downloaded."""
        return self.action in (DecisionAction.GRAB, DecisionAction.UPGRADE)

    @property
    def total_score(self) -> int:
        """Custom format total, 0 when scoring did not run."""
        return self.score.total if self.score else 0

    @property
    def sort_key(self) -> tuple[int, int]:
        """Lexicographic ``(rank, score)`` key used to pick between candidates."""
        return (self.rank if self.rank is not None else -1, self.total_score)


def _cutoff_met(
    profile: QualityProfile, existing_rank: int | None, existing: ExistingFile
) -> bool:
    if existing_rank is None or existing_rank < cutoff_rank(profile):
        return False
    if profile.cutoff_format_score is not None:
        return existing.score >= profile.cutoff_format_score
    return True


def evaluate_release(
    candidate: ReleaseCandidate,
    context: EvaluationContext,
    existing: ExistingFile | None = None,
    tags: Iterable[str] = (),
) -> Decision:
    """Decide whether to grab, upgrade to, or reject a release.

    Never raises for well-formed inputs: unresolvable qualities fall back to
    the unknown tier and tiers missing from the profile count as disabled.

    Args:
        candidate: The parsed release
        context: Profile snapshot to evaluate against
        existing: The file already on disk, if any
        tags: Tags of the media item, used to scope restrictions

    Returns:
        Decision with action and reason
    """
    profile = context.profile

    report = check_restrictions(context.restrictions, candidate.raw_title, tags)
    if not report.passed:
        blocked = report.failed[0]
        logger.debug("Skipping %s: restriction %s", candidate.raw_title, blocked.restriction_name)
        return Decision(
            action=DecisionAction.SKIP,
            reason=f"blocked by restriction {blocked.restriction_name}",
            candidate=candidate,
            restrictions=report,
        )

    quality = context.catalog.resolve(candidate.source, candidate.resolution)
    candidate_rank = rank(profile, quality.id)
    if candidate_rank is None:
        logger.debug("Rejecting %s: %s not wanted by %s", candidate.raw_title, quality.name, profile.name)
        return Decision(
            action=DecisionAction.REJECT,
            reason=REASON_QUALITY_NOT_WANTED,
            candidate=candidate,
            quality=quality,
            restrictions=report,
        )

    result = score(candidate, profile, context.formats, context.format_scores)
    size_check = context.catalog.validate_size(quality, candidate.size)

    def decide(action: DecisionAction, reason: str) -> Decision:
        logger.debug(
            "%s %s (quality=%s rank=%d score=%d): %s",
            action.value,
            candidate.raw_title,
            quality.name,
            candidate_rank,
            result.total,
            reason,
        )
        return Decision(
            action=action,
            reason=reason,
            candidate=candidate,
            quality=quality,
            rank=candidate_rank,
            score=result,
            size_check=size_check,
            restrictions=report,
        )

    if context.settings.enforce_size_limits and not size_check.ok:
        return decide(DecisionAction.REJECT, REASON_SIZE_OUT_OF_BOUNDS)

    if profile.min_format_score is not None and result.total < profile.min_format_score:
        return decide(DecisionAction.REJECT, REASON_BELOW_MIN_SCORE)

    if existing is None:
        return decide(DecisionAction.GRAB, REASON_NO_EXISTING)

    if not profile.upgrade_allowed:
        return decide(DecisionAction.REJECT, REASON_UPGRADES_DISABLED)

    existing_rank = rank(profile, existing.quality_id)
    if _cutoff_met(profile, existing_rank, existing):
        return decide(DecisionAction.REJECT, REASON_CUTOFF_MET)

    existing_key = (existing_rank if existing_rank is not None else -1, existing.score)
    if (candidate_rank, result.total) > existing_key:
        return decide(DecisionAction.UPGRADE, REASON_BETTER)

    return decide(DecisionAction.REJECT, REASON_NOT_BETTER)


def select_best(decisions: Iterable[Decision]) -> Decision | None:
    """Pick the accepted decision with the highest ``(rank, score)``.

    Ties keep the earliest decision.

    Returns:
        The best accepted decision, or None if nothing was accepted
    """
    best: Decision | None = None
    for decision in decisions:
        if not decision.accepted:
            continue
        if best is None or decision.sort_key > best.sort_key:
            best = decision
    return best
