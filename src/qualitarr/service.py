"""Orchestration boundary between the configuration store and the engine.

Every call takes one :class:`~qualitarr.store.StoreSnapshot`, materializes
the profile, tiers, formats and scores it needs into an
:class:`~qualitarr.decision.EvaluationContext`, and hands that to the pure
engine. The engine never touches the store.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from qualitarr.catalog import QualityCatalog
from qualitarr.clients.trash import TrashGuidesClient
from qualitarr.criteria import FormatMatch, matching_formats
from qualitarr.decision import (
    Decision,
    EvaluationContext,
    EvaluationSettings,
    evaluate_release,
    select_best,
)
from qualitarr.importer import ImportResult, RuleImporter
from qualitarr.models.quality import QualityProfile
from qualitarr.scoring import ScoreResult, score

if TYPE_CHECKING:
    from qualitarr.models.formats import CustomFormat, MediaType
    from qualitarr.models.release import ExistingFile, ReleaseCandidate
    from qualitarr.store import ConfigStore, StoreSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormatTestResult:
    """A format the candidate matched, with the per-condition trace."""

    format_id: int
    name: str
    match: FormatMatch


class ReleaseEvaluator:
    """Evaluate releases against profiles held in a :class:`ConfigStore`.

    Example:
        evaluator = ReleaseEvaluator(store)
        decision = evaluator.evaluate(candidate, profile_id=4, existing_file=existing)
        if decision.accepted:
            ...
    """

    def __init__(
        self,
        store: ConfigStore,
        settings: EvaluationSettings | None = None,
        *,
        client_factory: Callable[[], TrashGuidesClient] = TrashGuidesClient,
        import_batch_size: int | None = None,
    ) -> None:
        """Initialize the evaluator.

        Args:
            store: Source of profiles, tiers, formats and scores
            settings: Evaluation policy (defaults to EvaluationSettings())
            client_factory: Builds the TRaSH Guides client used by imports
            import_batch_size: Records per committed import batch
        """
        self.store = store
        self.settings = settings or EvaluationSettings()
        self.client_factory = client_factory
        self.import_batch_size = import_batch_size

    def context_for(
        self,
        profile_id: int,
        snapshot: StoreSnapshot | None = None,
        formats: Sequence[CustomFormat] | None = None,
    ) -> EvaluationContext:
        """Resolve a profile id into a self-contained evaluation context.

        A profile id the store does not know resolves to an empty profile,
        so every tier reads as disabled and evaluation rejects.
        """
        snapshot = snapshot or self.store.snapshot()
        profile = snapshot.profile(profile_id)
        if profile is None:
            logger.warning("Quality profile %d not found, treating every quality as unwanted", profile_id)
            profile = QualityProfile(id=profile_id, name=f"missing profile {profile_id}")
        return EvaluationContext(
            profile=profile,
            catalog=QualityCatalog(snapshot.definitions),
            formats=tuple(formats) if formats is not None else snapshot.formats,
            format_scores=snapshot.format_scores,
            restrictions=snapshot.restrictions,
            settings=self.settings,
        )

    def evaluate(
        self,
        candidate: ReleaseCandidate,
        profile_id: int,
        existing_file: ExistingFile | None = None,
        tags: Iterable[str] = (),
    ) -> Decision:
        """Decide what to do with one release.

        Args:
            candidate: The parsed release
            profile_id: Profile to evaluate against
            existing_file: The file already on disk, if any
            tags: Tags of the media item, used to scope restrictions

        Returns:
            Decision with action and reason
        """
        return evaluate_release(candidate, self.context_for(profile_id), existing_file, tags)

    def evaluate_many(
        self,
        candidates: Iterable[ReleaseCandidate],
        profile_id: int,
        existing_file: ExistingFile | None = None,
        tags: Iterable[str] = (),
    ) -> list[Decision]:
        """Evaluate several releases against one consistent snapshot."""
        context = self.context_for(profile_id)
        tag_list = list(tags)
        return [evaluate_release(c, context, existing_file, tag_list) for c in candidates]

    def pick_best(
        self,
        candidates: Iterable[ReleaseCandidate],
        profile_id: int,
        existing_file: ExistingFile | None = None,
        tags: Iterable[str] = (),
    ) -> Decision | None:
        """Evaluate several releases and return the best accepted one, if any."""
        return select_best(self.evaluate_many(candidates, profile_id, existing_file, tags))

    def test_formats(
        self,
        candidate: ReleaseCandidate,
        formats: Sequence[CustomFormat] | None = None,
    ) -> list[FormatTestResult]:
        """Show which custom formats a release matches.

        Args:
            candidate: The parsed release
            formats: Formats to test (default: every stored format)

        Returns:
            Matched formats with their condition traces
        """
        if formats is None:
            formats = self.store.snapshot().formats
        return [
            FormatTestResult(format_id=f.id, name=f.name, match=match)
            for f, match in matching_formats(candidate, formats)
        ]

    def compute_score(
        self,
        candidate: ReleaseCandidate,
        profile_id: int,
        formats: Sequence[CustomFormat] | None = None,
    ) -> ScoreResult:
        """Total a release's custom format score under one profile."""
        context = self.context_for(profile_id, formats=formats)
        return score(candidate, context.profile, context.formats, context.format_scores)

    def importer(self) -> RuleImporter:
        """Build a rule importer bound to this evaluator's store."""
        if self.import_batch_size is None:
            return RuleImporter(self.store, self.client_factory)
        return RuleImporter(self.store, self.client_factory, batch_size=self.import_batch_size)

    async def import_external_rules(self, media_type: MediaType) -> ImportResult:
        """Sync one media type's TRaSH Guides formats into the store."""
        return await self.importer().import_media_type(media_type)
