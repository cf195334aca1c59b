"""qualitarr - Decide which releases to grab and when to upgrade.

A Python library for ranking release candidates against quality profiles:
quality tiers, custom formats matched against release attributes, per-profile
format scores, and the grab / upgrade / reject decision built on top of them.
Custom formats can be imported from TRaSH Guides.

Quick Start
-----------
Seed a store and evaluate a release::

    from pathlib import Path

    from qualitarr import ConfigStore, ReleaseCandidate, ReleaseEvaluator

    store = ConfigStore(Path("store.json"))
    store.seed_defaults()
    profile = store.get_profile_by_name("HD-1080p")

    evaluator = ReleaseEvaluator(store)
    decision = evaluator.evaluate(
        ReleaseCandidate(raw_title="Movie.2020.1080p.WEB-DL-GRP", source="webdl", resolution="1080p"),
        profile.id,
    )
    print(decision.action, decision.reason)

Upgrade an existing file::

    from qualitarr import ExistingFile

    existing = ExistingFile(quality_id=9, score=0)
    decision = evaluator.evaluate(candidate, profile.id, existing)

Import formats from TRaSH Guides::

    from qualitarr.models import MediaType

    result = await evaluator.import_external_rules(MediaType.MOVIE)
    print(result.imported_count, result.errors)

CLI Usage
---------
The library includes a CLI::

    qualitarr init
    qualitarr evaluate "Movie.2020.1080p.WEB-DL-GRP" -p HD-1080p --source webdl --resolution 1080p
    qualitarr import trash --media-type movie

Classes
-------
ReleaseEvaluator
    Evaluates releases against profiles held in a ConfigStore.
ConfigStore
    JSON-backed store for tiers, profiles, formats, scores and restrictions.
QualityCatalog
    Read-only view over quality tiers.
RuleImporter
    Imports custom formats from TRaSH Guides.
Decision
    Result of evaluating one release.
"""

from qualitarr.catalog import QualityCatalog
from qualitarr.decision import (
    Decision,
    DecisionAction,
    EvaluationContext,
    EvaluationSettings,
    evaluate_release,
    select_best,
)
from qualitarr.importer import ImportResult, RuleImporter
from qualitarr.models import (
    Condition,
    ConditionType,
    CustomFormat,
    ExistingFile,
    QualityProfile,
    ReleaseCandidate,
)
from qualitarr.service import ReleaseEvaluator
from qualitarr.store import ConfigStore

__version__ = "0.1.0"

__all__ = [
    "Condition",
    "ConditionType",
    "ConfigStore",
    "CustomFormat",
    "Decision",
    "DecisionAction",
    "EvaluationContext",
    "EvaluationSettings",
    "ExistingFile",
    "ImportResult",
    "QualityCatalog",
    "QualityProfile",
    "ReleaseCandidate",
    "ReleaseEvaluator",
    "RuleImporter",
    "__version__",
    "evaluate_release",
    "select_best",
]
