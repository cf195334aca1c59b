"""Pydantic models for quality tiers, profiles, formats and releases."""

from qualitarr.models.formats import (
    Condition,
    ConditionType,
    CustomFormat,
    CustomFormatScore,
    ImportedFormat,
    MediaType,
)
from qualitarr.models.quality import (
    QualityDefinition,
    QualityProfile,
    QualityProfileItem,
    QualitySource,
    Resolution,
    SizeCheck,
)
from qualitarr.models.release import ExistingFile, ReleaseCandidate
from qualitarr.models.restrictions import Restriction

__all__ = [
    "Condition",
    "ConditionType",
    "CustomFormat",
    "CustomFormatScore",
    "ExistingFile",
    "ImportedFormat",
    "MediaType",
    "QualityDefinition",
    "QualityProfile",
    "QualityProfileItem",
    "QualitySource",
    "ReleaseCandidate",
    "Resolution",
    "Restriction",
    "SizeCheck",
]
