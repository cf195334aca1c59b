"""Import custom formats from the TRaSH Guides catalog.

Upstream records are fetched outside of any store transaction, converted
into local conditions, bucketed into a category with a recommended score,
and upserted by their ``trash_id`` in small batches that commit
independently. Failures are collected into the :class:`ImportResult` and
never abort sibling records, batches or media types.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from qualitarr.clients.trash import TrashGuidesClient
from qualitarr.criteria import FormatValidationError, validate_conditions
from qualitarr.models.formats import Condition, ConditionType, ImportedFormat, MediaType
from qualitarr.models.trash import TrashFormat, TrashSpecification
from qualitarr.store import StoreError

if TYPE_CHECKING:
    from qualitarr.store import ConfigStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 25

IMPLEMENTATION_TYPES: dict[str, ConditionType] = {
    "releasetitlespecification": ConditionType.RELEASE_NAME,
    "releasegroupspecification": ConditionType.RELEASE_GROUP,
    "sourcespecification": ConditionType.SOURCE,
    "resolutionspecification": ConditionType.RESOLUTION,
    "indexerflagspecification": ConditionType.INDEXER_FLAG,
    "languagespecification": ConditionType.LANGUAGE,
    "sizespecification": ConditionType.SIZE,
}

# Checked in order; the first bucket with a matching term wins.
CATEGORY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Unwanted",
        (
            "dv (webdl)",
            "lq",
            "x265 (hd)",
            "3d",
            "bad dual groups",
            "no-rlsgroup",
            "obfuscated",
            "retags",
            "scene",
            "br-disk",
        ),
    ),
    ("HDR Formats", ("dv", "dolby vision", "hdr10", "hdr", "hlg")),
    ("Audio", ("atmos", "dts", "truehd", "flac", "pcm", "aac", "dd+", "dd")),
    ("Remux Tier", ("remux",)),
    ("Bluray Tier", ("bluray", "blu-ray")),
    ("WEB Tier", ("web",)),
    ("HDTV", ("hdtv",)),
    (
        "Streaming Services",
        ("amzn", "nf", "netflix", "dsnp", "disney", "hmax", "hbo", "atvp", "apple"),
    ),
    ("Release Groups", ("group", "-")),
)
DEFAULT_CATEGORY = "Other"

TIER_SCORES: dict[str, int] = {
    "Remux Tier": 1000,
    "Bluray Tier": 800,
    "WEB Tier": 400,
    "HDTV": 100,
}


@dataclass(frozen=True)
class ImportIssue:
    """A failure captured during an import run."""

    media_type: MediaType
    message: str
    external_id: str | None = None
    batch: int | None = None


@dataclass
class ImportResult:
    """Outcome of importing one or more media types."""

    imported_count: int = 0
    created_count: int = 0
    updated_count: int = 0
    errors: list[ImportIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when nothing failed."""
        return not self.errors

    def merge(self, other: ImportResult) -> None:
        """Fold another result into this one."""
        self.imported_count += other.imported_count
        self.created_count += other.created_count
        self.updated_count += other.updated_count
        self.errors.extend(other.errors)


def map_implementation(implementation: str | None) -> ConditionType:
    """Map an upstream implementation name to a condition type.

    Unknown implementations test the release name.
    """
    return IMPLEMENTATION_TYPES.get((implementation or "").lower(), ConditionType.RELEASE_NAME)


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _size_bound(value: Any) -> str:
    """Render a size bound; the size grammar only accepts whole numbers.

    Raises:
        FormatValidationError: If the bound is not a whole number
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = None
    if number is None or not number.is_integer():
        raise FormatValidationError(f"Size bound {value!r} is not a whole number", pattern=str(value))
    return str(int(number))


def _size_pattern(fields: dict[str, Any]) -> str:
    low, high = fields.get("min"), fields.get("max")
    if low is not None and high is not None:
        return f"{_size_bound(low)}-{_size_bound(high)}"
    if low is not None:
        return f">={_size_bound(low)}"
    if high is not None:
        return f"<={_size_bound(high)}"
    return _format_number(fields.get("value", ""))


def parse_specification(spec: TrashSpecification) -> Condition:
    """Convert one upstream specification into a local condition.

    Raises:
        FormatValidationError: If a size bound is not a whole number
    """
    condition_type = map_implementation(spec.implementation)
    if condition_type == ConditionType.SIZE:
        pattern = _size_pattern(spec.fields)
    else:
        value = spec.fields.get("value")
        pattern = "" if value is None else _format_number(value)
    return Condition(
        type=condition_type,
        pattern=pattern,
        negate=spec.negate,
        required=spec.required,
    )


def parse_specifications(specs: Iterable[TrashSpecification]) -> tuple[Condition, ...]:
    """Convert upstream specifications into local conditions, keeping order."""
    return tuple(parse_specification(spec) for spec in specs)


def categorize_format(name: str) -> str:
    """Bucket a format by substrings of its name."""
    name_lower = name.lower()
    for category, terms in CATEGORY_RULES:
        if any(term in name_lower for term in terms):
            return category
    return DEFAULT_CATEGORY


def recommended_score(name: str, category: str) -> int:
    """Suggest a profile score for a format from its name and category."""
    name_lower = name.lower()

    if category == "Unwanted":
        return -10000

    if category == "HDR Formats":
        if "dv" in name_lower and "hdr10" in name_lower:
            return 1500
        if "dv" in name_lower:
            return 1000
        if "hdr10+" in name_lower:
            return 800
        if "hdr10" in name_lower:
            return 500
        if "hdr" in name_lower:
            return 400
        return 300

    if category == "Audio":
        if "atmos" in name_lower:
            return 500
        if "truehd" in name_lower:
            return 400
        if "dts-hd" in name_lower or "dts:x" in name_lower:
            return 350
        if "flac" in name_lower:
            return 300
        if "dts" in name_lower:
            return 200
        return 100

    if category in TIER_SCORES:
        return TIER_SCORES[category]

    if category == "Streaming Services":
        if "atvp" in name_lower:
            return 100
        if "nf" in name_lower or "netflix" in name_lower:
            return 75
        if "amzn" in name_lower:
            return 50
        return 25

    return 0


def to_imported_format(record: dict[str, Any], media_type: MediaType) -> ImportedFormat:
    """Validate one raw upstream record and convert it.

    Raises:
        ValidationError: If the record does not have the upstream shape
        FormatValidationError: If it has no conditions, an invalid pattern or a
            fractional size bound
    """
    upstream = TrashFormat.model_validate(record)
    conditions = validate_conditions(parse_specifications(upstream.specifications))
    category = categorize_format(upstream.name)
    return ImportedFormat(
        external_id=upstream.trash_id,
        name=upstream.name,
        conditions=conditions,
        include_when_renaming=upstream.include_when_renaming,
        category=category,
        media_type=media_type,
        recommended_score=recommended_score(upstream.name, category),
    )


class RuleImporter:
    """Keeps the store's imported custom formats in sync with TRaSH Guides.

    Example:
        importer = RuleImporter(store)
        result = await importer.sync([MediaType.MOVIE, MediaType.TV])
        importer.apply_recommended_scores("HDR Formats", profile.id)
    """

    def __init__(
        self,
        store: ConfigStore,
        client_factory: Callable[[], TrashGuidesClient] = TrashGuidesClient,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the importer.

        Args:
            store: Store that receives the formats
            client_factory: Builds the catalog client used for each fetch
            batch_size: Records per independently committed upsert batch
            clock: Source of sync timestamps (defaults to UTC now)
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.client_factory = client_factory
        self.batch_size = batch_size
        self._clock = clock or (lambda: datetime.now(UTC))

    async def sync(self, media_types: Iterable[MediaType] | None = None) -> ImportResult:
        """Import every requested media type, collecting failures.

        Args:
            media_types: Media types to import (default: all)

        Returns:
            Combined result across media types
        """
        result = ImportResult()
        for media_type in media_types or list(MediaType):
            result.merge(await self.import_media_type(media_type))
        return result

    async def import_media_type(self, media_type: MediaType) -> ImportResult:
        """Fetch and ingest one media type's catalog.

        A failed fetch is reported as an error on the result.
        """
        logger.info("Fetching TRaSH custom formats for %s", media_type.value)
        try:
            async with self.client_factory() as client:
                records = await client.get_custom_formats(media_type)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Failed to fetch TRaSH formats for %s: %s", media_type.value, e)
            return ImportResult(errors=[ImportIssue(media_type=media_type, message=str(e))])

        return self.ingest(records, media_type)

    def ingest(self, records: Sequence[dict[str, Any]], media_type: MediaType) -> ImportResult:
        """Upsert already-fetched upstream records into the store.

        Args:
            records: Raw upstream records
            media_type: Media type the records belong to

        Returns:
            Counts of upserted records and any captured failures
        """
        result = ImportResult()
        converted: list[ImportedFormat] = []
        for record in records:
            try:
                converted.append(to_imported_format(record, media_type))
            except (ValidationError, FormatValidationError) as e:
                external_id = record.get("trash_id")
                logger.warning("Skipping TRaSH format %s: %s", external_id, e)
                result.errors.append(
                    ImportIssue(
                        media_type=media_type,
                        message=str(e),
                        external_id=str(external_id) if external_id is not None else None,
                    )
                )

        synced_at = self._clock()
        for batch_number, start in enumerate(range(0, len(converted), self.batch_size)):
            batch = converted[start : start + self.batch_size]
            try:
                outcomes = self.store.upsert_imported_formats(batch, synced_at)
            except StoreError as e:
                logger.warning("Batch %d for %s failed: %s", batch_number, media_type.value, e)
                result.errors.append(
                    ImportIssue(media_type=media_type, message=str(e), batch=batch_number)
                )
                continue

            created = sum(1 for o in outcomes if o.created)
            result.imported_count += len(outcomes)
            result.created_count += created
            result.updated_count += len(outcomes) - created
            logger.debug(
                "Batch %d for %s: %d created, %d updated",
                batch_number,
                media_type.value,
                created,
                len(outcomes) - created,
            )

        if result.imported_count:
            try:
                self.store.record_sync(media_type, synced_at)
            except StoreError as e:
                result.errors.append(ImportIssue(media_type=media_type, message=str(e)))

        logger.info(
            "Imported %d TRaSH formats for %s (%d errors)",
            result.imported_count,
            media_type.value,
            len(result.errors),
        )
        return result

    def apply_recommended_scores(self, category: str, profile_id: int) -> int:
        """Copy recommended scores of one category's imported formats into a profile.

        Returns:
            The number of scores written

        Raises:
            NotFoundError: If the profile does not exist
        """
        scores = {
            f.id: f.recommended_score
            for f in self.store.list_formats()
            if f.category == category and f.recommended_score is not None
        }
        if not scores:
            return 0
        return self.store.bulk_set_format_scores(profile_id, scores)

    def categories(self, media_type: MediaType | None = None) -> list[tuple[str, int]]:
        """Count imported formats per category, sorted by category name."""
        counts = Counter(
            f.category
            for f in self.store.list_formats()
            if f.category is not None and (media_type is None or f.media_type == media_type)
        )
        return sorted(counts.items())
