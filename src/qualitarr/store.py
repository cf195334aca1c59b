"""JSON-backed configuration store for tiers, profiles, formats and scores.

The whole configuration lives in one JSON document. Every mutation is a
read-modify-write performed under a lock on a private copy of the document,
which only replaces the in-memory state and the file once the change has
validated and been written. Readers take a :meth:`ConfigStore.snapshot` and
never see a half-applied edit.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from qualitarr.catalog import (
    DEFAULT_QUALITY_DEFINITIONS,
    DEFAULT_QUALITY_PROFILES,
    build_default_profile_items,
)
from qualitarr.criteria import validate_conditions
from qualitarr.models.formats import (
    Condition,
    CustomFormat,
    CustomFormatScore,
    ImportedFormat,
    MediaType,
)
from qualitarr.models.quality import QualityDefinition, QualityProfile, QualityProfileItem
from qualitarr.models.restrictions import Restriction

logger = logging.getLogger(__name__)

STORE_VERSION = 1

IMPORTED_NAME_TAG = "TRaSH"

_PROFILE_FIELDS = frozenset(
    {"name", "upgrade_allowed", "cutoff_quality_id", "items", "min_format_score", "cutoff_format_score"}
)


class StoreError(Exception):
    """Base error for configuration store failures."""


class NotFoundError(StoreError):
    """Raised when a referenced record does not exist."""

    def __init__(self, kind: str, key: object) -> None:
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class ConflictError(StoreError):
    """Raised when a name is already taken by another record."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"{kind} named '{name}' already exists")
        self.kind = kind
        self.name = name


class StoreDocument(BaseModel):
    """On-disk shape of the store."""

    version: int = STORE_VERSION
    quality_definitions: list[QualityDefinition] = Field(default_factory=list)
    quality_profiles: list[QualityProfile] = Field(default_factory=list)
    custom_formats: list[CustomFormat] = Field(default_factory=list)
    format_scores: list[CustomFormatScore] = Field(default_factory=list)
    restrictions: list[Restriction] = Field(default_factory=list)
    last_sync: dict[MediaType, datetime] = Field(default_factory=dict)
    next_ids: dict[str, int] = Field(default_factory=dict)

    def allocate_id(self, table: str) -> int:
        """Hand out the next id for a table."""
        next_id = self.next_ids.get(table, 1)
        self.next_ids[table] = next_id + 1
        return next_id


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable, consistent view of the store at one point in time."""

    definitions: tuple[QualityDefinition, ...] = ()
    profiles: tuple[QualityProfile, ...] = ()
    formats: tuple[CustomFormat, ...] = ()
    format_scores: Mapping[tuple[int, int], int] = field(default_factory=dict)
    restrictions: tuple[Restriction, ...] = ()

    def profile(self, profile_id: int) -> QualityProfile | None:
        """Look up a profile by id."""
        for profile in self.profiles:
            if profile.id == profile_id:
                return profile
        return None


@dataclass(frozen=True)
class UpsertOutcome:
    """What an imported-format upsert did to one record."""

    format: CustomFormat
    created: bool


class ConfigStore:
    """Persistent store for quality configuration.

    Pass ``path=None`` for a purely in-memory store.

    Example:
        store = ConfigStore(Path("~/.config/qualitarr/store.json").expanduser())
        store.seed_defaults()
        profile = store.get_profile_by_name("HD-1080p")
        store.set_format_score(profile.id, format_id, 100)
    """

    def __init__(self, path: Path | None = None) -> None:
        """Initialize the store.

        Args:
            path: Path to the JSON document, or None to keep it in memory
        """
        self.path = path
        self._doc: StoreDocument | None = None
        self._lock = threading.RLock()

    # Persistence

    def _load(self) -> StoreDocument:
        if self._doc is not None:
            return self._doc

        if self.path is None or not self.path.exists():
            self._doc = StoreDocument()
            return self._doc

        try:
            raw = self.path.read_text(encoding="utf-8")
            self._doc = StoreDocument.model_validate_json(raw)
        except (OSError, ValidationError) as e:
            raise StoreError(f"Failed to load store {self.path}: {e}") from e

        logger.debug("Loaded store from %s", self.path)
        return self._doc

    def _save(self, doc: StoreDocument) -> None:
        if self.path is None:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp_path.write_text(doc.model_dump_json(indent=2), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            raise StoreError(f"Failed to save store {self.path}: {e}") from e

    @contextmanager
    def _transaction(self) -> Iterator[StoreDocument]:
        """Yield a private copy of the document and commit it on success."""
        with self._lock:
            working = self._load().model_copy(deep=True)
            yield working
            self._save(working)
            self._doc = working

    def snapshot(self) -> StoreSnapshot:
        """Take a consistent, immutable view of the current configuration."""
        with self._lock:
            doc = self._load()
            return StoreSnapshot(
                definitions=tuple(doc.quality_definitions),
                profiles=tuple(doc.quality_profiles),
                formats=tuple(doc.custom_formats),
                format_scores={(s.profile_id, s.format_id): s.score for s in doc.format_scores},
                restrictions=tuple(doc.restrictions),
            )

    # Seeding

    def seed_defaults(self) -> bool:
        """Seed the default tiers and profiles into an empty store.

        Returns:
            True if anything was seeded, False if tiers already existed
        """
        with self._transaction() as doc:
            if doc.quality_definitions:
                return False

            for row in DEFAULT_QUALITY_DEFINITIONS:
                doc.quality_definitions.append(
                    QualityDefinition(id=doc.allocate_id("quality_definitions"), **row)
                )

            by_name = {d.name: d for d in doc.quality_definitions}
            for name, resolutions, cutoff_name in DEFAULT_QUALITY_PROFILES:
                cutoff = by_name.get(cutoff_name) if cutoff_name else None
                doc.quality_profiles.append(
                    QualityProfile(
                        id=doc.allocate_id("quality_profiles"),
                        name=name,
                        cutoff_quality_id=cutoff.id if cutoff else None,
                        items=build_default_profile_items(doc.quality_definitions, resolutions),
                    )
                )

        logger.info(
            "Seeded %d quality definitions and %d profiles",
            len(DEFAULT_QUALITY_DEFINITIONS),
            len(DEFAULT_QUALITY_PROFILES),
        )
        return True

    # Quality definitions

    def list_quality_definitions(self) -> list[QualityDefinition]:
        """Return all tiers sorted ascending by weight."""
        with self._lock:
            return sorted(self._load().quality_definitions, key=lambda d: d.weight)

    def get_quality_definition(self, quality_id: int) -> QualityDefinition:
        """Look up a tier by id.

        Raises:
            NotFoundError: If no tier has this id
        """
        with self._lock:
            for definition in self._load().quality_definitions:
                if definition.id == quality_id:
                    return definition
        raise NotFoundError("Quality definition", quality_id)

    def update_quality_definition(
        self,
        quality_id: int,
        *,
        min_size: float | None = None,
        max_size: float | None = None,
        preferred_size: float | None = None,
    ) -> QualityDefinition:
        """Change a tier's size bounds. Name, source, resolution and weight are fixed.

        Args:
            quality_id: The tier to edit
            min_size: New minimum size, or None to keep
            max_size: New maximum size, or None to keep
            preferred_size: New preferred size, or None to keep

        Returns:
            The updated tier

        Raises:
            NotFoundError: If the tier does not exist
            StoreError: If the new bounds are inconsistent
        """
        with self._transaction() as doc:
            index = _index_of(doc.quality_definitions, quality_id, "Quality definition")
            current = doc.quality_definitions[index]
            changes: dict[str, Any] = {}
            if min_size is not None:
                changes["min_size"] = min_size
            if max_size is not None:
                changes["max_size"] = max_size
            if preferred_size is not None:
                changes["preferred_size"] = preferred_size
            try:
                updated = QualityDefinition.model_validate({**current.model_dump(), **changes})
            except ValidationError as e:
                raise StoreError(f"Invalid size bounds for {current.name}: {e}") from e
            doc.quality_definitions[index] = updated
        return updated

    def reset_quality_definitions(self) -> int:
        """Restore every default tier's size bounds and weight.

        Tiers keep their ids so profiles that reference them stay valid.
        Missing default tiers are recreated.

        Returns:
            The number of default tiers restored
        """
        with self._transaction() as doc:
            by_name = {d.name: i for i, d in enumerate(doc.quality_definitions)}
            for row in DEFAULT_QUALITY_DEFINITIONS:
                index = by_name.get(row["name"])
                if index is None:
                    doc.quality_definitions.append(
                        QualityDefinition(id=doc.allocate_id("quality_definitions"), **row)
                    )
                else:
                    existing_id = doc.quality_definitions[index].id
                    doc.quality_definitions[index] = QualityDefinition(id=existing_id, **row)
        logger.info("Reset %d quality definitions to defaults", len(DEFAULT_QUALITY_DEFINITIONS))
        return len(DEFAULT_QUALITY_DEFINITIONS)

    # Quality profiles

    def list_profiles(self) -> list[QualityProfile]:
        """Return all profiles in creation order."""
        with self._lock:
            return list(self._load().quality_profiles)

    def get_profile(self, profile_id: int) -> QualityProfile:
        """Look up a profile by id.

        Raises:
            NotFoundError: If no profile has this id
        """
        with self._lock:
            for profile in self._load().quality_profiles:
                if profile.id == profile_id:
                    return profile
        raise NotFoundError("Quality profile", profile_id)

    def get_profile_by_name(self, name: str) -> QualityProfile:
        """Look up a profile by name.

        Raises:
            NotFoundError: If no profile has this name
        """
        with self._lock:
            for profile in self._load().quality_profiles:
                if profile.name == name:
                    return profile
        raise NotFoundError("Quality profile", name)

    def add_profile(
        self,
        name: str,
        *,
        items: Sequence[QualityProfileItem] | None = None,
        cutoff_quality_id: int | None = None,
        upgrade_allowed: bool = True,
        min_format_score: int | None = None,
        cutoff_format_score: int | None = None,
    ) -> QualityProfile:
        """Create a profile.

        Args:
            name: Unique profile name
            items: Tiers in preference order; defaults to every tier enabled
            cutoff_quality_id: Tier at which upgrading stops
            upgrade_allowed: Whether existing files may be replaced
            min_format_score: Minimum custom format total to accept a release
            cutoff_format_score: Score the existing file must also reach to meet the cutoff

        Returns:
            The new profile

        Raises:
            ConflictError: If the name is taken
            StoreError: If items or cutoff reference unknown tiers
        """
        with self._transaction() as doc:
            _ensure_unique_name(doc.quality_profiles, name, "Quality profile")
            if items is None:
                items = build_default_profile_items(doc.quality_definitions, None)
            profile = QualityProfile(
                id=doc.allocate_id("quality_profiles"),
                name=name,
                upgrade_allowed=upgrade_allowed,
                cutoff_quality_id=cutoff_quality_id,
                items=tuple(items),
                min_format_score=min_format_score,
                cutoff_format_score=cutoff_format_score,
            )
            _check_profile_references(doc, profile)
            doc.quality_profiles.append(profile)
        logger.info("Added quality profile %s (id=%d)", profile.name, profile.id)
        return profile

    def update_profile(self, profile_id: int, **changes: Any) -> QualityProfile:
        """Apply field changes to a profile in one atomic step.

        Accepted fields are ``name``, ``upgrade_allowed``,
        ``cutoff_quality_id``, ``items``, ``min_format_score`` and
        ``cutoff_format_score``. Passing None clears an optional field.

        Raises:
            NotFoundError: If the profile does not exist
            ConflictError: If the new name is taken
            StoreError: On unknown fields or dangling tier references
        """
        unknown = set(changes) - _PROFILE_FIELDS
        if unknown:
            raise StoreError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        with self._transaction() as doc:
            index = _index_of(doc.quality_profiles, profile_id, "Quality profile")
            current = doc.quality_profiles[index]
            if "name" in changes and changes["name"] != current.name:
                _ensure_unique_name(doc.quality_profiles, changes["name"], "Quality profile")
            try:
                updated = QualityProfile.model_validate({**current.model_dump(), **changes})
            except ValidationError as e:
                raise StoreError(f"Invalid profile update for {current.name}: {e}") from e
            _check_profile_references(doc, updated)
            doc.quality_profiles[index] = updated
        return updated

    def remove_profile(self, profile_id: int) -> None:
        """Delete a profile and its format scores.

        Raises:
            NotFoundError: If the profile does not exist
        """
        with self._transaction() as doc:
            index = _index_of(doc.quality_profiles, profile_id, "Quality profile")
            removed = doc.quality_profiles.pop(index)
            doc.format_scores = [s for s in doc.format_scores if s.profile_id != profile_id]
        logger.info("Removed quality profile %s (id=%d)", removed.name, removed.id)

    def set_quality_enabled(self, profile_id: int, quality_id: int, enabled: bool) -> QualityProfile:
        """Enable or disable one tier within a profile.

        Raises:
            NotFoundError: If the profile does not exist or does not list the tier
        """
        with self._transaction() as doc:
            index = _index_of(doc.quality_profiles, profile_id, "Quality profile")
            profile = doc.quality_profiles[index]
            if quality_id not in profile.quality_ids:
                raise NotFoundError("Profile quality", quality_id)
            items = tuple(
                item.model_copy(update={"enabled": enabled}) if item.quality_id == quality_id else item
                for item in profile.items
            )
            updated = profile.model_copy(update={"items": items})
            doc.quality_profiles[index] = updated
        return updated

    def reorder_qualities(self, profile_id: int, quality_ids: Sequence[int]) -> QualityProfile:
        """Put a profile's tiers in a new preference order, worst first.

        Args:
            profile_id: The profile to edit
            quality_ids: Every tier id the profile lists, in the new order

        Raises:
            NotFoundError: If the profile does not exist
            StoreError: If ``quality_ids`` is not a permutation of the profile's tiers
        """
        with self._transaction() as doc:
            index = _index_of(doc.quality_profiles, profile_id, "Quality profile")
            profile = doc.quality_profiles[index]
            if sorted(quality_ids) != sorted(profile.quality_ids):
                raise StoreError("New order must list exactly the profile's existing qualities")
            by_id = {item.quality_id: item for item in profile.items}
            updated = profile.model_copy(update={"items": tuple(by_id[q] for q in quality_ids)})
            doc.quality_profiles[index] = updated
        return updated

    # Format scores

    def get_format_scores(self, profile_id: int) -> dict[int, int]:
        """Return a profile's scores keyed by format id."""
        with self._lock:
            return {
                s.format_id: s.score for s in self._load().format_scores if s.profile_id == profile_id
            }

    def set_format_score(self, profile_id: int, format_id: int, score: int) -> None:
        """Set one profile/format score, replacing any existing entry."""
        self.bulk_set_format_scores(profile_id, {format_id: score})

    def bulk_set_format_scores(self, profile_id: int, scores: Mapping[int, int]) -> int:
        """Set many scores for one profile in a single atomic step.

        Args:
            profile_id: The profile whose scores change
            scores: Score per format id

        Returns:
            The number of scores written

        Raises:
            NotFoundError: If the profile or any format does not exist
        """
        with self._transaction() as doc:
            _index_of(doc.quality_profiles, profile_id, "Quality profile")
            known_formats = {f.id for f in doc.custom_formats}
            for format_id in scores:
                if format_id not in known_formats:
                    raise NotFoundError("Custom format", format_id)

            kept = [
                s
                for s in doc.format_scores
                if not (s.profile_id == profile_id and s.format_id in scores)
            ]
            kept.extend(
                CustomFormatScore(profile_id=profile_id, format_id=format_id, score=score)
                for format_id, score in scores.items()
            )
            doc.format_scores = kept
        return len(scores)

    def remove_format_score(self, profile_id: int, format_id: int) -> bool:
        """Drop one profile/format score.

        Returns:
            True if an entry was removed
        """
        with self._transaction() as doc:
            before = len(doc.format_scores)
            doc.format_scores = [
                s
                for s in doc.format_scores
                if not (s.profile_id == profile_id and s.format_id == format_id)
            ]
            return len(doc.format_scores) != before

    # Custom formats

    def list_formats(self) -> list[CustomFormat]:
        """Return all custom formats in creation order."""
        with self._lock:
            return list(self._load().custom_formats)

    def get_format(self, format_id: int) -> CustomFormat:
        """Look up a custom format by id.

        Raises:
            NotFoundError: If no format has this id
        """
        with self._lock:
            for custom_format in self._load().custom_formats:
                if custom_format.id == format_id:
                    return custom_format
        raise NotFoundError("Custom format", format_id)

    def get_format_by_name(self, name: str) -> CustomFormat:
        """Look up a custom format by name.

        Raises:
            NotFoundError: If no format has this name
        """
        with self._lock:
            for custom_format in self._load().custom_formats:
                if custom_format.name == name:
                    return custom_format
        raise NotFoundError("Custom format", name)

    def add_format(
        self,
        name: str,
        conditions: Sequence[Condition],
        *,
        include_when_renaming: bool = False,
    ) -> CustomFormat:
        """Create a user-defined custom format.

        Raises:
            ConflictError: If the name is taken
            FormatValidationError: If there are no conditions or a pattern is invalid
        """
        validated = validate_conditions(conditions)
        with self._transaction() as doc:
            _ensure_unique_name(doc.custom_formats, name, "Custom format")
            custom_format = CustomFormat(
                id=doc.allocate_id("custom_formats"),
                name=name,
                include_when_renaming=include_when_renaming,
                conditions=validated,
            )
            doc.custom_formats.append(custom_format)
        logger.info("Added custom format %s (id=%d)", custom_format.name, custom_format.id)
        return custom_format

    def update_format(
        self,
        format_id: int,
        *,
        name: str | None = None,
        conditions: Sequence[Condition] | None = None,
        include_when_renaming: bool | None = None,
    ) -> CustomFormat:
        """Edit a custom format.

        Raises:
            NotFoundError: If the format does not exist
            ConflictError: If the new name is taken
            FormatValidationError: If the new conditions are invalid
        """
        changes: dict[str, Any] = {}
        if conditions is not None:
            changes["conditions"] = validate_conditions(conditions)
        if include_when_renaming is not None:
            changes["include_when_renaming"] = include_when_renaming

        with self._transaction() as doc:
            index = _index_of(doc.custom_formats, format_id, "Custom format")
            current = doc.custom_formats[index]
            if name is not None and name != current.name:
                _ensure_unique_name(doc.custom_formats, name, "Custom format")
                changes["name"] = name
            updated = current.model_copy(update=changes)
            doc.custom_formats[index] = updated
        return updated

    def remove_format(self, format_id: int) -> None:
        """Delete a custom format and every score that references it.

        Raises:
            NotFoundError: If the format does not exist
        """
        with self._transaction() as doc:
            index = _index_of(doc.custom_formats, format_id, "Custom format")
            removed = doc.custom_formats.pop(index)
            doc.format_scores = [s for s in doc.format_scores if s.format_id != format_id]
        logger.info("Removed custom format %s (id=%d)", removed.name, removed.id)

    def upsert_imported_formats(
        self, records: Sequence[ImportedFormat], synced_at: datetime
    ) -> list[UpsertOutcome]:
        """Create or refresh imported formats keyed by their external id.

        The batch commits as one unit. A record whose name is already used by
        a different format is stored as ``"<name> (TRaSH)"``, or
        ``"<name> (TRaSH 2)"`` and up when that is taken too.

        Args:
            records: Validated upstream formats
            synced_at: Timestamp stamped on every record in the batch

        Returns:
            One outcome per record, in input order
        """
        outcomes: list[UpsertOutcome] = []
        with self._transaction() as doc:
            by_external = {
                f.external_id: i for i, f in enumerate(doc.custom_formats) if f.external_id
            }
            for record in records:
                index = by_external.get(record.external_id)
                own_id = doc.custom_formats[index].id if index is not None else None
                name = _free_imported_name(doc.custom_formats, record.name, own_id)

                fields = {
                    "name": name,
                    "include_when_renaming": record.include_when_renaming,
                    "conditions": record.conditions,
                    "external_id": record.external_id,
                    "category": record.category,
                    "media_type": record.media_type,
                    "recommended_score": record.recommended_score,
                    "last_sync_at": synced_at,
                }
                if index is None:
                    custom_format = CustomFormat(id=doc.allocate_id("custom_formats"), **fields)
                    doc.custom_formats.append(custom_format)
                    by_external[record.external_id] = len(doc.custom_formats) - 1
                    outcomes.append(UpsertOutcome(format=custom_format, created=True))
                else:
                    custom_format = CustomFormat(id=own_id, **fields)
                    doc.custom_formats[index] = custom_format
                    outcomes.append(UpsertOutcome(format=custom_format, created=False))
        return outcomes

    def record_sync(self, media_type: MediaType, synced_at: datetime | None = None) -> None:
        """Remember when a media type's external catalog was last synced."""
        with self._transaction() as doc:
            doc.last_sync[media_type] = synced_at or datetime.now(UTC)

    def last_sync(self, media_type: MediaType) -> datetime | None:
        """When a media type's external catalog was last synced, if ever."""
        with self._lock:
            return self._load().last_sync.get(media_type)

    # Restrictions

    def list_restrictions(self) -> list[Restriction]:
        """Return all release restrictions."""
        with self._lock:
            return list(self._load().restrictions)

    def add_restriction(
        self,
        name: str,
        *,
        must_contain: Sequence[str] = (),
        must_not_contain: Sequence[str] = (),
        tags: Sequence[str] = (),
    ) -> Restriction:
        """Create a release restriction.

        Raises:
            ConflictError: If the name is taken
        """
        with self._transaction() as doc:
            _ensure_unique_name(doc.restrictions, name, "Restriction")
            restriction = Restriction(
                id=doc.allocate_id("restrictions"),
                name=name,
                must_contain=tuple(must_contain),
                must_not_contain=tuple(must_not_contain),
                tags=tuple(tags),
            )
            doc.restrictions.append(restriction)
        return restriction

    def update_restriction(
        self,
        restriction_id: int,
        *,
        must_contain: Sequence[str] | None = None,
        must_not_contain: Sequence[str] | None = None,
        tags: Sequence[str] | None = None,
    ) -> Restriction:
        """Replace a restriction's term lists or tags.

        Raises:
            NotFoundError: If the restriction does not exist
        """
        changes: dict[str, Any] = {}
        if must_contain is not None:
            changes["must_contain"] = tuple(must_contain)
        if must_not_contain is not None:
            changes["must_not_contain"] = tuple(must_not_contain)
        if tags is not None:
            changes["tags"] = tuple(tags)

        with self._transaction() as doc:
            index = _index_of(doc.restrictions, restriction_id, "Restriction")
            updated = doc.restrictions[index].model_copy(update=changes)
            doc.restrictions[index] = updated
        return updated

    def remove_restriction(self, restriction_id: int) -> None:
        """Delete a restriction.

        Raises:
            NotFoundError: If the restriction does not exist
        """
        with self._transaction() as doc:
            index = _index_of(doc.restrictions, restriction_id, "Restriction")
            doc.restrictions.pop(index)


def _index_of(records: Sequence[Any], record_id: int, kind: str) -> int:
    for index, record in enumerate(records):
        if record.id == record_id:
            return index
    raise NotFoundError(kind, record_id)


def _ensure_unique_name(records: Sequence[Any], name: str, kind: str) -> None:
    if any(record.name == name for record in records):
        raise ConflictError(kind, name)


def _free_imported_name(formats: Sequence[CustomFormat], name: str, own_id: int | None) -> str:
    taken = {f.name for f in formats if f.id != own_id}
    candidate = name
    counter = 1
    while candidate in taken:
        tag = IMPORTED_NAME_TAG if counter == 1 else f"{IMPORTED_NAME_TAG} {counter}"
        candidate = f"{name} ({tag})"
        counter += 1
    return candidate


def _check_profile_references(doc: StoreDocument, profile: QualityProfile) -> None:
    known = {d.id for d in doc.quality_definitions}
    seen: set[int] = set()
    for quality_id in profile.quality_ids:
        if quality_id not in known:
            raise StoreError(f"Profile {profile.name} references unknown quality {quality_id}")
        if quality_id in seen:
            raise StoreError(f"Profile {profile.name} lists quality {quality_id} more than once")
        seen.add(quality_id)
    if profile.cutoff_quality_id is not None and profile.cutoff_quality_id not in known:
        raise StoreError(
            f"Profile {profile.name} cutoff references unknown quality {profile.cutoff_quality_id}"
        )
