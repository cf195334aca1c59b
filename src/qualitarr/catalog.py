"""Quality catalog: the ordered set of quality tiers.

The default tier table is seeded once into the store. At evaluation time a
:class:`QualityCatalog` wraps an immutable snapshot of the tiers and answers
lookups without touching the store.

Size bounds are MB per minute of content.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from qualitarr.models.quality import (
    QualityDefinition,
    QualityProfileItem,
    QualitySource,
    Resolution,
    SizeCheck,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

# Returned by resolve() when no tier matches and the catalog has no
# unknown/unknown tier of its own.
UNKNOWN_QUALITY = QualityDefinition(
    id=0,
    name="Unknown",
    source=QualitySource.UNKNOWN,
    resolution=Resolution.UNKNOWN,
    min_size=0,
    max_size=100,
    weight=0,
)

DEFAULT_QUALITY_DEFINITIONS: tuple[dict[str, Any], ...] = (
    # Unknown / low quality
    {"name": "Unknown", "source": "unknown", "resolution": "unknown", "min_size": 0, "max_size": 100, "weight": 0},
    {"name": "WORKPRINT", "source": "workprint", "resolution": "unknown", "min_size": 0, "max_size": 100, "weight": 1},
    {"name": "CAM", "source": "cam", "resolution": "unknown", "min_size": 0, "max_size": 100, "weight": 2},
    {"name": "TELESYNC", "source": "telesync", "resolution": "unknown", "min_size": 0, "max_size": 100, "weight": 3},
    {"name": "TELECINE", "source": "telecine", "resolution": "unknown", "min_size": 0, "max_size": 100, "weight": 4},
    # DVD
    {"name": "DVD", "source": "dvd", "resolution": "480p", "min_size": 2, "max_size": 100, "preferred_size": 35, "weight": 10},
    {"name": "DVD-R", "source": "dvd", "resolution": "576p", "min_size": 2, "max_size": 100, "preferred_size": 35, "weight": 11},
    # SDTV
    {"name": "SDTV", "source": "tv", "resolution": "480p", "min_size": 1, "max_size": 100, "preferred_size": 15, "weight": 15},
    # 720p
    {"name": "HDTV-720p", "source": "tv", "resolution": "720p", "min_size": 3, "max_size": 125, "preferred_size": 40, "weight": 20},
    {"name": "WEBRip-720p", "source": "webrip", "resolution": "720p", "min_size": 3, "max_size": 130, "preferred_size": 45, "weight": 21},
    {"name": "WEB-DL 720p", "source": "webdl", "resolution": "720p", "min_size": 3, "max_size": 130, "preferred_size": 50, "weight": 22},
    {"name": "BluRay-720p", "source": "bluray", "resolution": "720p", "min_size": 4, "max_size": 130, "preferred_size": 60, "weight": 23},
    # 1080p
    {"name": "HDTV-1080p", "source": "tv", "resolution": "1080p", "min_size": 4, "max_size": 130, "preferred_size": 50, "weight": 30},
    {"name": "WEBRip-1080p", "source": "webrip", "resolution": "1080p", "min_size": 4, "max_size": 130, "preferred_size": 60, "weight": 31},
    {"name": "WEB-DL 1080p", "source": "webdl", "resolution": "1080p", "min_size": 4, "max_size": 130, "preferred_size": 70, "weight": 32},
    {"name": "BluRay-1080p", "source": "bluray", "resolution": "1080p", "min_size": 5, "max_size": 155, "preferred_size": 80, "weight": 33},
    {"name": "Remux-1080p", "source": "remux", "resolution": "1080p", "min_size": 10, "max_size": 400, "preferred_size": 200, "weight": 34},
    # 2160p
    {"name": "HDTV-2160p", "source": "tv", "resolution": "2160p", "min_size": 10, "max_size": 350, "preferred_size": 100, "weight": 40},
    {"name": "WEBRip-2160p", "source": "webrip", "resolution": "2160p", "min_size": 10, "max_size": 350, "preferred_size": 120, "weight": 41},
    {"name": "WEB-DL 2160p", "source": "webdl", "resolution": "2160p", "min_size": 10, "max_size": 350, "preferred_size": 140, "weight": 42},
    {"name": "BluRay-2160p", "source": "bluray", "resolution": "2160p", "min_size": 15, "max_size": 400, "preferred_size": 180, "weight": 43},
    {"name": "Remux-2160p", "source": "remux", "resolution": "2160p", "min_size": 30, "max_size": 750, "preferred_size": 400, "weight": 44},
)

# name, enabled resolutions (None = every tier), cutoff tier name
DEFAULT_QUALITY_PROFILES: tuple[tuple[str, frozenset[Resolution] | None, str | None], ...] = (
    ("Any", None, None),
    ("SD", frozenset({Resolution.R480P, Resolution.R576P, Resolution.UNKNOWN}), "DVD"),
    ("HD-720p", frozenset({Resolution.R720P}), "WEB-DL 720p"),
    ("HD-1080p", frozenset({Resolution.R1080P}), "WEB-DL 1080p"),
    ("Ultra-HD", frozenset({Resolution.R2160P}), "WEB-DL 2160p"),
)

_SOURCE_ALIASES: dict[str, QualitySource] = {
    "unknown": QualitySource.UNKNOWN,
    "cam": QualitySource.CAM,
    "hdcam": QualitySource.CAM,
    "camrip": QualitySource.CAM,
    "ts": QualitySource.TELESYNC,
    "hdts": QualitySource.TELESYNC,
    "telesync": QualitySource.TELESYNC,
    "tc": QualitySource.TELECINE,
    "telecine": QualitySource.TELECINE,
    "wp": QualitySource.WORKPRINT,
    "workprint": QualitySource.WORKPRINT,
    "dvd": QualitySource.DVD,
    "dvdrip": QualitySource.DVD,
    "dvdr": QualitySource.DVD,
    "tv": QualitySource.TV,
    "hdtv": QualitySource.TV,
    "pdtv": QualitySource.TV,
    "sdtv": QualitySource.TV,
    "television": QualitySource.TV,
    "webdl": QualitySource.WEBDL,
    "web": QualitySource.WEBDL,
    "webrip": QualitySource.WEBRIP,
    "bluray": QualitySource.BLURAY,
    "bdrip": QualitySource.BLURAY,
    "brrip": QualitySource.BLURAY,
    "bd": QualitySource.BLURAY,
    "remux": QualitySource.REMUX,
    "blurayremux": QualitySource.REMUX,
    "bdremux": QualitySource.REMUX,
}

_RESOLUTION_ALIASES: dict[str, Resolution] = {
    "unknown": Resolution.UNKNOWN,
    "480": Resolution.R480P,
    "480p": Resolution.R480P,
    "480i": Resolution.R480P,
    "sd": Resolution.R480P,
    "576": Resolution.R576P,
    "576p": Resolution.R576P,
    "576i": Resolution.R576P,
    "720": Resolution.R720P,
    "720p": Resolution.R720P,
    "1080": Resolution.R1080P,
    "1080p": Resolution.R1080P,
    "1080i": Resolution.R1080P,
    "2160": Resolution.R2160P,
    "2160p": Resolution.R2160P,
    "4k": Resolution.R2160P,
    "uhd": Resolution.R2160P,
}


def normalize_source(value: str | QualitySource | None) -> QualitySource:
    """Map a parser-provided source label onto a :class:`QualitySource`.

    Unrecognized or missing labels map to ``UNKNOWN``.
    """
    if value is None:
        return QualitySource.UNKNOWN
    if isinstance(value, QualitySource):
        return value
    key = value.strip().lower().replace("-", "").replace(" ", "").replace(".", "")
    return _SOURCE_ALIASES.get(key, QualitySource.UNKNOWN)


def normalize_resolution(value: str | Resolution | None) -> Resolution:
    """Map a parser-provided resolution label onto a :class:`Resolution`."""
    if value is None:
        return Resolution.UNKNOWN
    if isinstance(value, Resolution):
        return value
    key = value.strip().lower().replace(" ", "")
    if key.startswith("r") and key[1:2].isdigit():
        key = key[1:]
    return _RESOLUTION_ALIASES.get(key, Resolution.UNKNOWN)


def build_default_definitions() -> list[QualityDefinition]:
    """Build the default tier table with ids assigned in weight order."""
    return [
        QualityDefinition(id=index, **row)
        for index, row in enumerate(DEFAULT_QUALITY_DEFINITIONS, start=1)
    ]


def build_default_profile_items(
    definitions: Iterable[QualityDefinition],
    enabled_resolutions: frozenset[Resolution] | None,
) -> tuple[QualityProfileItem, ...]:
    """Build profile items listing every tier in weight order.

    Args:
        definitions: The tiers to list
        enabled_resolutions: Resolutions to enable, or None to enable all

    Returns:
        Tuple of profile items, worst tier first
    """
    ordered = sorted(definitions, key=lambda d: d.weight)
    return tuple(
        QualityProfileItem(
            quality_id=definition.id,
            enabled=enabled_resolutions is None or definition.resolution in enabled_resolutions,
        )
        for definition in ordered
    )


class QualityCatalog:
    """Read-only view over a snapshot of quality tiers.

    Example:
        catalog = QualityCatalog(build_default_definitions())
        tier = catalog.resolve("WEB-DL", "1080p")
        check = catalog.validate_size(tier, 55.0)
    """

    def __init__(self, definitions: Iterable[QualityDefinition]) -> None:
        self._definitions: tuple[QualityDefinition, ...] = tuple(
            sorted(definitions, key=lambda d: d.weight)
        )
        self._by_id = {d.id: d for d in self._definitions}
        self._by_pair: dict[tuple[QualitySource, Resolution], QualityDefinition] = {}
        for definition in self._definitions:
            # Later (heavier) tiers win when a pair is defined twice
            self._by_pair[(definition.source, definition.resolution)] = definition

    def __len__(self) -> int:
        return len(self._definitions)

    def list(self) -> list[QualityDefinition]:
        """Return all tiers sorted ascending by weight."""
        return list(self._definitions)

    def get(self, quality_id: int) -> QualityDefinition | None:
        """Look up a tier by id."""
        return self._by_id.get(quality_id)

    def get_by_name(self, name: str) -> QualityDefinition | None:
        """Look up a tier by its exact name."""
        for definition in self._definitions:
            if definition.name == name:
                return definition
        return None

    def list_by_source(self, source: QualitySource) -> list[QualityDefinition]:
        """Return the tiers for one source, worst first."""
        return [d for d in self._definitions if d.source == source]

    def list_by_resolution(self, resolution: Resolution) -> list[QualityDefinition]:
        """Return the tiers for one resolution, worst first."""
        return [d for d in self._definitions if d.resolution == resolution]

    @property
    def unknown(self) -> QualityDefinition:
        """The tier used when nothing else matches."""
        return self._by_pair.get((QualitySource.UNKNOWN, Resolution.UNKNOWN), UNKNOWN_QUALITY)

    def resolve(
        self,
        source: str | QualitySource | None,
        resolution: str | Resolution | None,
    ) -> QualityDefinition:
        """Find the tier for a source and resolution.

        Never fails: an unmatched pair resolves to the unknown tier.

        Args:
            source: Source label or enum value (e.g. "WEB-DL", "bluray")
            resolution: Resolution label or enum value (e.g. "1080p")

        Returns:
            The matching QualityDefinition, or the unknown tier
        """
        pair = (normalize_source(source), normalize_resolution(resolution))
        definition = self._by_pair.get(pair)
        if definition is None:
            logger.debug("No quality tier for %s/%s, using unknown", pair[0].value, pair[1].value)
            return self.unknown
        return definition

    @staticmethod
    def validate_size(definition: QualityDefinition, size: float | None) -> SizeCheck:
        """Check a size against a tier's bounds.

        This is a soft signal for the caller; it never rejects anything itself.

        Args:
            definition: The tier whose bounds apply
            size: Size in MB per minute, or None when unknown

        Returns:
            SizeCheck with ok=False and a reason when out of bounds
        """
        if size is None:
            return SizeCheck(ok=True, reason="size unknown")
        if size < definition.min_size:
            return SizeCheck(
                ok=False,
                reason=f"{size:g} is below minimum {definition.min_size:g} for {definition.name}",
            )
        if size > definition.max_size:
            return SizeCheck(
                ok=False,
                reason=f"{size:g} is above maximum {definition.max_size:g} for {definition.name}",
            )
        return SizeCheck(ok=True)
