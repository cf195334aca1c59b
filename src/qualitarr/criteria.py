"""Custom format condition matching.

Each condition selects one release attribute and tests it with a
case-insensitive regular expression, or, for ``size`` conditions, with a
small numeric comparison grammar. A format matches when every required
condition holds and, if it has optional conditions, at least one of them
holds.

Patterns are validated when a format is written (:func:`validate_conditions`)
and compiled lazily through a process-wide cache keyed by pattern text and
flags. Matching itself never raises for a validated format.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from qualitarr.models.formats import Condition, ConditionType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from qualitarr.models.formats import CustomFormat
    from qualitarr.models.release import ReleaseCandidate

_RELEASE_GROUP_RE = re.compile(r"-([A-Za-z0-9]+)(?:\.[a-z]{2,4})?$")
_SIZE_RANGE_RE = re.compile(r"^(\d+)-(\d+)$")
_SIZE_COMPARE_RE = re.compile(r"^([<>]=?)(\d+)$")


class FormatValidationError(ValueError):
    """Raised when a custom format definition cannot be stored."""

    def __init__(self, message: str, pattern: str | None = None) -> None:
        super().__init__(message)
        self.pattern = pattern


@dataclass(frozen=True)
class ConditionResult:
    """Trace entry for one evaluated condition.

    ``matched`` is the result after negation.
    """

    type: ConditionType
    pattern: str
    negate: bool
    required: bool
    matched: bool


@dataclass(frozen=True)
class FormatMatch:
    """Verdict for one release against one custom format."""

    matched: bool
    trace: tuple[ConditionResult, ...]


@lru_cache(maxsize=None)
def compile_pattern(pattern: str, ignore_case: bool = True) -> re.Pattern[str]:
    """Compile a condition pattern, caching by text and case flag.

    Raises:
        re.error: If the pattern does not compile
    """
    return re.compile(pattern, re.IGNORECASE if ignore_case else 0)


def validate_pattern(condition: Condition) -> None:
    """Check that a condition's pattern compiles.

    Size patterns are not regular expressions and are not checked here; an
    unrecognized size pattern simply never matches.

    Raises:
        FormatValidationError: If the pattern is not a valid regular expression
    """
    if condition.type == ConditionType.SIZE:
        return
    try:
        compile_pattern(condition.pattern)
    except re.error as e:
        raise FormatValidationError(
            f"Invalid regex pattern: {condition.pattern} ({e})", pattern=condition.pattern
        ) from e


def validate_conditions(conditions: Iterable[Condition]) -> tuple[Condition, ...]:
    """Validate a custom format's condition list before it is persisted.

    Args:
        conditions: The conditions to validate

    Returns:
        The conditions as a tuple

    Raises:
        FormatValidationError: If the list is empty or a pattern is invalid
    """
    result = tuple(conditions)
    if not result:
        raise FormatValidationError("Custom format must have at least one condition")
    for condition in result:
        validate_pattern(condition)
    return result


def extract_release_group(raw_title: str) -> str | None:
    """Pull the trailing ``-GROUP`` token out of a release title.

    A short file extension after the group is tolerated
    (``Movie.2020.1080p-GRP.mkv`` yields ``GRP``).
    """
    match = _RELEASE_GROUP_RE.search(raw_title.strip())
    return match.group(1) if match else None


def evaluate_size_condition(pattern: str, size: float) -> bool:
    """Test a size against the size grammar.

    Recognized forms are ``>N``, ``>=N``, ``<N``, ``<=N`` and ``A-B``
    (inclusive at both ends). Anything else evaluates to False.
    """
    pattern = pattern.strip()

    range_match = _SIZE_RANGE_RE.match(pattern)
    if range_match:
        low, high = int(range_match.group(1)), int(range_match.group(2))
        return low <= size <= high

    compare_match = _SIZE_COMPARE_RE.match(pattern)
    if compare_match:
        op, value = compare_match.group(1), int(compare_match.group(2))
        if op == ">":
            return size > value
        if op == ">=":
            return size >= value
        if op == "<":
            return size < value
        return size <= value

    return False


def _release_name(candidate: ReleaseCandidate) -> str | None:
    return candidate.raw_title


def _release_group(candidate: ReleaseCandidate) -> str | None:
    return candidate.release_group or extract_release_group(candidate.raw_title)


def _with_fallback(attribute: str) -> Callable[[ReleaseCandidate], str | None]:
    def select(candidate: ReleaseCandidate) -> str | None:
        value: str | None = getattr(candidate, attribute)
        return candidate.raw_title if value is None else value

    return select


def _indexer_flags(candidate: ReleaseCandidate) -> str | tuple[str, ...] | None:
    if candidate.indexer_flags:
        return candidate.indexer_flags
    return candidate.raw_title


# Every condition type except size has a text selector; a missing entry here
# is caught by the exhaustiveness check below at import time.
_TEXT_SELECTORS: dict[ConditionType, Callable[[ReleaseCandidate], str | tuple[str, ...] | None]] = {
    ConditionType.RELEASE_NAME: _release_name,
    ConditionType.RELEASE_GROUP: _release_group,
    ConditionType.SOURCE: _with_fallback("source"),
    ConditionType.RESOLUTION: _with_fallback("resolution"),
    ConditionType.CODEC: _with_fallback("codec"),
    ConditionType.AUDIO_CODEC: _with_fallback("audio_codec"),
    ConditionType.AUDIO_CHANNELS: _with_fallback("audio_channels"),
    ConditionType.LANGUAGE: _with_fallback("language"),
    ConditionType.EDITION: _with_fallback("edition"),
    ConditionType.INDEXER_FLAG: _indexer_flags,
}

if set(_TEXT_SELECTORS) | {ConditionType.SIZE} != set(ConditionType):  # pragma: no cover
    raise RuntimeError("Condition selectors do not cover every ConditionType")


def select_value(
    candidate: ReleaseCandidate, condition_type: ConditionType
) -> str | tuple[str, ...] | float | None:
    """Pick the candidate attribute a condition type is tested against.

    Text attributes fall back to the raw title when missing, except the
    release group, which is derived from the title's trailing ``-GROUP``.
    Size never falls back.
    """
    if condition_type == ConditionType.SIZE:
        return candidate.size
    return _TEXT_SELECTORS[condition_type](candidate)


def _test_text(pattern: str, value: str | tuple[str, ...] | None) -> bool:
    if not value:
        return False
    try:
        regex = compile_pattern(pattern)
    except re.error:
        # Only reachable for formats that skipped write-time validation
        return False
    if isinstance(value, tuple):
        return any(regex.search(item) for item in value if item)
    return regex.search(value) is not None


def evaluate_condition(condition: Condition, candidate: ReleaseCandidate) -> bool:
    """Evaluate one condition before negation is applied.

    A missing value, including a missing size, is a non-match.
    """
    if condition.type == ConditionType.SIZE:
        if candidate.size is None:
            return False
        return evaluate_size_condition(condition.pattern, candidate.size)

    return _test_text(condition.pattern, _TEXT_SELECTORS[condition.type](candidate))


def match_condition(condition: Condition, candidate: ReleaseCandidate) -> ConditionResult:
    """Evaluate one condition and apply its negation.

    ``negate`` inverts every result, including the non-match of a missing value.
    """
    raw = evaluate_condition(condition, candidate)
    matched = not raw if condition.negate else raw
    return ConditionResult(
        type=condition.type,
        pattern=condition.pattern,
        negate=condition.negate,
        required=condition.required,
        matched=matched,
    )


def matches(candidate: ReleaseCandidate, custom_format: CustomFormat) -> FormatMatch:
    """Evaluate a release against a custom format.

    The format matches when all required conditions match and either there
    are no optional conditions or at least one optional condition matches.

    Args:
        candidate: The parsed release
        custom_format: The format to test

    Returns:
        FormatMatch with the verdict and a per-condition trace
    """
    trace = tuple(match_condition(c, candidate) for c in custom_format.conditions)

    required = [r for r in trace if r.required]
    optional = [r for r in trace if not r.required]

    all_required = all(r.matched for r in required)
    any_optional = not optional or any(r.matched for r in optional)

    return FormatMatch(matched=all_required and any_optional, trace=trace)


def matching_formats(
    candidate: ReleaseCandidate, formats: Iterable[CustomFormat]
) -> list[tuple[CustomFormat, FormatMatch]]:
    """Return every format the candidate matches, in catalog order."""
    results = []
    for custom_format in formats:
        result = matches(candidate, custom_format)
        if result.matched:
            results.append((custom_format, result))
    return results
