"""Release restriction checks (required and forbidden title terms)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from qualitarr.models.restrictions import Restriction


@dataclass(frozen=True)
class RestrictionResult:
    """Outcome of testing a release title against one restriction."""

    restriction_id: int
    restriction_name: str
    passed: bool
    contained: tuple[str, ...] = ()
    forbidden: tuple[str, ...] = ()
    reason: str | None = None


@dataclass(frozen=True)
class RestrictionReport:
    """Outcome across every restriction that applies to a release."""

    results: tuple[RestrictionResult, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        """True when every applicable restriction passed."""
        return all(r.passed for r in self.results)

    @property
    def failed(self) -> list[RestrictionResult]:
        """The restrictions that blocked the release."""
        return [r for r in self.results if not r.passed]


def applies_to(restriction: Restriction, tags: Iterable[str]) -> bool:
    """Whether a restriction applies to an item with the given tags.

    An untagged restriction applies to everything.
    """
    if not restriction.tags:
        return True
    return bool(set(restriction.tags) & set(tags))


def check_restriction(restriction: Restriction, release_title: str) -> RestrictionResult:
    """Test one restriction against a release title.

    ``must_contain`` passes when empty or when any term appears; any
    ``must_not_contain`` term fails the release. Terms match as
    case-insensitive substrings.
    """
    title = release_title.lower()
    contained = tuple(t for t in restriction.must_contain if t.lower() in title)
    forbidden = tuple(t for t in restriction.must_not_contain if t.lower() in title)

    must_contain_passed = not restriction.must_contain or bool(contained)

    reason = None
    if not must_contain_passed:
        reason = f"Does not contain any of: {', '.join(restriction.must_contain)}"
    elif forbidden:
        reason = f"Contains forbidden term: {forbidden[0]}"

    return RestrictionResult(
        restriction_id=restriction.id,
        restriction_name=restriction.name,
        passed=must_contain_passed and not forbidden,
        contained=contained,
        forbidden=forbidden,
        reason=reason,
    )


def check_restrictions(
    restrictions: Iterable[Restriction],
    release_title: str,
    tags: Iterable[str] = (),
) -> RestrictionReport:
    """Test a release title against every applicable restriction."""
    tag_list = list(tags)
    return RestrictionReport(
        results=tuple(
            check_restriction(r, release_title) for r in restrictions if applies_to(r, tag_list)
        )
    )
