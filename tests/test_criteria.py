"""Tests for custom format condition matching."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from qualitarr.criteria import (
    FormatValidationError,
    compile_pattern,
    evaluate_size_condition,
    extract_release_group,
    match_condition,
    matches,
    matching_formats,
    select_value,
    validate_conditions,
)
from qualitarr.models.formats import Condition, ConditionType, CustomFormat
from qualitarr.models.release import ReleaseCandidate


def make_format(*conditions: Condition, format_id: int = 1, name: str = "Test") -> CustomFormat:
    return CustomFormat(id=format_id, name=name, conditions=conditions)


class TestSizeGrammar:
    """Tests for the size condition grammar."""

    @pytest.mark.parametrize(
        ("pattern", "size", "expected"),
        [
            (">=500", 500, True),
            (">500", 500, False),
            (">500", 501, True),
            ("<500", 499, True),
            ("<500", 500, False),
            ("<=500", 500, True),
            ("500-1000", 500, True),
            ("500-1000", 1000, True),
            ("500-1000", 1001, False),
            ("500-1000", 499, False),
        ],
    )
    def test_grammar_boundaries(self, pattern: str, size: float, expected: bool) -> None:
        """Comparisons and inclusive ranges should hold at their boundaries."""
        assert evaluate_size_condition(pattern, size) is expected

    @pytest.mark.parametrize("pattern", ["", "big", "=500", "500", "500..1000", ">= 500x"])
    def test_unrecognized_pattern_is_false(self, pattern: str) -> None:
        """Anything outside the grammar should never match."""
        assert evaluate_size_condition(pattern, 500) is False

    def test_missing_size_is_non_match(self) -> None:
        """A required size condition against a sizeless candidate should not match."""
        custom_format = make_format(
            Condition(type=ConditionType.SIZE, pattern="500-1000", required=True)
        )

        result = matches(ReleaseCandidate(raw_title="Movie.2020.1080p-GRP"), custom_format)

        assert result.matched is False

    def test_negated_missing_size_matches(self) -> None:
        """Negation should invert the non-match of a missing size."""
        condition = Condition(type=ConditionType.SIZE, pattern="500-1000", negate=True)

        result = match_condition(condition, ReleaseCandidate(raw_title="Movie"))

        assert result.matched is True

    def test_negated_size_with_value(self) -> None:
        """Negation should apply when a size is present."""
        condition = Condition(type=ConditionType.SIZE, pattern=">100", negate=True)

        assert match_condition(condition, ReleaseCandidate(raw_title="M", size=50)).matched is True
        assert match_condition(condition, ReleaseCandidate(raw_title="M", size=150)).matched is False


class TestFieldSelection:
    """Tests for choosing the attribute a condition tests."""

    def test_falls_back_to_raw_title(self) -> None:
        """A missing attribute should fall back to the raw title."""
        candidate = ReleaseCandidate(raw_title="Movie.2020.2160p.WEB-DL.x265-GRP")

        assert select_value(candidate, ConditionType.CODEC) == candidate.raw_title
        assert matches(
            candidate, make_format(Condition(type=ConditionType.CODEC, pattern=r"x265"))
        ).matched

    def test_uses_explicit_attribute(self) -> None:
        """An explicit attribute should be used instead of the title."""
        candidate = ReleaseCandidate(raw_title="Movie.2020.x265-GRP", codec="h264")

        assert select_value(candidate, ConditionType.CODEC) == "h264"
        assert not matches(
            candidate, make_format(Condition(type=ConditionType.CODEC, pattern=r"x265"))
        ).matched

    def test_empty_attribute_does_not_fall_back(self) -> None:
        """An empty attribute is present, so the title should not be tested."""
        candidate = ReleaseCandidate(raw_title="Movie.2020.1080p.WEB-DL-GRP", source="")

        assert select_value(candidate, ConditionType.SOURCE) == ""
        assert not matches(
            candidate, make_format(Condition(type=ConditionType.SOURCE, pattern="WEB-DL"))
        ).matched

    def test_release_group_derived_from_title(self) -> None:
        """Without an explicit group the trailing -GROUP token should be used."""
        candidate = ReleaseCandidate(raw_title="Movie.2020.1080p.BluRay.x264-SPARKS")

        assert select_value(candidate, ConditionType.RELEASE_GROUP) == "SPARKS"

    def test_release_group_tolerates_extension(self) -> None:
        """A short file extension after the group should be ignored."""
        assert extract_release_group("Movie.2020.1080p-GRP.mkv") == "GRP"
        assert extract_release_group("Movie 2020 1080p") is None

    def test_release_group_does_not_fall_back_to_title(self) -> None:
        """A title without a group should not match a group pattern against the title."""
        candidate = ReleaseCandidate(raw_title="Movie.2020.1080p.BluRay")
        custom_format = make_format(
            Condition(type=ConditionType.RELEASE_GROUP, pattern="BluRay", required=True)
        )

        assert matches(candidate, custom_format).matched is False

    def test_indexer_flags_any_match(self) -> None:
        """Any indexer flag matching should satisfy the condition."""
        candidate = ReleaseCandidate(raw_title="Movie", indexer_flags=("G_Freeleech", "G_Internal"))
        condition = Condition(type=ConditionType.INDEXER_FLAG, pattern="internal")

        assert match_condition(condition, candidate).matched is True

    def test_matching_is_case_insensitive(self) -> None:
        """Patterns should match regardless of case."""
        candidate = ReleaseCandidate(raw_title="movie.2020.HDR10.web-dl")
        condition = Condition(type=ConditionType.RELEASE_NAME, pattern=r"\bhdr10\b")

        assert match_condition(condition, candidate).matched is True


class TestNegation:
    """Tests for condition negation."""

    @pytest.mark.parametrize(
        "candidate",
        [
            ReleaseCandidate(raw_title="Movie.2020.2160p.DV.HDR10-GRP", size=600),
            ReleaseCandidate(raw_title="Movie.2020.1080p.x264-GRP", size=1200),
            ReleaseCandidate(raw_title="Plain"),
        ],
    )
    @pytest.mark.parametrize(
        ("condition_type", "pattern"),
        [
            (ConditionType.RELEASE_NAME, r"\bDV\b"),
            (ConditionType.RELEASE_GROUP, "^GRP$"),
            (ConditionType.SIZE, "500-1000"),
            (ConditionType.SIZE, "bogus"),
        ],
    )
    def test_negate_inverts_result(
        self, candidate: ReleaseCandidate, condition_type: ConditionType, pattern: str
    ) -> None:
        """negate=True should always give the opposite of negate=False."""
        plain = Condition(type=condition_type, pattern=pattern)
        negated = plain.model_copy(update={"negate": True})

        assert match_condition(negated, candidate).matched is not match_condition(
            plain, candidate
        ).matched


class TestFormatVerdict:
    """Tests for combining required and optional conditions."""

    def test_required_and_optional(self) -> None:
        """[required A, optional B] should match only when both match."""
        custom_format = make_format(
            Condition(type=ConditionType.RELEASE_NAME, pattern="2160p", required=True),
            Condition(type=ConditionType.RELEASE_NAME, pattern="HDR"),
        )

        assert matches(ReleaseCandidate(raw_title="M.2160p.HDR-G"), custom_format).matched
        assert not matches(ReleaseCandidate(raw_title="M.2160p.SDR-G"), custom_format).matched
        assert not matches(ReleaseCandidate(raw_title="M.1080p.HDR-G"), custom_format).matched

    def test_required_only(self) -> None:
        """A format with only required conditions matches when they all match."""
        custom_format = make_format(
            Condition(type=ConditionType.RELEASE_NAME, pattern="2160p", required=True),
            Condition(type=ConditionType.RELEASE_NAME, pattern="WEB", required=True),
        )

        assert matches(ReleaseCandidate(raw_title="M.2160p.WEB-DL"), custom_format).matched
        assert not matches(ReleaseCandidate(raw_title="M.2160p.BluRay"), custom_format).matched

    def test_optional_only_needs_any(self) -> None:
        """An optional-only format matches when any condition matches."""
        custom_format = make_format(
            Condition(type=ConditionType.RELEASE_NAME, pattern="AMZN"),
            Condition(type=ConditionType.RELEASE_NAME, pattern="NF"),
        )

        assert matches(ReleaseCandidate(raw_title="M.NF.WEB-DL"), custom_format).matched
        assert not matches(ReleaseCandidate(raw_title="M.DSNP.WEB-DL"), custom_format).matched

    def test_trace_records_every_condition(self) -> None:
        """The trace should hold one post-negation entry per condition."""
        custom_format = make_format(
            Condition(type=ConditionType.RELEASE_NAME, pattern="2160p", required=True),
            Condition(type=ConditionType.RELEASE_NAME, pattern="CAM", negate=True),
        )

        result = matches(ReleaseCandidate(raw_title="M.2160p.WEB"), custom_format)

        assert [r.matched for r in result.trace] == [True, True]
        assert result.trace[1].negate is True

    def test_matches_is_pure(self) -> None:
        """Identical inputs should give identical verdicts and traces."""
        candidate = ReleaseCandidate(raw_title="M.2160p.DV-GRP", size=300)
        custom_format = make_format(
            Condition(type=ConditionType.RELEASE_NAME, pattern="DV", required=True),
            Condition(type=ConditionType.SIZE, pattern="100-500"),
        )

        assert matches(candidate, custom_format) == matches(candidate, custom_format)

    def test_matching_formats_keeps_catalog_order(self) -> None:
        """matching_formats should return matches in input order."""
        formats = [
            make_format(Condition(type=ConditionType.RELEASE_NAME, pattern="2160p"), format_id=1, name="UHD"),
            make_format(Condition(type=ConditionType.RELEASE_NAME, pattern="CAM"), format_id=2, name="CAM"),
            make_format(Condition(type=ConditionType.RELEASE_NAME, pattern="WEB"), format_id=3, name="WEB"),
        ]

        result = matching_formats(ReleaseCandidate(raw_title="M.2160p.WEB-DL"), formats)

        assert [f.name for f, _ in result] == ["UHD", "WEB"]

    def test_concurrent_matching(self) -> None:
        """Matching from many threads should agree with sequential matching."""
        custom_format = make_format(
            Condition(type=ConditionType.RELEASE_NAME, pattern=r"\b(DV|DoVi)\b", required=True),
            Condition(type=ConditionType.SIZE, pattern=">=100"),
        )
        candidates = [
            ReleaseCandidate(raw_title=f"Movie.{i}.2160p.{'DV' if i % 2 else 'SDR'}-GRP", size=i * 10)
            for i in range(200)
        ]
        expected = [matches(c, custom_format).matched for c in candidates]

        with ThreadPoolExecutor(max_workers=8) as pool:
            actual = list(pool.map(lambda c: matches(c, custom_format).matched, candidates))

        assert actual == expected


class TestValidation:
    """Tests for write-time pattern validation."""

    def test_rejects_invalid_regex(self) -> None:
        """An uncompilable pattern should raise with the offending pattern."""
        with pytest.raises(FormatValidationError) as exc_info:
            validate_conditions([Condition(type=ConditionType.RELEASE_NAME, pattern="([")])

        assert exc_info.value.pattern == "(["

    def test_rejects_empty_conditions(self) -> None:
        """A format needs at least one condition."""
        with pytest.raises(FormatValidationError, match="at least one condition"):
            validate_conditions([])

    def test_size_patterns_not_compiled(self) -> None:
        """Size patterns are not regular expressions and should not be validated as such."""
        conditions = validate_conditions([Condition(type=ConditionType.SIZE, pattern="[[")])

        assert len(conditions) == 1

    def test_compiled_patterns_are_cached(self) -> None:
        """Compiling the same pattern twice should return the cached object."""
        assert compile_pattern(r"\bREMUX\b") is compile_pattern(r"\bREMUX\b")
