"""Tests for ReleaseEvaluator, evaluating releases through the store."""

import pytest
import respx
from httpx import Response

from qualitarr.clients.trash import DEFAULT_TRASH_URL
from qualitarr.decision import DecisionAction, EvaluationSettings
from qualitarr.models.formats import Condition, ConditionType, MediaType
from qualitarr.models.release import ExistingFile, ReleaseCandidate
from qualitarr.service import ReleaseEvaluator
from qualitarr.store import ConfigStore

# Seeded ids
HD_1080P_PROFILE = 4
HDTV_1080P = 13
WEBDL_1080P = 15
BLURAY_1080P = 16


@pytest.fixture
def store() -> ConfigStore:
    store = ConfigStore()
    store.seed_defaults()
    return store


@pytest.fixture
def evaluator(store: ConfigStore) -> ReleaseEvaluator:
    return ReleaseEvaluator(store)


def webdl(title: str = "Movie.2020.1080p.WEB-DL-GRP", **kwargs: object) -> ReleaseCandidate:
    return ReleaseCandidate(raw_title=title, source="webdl", resolution="1080p", **kwargs)  # type: ignore[arg-type]


def bluray(title: str = "Movie.2020.1080p.BluRay-GRP", **kwargs: object) -> ReleaseCandidate:
    return ReleaseCandidate(raw_title=title, source="bluray", resolution="1080p", **kwargs)  # type: ignore[arg-type]


class TestEvaluate:
    """Tests for single-release evaluation."""

    def test_grab_without_existing(self, evaluator: ReleaseEvaluator) -> None:
        """A wanted release with nothing on disk should be grabbed."""
        decision = evaluator.evaluate(webdl(), HD_1080P_PROFILE)

        assert decision.action == DecisionAction.GRAB
        assert decision.quality is not None
        assert decision.quality.id == WEBDL_1080P

    def test_unwanted_resolution(self, evaluator: ReleaseEvaluator) -> None:
        """A tier the profile disables should be rejected."""
        candidate = ReleaseCandidate(raw_title="Movie.720p.WEB-DL", source="webdl", resolution="720p")

        decision = evaluator.evaluate(candidate, HD_1080P_PROFILE)

        assert decision.action == DecisionAction.REJECT
        assert decision.reason == "quality not wanted by profile"

    def test_upgrade_below_cutoff(self, evaluator: ReleaseEvaluator) -> None:
        """A better tier should replace a file below the cutoff."""
        decision = evaluator.evaluate(
            bluray(), HD_1080P_PROFILE, existing_file=ExistingFile(quality_id=HDTV_1080P)
        )

        assert decision.action == DecisionAction.UPGRADE
        assert decision.reason == "better than existing"

    def test_cutoff_met(self, evaluator: ReleaseEvaluator) -> None:
        """Nothing should replace a file at the cutoff."""
        decision = evaluator.evaluate(
            bluray(), HD_1080P_PROFILE, existing_file=ExistingFile(quality_id=WEBDL_1080P)
        )

        assert decision.action == DecisionAction.REJECT
        assert decision.reason == "cutoff already met"

    def test_missing_profile_rejects(self, evaluator: ReleaseEvaluator) -> None:
        """An unknown profile id should reject rather than raise."""
        decision = evaluator.evaluate(webdl(), 999)

        assert decision.action == DecisionAction.REJECT
        assert decision.reason == "quality not wanted by profile"

    def test_restriction_skips(self, store: ConfigStore, evaluator: ReleaseEvaluator) -> None:
        """A restriction from the store should block matching releases."""
        store.add_restriction("No CAM", must_not_contain=["hdcam"], tags=["movies"])

        blocked = evaluator.evaluate(webdl("Movie.HDCAM.1080p.WEB-DL"), HD_1080P_PROFILE, tags=["movies"])
        untagged = evaluator.evaluate(webdl("Movie.HDCAM.1080p.WEB-DL"), HD_1080P_PROFILE)

        assert blocked.action == DecisionAction.SKIP
        assert blocked.reason == "blocked by restriction No CAM"
        assert untagged.action == DecisionAction.GRAB

    def test_store_edits_visible_to_next_evaluation(
        self, store: ConfigStore, evaluator: ReleaseEvaluator
    ) -> None:
        """Profile changes should apply to the next evaluation."""
        existing = ExistingFile(quality_id=HDTV_1080P)
        store.update_profile(HD_1080P_PROFILE, upgrade_allowed=False)

        decision = evaluator.evaluate(bluray(), HD_1080P_PROFILE, existing_file=existing)

        assert decision.action == DecisionAction.REJECT
        assert decision.reason == "upgrades disabled"

    def test_enforced_size_limits(self, store: ConfigStore) -> None:
        """Out-of-bounds sizes should reject only when enforcement is on."""
        candidate = webdl(size=500.0)

        lenient = ReleaseEvaluator(store).evaluate(candidate, HD_1080P_PROFILE)
        strict = ReleaseEvaluator(
            store, EvaluationSettings(enforce_size_limits=True)
        ).evaluate(candidate, HD_1080P_PROFILE)

        assert lenient.action == DecisionAction.GRAB
        assert lenient.size_check is not None
        assert not lenient.size_check.ok
        assert strict.action == DecisionAction.REJECT
        assert strict.reason == "size outside quality limits"


class TestScoring:
    """Tests for format scores flowing from the store."""

    @pytest.fixture
    def hdr_id(self, store: ConfigStore) -> int:
        hdr = store.add_format(
            "HDR",
            [Condition(type=ConditionType.RELEASE_NAME, pattern=r"\bHDR\b", required=True)],
        )
        store.set_format_score(HD_1080P_PROFILE, hdr.id, 100)
        return hdr.id

    def test_compute_score(self, evaluator: ReleaseEvaluator, hdr_id: int) -> None:
        """Matched formats should be totalled with the profile's scores."""
        result = evaluator.compute_score(webdl("Movie.2020.1080p.HDR.WEB-DL"), HD_1080P_PROFILE)

        assert result.total == 100
        assert result.format_names == ["HDR"]

    def test_unscored_profile(self, evaluator: ReleaseEvaluator, hdr_id: int) -> None:
        """Another profile without a score entry should total 0."""
        result = evaluator.compute_score(webdl("Movie.2020.1080p.HDR.WEB-DL"), 1)

        assert result.total == 0
        assert result.format_names == ["HDR"]

    def test_score_upgrade_same_tier(self, evaluator: ReleaseEvaluator, hdr_id: int) -> None:
        """A higher score at the same tier should upgrade below the cutoff."""
        existing = ExistingFile(quality_id=HDTV_1080P, score=0)
        candidate = ReleaseCandidate(
            raw_title="Show.S01E01.1080p.HDR.HDTV", source="hdtv", resolution="1080p"
        )

        decision = evaluator.evaluate(candidate, HD_1080P_PROFILE, existing_file=existing)

        assert decision.action == DecisionAction.UPGRADE
        assert decision.total_score == 100

    def test_min_format_score(
        self, store: ConfigStore, evaluator: ReleaseEvaluator, hdr_id: int
    ) -> None:
        """Releases under the profile's minimum score should be rejected."""
        store.update_profile(HD_1080P_PROFILE, min_format_score=50)

        plain = evaluator.evaluate(webdl(), HD_1080P_PROFILE)
        hdr = evaluator.evaluate(webdl("Movie.2020.1080p.HDR.WEB-DL"), HD_1080P_PROFILE)

        assert plain.action == DecisionAction.REJECT
        assert plain.reason == "format score below minimum"
        assert hdr.action == DecisionAction.GRAB

    def test_test_formats(self, evaluator: ReleaseEvaluator, hdr_id: int) -> None:
        """Only matching formats should be listed, with their traces."""
        matched = evaluator.test_formats(webdl("Movie.2020.1080p.HDR.WEB-DL"))
        unmatched = evaluator.test_formats(webdl())

        assert [m.format_id for m in matched] == [hdr_id]
        assert matched[0].match.trace[0].matched is True
        assert unmatched == []


class TestBatch:
    """Tests for evaluating several releases together."""

    def test_pick_best(self, evaluator: ReleaseEvaluator) -> None:
        """The highest-ranked accepted release should win."""
        candidates = [
            webdl(),
            bluray(),
            ReleaseCandidate(raw_title="Movie.720p", source="webdl", resolution="720p"),
        ]

        best = evaluator.pick_best(candidates, HD_1080P_PROFILE)

        assert best is not None
        assert best.candidate.raw_title == "Movie.2020.1080p.BluRay-GRP"

    def test_pick_best_none_accepted(self, evaluator: ReleaseEvaluator) -> None:
        """Nothing accepted should yield None."""
        existing = ExistingFile(quality_id=BLURAY_1080P)

        assert evaluator.pick_best([webdl()], HD_1080P_PROFILE, existing_file=existing) is None

    def test_evaluate_many_keeps_order(self, evaluator: ReleaseEvaluator) -> None:
        """Decisions should come back in input order."""
        decisions = evaluator.evaluate_many([bluray(), webdl()], HD_1080P_PROFILE)

        assert [d.quality.id for d in decisions if d.quality] == [BLURAY_1080P, WEBDL_1080P]


class TestImport:
    """Tests for importing external rules through the evaluator."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_import_external_rules(self, store: ConfigStore) -> None:
        """Imported formats should be scored by later evaluations."""
        respx.get(f"{DEFAULT_TRASH_URL}/radarr/cf/cf.json").mock(
            return_value=Response(
                200,
                json=[
                    {
                        "trash_id": "hdr-id",
                        "name": "HDR10",
                        "specifications": [
                            {
                                "implementation": "ReleaseTitleSpecification",
                                "fields": {"value": r"\bHDR10\b"},
                            }
                        ],
                    }
                ],
            )
        )
        evaluator = ReleaseEvaluator(store, import_batch_size=10)

        result = await evaluator.import_external_rules(MediaType.MOVIE)
        hdr = store.get_format_by_name("HDR10")
        store.set_format_score(HD_1080P_PROFILE, hdr.id, hdr.recommended_score or 0)
        scored = evaluator.compute_score(webdl("Movie.2020.1080p.HDR10.WEB-DL"), HD_1080P_PROFILE)

        assert result.ok
        assert result.imported_count == 1
        assert hdr.external_id == "hdr-id"
        assert scored.total == 500
