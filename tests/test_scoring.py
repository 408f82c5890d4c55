# -*- coding: utf-8 -*-
"""
Compliance Score Aggregation Tests

Pillar score = mean of the member frameworks' positive scores, rounded
half-up; overall = 0.4 E + 0.3 S + 0.3 G.
"""

from decimal import Decimal

import pytest

from esgcore.compliance.models import FrameworkId, FrameworkScore
from esgcore.compliance.scoring import (
    PILLAR_MEMBERSHIP,
    PILLAR_WEIGHTS,
    ComplianceScoreAggregator,
    pillar_score,
)
from esgcore.exceptions import InvalidQuantityError, UnknownFrameworkError


@pytest.fixture
def aggregator():
    return ComplianceScoreAggregator()


class TestPillarMembership:

    def test_weights_sum_to_one(self):
        assert sum(PILLAR_WEIGHTS.values()) == Decimal("1.0")

    def test_membership(self):
        assert PILLAR_MEMBERSHIP["social"] == frozenset({
            FrameworkId.GRI, FrameworkId.CSRD, FrameworkId.SDG, FrameworkId.SASB,
        })
        assert FrameworkId.PCAF in PILLAR_MEMBERSHIP["environmental"]
        assert FrameworkId.PCAF not in PILLAR_MEMBERSHIP["governance"]
        for members in PILLAR_MEMBERSHIP.values():
            assert FrameworkId.GRI in members


class TestRecomputeScores:
    """Zero scores are excluded from pillar means."""

    def test_zero_score_excluded(self, aggregator):
        scores = aggregator.recompute_scores({"gri": 0, "tcfd": 80})
        assert scores.environmental == 80
        assert scores.social == 0
        assert scores.governance == 80
        # 0.4 x 80 + 0.3 x 0 + 0.3 x 80
        assert scores.overall == 56

    def test_no_scores(self, aggregator):
        scores = aggregator.recompute_scores({})
        assert (scores.overall, scores.environmental, scores.social, scores.governance) == (0, 0, 0, 0)
        assert set(scores.per_framework) == set(FrameworkId)

    def test_mean_rounds_half_up(self, aggregator):
        scores = aggregator.recompute_scores({"gri": 70, "csrd": 75})
        # social mean 72.5
        assert scores.social == 73

    def test_overall_rounding(self, aggregator):
        scores = aggregator.recompute_scores({"cdp": 85})
        assert scores.environmental == 85
        assert scores.overall == 34

    def test_accepts_framework_score_objects(self, aggregator):
        scores = aggregator.recompute_scores({
            FrameworkId.GRI: FrameworkScore(score=60, progress=40),
            "SASB": {"score": 90, "progress": 100},
        })
        assert scores.social == 75
        assert scores.per_framework[FrameworkId.SASB].progress == 100

    def test_out_of_range_score(self, aggregator):
        with pytest.raises(InvalidQuantityError):
            aggregator.recompute_scores({"gri": 101})
        with pytest.raises(InvalidQuantityError):
            aggregator.recompute_scores({"gri": -1})

    @pytest.mark.parametrize("score", ["high", "NaN", [80]])
    def test_non_numeric_score(self, aggregator, score):
        with pytest.raises(InvalidQuantityError) as exc_info:
            aggregator.recompute_scores({"gri": score})
        assert exc_info.value.field == "score"

    @pytest.mark.parametrize("progress,expected", [
        (37.6, 38),
        (37.5, 38),
        (37.4, 37),
        ("99.5", 100),
    ])
    def test_progress_rounds_half_up(self, progress, expected):
        assert FrameworkScore(score=10, progress=progress).progress == expected

    def test_unknown_framework(self, aggregator):
        with pytest.raises(UnknownFrameworkError):
            aggregator.recompute_scores({"esrs": 50})

    def test_provenance_hash_deterministic(self, aggregator):
        a = aggregator.recompute_scores({"gri": 50, "tcfd": 60})
        b = aggregator.recompute_scores({"tcfd": 60, "gri": 50})
        assert a.provenance_hash == b.provenance_hash

    def test_to_dict(self, aggregator):
        data = aggregator.recompute_scores({"gri": 50}).to_dict()
        assert data["overall"] == 50
        assert data["per_framework"]["gri"]["score"] == "50"


class TestPillarScore:

    def test_ignores_non_members(self):
        scores = {FrameworkId.PCAF: FrameworkScore(score=90)}
        assert pillar_score(scores, PILLAR_MEMBERSHIP["social"]) == 0
        assert pillar_score(scores, PILLAR_MEMBERSHIP["environmental"]) == 90
