# -*- coding: utf-8 -*-
"""
Compliance Score Aggregator

Rolls per-framework scores up into Environmental, Social and Governance
pillar scores and an overall weighted score.

    pillar  = round_half_up(mean of member framework scores > 0), 0 if none
    overall = round_half_up(E x 0.4 + S x 0.3 + G x 0.3)

Frameworks without a positive score are excluded from a pillar average
rather than counted as zero, so frameworks a company has not started do not
drag its pillar scores down.
"""

from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Mapping, Union

from esgcore.compliance.models import (
    ComplianceScores,
    FrameworkId,
    FrameworkScore,
    coerce_framework_id,
)
from esgcore.determinism import ZERO, content_hash, round_percent, safe_divide
from esgcore.metrics import record_duration, record_score_recomputation

logger = logging.getLogger(__name__)

F = FrameworkId

#: Fixed framework -> pillar membership.
PILLAR_MEMBERSHIP: Dict[str, FrozenSet[FrameworkId]] = {
    "environmental": frozenset(
        {F.GRI, F.TCFD, F.SBTI, F.CDP, F.SDG, F.PCAF, F.ISSB, F.SASB}
    ),
    "social": frozenset({F.GRI, F.CSRD, F.SDG, F.SASB}),
    "governance": frozenset({F.GRI, F.TCFD, F.CSRD, F.ISSB, F.SASB}),
}

#: Pillar weights for the overall score (sum = 1.0).
PILLAR_WEIGHTS: Dict[str, Decimal] = {
    "environmental": Decimal("0.4"),
    "social": Decimal("0.3"),
    "governance": Decimal("0.3"),
}

ScoreInput = Union[int, float, str, Decimal, FrameworkScore, Mapping[str, Any]]


def _to_framework_score(value: ScoreInput) -> FrameworkScore:
    if isinstance(value, FrameworkScore):
        return value
    if isinstance(value, Mapping):
        return FrameworkScore.model_validate(dict(value))
    return FrameworkScore(score=value)


def pillar_score(
    scores: Mapping[FrameworkId, FrameworkScore], members: FrozenSet[FrameworkId],
) -> int:
    """Mean of the members' positive scores, rounded half-up; 0 if none."""
    positive = [
        scores[fw].score for fw in members
        if fw in scores and scores[fw].score > ZERO
    ]
    return round_percent(safe_divide(sum(positive, ZERO), len(positive)))


class ComplianceScoreAggregator:
    """Recomputes ComplianceScores from the full set of framework scores.

    Always pass the complete, freshly loaded set of per-framework values;
    the aggregator keeps no state between calls.
    """

    def recompute_scores(
        self, framework_scores: Mapping[Union[str, FrameworkId], ScoreInput],
    ) -> ComplianceScores:
        """Compute pillar and overall scores.

        Args:
            framework_scores: Framework id -> plain score (0-100) or
                FrameworkScore / mapping with ``score`` and ``progress``.

        Raises:
            UnknownFrameworkError: Unsupported framework id.
            InvalidQuantityError: Non-numeric score or score outside 0-100.
        """
        start = time.perf_counter()
        scores: Dict[FrameworkId, FrameworkScore] = {
            coerce_framework_id(fw): _to_framework_score(value)
            for fw, value in framework_scores.items()
        }

        pillars = {
            pillar: pillar_score(scores, members)
            for pillar, members in PILLAR_MEMBERSHIP.items()
        }
        overall = round_percent(sum(
            (pillars[p] * weight for p, weight in PILLAR_WEIGHTS.items()), ZERO,
        ))

        per_framework = {fw: scores.get(fw, FrameworkScore()) for fw in FrameworkId}
        result = ComplianceScores(
            overall=overall,
            environmental=pillars["environmental"],
            social=pillars["social"],
            governance=pillars["governance"],
            per_framework=per_framework,
        )
        result.provenance_hash = content_hash({
            "scores": {fw.value: s.score for fw, s in per_framework.items()},
            "pillars": pillars,
            "overall": overall,
        })

        record_score_recomputation()
        record_duration("score_recompute", time.perf_counter() - start)
        logger.debug(
            "Compliance scores: overall=%d E=%d S=%d G=%d",
            overall, pillars["environmental"], pillars["social"], pillars["governance"],
        )
        return result


__all__ = [
    "PILLAR_MEMBERSHIP",
    "PILLAR_WEIGHTS",
    "pillar_score",
    "ComplianceScoreAggregator",
]
