"""Event scoring and token reward calculation"""
from dataclasses import dataclass
from typing import NamedTuple

METRIC_1_WEIGHT = 0.6
METRIC_2_WEIGHT = 0.4
BONUS_CAP = 100      # combined metrics above this earn no extra bonus
BONUS_DIVISOR = 1000  # full cap gives a +10% multiplier
TOKENS_PER_POINT = 0.1


class ScoreResult(NamedTuple):
    """Score and token amount for one event"""
    score: float
    token_amount: float


@dataclass
class ScoreBreakdown:
    """Detailed breakdown of how a score was reached"""
    weighted_base: float
    bonus_multiplier: float
    score: float
    token_amount: float


def compute_score(metric1: float, metric2: float) -> ScoreResult:
    """
    Map two non-negative metrics to a score and token amount.

    Inputs are not checked; callers reject negative values first. Results are
    not rounded.
    """
    weighted_base = metric1 * METRIC_1_WEIGHT + metric2 * METRIC_2_WEIGHT
    multiplier = 1 + min(metric1 + metric2, BONUS_CAP) / BONUS_DIVISOR
    score = weighted_base * multiplier
    return ScoreResult(score=score, token_amount=score * TOKENS_PER_POINT)


def round_for_storage(value: float) -> float:
    """Round a metric, score or token amount to the two decimals stored"""
    return round(value, 2)


class EventScorer:
    """Calculates scores for community events"""

    def breakdown(self, metric1: float, metric2: float) -> ScoreBreakdown:
        """Calculate score and provide breakdown"""
        weighted_base = metric1 * METRIC_1_WEIGHT + metric2 * METRIC_2_WEIGHT
        multiplier = 1 + min(metric1 + metric2, BONUS_CAP) / BONUS_DIVISOR
        result = compute_score(metric1, metric2)
        return ScoreBreakdown(
            weighted_base=weighted_base,
            bonus_multiplier=multiplier,
            score=result.score,
            token_amount=result.token_amount
        )

    def score_for_storage(self, metric1: float, metric2: float) -> ScoreResult:
        """Score raw metrics and round the outputs to stored precision"""
        result = compute_score(metric1, metric2)
        return ScoreResult(
            score=round_for_storage(result.score),
            token_amount=round_for_storage(result.token_amount)
        )
