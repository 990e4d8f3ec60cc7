"""
Consensus & Confluence
======================
Agreement measures over the adjusted vote set.

- Category consensus: how many categories lean each way -> factor in [0.4, 1.6]
- Superposition meta-vote: weight ratio scaled by the consensus factor
- Path confluence: distinct categories behind the final decision
- Signal consistency: raw BIG/SMALL vote-count split
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from ..core.types import Outcome, SignalCategory, SignalVote, TrendContext, TrendStrength
from ..signals.base import vote, weighted_split

logger = logging.getLogger(__name__)

MIN_CONSENSUS_VOTES = 4
CATEGORY_LEAN = 1.2


@dataclass(frozen=True)
class ConsensusResult:
    score: float
    factor: float
    details: str


@dataclass(frozen=True)
class PathConfluence:
    score: float
    diverse_paths: int
    details: str


@dataclass(frozen=True)
class SignalConsistency:
    score: float
    details: str


def _category_split(votes: Sequence[SignalVote]) -> Dict[SignalCategory, Dict[Outcome, float]]:
    split = {category: {Outcome.BIG: 0.0, Outcome.SMALL: 0.0} for category in SignalCategory}
    for v in votes:
        if v.category is not None:
            split[v.category][v.prediction] += v.adjusted_weight
    return split


def analyze_prediction_consensus(votes: Sequence[SignalVote], trend: TrendContext) -> ConsensusResult:
    """
    score = (dominant categories - opposing categories) / categories voting.

    A category leans one way when its weight exceeds the other side by 20%.
    Under a STRONG trend, trend and momentum categories pulling opposite
    ways cut the factor by 40%.
    """
    if len(votes) < MIN_CONSENSUS_VOTES:
        return ConsensusResult(0.5, 1.0, "Insufficient signals for consensus")

    split = _category_split(votes)
    big_cats = small_cats = mixed_cats = 0
    for weights in split.values():
        big, small = weights[Outcome.BIG], weights[Outcome.SMALL]
        if big + small <= 0:
            continue
        if big > small * CATEGORY_LEAN:
            big_cats += 1
        elif small > big * CATEGORY_LEAN:
            small_cats += 1
        else:
            mixed_cats += 1

    total = big_cats + small_cats + mixed_cats
    score = (max(big_cats, small_cats) - min(big_cats, small_cats)) / total if total else 0.5
    factor = 1.0 + score * 0.4

    if trend.strength == TrendStrength.STRONG:
        trend_w = split[SignalCategory.TREND]
        momentum_w = split[SignalCategory.MOMENTUM]
        trend_big = trend_w[Outcome.BIG] > trend_w[Outcome.SMALL]
        trend_small = trend_w[Outcome.SMALL] > trend_w[Outcome.BIG]
        momentum_big = momentum_w[Outcome.BIG] > momentum_w[Outcome.SMALL]
        momentum_small = momentum_w[Outcome.SMALL] > momentum_w[Outcome.BIG]
        if (trend_big and momentum_small) or (trend_small and momentum_big):
            factor *= 0.6

    return ConsensusResult(
        score=score,
        factor=max(0.4, min(1.6, factor)),
        details=f"Bcat:{big_cats},Scat:{small_cats},Mcat:{mixed_cats},Score:{score:.2f}",
    )


def analyze_superposition(votes: Sequence[SignalVote], consensus: Optional[ConsensusResult],
                          base_weight: float) -> Optional[SignalVote]:
    """
    Meta-vote from the adjusted weight ratio.

    BIG share is scaled by the consensus factor and SMALL share by its
    complement; one side must exceed the other by 30%.
    """
    if consensus is None or len(votes) < 5:
        return None
    total = sum(v.adjusted_weight for v in votes)
    if total < 0.1:
        return None

    big, small = weighted_split(votes)
    big_p = big / total * consensus.factor
    small_p = small / total * (2.0 - consensus.factor)

    if big_p > small_p * 1.3:
        result = vote("QuantumSuperposition", Outcome.BIG, base_weight * min(1.0, big_p - small_p))
    elif small_p > big_p * 1.3:
        result = vote("QuantumSuperposition", Outcome.SMALL, base_weight * min(1.0, small_p - big_p))
    else:
        return None
    result.category = SignalCategory.PROBABILISTIC
    return result


def analyze_path_confluence(votes: Sequence[SignalVote], decision: Optional[Outcome],
                            min_weight: float) -> PathConfluence:
    """
    Distinct categories among votes agreeing with the decision.

    2/3/4+ paths score 0.05/0.12/0.20, plus 0.02 per agreeing vote heavier
    than 0.10 (at most 0.10); total capped at 0.30.
    """
    if not votes or decision is None:
        return PathConfluence(0.0, 0, "No valid signals or prediction.")

    agreeing = [v for v in votes if v.prediction is decision and v.adjusted_weight > min_weight]
    if len(agreeing) < 2:
        return PathConfluence(0.0, len(agreeing), "Insufficient agreeing signals.")

    paths = {v.category for v in agreeing}
    diverse = len(paths)
    if diverse >= 4:
        score = 0.20
    elif diverse == 3:
        score = 0.12
    elif diverse == 2:
        score = 0.05
    else:
        score = 0.0

    strong = sum(1 for v in agreeing if v.adjusted_weight > 0.10)
    score += min(strong * 0.02, 0.10)
    return PathConfluence(min(score, 0.30), diverse, f"Paths:{diverse},Strong:{strong}")


def analyze_signal_consistency(votes: Sequence[SignalVote]) -> SignalConsistency:
    """Majority share of raw vote counts; 0.70 when fewer than 3 votes."""
    if len(votes) < 3:
        return SignalConsistency(0.70, "Too few signals for consistency check")
    big = sum(1 for v in votes if v.prediction is Outcome.BIG)
    small = len(votes) - big
    return SignalConsistency(max(big, small) / len(votes), f"Overall split B:{big}/S:{small}")
