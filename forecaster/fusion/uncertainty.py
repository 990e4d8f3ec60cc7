"""
Uncertainty & Prediction Quality
================================
Additive uncertainty score and the prediction quality score (PQS).

The uncertainty score is unbounded and only compared against thresholds
(65 strict, 95 normal) and used to compress confidence toward 0.5.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..core.types import DriftState, EntropyReport, EntropyState, StabilityReport, TrendContext, VolatilityLevel
from .consensus import PathConfluence, SignalConsistency

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UncertaintyScore:
    score: float
    reasons: str


def calculate_uncertainty_score(
    trend: TrendContext,
    stability: StabilityReport,
    entropy: EntropyReport,
    consistency: SignalConsistency,
    confluence: PathConfluence,
    global_accuracy: Optional[float],
    reflexive_correction: bool,
    drift_state: DriftState,
) -> UncertaintyScore:
    """Sum the penalties of every active risk factor."""
    score = 0.0
    reasons: List[str] = []

    if reflexive_correction:
        score += 80
        reasons.append("ReflexiveCorrection")

    if drift_state == DriftState.DRIFT:
        score += 70
        reasons.append("ConceptDrift")
    elif drift_state == DriftState.WARNING:
        score += 40
        reasons.append("DriftWarning")

    if not stability.is_stable:
        severe = "Dominance" in stability.reason or "Choppiness" in stability.reason
        score += 50 if severe else 40
        reasons.append(f"Instability:{stability.reason}")

    if entropy.state.is_chaotic:
        score += 45 if entropy.state == EntropyState.RISING_CHAOS else 35
        reasons.append(entropy.state.value)

    if consistency.score < 0.6:
        score += (1 - consistency.score) * 50
        reasons.append(f"LowConsistency:{consistency.score:.2f}")

    if confluence.diverse_paths < 3:
        score += (3 - confluence.diverse_paths) * 15
        reasons.append(f"LowConfluence:{confluence.diverse_paths}")

    if trend.is_transitioning:
        score += 25
        reasons.append("RegimeTransition")

    if trend.volatility == VolatilityLevel.HIGH:
        score += 20
        reasons.append("HighVolatility")

    if global_accuracy is not None and global_accuracy < 0.48:
        score += (0.48 - global_accuracy) * 150
        reasons.append(f"LowGlobalAcc:{global_accuracy:.2f}")

    return UncertaintyScore(score, ";".join(reasons))


def uncertainty_factor(score: float, scale: float = 120.0) -> float:
    """Confidence compression factor in [0, 1]."""
    return 1.0 - min(1.0, score / scale)


def prediction_quality_score(consistency: SignalConsistency, confluence: PathConfluence,
                             uncertainty: float) -> float:
    """PQS = 0.5 + (consistency - 0.5) x 0.4 + confluence x 1.2 - uncertainty / 500, in [0.01, 0.99]."""
    pqs = 0.5 + (consistency.score - 0.5) * 0.4 + confluence.score * 1.2
    return max(0.01, min(0.99, pqs - uncertainty / 500))
