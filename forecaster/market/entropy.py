"""
Stability & Entropy Analysis
============================
Detects unstable or chaotic stretches of the history.

- analyze_trend_stability: dominance, low entropy, numeric volatility, chop
- analyze_market_entropy_state: short vs long window entropy plus a
  volatility ratio against the previous short window
- analyze_advanced_market_regime: heuristic bull/bear/range probabilities
"""

import logging
from typing import Sequence

from ..core.types import (
    EntropyReport,
    EntropyState,
    HistoryRecord,
    Outcome,
    RegimeProbabilities,
    StabilityReport,
    TrendContext,
    TrendStrength,
    VolatilityLevel,
    history_numbers,
    history_outcomes,
)
from .. import indicators

logger = logging.getLogger(__name__)

# Stability
MIN_STABILITY_HISTORY = 25
STABILITY_WINDOW = 20
MIN_CONFIRMED = 20
MIN_VALID_LABELS = 18
DOMINANCE_RATIO = 0.80
LOW_ENTROPY = 0.45
NUMERIC_WINDOW = 15
MIN_NUMERIC_SAMPLES = 10
HIGH_NUMERIC_STD = 3.3
ALTERNATION_RATIO = 0.75

# Entropy state
ENTROPY_WINDOW_SHORT = 10
ENTROPY_WINDOW_LONG = 25
VOL_CHANGE_THRESHOLD = 0.3


def _fmt(value) -> str:
    return "None" if value is None else f"{value:.2f}"


def analyze_trend_stability(history: Sequence[HistoryRecord]) -> StabilityReport:
    """
    Flag an unstable stretch in the last 20 confirmed outcomes.

    Only records carrying a WIN/LOSS status count as confirmed. Short
    histories are reported stable so that they never add uncertainty.
    """
    if len(history) < MIN_STABILITY_HISTORY:
        return StabilityReport(True, "Not enough data for stability check.")

    confirmed = [record for record in history if record.is_confirmed]
    if len(confirmed) < MIN_CONFIRMED:
        return StabilityReport(True, "Not enough confirmed results.", f"Confirmed: {len(confirmed)}")

    recent = history_outcomes(confirmed[:STABILITY_WINDOW])
    if len(recent) < MIN_VALID_LABELS:
        return StabilityReport(True, "Not enough valid B/S for stability.", f"Valid B/S: {len(recent)}")

    big_count = recent.count(Outcome.BIG)
    small_count = recent.count(Outcome.SMALL)
    counts = f"BIG:{big_count}, SMALL:{small_count} in last {len(recent)}"

    if big_count / len(recent) >= DOMINANCE_RATIO:
        return StabilityReport(False, "Unstable: Extreme Outcome Dominance", counts, "BIG_DOMINANCE")
    if small_count / len(recent) >= DOMINANCE_RATIO:
        return StabilityReport(False, "Unstable: Extreme Outcome Dominance", counts, "SMALL_DOMINANCE")

    entropy = indicators.binary_entropy(recent, len(recent))
    if entropy is not None and entropy < LOW_ENTROPY:
        return StabilityReport(
            False, "Unstable: Very Low Entropy (Highly Predictable/Stuck)", f"Entropy: {entropy:.2f}"
        )

    recent_numbers = history_numbers(confirmed[:NUMERIC_WINDOW])
    if len(recent_numbers) >= MIN_NUMERIC_SAMPLES:
        std = indicators.std_dev(recent_numbers, len(recent_numbers))
        if std is not None and std > HIGH_NUMERIC_STD:
            return StabilityReport(False, "Unstable: High Numerical Volatility", f"StdDev: {std:.2f}")

    alternations = sum(1 for a, b in zip(recent, recent[1:]) if a is not b)
    if alternations / len(recent) > ALTERNATION_RATIO:
        return StabilityReport(
            False, "Unstable: Excessive Choppiness", f"Alternations: {alternations}/{len(recent)}"
        )

    return StabilityReport(True, "Trend appears stable.", f"Entropy: {_fmt(entropy)}")


def analyze_market_entropy_state(
    history: Sequence[HistoryRecord],
    trend: TrendContext,
    stability: StabilityReport,
) -> EntropyReport:
    """Classify the entropy regime. Instability overrides a calm read."""
    if len(history) < ENTROPY_WINDOW_LONG:
        return EntropyReport(EntropyState.UNCERTAIN_ENTROPY, "Insufficient history for entropy state.")

    outcomes = history_outcomes(history)
    entropy_short = indicators.binary_entropy(outcomes[:ENTROPY_WINDOW_SHORT], ENTROPY_WINDOW_SHORT)
    entropy_long = indicators.binary_entropy(outcomes[:ENTROPY_WINDOW_LONG], ENTROPY_WINDOW_LONG)

    numbers = history_numbers(history)
    numbers_short = numbers[:ENTROPY_WINDOW_SHORT]
    numbers_prev = numbers[ENTROPY_WINDOW_SHORT:2 * ENTROPY_WINDOW_SHORT]

    min_samples = ENTROPY_WINDOW_SHORT * 0.8
    vol_short = indicators.std_dev(numbers_short, len(numbers_short)) if len(numbers_short) >= min_samples else None
    vol_prev = indicators.std_dev(numbers_prev, len(numbers_prev)) if len(numbers_prev) >= min_samples else None

    details = (
        f"E_S:{_fmt(entropy_short)} E_L:{_fmt(entropy_long)} "
        f"Vol_S:{_fmt(vol_short)} Vol_P:{_fmt(vol_prev)}"
    )
    if entropy_short is None or entropy_long is None:
        return EntropyReport(EntropyState.UNCERTAIN_ENTROPY, details)

    state = EntropyState.STABLE_MODERATE
    # A zero volatility reads as "unknown" in the ratio comparisons
    if entropy_short < 0.5 and entropy_long < 0.6 and vol_short is not None and vol_short < 1.5:
        state = EntropyState.ORDERLY
    elif entropy_short > 0.95 and entropy_long > 0.9:
        if vol_short and vol_prev and vol_short > vol_prev * (1 + VOL_CHANGE_THRESHOLD) and vol_short > 2.5:
            state = EntropyState.RISING_CHAOS
        else:
            state = EntropyState.STABLE_CHAOS
    elif vol_short and vol_prev:
        if vol_short > vol_prev * (1 + VOL_CHANGE_THRESHOLD) and entropy_short > 0.85 and vol_short > 2.0:
            state = EntropyState.RISING_CHAOS
        elif vol_short < vol_prev * (1 - VOL_CHANGE_THRESHOLD) and entropy_long > 0.85 and entropy_short < 0.80:
            state = EntropyState.SUBSIDING_CHAOS

    if not stability.is_stable and state in (EntropyState.ORDERLY, EntropyState.STABLE_MODERATE):
        state = EntropyState.POTENTIAL_CHAOS_FROM_INSTABILITY
        details += f" | StabilityOverride: {stability.reason}"

    return EntropyReport(state, details)


def analyze_advanced_market_regime(trend: TrendContext, entropy: EntropyReport) -> RegimeProbabilities:
    """
    Heuristic regime probabilities.

    Used only as a tilt on the final class scores:
    big *= 1 + bull - bear, small *= 1 + bear - bull.
    """
    if (
        trend.strength == TrendStrength.STRONG
        and trend.volatility != VolatilityLevel.HIGH
        and entropy.state == EntropyState.ORDERLY
    ):
        if trend.leans_big:
            return RegimeProbabilities(0.8, 0.05, 0.1, 0.05)
        return RegimeProbabilities(0.05, 0.8, 0.1, 0.05)

    if (
        trend.strength == TrendStrength.RANGING
        and trend.volatility == VolatilityLevel.HIGH
        and entropy.state.is_chaotic
    ):
        return RegimeProbabilities(0.1, 0.1, 0.7, 0.1)

    if trend.strength == TrendStrength.RANGING and trend.volatility == VolatilityLevel.VERY_LOW:
        return RegimeProbabilities(0.1, 0.1, 0.1, 0.7)

    return RegimeProbabilities()
