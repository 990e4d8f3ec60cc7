"""
Market Context
==============
Trend direction, trend strength, volatility bucket and macro-regime label.

The history is treated like a price series: the EMA stack (5/10/20) gives
direction, the EMA spread normalized by the 20-sample standard deviation
gives strength, and the 30-sample standard deviation gives volatility.
"""

import logging
from typing import Sequence

from ..core.types import HistoryRecord, TrendContext, TrendStrength, VolatilityLevel, history_numbers
from .. import indicators

logger = logging.getLogger(__name__)

EPSILON = 0.001

# Strength thresholds on the normalized EMA spread
STRONG_SPREAD = 0.80
MODERATE_SPREAD = 0.45

# Volatility thresholds on the 30-sample standard deviation
VOLATILITY_WINDOW = 30
MIN_VOLATILITY_SAMPLES = 15
HIGH_VOL = 3.3
MEDIUM_VOL = 2.0
LOW_VOL = 0.9


def _unknown(details: str) -> TrendContext:
    return TrendContext(details=details)


def _volatility_level(std: float) -> VolatilityLevel:
    if std > HIGH_VOL:
        return VolatilityLevel.HIGH
    if std > MEDIUM_VOL:
        return VolatilityLevel.MEDIUM
    if std > LOW_VOL:
        return VolatilityLevel.LOW
    return VolatilityLevel.VERY_LOW


def get_trend_context(
    history: Sequence[HistoryRecord],
    short_lookback: int = 5,
    medium_lookback: int = 10,
    long_lookback: int = 20,
) -> TrendContext:
    """
    Classify direction, strength and volatility of the recent history.

    Strength is graded only along a genuine EMA stack ordering; a mixed
    stack is RANGING with a BIG/SMALL bias label.
    """
    numbers = history_numbers(history)
    if len(numbers) < long_lookback:
        return _unknown("Insufficient history")

    short_ma = indicators.ema(numbers, short_lookback)
    medium_ma = indicators.ema(numbers, medium_lookback)
    long_ma = indicators.ema(numbers, long_lookback)
    if short_ma is None or medium_ma is None or long_ma is None:
        return _unknown("MA calculation failed")

    details = f"S:{short_ma:.1f},M:{medium_ma:.1f},L:{long_ma:.1f}"

    std_long = indicators.std_dev(numbers, long_lookback)
    denominator = std_long if std_long is not None and std_long > EPSILON else EPSILON
    normalized_spread = (short_ma - long_ma) / denominator
    details += f",NormSpread:{normalized_spread:.2f}"

    direction = "NONE"
    if short_ma > medium_ma > long_ma:
        direction = "BIG"
        if normalized_spread > STRONG_SPREAD:
            strength = TrendStrength.STRONG
        elif normalized_spread > MODERATE_SPREAD:
            strength = TrendStrength.MODERATE
        else:
            strength = TrendStrength.WEAK
    elif short_ma < medium_ma < long_ma:
        direction = "SMALL"
        if normalized_spread < -STRONG_SPREAD:
            strength = TrendStrength.STRONG
        elif normalized_spread < -MODERATE_SPREAD:
            strength = TrendStrength.MODERATE
        else:
            strength = TrendStrength.WEAK
    else:
        strength = TrendStrength.RANGING
        if short_ma > long_ma:
            direction = "BIG_BIASED_RANGE"
        elif long_ma > short_ma:
            direction = "SMALL_BIASED_RANGE"

    volatility = VolatilityLevel.UNKNOWN
    vol_slice = numbers[:VOLATILITY_WINDOW]
    if len(vol_slice) >= MIN_VOLATILITY_SAMPLES:
        std_vol = indicators.std_dev(vol_slice, len(vol_slice))
        if std_vol is not None:
            details += f" VolStdDev:{std_vol:.2f}"
            volatility = _volatility_level(std_vol)

    return TrendContext(
        direction=direction,
        strength=strength,
        volatility=volatility,
        macro_regime="PENDING_REGIME_CLASSIFICATION",
        details=details,
    )


def classify_macro_regime(strength: TrendStrength, volatility: VolatilityLevel) -> str:
    """Cross strength with volatility into one of the named regime buckets."""
    low = volatility in (VolatilityLevel.LOW, VolatilityLevel.VERY_LOW)

    if strength == TrendStrength.STRONG:
        prefix = "TREND_STRONG"
    elif strength == TrendStrength.MODERATE:
        prefix = "TREND_MOD"
    elif strength == TrendStrength.RANGING:
        prefix = "RANGE"
    else:
        # WEAK buckets only split HIGH and MEDIUM out, everything else is LOW
        if volatility == VolatilityLevel.HIGH:
            return "WEAK_HIGH_VOL"
        if volatility == VolatilityLevel.MEDIUM:
            return "WEAK_MED_VOL"
        return "WEAK_LOW_VOL"

    if low:
        return f"{prefix}_LOW_VOL"
    if volatility == VolatilityLevel.MEDIUM:
        return f"{prefix}_MED_VOL"
    return f"{prefix}_HIGH_VOL"


def _crossed(history_numbers_: Sequence[int], short_lookback: int, medium_lookback: int) -> bool:
    """True when the short/medium EMA relationship flipped one step ago."""
    prev_short = indicators.ema(history_numbers_[1:], short_lookback)
    prev_medium = indicators.ema(history_numbers_[1:], medium_lookback)
    cur_short = indicators.ema(history_numbers_, short_lookback)
    cur_medium = indicators.ema(history_numbers_, medium_lookback)
    if None in (prev_short, prev_medium, cur_short, cur_medium):
        return False
    crossed_up = prev_short <= prev_medium and cur_short > cur_medium
    crossed_down = prev_short >= prev_medium and cur_short < cur_medium
    return crossed_up or crossed_down


def get_market_regime_and_trend_context(
    history: Sequence[HistoryRecord],
    short_lookback: int = 5,
    medium_lookback: int = 10,
    long_lookback: int = 20,
) -> TrendContext:
    """Base trend context plus the macro-regime label and transition flag."""
    base = get_trend_context(history, short_lookback, medium_lookback, long_lookback)
    if base.strength == TrendStrength.UNKNOWN:
        return base

    numbers = history_numbers(history)
    is_transitioning = False
    if len(numbers) > medium_lookback + 5:
        is_transitioning = _crossed(numbers, short_lookback, medium_lookback)

    macro_regime = classify_macro_regime(base.strength, base.volatility)
    if is_transitioning:
        macro_regime += "_TRANSITION"

    return TrendContext(
        direction=base.direction,
        strength=base.strength,
        volatility=base.volatility,
        macro_regime=macro_regime,
        is_transitioning=is_transitioning,
        details=f"{base.details},Regime:{macro_regime}",
    )
