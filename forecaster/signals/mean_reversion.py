"""
Mean-Reversion Analyzers
========================
Bet against stretched readings: band breaches, z-score anomalies,
deviation from a long EMA or VWAP, and long streaks.
"""

import logging
from typing import Optional

from ..core.types import Outcome, SignalVote
from .. import indicators
from .base import CycleContext, vote

logger = logging.getLogger(__name__)


def _deviation_vote(source: str, score: float, threshold: float, floor: float,
                    base_weight: float) -> Optional[SignalVote]:
    """Fade a normalized deviation beyond +/- threshold."""
    if score > threshold:
        prediction = Outcome.SMALL
    elif score < -threshold:
        prediction = Outcome.BIG
    else:
        return None
    strength = min((abs(score) - threshold) / threshold, 1.0)
    return vote(source, prediction, base_weight * (floor + strength * (1 - floor)))


def analyze_bollinger(ctx: CycleContext, base_weight: float, period: int = 20,
                      std_multiplier: float = 2.1) -> Optional[SignalVote]:
    """Newest value outside a padded Bollinger band. Flat windows are skipped."""
    if period <= 0:
        return None
    numbers = ctx.numbers
    mean = indicators.sma(numbers, period)
    std = indicators.std_dev(numbers, period)
    if mean is None or std is None or std < 0.05:
        return None

    band = std * std_multiplier
    last = numbers[0]
    if last > (mean + band) * 1.01:
        prediction = Outcome.SMALL
    elif last < (mean - band) * 0.99:
        prediction = Outcome.BIG
    else:
        return None

    breach = abs(last - mean) / (band + 0.001)
    return vote("Bollinger", prediction, base_weight * (0.65 + min(breach, 0.9) * 0.35))


def analyze_z_score(ctx: CycleContext, base_weight: float, period: int = 20,
                    threshold: float = 2.0) -> Optional[SignalVote]:
    """Z-score anomaly of the newest value. Skipped when std < 0.1."""
    std = indicators.std_dev(ctx.numbers, period)
    if std is None or std < 0.1:
        return None
    score = indicators.z_score(ctx.numbers, period)
    if score is None:
        return None
    return _deviation_vote("ZScoreAnomaly", score, threshold, 0.5, base_weight)


def analyze_ma_deviation(ctx: CycleContext, base_weight: float, long_period: int = 20,
                         normalization_period: int = 10) -> Optional[SignalVote]:
    """Deviation from the long EMA in units of the short std, threshold 1.8."""
    if long_period <= 0 or normalization_period <= 0:
        return None
    numbers = ctx.numbers
    if len(numbers) < max(long_period, normalization_period):
        return None
    long_ma = indicators.ema(numbers, long_period)
    std = indicators.std_dev(numbers, normalization_period)
    if long_ma is None or std is None or std < 0.01:
        return None
    return _deviation_vote("MADev", (numbers[0] - long_ma) / std, 1.8, 0.4, base_weight)


def analyze_vwap_deviation(ctx: CycleContext, base_weight: float, vwap_period: int = 20,
                           normalization_period: int = 10) -> Optional[SignalVote]:
    """Deviation from the unit-volume VWAP, threshold 1.5."""
    if vwap_period <= 0 or normalization_period <= 0:
        return None
    numbers = ctx.numbers
    if len(numbers) < max(vwap_period, normalization_period):
        return None
    average = indicators.vwap(numbers, vwap_period)
    std = indicators.std_dev(numbers, normalization_period)
    if average is None or std is None or std < 0.01:
        return None
    return _deviation_vote("VWAPDev", (numbers[0] - average) / std, 1.5, 0.45, base_weight)


def analyze_streaks(ctx: CycleContext, base_weight: float) -> Optional[SignalVote]:
    """
    Predict a streak break.

    Fires on a run of two or more; the factor grows 0.18 per step from 0.45
    and is capped at 0.95.
    """
    outcomes = ctx.outcomes
    if len(outcomes) < 3:
        return None

    current = outcomes[0]
    length = 0
    for outcome in outcomes:
        if outcome is not current:
            break
        length += 1

    if length < 2:
        return None
    factor = min(0.45 + length * 0.18, 0.95)
    return vote(f"StreakBreak-{length}", current.opposite, base_weight * factor)
