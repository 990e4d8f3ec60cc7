"""
Momentum Analyzers
==================
Oscillator crossovers: RSI, Stochastic %K/%D and MACD.

Overbought/oversold bands widen with volatility so that noisy stretches
need a more extreme reading before a vote is cast.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..core.types import Outcome, SignalVote, VolatilityLevel
from .. import indicators
from .base import CycleContext, vote

logger = logging.getLogger(__name__)

RSI_BANDS = {
    VolatilityLevel.HIGH: (80, 20),
    VolatilityLevel.MEDIUM: (75, 25),
    VolatilityLevel.LOW: (68, 32),
    VolatilityLevel.VERY_LOW: (65, 35),
}
RSI_DEFAULT_BANDS = (70, 30)

STOCHASTIC_BANDS = {
    VolatilityLevel.HIGH: (88, 12),
    VolatilityLevel.MEDIUM: (82, 18),
    VolatilityLevel.LOW: (75, 25),
    VolatilityLevel.VERY_LOW: (70, 30),
}
STOCHASTIC_DEFAULT_BANDS = (80, 20)

MACD_HISTOGRAM_TRIGGER = 0.25
MACD_HISTOGRAM_SCALE = 0.6


@dataclass(frozen=True)
class MacdState:
    macd: float
    signal: float
    histogram: float
    prev_macd: Optional[float] = None
    prev_signal: Optional[float] = None


@dataclass(frozen=True)
class StochasticState:
    k: float
    prev_k: float
    d: float
    prev_d: float


def macd_state(numbers: Sequence[float], short_period: int = 12, long_period: int = 26,
               signal_period: int = 9) -> Optional[MacdState]:
    """MACD line, signal line and histogram as of the newest value."""
    if signal_period <= 0 or len(numbers) < long_period + signal_period - 1:
        return None
    line = indicators.macd_line_series(numbers, short_period, long_period)
    if line is None or len(line) < signal_period:
        return None

    signal_series = indicators.ema_series(line, signal_period)
    macd = float(line[-1])
    signal = float(signal_series[-1])

    prev_macd = prev_signal = None
    if len(line) >= signal_period + 1:
        prev_macd = float(line[-2])
        prev_signal = float(signal_series[-2])

    return MacdState(macd, signal, macd - signal, prev_macd, prev_signal)


def stochastic_state(numbers: Sequence[float], k_period: int = 14, d_period: int = 3,
                     smooth_k: int = 3) -> Optional[StochasticState]:
    """Smoothed %K and %D, current and previous."""
    if k_period <= 0 or d_period <= 0 or smooth_k <= 0:
        return None
    if len(numbers) < k_period + smooth_k - 1 + d_period - 1:
        return None

    raw_k = indicators.stochastic_k(list(reversed(numbers)), k_period)
    if raw_k is None:
        return None
    smoothed_k = indicators.trailing_sma(raw_k, smooth_k)
    if smoothed_k is None:
        return None
    d_values = indicators.trailing_sma(smoothed_k, d_period)
    if d_values is None or len(smoothed_k) < 2 or len(d_values) < 2:
        return None

    return StochasticState(
        k=smoothed_k[-1],
        prev_k=smoothed_k[-2],
        d=d_values[-1],
        prev_d=d_values[-2],
    )


def analyze_rsi(ctx: CycleContext, base_weight: float, period: int = 14) -> Optional[SignalVote]:
    """Fade an overbought/oversold RSI reading."""
    value = indicators.rsi(ctx.numbers, period)
    if value is None:
        return None

    overbought, oversold = RSI_BANDS.get(ctx.trend.volatility, RSI_DEFAULT_BANDS)
    if value < oversold:
        prediction, strength = Outcome.BIG, (oversold - value) / oversold
    elif value > overbought:
        prediction, strength = Outcome.SMALL, (value - overbought) / (100 - overbought)
    else:
        return None

    return vote("RSI", prediction, base_weight * (0.60 + min(strength, 1.0) * 0.40))


def analyze_stochastic(ctx: CycleContext, base_weight: float, k_period: int = 14, d_period: int = 3,
                       smooth_k: int = 3) -> Optional[SignalVote]:
    """
    %K/%D crossover away from the extreme band, with a band-exit fallback.

    Strength factor is at least 0.35 for a crossover and 0.25 for a band
    exit; the weight ranges over [0.5, 1.0] x base.
    """
    state = stochastic_state(ctx.numbers, k_period, d_period, smooth_k)
    if state is None:
        return None

    overbought, oversold = STOCHASTIC_BANDS.get(ctx.trend.volatility, STOCHASTIC_DEFAULT_BANDS)
    k, prev_k, d, prev_d = state.k, state.prev_k, state.d, state.prev_d

    prediction = None
    strength = 0.0
    if prev_k <= prev_d and k > d and k < overbought - 5:
        prediction = Outcome.BIG
        floor = oversold + 5
        strength = max(0.35, (floor - min(k, d, floor)) / floor)
    elif prev_k >= prev_d and k < d and k > oversold + 5:
        prediction = Outcome.SMALL
        ceiling = overbought - 5
        strength = max(0.35, (max(k, d, ceiling) - ceiling) / (100 - ceiling))

    if prediction is None:
        half_band = (overbought - oversold) / 2
        if prev_k < oversold <= k < oversold + half_band:
            prediction = Outcome.BIG
            strength = max(0.25, (k - oversold) / half_band)
        elif prev_k > overbought >= k > oversold + half_band:
            prediction = Outcome.SMALL
            strength = max(0.25, (overbought - k) / half_band)

    if prediction is None:
        return None
    return vote("Stochastic", prediction, base_weight * (0.5 + min(strength, 1.0) * 0.5))


def analyze_macd(ctx: CycleContext, base_weight: float, short_period: int = 12, long_period: int = 26,
                 signal_period: int = 9) -> Optional[SignalVote]:
    """Signal-line crossover, falling back to histogram magnitude beyond +/-0.25."""
    if short_period <= 0 or long_period <= 0 or short_period >= long_period:
        return None
    state = macd_state(ctx.numbers, short_period, long_period, signal_period)
    if state is None:
        return None

    prediction = None
    if state.prev_macd is not None and state.prev_signal is not None:
        if state.prev_macd <= state.prev_signal and state.macd > state.signal:
            prediction = Outcome.BIG
        elif state.prev_macd >= state.prev_signal and state.macd < state.signal:
            prediction = Outcome.SMALL

    if prediction is None:
        if state.histogram > MACD_HISTOGRAM_TRIGGER:
            prediction = Outcome.BIG
        elif state.histogram < -MACD_HISTOGRAM_TRIGGER:
            prediction = Outcome.SMALL
        else:
            return None

    strength = min(abs(state.histogram) / MACD_HISTOGRAM_SCALE, 1.0)
    source = "MACD_CrossB" if prediction is Outcome.BIG else "MACD_CrossS"
    return vote(source, prediction, base_weight * (0.55 + strength * 0.45))
