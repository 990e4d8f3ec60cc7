"""
Volatility & Entropy Analyzers
==============================
Votes driven by how much the digits move rather than where they are.
"""

import logging
from typing import Optional

import numpy as np

from ..core.types import Outcome, SignalVote, VolatilityLevel
from .. import indicators
from .base import CycleContext, vote

logger = logging.getLogger(__name__)


def analyze_volatility_breakout(ctx: CycleContext, base_weight: float) -> Optional[SignalVote]:
    """During a VERY_LOW volatility squeeze, follow the newest class."""
    if ctx.trend.volatility != VolatilityLevel.VERY_LOW or len(ctx.outcomes) < 3:
        return None
    last, previous = ctx.outcomes[0], ctx.outcomes[1]
    if last is previous:
        return vote("VolSqueezeBreakoutCont", last, base_weight * 0.8)
    return vote("VolSqueezeBreakoutInitial", last, base_weight * 0.6)


def analyze_volatility_persistence(ctx: CycleContext, base_weight: float, period: int = 10) -> Optional[SignalVote]:
    """
    Compare two adjacent windows of dispersion.

    Expanding (>1.3x and > 2.0) follows the newest move at 0.3; contracting
    (<0.7x and < 1.0) fades it at 0.35.
    """
    numbers = ctx.numbers
    if len(numbers) < period * 2:
        return None
    current = indicators.std_dev(numbers[:period], period)
    previous = indicators.std_dev(numbers[period:period * 2], period)
    if current is None or previous is None or numbers[0] == numbers[1]:
        return None

    rising = numbers[0] > numbers[1]
    if current > previous * 1.3 and current > 2.0:
        prediction = Outcome.BIG if rising else Outcome.SMALL
        strength = 0.3
    elif current < previous * 0.7 and current < 1.0:
        prediction = Outcome.SMALL if rising else Outcome.BIG
        strength = 0.35
    else:
        return None
    return vote("VolPersist", prediction, base_weight * strength)


def fractal_dimension(numbers, period: int = 14) -> Optional[float]:
    """
    Efficiency-ratio fractal dimension approximation, 1.0 (trend) to 2.0 (chop).

    FDI = 2 - |net change| / sum(|steps|) over the newest ``period`` values.
    """
    if len(numbers) < period + 1:
        return None
    window = np.asarray(list(reversed(numbers[:period])), dtype=float)
    if window.max() == window.min():
        return 1.0
    path = np.abs(np.diff(window)).sum()
    efficiency = abs(window[-1] - window[0]) / path if path > 0 else 0.0
    return 1 + (1 - efficiency)


def analyze_fractal_dimension(ctx: CycleContext, base_weight: float, period: int = 14,
                              threshold: float = 1.75) -> Optional[SignalVote]:
    """Very choppy stretches (FDI above 1.75) vote against the newest class at 0.2."""
    fdi = fractal_dimension(ctx.numbers, period)
    if fdi is None or fdi <= threshold:
        return None
    return vote("FractalDim", ctx.outcomes[0].opposite, base_weight * 0.2)


def analyze_tunneling(ctx: CycleContext, base_weight: float) -> Optional[SignalVote]:
    """A jump across the whole range (0/1 <-> 8/9) votes for the reversal."""
    numbers = ctx.numbers
    if len(numbers) < 2:
        return None
    last, previous = numbers[0], numbers[1]
    if (last <= 1 and previous >= 8) or (last >= 8 and previous <= 1):
        prediction = Outcome.SMALL if last > 4 else Outcome.BIG
        return vote("QuantumTunneling", prediction, base_weight)
    return None


def analyze_entropy(ctx: CycleContext, base_weight: float, period: int = 10) -> Optional[SignalVote]:
    """
    Low-entropy stretches (< 0.55) fade the newest class; near-maximal
    entropy (> 0.98) follows it weakly.
    """
    if len(ctx.outcomes) < period:
        return None
    entropy = indicators.binary_entropy(ctx.outcomes, period)
    if entropy is None:
        return None
    last = ctx.outcomes[0]
    if entropy < 0.55:
        return vote("EntropyReversal", last.opposite, base_weight * (1 - entropy) * 0.85)
    if entropy > 0.98:
        return vote("EntropyHighContWeak", last, base_weight * 0.25)
    return None
