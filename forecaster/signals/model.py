"""
Model Signal
============
Pluggable scoring interface: a feature mapping goes in, an optional
(prediction, confidence) pair comes out.

HeuristicVoteModel is the default and a stand-in for a trained model:
a three-rule decision list over RSI, MACD histogram, volatility and the
time-of-day encoding.

To use a real model, implement ``predict(features)`` and pass the model
to ``ForecastEngine(model=...)``.
"""

import logging
import math
from typing import Dict, Optional, Protocol, Sequence, Tuple

from ..core.types import Outcome, SignalVote, TrendContext, TrendStrength, VolatilityLevel
from ..external import TimeFeatures
from .. import indicators
from .base import CycleContext, vote
from .momentum import macd_state, stochastic_state

logger = logging.getLogger(__name__)

MIN_FEATURE_HISTORY = 52

FEATURE_NAMES = (
    'time_sin',
    'time_cos',
    'last_5_mean',
    'last_20_mean',
    'stddev_10',
    'stddev_30',
    'rsi_14',
    'stoch_k_14',
    'macd_hist',
    'trend_strength',
    'volatility_level',
)


class VoteModel(Protocol):
    name: str

    def predict(self, features: Dict[str, float]) -> Optional[Tuple[Outcome, float]]:
        """Return (class, confidence >= 0) or None to abstain."""
        ...


def _missing(value) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


class HeuristicVoteModel:
    """
    Default decision list.

    - RSI > 70 and MACD histogram < -0.1 -> SMALL
    - RSI < 30 and MACD histogram > 0.1  -> BIG
    - 30-sample std < 1.0 in the first half of the day -> BIG at 0.4
    """

    name = "ML-GradientBoost"

    def predict(self, features: Dict[str, float]) -> Optional[Tuple[Outcome, float]]:
        rsi = features.get('rsi_14')
        hist = features.get('macd_hist')
        std_30 = features.get('stddev_30')
        time_sin = features.get('time_sin')

        if not _missing(rsi) and not _missing(hist):
            if rsi > 70 and hist < -0.1:
                return Outcome.SMALL, abs(hist) + (rsi - 70) / 30
            if rsi < 30 and hist > 0.1:
                return Outcome.BIG, abs(hist) + (30 - rsi) / 30

        if not _missing(std_30) and not _missing(time_sin) and std_30 < 1.0 and time_sin > 0:
            return Outcome.BIG, 0.4
        return None


def build_feature_set(numbers: Sequence[int], trend: TrendContext,
                      time: TimeFeatures) -> Optional[Dict[str, float]]:
    """Feature mapping for the model signal. None below 52 values."""
    if len(numbers) < MIN_FEATURE_HISTORY:
        return None

    macd = macd_state(numbers, 12, 26, 9)
    stochastic = stochastic_state(numbers, 14, 3, 3)

    if trend.strength == TrendStrength.STRONG:
        trend_strength = 2
    elif trend.strength == TrendStrength.MODERATE:
        trend_strength = 1
    else:
        trend_strength = 0

    if trend.volatility == VolatilityLevel.HIGH:
        volatility_level = 2
    elif trend.volatility == VolatilityLevel.MEDIUM:
        volatility_level = 1
    else:
        volatility_level = 0

    return {
        'time_sin': time.sin,
        'time_cos': time.cos,
        'last_5_mean': indicators.sma(numbers, 5),
        'last_20_mean': indicators.sma(numbers, 20),
        'stddev_10': indicators.std_dev(numbers, 10),
        'stddev_30': indicators.std_dev(numbers, 30),
        'rsi_14': indicators.rsi(numbers, 14),
        'stoch_k_14': stochastic.k if stochastic else None,
        'macd_hist': macd.histogram if macd else None,
        'trend_strength': trend_strength,
        'volatility_level': volatility_level,
    }


class ModelAnalyzer:
    """Adapts a VoteModel to the analyzer interface."""

    def __init__(self, model: Optional[VoteModel] = None, importance: float = 1.5):
        self.model = model or HeuristicVoteModel()
        self.importance = importance

    def __call__(self, ctx: CycleContext, base_weight: float) -> Optional[SignalVote]:
        if ctx.features is None:
            return None
        result = self.model.predict(ctx.features)
        if result is None:
            return None
        prediction, confidence = result
        weight = base_weight * min(1.0, max(0.0, confidence)) * self.importance
        return vote(self.model.name, prediction, weight)
