"""
Regime Profile Learning
=======================
Fixed catalog of macro regimes. Each profile scales raw vote weight
(contextual aggression), decides which analyzer tags may vote, and learns
from how well predictions made inside the regime turned out.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, FrozenSet, Iterable, Optional

from ..core.config import RegimeLearnerConfig
from ..core.types import Outcome, RegimeTag

logger = logging.getLogger(__name__)

T = RegimeTag

# name -> (base weight multiplier, contextual aggression, active tags)
REGIME_CATALOG = {
    "TREND_STRONG_LOW_VOL": (1.30, 1.35, (T.TREND, T.MOMENTUM, T.ICHIMOKU, T.VOL_BREAK, T.LEAD_LAG,
                                          T.STATE_SPACE, T.FUSION, T.ML)),
    "TREND_STRONG_MED_VOL": (1.20, 1.25, (T.TREND, T.MOMENTUM, T.ICHIMOKU, T.PATTERN, T.LEAD_LAG,
                                          T.STATE_SPACE, T.FUSION, T.ML)),
    "TREND_STRONG_HIGH_VOL": (0.70, 0.70, (T.TREND, T.ICHIMOKU, T.ENTROPY, T.VOL_PERSIST, T.Z_SCORE, T.FUSION)),
    "TREND_MOD_LOW_VOL": (1.25, 1.25, (T.TREND, T.MOMENTUM, T.ICHIMOKU, T.PATTERN, T.VOL_BREAK, T.LEAD_LAG,
                                       T.STATE_SPACE, T.ML)),
    "TREND_MOD_MED_VOL": (1.15, 1.15, (T.TREND, T.MOMENTUM, T.ICHIMOKU, T.PATTERN, T.RSI, T.LEAD_LAG,
                                       T.BAYESIAN, T.FUSION, T.ML)),
    "TREND_MOD_HIGH_VOL": (0.75, 0.75, (T.TREND, T.ICHIMOKU, T.MEAN_REVERSION, T.STOCHASTIC, T.VOL_PERSIST,
                                        T.Z_SCORE)),
    "RANGE_LOW_VOL": (1.30, 1.30, (T.MEAN_REVERSION, T.PATTERN, T.VOL_BREAK, T.STOCHASTIC, T.HARMONIC,
                                   T.FRACTAL_DIM, T.Z_SCORE, T.BAYESIAN, T.FUSION)),
    "RANGE_MED_VOL": (1.15, 1.15, (T.MEAN_REVERSION, T.PATTERN, T.STOCHASTIC, T.RSI, T.BOLLINGER, T.HARMONIC,
                                   T.Z_SCORE)),
    "RANGE_HIGH_VOL": (0.65, 0.65, (T.MEAN_REVERSION, T.ENTROPY, T.BOLLINGER, T.VWAP_DEV, T.VOL_PERSIST,
                                    T.Z_SCORE, T.FUSION)),
    "WEAK_HIGH_VOL": (0.70, 0.70, (T.MEAN_REVERSION, T.ENTROPY, T.STOCHASTIC, T.VOL_PERSIST, T.FRACTAL_DIM,
                                   T.Z_SCORE)),
    "WEAK_MED_VOL": (0.75, 0.75, (T.MOMENTUM, T.MEAN_REVERSION, T.PATTERN, T.RSI, T.FRACTAL_DIM, T.BAYESIAN)),
    "WEAK_LOW_VOL": (0.85, 0.85, (T.ALL,)),
    "DEFAULT": (0.9, 0.9, (T.ALL,)),
}

MIN_BASE_MULTIPLIER, MAX_BASE_MULTIPLIER = 0.20, 1.9
MIN_AGGRESSION, MAX_AGGRESSION = 0.30, 1.8


@dataclass
class RegimeProfile:
    name: str
    base_weight_multiplier: float
    contextual_aggression: float
    active_signal_types: FrozenSet[RegimeTag]
    recent_accuracy: Deque[int] = field(default_factory=lambda: deque(maxlen=35))
    total_predictions: int = 0
    correct_predictions: int = 0

    def allows(self, tag: RegimeTag) -> bool:
        return RegimeTag.ALL in self.active_signal_types or tag in self.active_signal_types

    @property
    def accuracy(self) -> Optional[float]:
        if not self.recent_accuracy:
            return None
        return sum(self.recent_accuracy) / len(self.recent_accuracy)

    def to_dict(self) -> dict:
        return {
            'base_weight_multiplier': round(self.base_weight_multiplier, 4),
            'contextual_aggression': round(self.contextual_aggression, 4),
            'recent_accuracy': self.accuracy,
            'total_predictions': self.total_predictions,
            'correct_predictions': self.correct_predictions,
        }


class RegimeProfileBook:
    """
    The mutable regime catalog.

    Unknown regime labels (including ``*_TRANSITION`` variants and
    ``UNKNOWN_REGIME``) resolve to DEFAULT for reads and are ignored by
    learning.
    """

    def __init__(self, config: Optional[RegimeLearnerConfig] = None):
        self.config = config or RegimeLearnerConfig()
        self.profiles: Dict[str, RegimeProfile] = {}
        for name, (multiplier, aggression, tags) in REGIME_CATALOG.items():
            self.profiles[name] = RegimeProfile(
                name=name,
                base_weight_multiplier=multiplier,
                contextual_aggression=aggression,
                active_signal_types=frozenset(tags),
                recent_accuracy=deque(maxlen=self.config.accuracy_window),
            )
        logger.info(f"RegimeProfileBook initialized with {len(self.profiles)} profiles")

    def __iter__(self) -> Iterable[RegimeProfile]:
        return iter(self.profiles.values())

    def get(self, regime: str) -> RegimeProfile:
        return self.profiles.get(regime) or self.profiles["DEFAULT"]

    def learning_rate(self, global_accuracy: float) -> float:
        """Base rate scaled up the further global accuracy sits from 0.5."""
        cfg = self.config
        factor = max(0.65, min(1.5, 1.0 + abs(0.5 - global_accuracy) * 0.7))
        return max(cfg.min_learning_rate, min(cfg.max_learning_rate, cfg.learning_rate_base * factor))

    def update(self, regime: str, actual: Optional[Outcome], predicted: Optional[Outcome],
               global_accuracy: float = 0.5):
        """Score a prediction made while ``regime`` was active."""
        profile = self.profiles.get(regime)
        if profile is None or predicted is None or actual is None:
            return

        hit = 1 if actual is predicted else 0
        profile.total_predictions += 1
        profile.correct_predictions += hit
        profile.recent_accuracy.append(hit)

        cfg = self.config
        if len(profile.recent_accuracy) < cfg.accuracy_window * cfg.fill_ratio:
            return

        accuracy = profile.accuracy
        rate = self.learning_rate(global_accuracy)
        if accuracy > cfg.upper_accuracy:
            profile.base_weight_multiplier = min(MAX_BASE_MULTIPLIER, profile.base_weight_multiplier + rate)
            profile.contextual_aggression = min(MAX_AGGRESSION, profile.contextual_aggression + rate * 0.5)
            logger.debug(f"Regime {regime} strengthened (acc={accuracy:.1%}, rate={rate:.4f})")
        elif accuracy < cfg.lower_accuracy:
            profile.base_weight_multiplier = max(MIN_BASE_MULTIPLIER, profile.base_weight_multiplier - rate * 1.3)
            profile.contextual_aggression = max(MIN_AGGRESSION, profile.contextual_aggression - rate * 0.7)
            logger.debug(f"Regime {regime} weakened (acc={accuracy:.1%}, rate={rate:.4f})")

    def get_stats(self) -> Dict[str, dict]:
        return {name: profile.to_dict() for name, profile in self.profiles.items()}
