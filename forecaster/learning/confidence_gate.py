"""
Confidence Gate
===============

Turns a fused decision into a confidence level and decides when the
engine must stand down.

Key Features:
- Reflexive correction: two consecutive level-3 misses open a window of
  suppressed aggression and raised uncertainty
- Confidence levels 1-3 from confidence and prediction quality, with
  relaxed thresholds during a prime-time session
- Forced policy: uncertainty over threshold or quality under the floor
  forces level 1 and a near-50/50 confidence
"""

import logging
from typing import Optional

import numpy as np

from ..core.config import FusionConfig
from ..core.types import Outcome

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE_LEVEL = 3


class ReflexiveCorrection:
    """
    Countdown state machine over high-confidence misses.

    The countdown starts at ``window`` after the triggering cycle, so the
    correction covers the trigger plus ``window`` more cycles; it decrements
    once per cycle regardless of outcome and cannot be re-triggered while
    active.
    """

    def __init__(self, config: Optional[FusionConfig] = None):
        self.config = config or FusionConfig()
        self.consecutive_misses = 0
        self.countdown = 0

    def check(
        self,
        last_predicted: Optional[Outcome],
        last_confidence_level: int,
        realized: Optional[Outcome],
        last_confidence: Optional[float] = None,
    ) -> bool:
        """
        Advance one cycle and report whether correction is active.

        Args:
            last_predicted: Previous cycle's decision
            last_confidence_level: Previous cycle's confidence level
            realized: Realized class of the round that was predicted
            last_confidence: Previous cycle's final confidence

        Returns:
            True when this cycle runs under reflexive correction
        """
        if self.countdown > 0:
            self.countdown -= 1
            return True

        if last_predicted is not None and last_confidence is not None and realized is not None:
            missed = realized is not last_predicted
            if last_confidence_level == HIGH_CONFIDENCE_LEVEL and missed:
                self.consecutive_misses += 1
            else:
                self.consecutive_misses = 0

        if self.consecutive_misses >= self.config.reflexive_trigger_misses:
            logger.warning(
                f"Reflexive correction engaged after {self.consecutive_misses} "
                f"high-confidence misses (countdown {self.config.reflexive_window})"
            )
            self.countdown = self.config.reflexive_window
            self.consecutive_misses = 0
            return True

        return False

    @property
    def is_active(self) -> bool:
        return self.countdown > 0

    def to_dict(self) -> dict:
        return {'consecutive_misses': self.consecutive_misses, 'countdown': self.countdown}


def assign_confidence_level(
    confidence: float,
    quality: float,
    prime_time: bool = False,
    config: Optional[FusionConfig] = None,
) -> int:
    """Level 3 needs both high thresholds, level 2 both medium ones."""
    cfg = config or FusionConfig()
    if prime_time:
        high_conf, medium_conf = cfg.prime_high_confidence, cfg.prime_medium_confidence
        high_quality, medium_quality = cfg.prime_high_quality, cfg.prime_medium_quality
    else:
        high_conf, medium_conf = cfg.high_confidence, cfg.medium_confidence
        high_quality, medium_quality = cfg.high_quality, cfg.medium_quality

    if confidence > high_conf and quality > high_quality:
        return 3
    if confidence > medium_conf and quality > medium_quality:
        return 2
    return 1


def uncertainty_threshold(strict: bool, config: Optional[FusionConfig] = None) -> float:
    """Stricter ceiling during drift or reflexive correction."""
    cfg = config or FusionConfig()
    return cfg.strict_uncertainty_threshold if strict else cfg.uncertainty_threshold


def should_force(uncertainty: float, quality: float, strict: bool,
                 config: Optional[FusionConfig] = None) -> bool:
    cfg = config or FusionConfig()
    return uncertainty >= uncertainty_threshold(strict, cfg) or quality < cfg.min_quality_score


def forced_confidence(rng: np.random.Generator, config: Optional[FusionConfig] = None) -> float:
    """0.5 plus uniform jitter of +/- half the configured width."""
    cfg = config or FusionConfig()
    return 0.5 + (float(rng.random()) - 0.5) * cfg.forced_jitter
