"""
Concept Drift Detection
=======================
Drift Detection Method (DDM) over the stream of ensemble hits and misses.

The running error rate p_i and its standard error s_i = sqrt(p(1-p)/n) are
compared with the best (lowest p + s) point seen since the last reset:

    p + s > p_min + 3 s_min   -> DRIFT (and reset)
    p + s > p_min + 2 s_min   -> WARNING
    otherwise                 -> STABLE

Until ``min_samples`` observations have accumulated the detector only
learns and always reports STABLE.
"""

import logging
import math
from typing import Optional

from ..core.config import DriftConfig
from ..core.types import DriftState

logger = logging.getLogger(__name__)


class DriftDetector:
    """Single-stream DDM state machine."""

    def __init__(self, config: Optional[DriftConfig] = None):
        self.config = config or DriftConfig()
        self.warning_level = self.config.warning_level
        self.drift_level = self.config.drift_level
        self.p_min = math.inf
        self.s_min = math.inf
        self.n = 0
        self.p_i = 0.0
        self.state = DriftState.STABLE
        self.drift_count = 0

    def update(self, is_correct: bool) -> DriftState:
        """Feed one correctness bit and return the new state."""
        self.n += 1
        error = 0.0 if is_correct else 1.0
        previous = self.p_i if self.n > 1 else 0.0
        self.p_i = previous + (error - previous) / self.n
        s_i = math.sqrt(self.p_i * (1 - self.p_i) / self.n)
        level = self.p_i + s_i

        if self.n < self.config.min_samples:
            self.state = DriftState.STABLE
            return self.state

        if level < self.p_min + self.s_min:
            self.p_min = self.p_i
            self.s_min = s_i

        if level > self.p_min + self.drift_level * self.s_min:
            logger.warning(
                f"Concept drift detected: p={self.p_i:.3f} s={s_i:.3f} "
                f"(p_min={self.p_min:.3f}, s_min={self.s_min:.3f}, n={self.n})"
            )
            self.drift_count += 1
            self._reset()
            self.state = DriftState.DRIFT
        elif level > self.p_min + self.warning_level * self.s_min:
            if self.state != DriftState.WARNING:
                logger.info(f"Drift warning: p={self.p_i:.3f} (p_min={self.p_min:.3f}, n={self.n})")
            self.state = DriftState.WARNING
        else:
            self.state = DriftState.STABLE
        return self.state

    def _reset(self):
        self.p_min = math.inf
        self.s_min = math.inf
        self.n = 1

    def to_dict(self) -> dict:
        return {
            'state': self.state.value,
            'n': self.n,
            'p_i': self.p_i,
            'p_min': self.p_min,
            's_min': self.s_min,
            'drift_count': self.drift_count,
        }
