"""
Per-Signal Performance Learning
===============================

Learns how much to trust each signal source from its own track record:

1. After every settled round, each source that voted in the previous cycle
   is scored once for that period (duplicate calls are ignored)
2. The recent-accuracy window drives an adjustment factor and a slower
   alpha factor that chases it
3. Sources that keep missing go on probation (influence capped)
4. Sources that stop voting decay back toward neutral

At read time the effective multiplier is:

    adjustment x alpha x volatility correction x session correction
        x (0.70 + importance x 0.6)

capped while on probation and floored at an absolute minimum weight.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, Optional

from ..core.config import LearnerConfig
from ..core.types import EntropyState, Outcome, SignalVote, VolatilityLevel

logger = logging.getLogger(__name__)


@dataclass
class BucketStats:
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0


@dataclass
class SignalPerformanceRecord:
    """Learning state for one signal source. Created lazily, never deleted."""
    recent_accuracy: Deque[int]
    session_outcomes: Deque[int]
    correct: int = 0
    total: int = 0
    last_update_period: Optional[int] = None
    last_active_period: Optional[int] = None
    current_adjustment_factor: float = 1.0
    alpha_factor: float = 1.0
    long_term_importance: float = 0.5
    performance_by_volatility: Dict[VolatilityLevel, BucketStats] = field(default_factory=dict)
    is_on_probation: bool = False

    @classmethod
    def create(cls, config: LearnerConfig) -> "SignalPerformanceRecord":
        return cls(
            recent_accuracy=deque(maxlen=config.performance_window),
            session_outcomes=deque(maxlen=config.session_window),
        )

    @property
    def recent_accuracy_rate(self) -> Optional[float]:
        if not self.recent_accuracy:
            return None
        return sum(self.recent_accuracy) / len(self.recent_accuracy)

    def to_dict(self) -> dict:
        return {
            'correct': self.correct,
            'total': self.total,
            'recent_accuracy': self.recent_accuracy_rate,
            'adjustment_factor': round(self.current_adjustment_factor, 4),
            'alpha_factor': round(self.alpha_factor, 4),
            'importance': round(self.long_term_importance, 4),
            'on_probation': self.is_on_probation,
        }


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class SignalPerformanceTracker:
    """
    Per-source adaptive weight multipliers.

    Not thread-safe on its own: the engine holds one lock around a whole
    cycle, which covers every read and write made here.
    """

    def __init__(self, config: Optional[LearnerConfig] = None):
        self.config = config or LearnerConfig()
        self._records: Dict[str, SignalPerformanceRecord] = {}

        logger.info(
            f"SignalPerformanceTracker initialized: "
            f"window={self.config.performance_window}, "
            f"probation<{self.config.probation_threshold:.0%}"
        )

    def __contains__(self, source: str) -> bool:
        return source in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, source: str) -> Optional[SignalPerformanceRecord]:
        return self._records.get(source)

    def _record(self, source: str) -> SignalPerformanceRecord:
        record = self._records.get(source)
        if record is None:
            record = SignalPerformanceRecord.create(self.config)
            self._records[source] = record
        return record

    # =========================================================================
    # LEARNING
    # =========================================================================

    def update(
        self,
        votes: Iterable[SignalVote],
        actual: Optional[Outcome],
        period: Optional[int],
        volatility: VolatilityLevel,
        last_confidence: Optional[float],
        last_predicted: Optional[Outcome] = None,
        concentration_mode: bool = False,
        entropy_state: EntropyState = EntropyState.STABLE_MODERATE,
    ):
        """
        Score the previous cycle's votes against the realized class.

        Args:
            votes: Adjusted votes echoed back from the previous cycle
            actual: Realized class of the round that was predicted
            period: Period id the previous prediction was made for
            volatility: Volatility bucket at vote time
            last_confidence: Final confidence of the previous decision
            last_predicted: Previous ensemble decision
            concentration_mode: Whether concentration mode was engaged at vote time
            entropy_state: Entropy state at vote time
        """
        votes = [v for v in votes or () if v is not None and v.source]
        if actual is None or not votes:
            return

        cfg = self.config
        high_confidence = last_confidence is not None and last_confidence > cfg.high_confidence_threshold
        ensemble_correct = last_predicted is actual

        for signal in votes:
            record = self._record(signal.source)
            bucket = record.performance_by_volatility.setdefault(volatility, BucketStats())

            if period is not None and record.last_active_period == period and record.total > 0:
                record.last_update_period = period
                continue

            hit = 1 if signal.prediction is actual else 0
            record.total += 1
            record.correct += hit
            bucket.total += 1
            bucket.correct += hit
            record.session_outcomes.append(hit)

            if hit:
                delta = 0.025 if high_confidence else 0.01
            else:
                delta = -0.040 if high_confidence and not ensemble_correct else -0.015
            if concentration_mode or entropy_state.is_chaotic:
                delta *= 1.5
            record.long_term_importance = _clamp(record.long_term_importance + delta, 0.0, 1.0)

            record.recent_accuracy.append(hit)
            if (
                record.total >= cfg.min_observations_for_adjust
                and len(record.recent_accuracy) >= cfg.performance_window / 2
            ):
                self._readjust(signal.source, record)

            record.last_active_period = period
            record.last_update_period = period

    def _readjust(self, source: str, record: SignalPerformanceRecord):
        cfg = self.config
        accuracy = record.recent_accuracy_rate

        factor = _clamp(1 + (accuracy - 0.5) * 3.5, cfg.min_weight_factor, cfg.max_weight_factor)
        record.current_adjustment_factor = factor

        if len(record.recent_accuracy) >= cfg.probation_min_observations and accuracy < cfg.probation_threshold:
            if not record.is_on_probation:
                logger.info(f"Signal {source} on probation (recent accuracy {accuracy:.1%})")
            record.is_on_probation = True
        elif accuracy > cfg.probation_threshold + cfg.probation_exit_margin and record.is_on_probation:
            logger.info(f"Signal {source} released from probation (recent accuracy {accuracy:.1%})")
            record.is_on_probation = False

        # Poor performers are corrected faster
        rate = cfg.alpha_update_rate
        if accuracy < 0.35:
            rate *= 1.75
        elif accuracy < 0.45:
            rate *= 1.4

        if factor > record.alpha_factor:
            record.alpha_factor = min(cfg.max_alpha_factor, record.alpha_factor + rate * (factor - record.alpha_factor))
        else:
            record.alpha_factor = max(cfg.min_alpha_factor, record.alpha_factor - rate * (record.alpha_factor - factor))

    # =========================================================================
    # READ TIME
    # =========================================================================

    def get_dynamic_weight_adjustment(
        self,
        source: str,
        base_weight: float,
        current_period: Optional[int],
        volatility: VolatilityLevel,
        history_length: int,
    ) -> float:
        """
        Effective weight for a vote from ``source``.

        An unseen source is registered and returns its base weight. Reading
        the first time in a new period applies inactivity decay.
        """
        cfg = self.config
        record = self._records.get(source)
        if record is None:
            self._records[source] = SignalPerformanceRecord.create(cfg)
            return max(base_weight, cfg.min_absolute_weight)

        if history_length <= 1:
            record.session_outcomes.clear()

        if record.last_update_period != current_period:
            if (
                record.last_active_period is not None
                and current_period is not None
                and current_period - record.last_active_period >= cfg.inactivity_periods
            ):
                self._decay(source, record)
            record.last_update_period = current_period

        multiplier = (
            record.current_adjustment_factor
            * record.alpha_factor
            * self._volatility_correction(record, volatility)
            * self._session_correction(record)
            * (0.70 + record.long_term_importance * 0.6)
        )
        if record.is_on_probation:
            multiplier = min(multiplier, cfg.probation_weight_cap)

        return max(base_weight * multiplier, cfg.min_absolute_weight)

    def _decay(self, source: str, record: SignalPerformanceRecord):
        step = self.config.decay_rate
        if record.current_adjustment_factor > 1.0:
            record.current_adjustment_factor = max(1.0, record.current_adjustment_factor - step)
        elif record.current_adjustment_factor < 1.0:
            record.current_adjustment_factor = min(1.0, record.current_adjustment_factor + step)
        if record.is_on_probation:
            logger.debug(f"Signal {source} probation lifted after inactivity")
            record.is_on_probation = False

    def _volatility_correction(self, record: SignalPerformanceRecord, volatility: VolatilityLevel) -> float:
        bucket = record.performance_by_volatility.get(volatility)
        if bucket is None or bucket.total < self.config.min_observations_for_adjust / 2:
            return 1.0
        return _clamp(1 + (bucket.accuracy - 0.5) * 1.30, 0.55, 1.45)

    @staticmethod
    def _session_correction(record: SignalPerformanceRecord) -> float:
        outcomes = record.session_outcomes
        if len(outcomes) < 3:
            return 1.0
        return _clamp(1 + (sum(outcomes) / len(outcomes) - 0.5) * 1.5, 0.6, 1.4)

    def is_on_probation(self, source: str) -> bool:
        record = self._records.get(source)
        return bool(record and record.is_on_probation)

    def get_stats(self) -> Dict[str, dict]:
        """Per-source summary, sorted by source name."""
        return {source: self._records[source].to_dict() for source in sorted(self._records)}

    def reset(self):
        self._records.clear()
        logger.info("SignalPerformanceTracker reset")
