"""
Type Definitions
================
Clean, typed data structures for the forecasting engine.
All data flows through these types for consistency.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, List, Sequence, Tuple


class Outcome(Enum):
    """Binary outcome class of a round."""
    BIG = "BIG"
    SMALL = "SMALL"

    @property
    def opposite(self) -> "Outcome":
        return Outcome.SMALL if self is Outcome.BIG else Outcome.BIG

    @classmethod
    def from_number(cls, number) -> Optional["Outcome"]:
        """Map a digit 0-9 to its class. Anything else maps to None."""
        if number is None:
            return None
        try:
            num = int(str(number).strip())
        except (TypeError, ValueError):
            return None
        if 0 <= num <= 4:
            return cls.SMALL
        if 5 <= num <= 9:
            return cls.BIG
        return None


class RoundStatus(Enum):
    """Settled status reported for a round."""
    WIN = "WIN"
    LOSS = "LOSS"


class TrendStrength(Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"
    RANGING = "RANGING"
    UNKNOWN = "UNKNOWN"


class VolatilityLevel(Enum):
    VERY_LOW = "VERY_LOW"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    UNKNOWN = "UNKNOWN"


class EntropyState(Enum):
    """Market entropy regime."""
    ORDERLY = "ORDERLY"
    STABLE_MODERATE = "STABLE_MODERATE"
    STABLE_CHAOS = "STABLE_CHAOS"
    RISING_CHAOS = "RISING_CHAOS"
    SUBSIDING_CHAOS = "SUBSIDING_CHAOS"
    POTENTIAL_CHAOS_FROM_INSTABILITY = "POTENTIAL_CHAOS_FROM_INSTABILITY"
    UNCERTAIN_ENTROPY = "UNCERTAIN_ENTROPY"

    @property
    def is_chaotic(self) -> bool:
        return "CHAOS" in self.value


class DriftState(Enum):
    STABLE = "STABLE"
    WARNING = "WARNING"
    DRIFT = "DRIFT"


class SignalCategory(Enum):
    """Coarse category used for consensus and confluence scoring."""
    TREND = "trend"
    MOMENTUM = "momentum"
    MEAN_REVERSION = "meanRev"
    PATTERN = "pattern"
    VOLATILITY = "volatility"
    PROBABILISTIC = "probabilistic"
    ML = "ml"


class RegimeTag(Enum):
    """Fine-grained tag a regime profile uses to enable or mute an analyzer."""
    ALL = "all"
    TREND = "trend"
    MOMENTUM = "momentum"
    MEAN_REVERSION = "meanRev"
    PATTERN = "pattern"
    VOLATILITY = "volatility"
    PROBABILISTIC = "probabilistic"
    FUSION = "fusion"
    ML = "ml"
    ICHIMOKU = "ichimoku"
    VOL_BREAK = "volBreak"
    LEAD_LAG = "leadLag"
    STATE_SPACE = "stateSpace"
    ENTROPY = "entropy"
    VOL_PERSIST = "volPersist"
    Z_SCORE = "zScore"
    RSI = "rsi"
    BAYESIAN = "bayesian"
    STOCHASTIC = "stochastic"
    HARMONIC = "harmonic"
    FRACTAL_DIM = "fractalDim"
    BOLLINGER = "bollinger"
    VWAP_DEV = "vwapDev"


@dataclass(frozen=True)
class HistoryRecord:
    """One settled round. Immutable once produced."""
    period: str
    actual_number: int
    status: Optional[RoundStatus] = None

    @property
    def outcome(self) -> Outcome:
        return Outcome.from_number(self.actual_number)

    @property
    def is_confirmed(self) -> bool:
        return self.status is not None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> Optional["HistoryRecord"]:
        """
        Build a record from the caller's raw dict.

        Accepts ``actual`` or ``actualNumber`` and a case-insensitive
        ``status``. Returns None when the digit cannot be parsed.
        """
        if not isinstance(raw, dict):
            return None
        value = raw.get("actualNumber", raw.get("actual"))
        if Outcome.from_number(value) is None:
            return None
        status = raw.get("status")
        parsed_status = None
        if isinstance(status, str) and status.strip().upper() in RoundStatus.__members__:
            parsed_status = RoundStatus[status.strip().upper()]
        return cls(
            period=str(raw.get("period", "")),
            actual_number=int(str(value).strip()),
            status=parsed_status,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'period': self.period,
            'actual': str(self.actual_number),
            'status': self.status.value if self.status else None,
        }


def parse_history(raw_history: Sequence[Any]) -> Tuple[HistoryRecord, ...]:
    """
    Normalize caller history into an immutable newest-first tuple.

    Records that are already HistoryRecord instances pass through; dicts are
    parsed; anything unparseable is dropped.
    """
    records: List[HistoryRecord] = []
    for entry in raw_history or ():
        if isinstance(entry, HistoryRecord):
            records.append(entry)
            continue
        record = HistoryRecord.from_dict(entry)
        if record is not None:
            records.append(record)
    return tuple(records)


def history_numbers(history: Sequence[HistoryRecord]) -> List[int]:
    """Numeric projection of the history, newest first."""
    return [record.actual_number for record in history]


def history_outcomes(history: Sequence[HistoryRecord]) -> List[Outcome]:
    """Class projection of the history, newest first."""
    return [record.outcome for record in history]


@dataclass(frozen=True)
class TrendContext:
    """Per-cycle trend/volatility description. Never persisted."""
    direction: str = "NONE"
    strength: TrendStrength = TrendStrength.UNKNOWN
    volatility: VolatilityLevel = VolatilityLevel.UNKNOWN
    macro_regime: str = "UNKNOWN_REGIME"
    is_transitioning: bool = False
    details: str = ""

    @property
    def leans_big(self) -> bool:
        return "BIG" in self.direction

    @property
    def leans_small(self) -> bool:
        return "SMALL" in self.direction


@dataclass(frozen=True)
class StabilityReport:
    is_stable: bool
    reason: str
    details: str = ""
    dominance: str = "NONE"


@dataclass(frozen=True)
class EntropyReport:
    state: EntropyState
    details: str = ""


@dataclass(frozen=True)
class RegimeProbabilities:
    """Heuristic bull/bear/volatile-range/quiet-range probabilities."""
    bull_trend: float = 0.25
    bear_trend: float = 0.25
    volatile_range: float = 0.25
    quiet_range: float = 0.25

    @property
    def details(self) -> str:
        return f"Prob(B:{self.bull_trend:.2f},S:{self.bear_trend:.2f})"


@dataclass
class SignalVote:
    """Raw directional vote from one analyzer."""
    source: str
    prediction: Outcome
    weight: float
    category: Optional[SignalCategory] = None
    adjusted_weight: float = 0.0
    is_on_probation: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'prediction': self.prediction.value,
            'weight': self.adjusted_weight,
            'isOnProbation': self.is_on_probation,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> Optional["SignalVote"]:
        """Rebuild an echoed vote from a carried-state dict."""
        if not isinstance(raw, dict) or not raw.get('source'):
            return None
        prediction = raw.get('prediction')
        if isinstance(prediction, Outcome):
            outcome = prediction
        elif prediction in Outcome.__members__:
            outcome = Outcome[prediction]
        else:
            return None
        weight = float(raw.get('weight', 0.0))
        return cls(
            source=str(raw['source']),
            prediction=outcome,
            weight=weight,
            adjusted_weight=weight,
            is_on_probation=bool(raw.get('isOnProbation', False)),
        )


@dataclass
class CycleCarryState:
    """
    Information the caller persists between cycles and feeds back.

    Mirrors the ``last*`` fields of the previous PredictionResult.
    """
    last_predicted: Optional[Outcome] = None
    last_confidence: Optional[float] = None
    last_confidence_level: int = 1
    last_macro_regime: str = "UNKNOWN_REGIME"
    last_votes: List[SignalVote] = field(default_factory=list)
    last_concentration_mode: bool = False
    last_entropy_state: EntropyState = EntropyState.STABLE_MODERATE
    last_volatility: VolatilityLevel = VolatilityLevel.UNKNOWN
    long_term_global_accuracy: float = 0.5
    last_period: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lastPredictedOutcome': self.last_predicted.value if self.last_predicted else None,
            'lastFinalConfidence': self.last_confidence,
            'lastConfidenceLevel': self.last_confidence_level,
            'lastMacroRegime': self.last_macro_regime,
            'lastPredictionSignals': [v.to_dict() for v in self.last_votes],
            'lastConcentrationModeEngaged': self.last_concentration_mode,
            'lastMarketEntropyState': self.last_entropy_state.value,
            'lastVolatilityRegime': self.last_volatility.value,
            'longTermGlobalAccuracy': self.long_term_global_accuracy,
            'lastPeriodFull': self.last_period,
        }

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "CycleCarryState":
        if not raw:
            return cls()
        predicted = raw.get('lastPredictedOutcome')
        entropy = raw.get('lastMarketEntropyState')
        volatility = raw.get('lastVolatilityRegime')
        period = raw.get('lastPeriodFull')
        try:
            period = int(period) if period is not None else None
        except (TypeError, ValueError):
            period = None
        votes = [SignalVote.from_dict(v) for v in raw.get('lastPredictionSignals') or []]
        return cls(
            last_predicted=Outcome[predicted] if predicted in Outcome.__members__ else None,
            last_confidence=raw.get('lastFinalConfidence'),
            last_confidence_level=int(raw.get('lastConfidenceLevel') or 1),
            last_macro_regime=raw.get('lastMacroRegime') or "UNKNOWN_REGIME",
            last_votes=[v for v in votes if v is not None],
            last_concentration_mode=bool(raw.get('lastConcentrationModeEngaged', False)),
            last_entropy_state=(
                EntropyState(entropy) if entropy in EntropyState._value2member_map_
                else EntropyState.STABLE_MODERATE
            ),
            last_volatility=(
                VolatilityLevel(volatility) if volatility in VolatilityLevel._value2member_map_
                else VolatilityLevel.UNKNOWN
            ),
            long_term_global_accuracy=float(raw.get('longTermGlobalAccuracy', 0.5)),
            last_period=period,
        )


@dataclass
class PredictionResult:
    """Decision, confidence and diagnostics of one cycle."""
    final_decision: Outcome
    final_confidence: float
    confidence_level: int
    is_forced_prediction: bool
    big_confidence: float
    small_confidence: float
    overall_logic: str
    source: str
    macro_regime: str
    entropy_state: EntropyState
    volatility: VolatilityLevel
    concentration_mode: bool
    prediction_quality_score: float
    reflexive_correction_active: bool
    drift_state: DriftState = DriftState.STABLE
    uncertainty_score: float = 0.0
    uncertainty_reasons: str = ""
    path_confluence_score: float = 0.0
    contributing_signals: List[SignalVote] = field(default_factory=list)
    adjusted_votes: List[SignalVote] = field(default_factory=list)
    period: Optional[int] = None
    long_term_global_accuracy: float = 0.5

    def carry_state(
        self,
        long_term_global_accuracy: Optional[float] = None,
        period: Optional[int] = None,
    ) -> CycleCarryState:
        """
        The fields the caller must feed back next cycle.

        Period and global accuracy default to the values the engine
        recorded on this result.
        """
        if long_term_global_accuracy is None:
            long_term_global_accuracy = self.long_term_global_accuracy
        if period is None:
            period = self.period
        return CycleCarryState(
            last_predicted=self.final_decision,
            last_confidence=self.final_confidence,
            last_confidence_level=self.confidence_level,
            last_macro_regime=self.macro_regime,
            last_votes=list(self.adjusted_votes),
            last_concentration_mode=self.concentration_mode,
            last_entropy_state=self.entropy_state,
            last_volatility=self.volatility,
            long_term_global_accuracy=long_term_global_accuracy,
            last_period=period,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'predictions': {
                'BIG': {'confidence': self.big_confidence},
                'SMALL': {'confidence': self.small_confidence},
            },
            'finalDecision': self.final_decision.value,
            'finalConfidence': self.final_confidence,
            'confidenceLevel': self.confidence_level,
            'isForcedPrediction': self.is_forced_prediction,
            'overallLogic': self.overall_logic,
            'source': self.source,
            'currentMacroRegime': self.macro_regime,
            'marketEntropyState': self.entropy_state.value,
            'predictionQualityScore': self.prediction_quality_score,
            'reflexiveCorrectionActive': self.reflexive_correction_active,
            'driftState': self.drift_state.value,
            'uncertaintyScore': self.uncertainty_score,
            'contributingSignals': [
                {'source': v.source, 'prediction': v.prediction.value, 'weight': round(v.adjusted_weight, 5)}
                for v in self.contributing_signals
            ],
        }
        payload.update(self.carry_state().to_dict())
        return payload
