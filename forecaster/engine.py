"""
Forecast Engine
===============
Orchestrates one prediction cycle:

    reflexive check -> market context -> drift update -> performance update
    -> signal generation -> consensus -> superposition -> scoring
    -> uncertainty -> decision, confidence level, forced policy

All learning state lives in an injected EngineState. The engine holds a
single lock around a whole cycle so that concurrent callers can never
interleave partial learner updates.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from .core.config import EngineConfig
from .core.types import (
    CycleCarryState,
    DriftState,
    EntropyReport,
    HistoryRecord,
    Outcome,
    PredictionResult,
    SignalVote,
    TrendContext,
    history_numbers,
    parse_history,
)
from .external import (
    NeutralSentimentProvider,
    SentimentProvider,
    SessionClock,
    get_prime_time_session,
)
from .fusion import (
    analyze_path_confluence,
    analyze_prediction_consensus,
    analyze_signal_consistency,
    analyze_superposition,
    calculate_uncertainty_score,
    prediction_quality_score,
    uncertainty_factor,
)
from .learning import (
    DriftDetector,
    ReflexiveCorrection,
    RegimeProfileBook,
    SignalPerformanceTracker,
    assign_confidence_level,
    forced_confidence,
    should_force,
)
from .market import (
    analyze_advanced_market_regime,
    analyze_market_entropy_state,
    analyze_trend_stability,
    get_market_regime_and_trend_context,
)
from .signals import AnalyzerSpec, CycleContext, VoteModel, build_feature_set, default_analyzers, weighted_split

logger = logging.getLogger(__name__)

ENGINE_SOURCE = "RealTimeFusion"
GLOBAL_ACCURACY_ALPHA = 0.02


def update_global_accuracy(accuracy: float, hit: bool, alpha: float = GLOBAL_ACCURACY_ALPHA) -> float:
    return accuracy + alpha * ((1.0 if hit else 0.0) - accuracy)


@dataclass
class EngineState:
    """Caller-owned mutable learning state."""
    performance: SignalPerformanceTracker
    regimes: RegimeProfileBook
    drift: DriftDetector
    reflexive: ReflexiveCorrection

    @classmethod
    def create(cls, config: Optional[EngineConfig] = None) -> "EngineState":
        config = config or EngineConfig()
        return cls(
            performance=SignalPerformanceTracker(config.learner),
            regimes=RegimeProfileBook(config.regime),
            drift=DriftDetector(config.drift),
            reflexive=ReflexiveCorrection(config.fusion),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'signals': self.performance.get_stats(),
            'regimes': self.regimes.get_stats(),
            'drift': self.drift.to_dict(),
            'reflexive': self.reflexive.to_dict(),
        }


@dataclass
class _CycleFrame:
    """Context shared by the normal and forced result builders."""
    trend: TrendContext
    entropy: EntropyReport
    concentration_mode: bool
    reflexive: bool
    drift_state: DriftState
    logic: List[str] = field(default_factory=list)
    period: Optional[int] = None
    global_accuracy: float = 0.5


def next_period_id(history: Sequence[HistoryRecord]) -> Optional[int]:
    """Newest period id plus one, or None when it is not an integer."""
    if not history:
        return None
    try:
        return int(history[0].period) + 1
    except (TypeError, ValueError):
        return None


class ForecastEngine:
    """
    Adaptive ensemble forecaster for the next round's BIG/SMALL class.

    Usage:
        engine = ForecastEngine(EngineConfig.load("config.yaml"))
        result = engine.predict(history, carry)
        carry = advance_carry_state(carry, result, history)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        state: Optional[EngineState] = None,
        analyzers: Optional[List[AnalyzerSpec]] = None,
        model: Optional[VoteModel] = None,
        sentiment: Optional[SentimentProvider] = None,
        clock: Optional[SessionClock] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize the engine.

        Args:
            config: EngineConfig or None for defaults
            state: Learning state to share; a fresh one is created if None
            analyzers: Analyzer pipeline; default_analyzers() if None
            model: Model behind the ML signal; HeuristicVoteModel if None
            sentiment: External sentiment provider; neutral if None
            clock: Time-of-day source; wall clock if None
            rng: Random generator; seeded from config.seed if None
        """
        self.config = config or EngineConfig()
        self.state = state or EngineState.create(self.config)
        self.analyzers = analyzers if analyzers is not None else default_analyzers(
            model=model, extended=self.config.fusion.extended_analyzers
        )
        self.sentiment = sentiment or NeutralSentimentProvider()
        self.clock = clock or SessionClock()
        self.rng = rng or np.random.default_rng(self.config.seed)
        self._lock = threading.Lock()
        self._cycles = 0

        logger.info(
            f"ForecastEngine initialized: {len(self.analyzers)} analyzers, "
            f"min_history={self.config.fusion.min_history}, seed={self.config.seed}"
        )

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def predict(
        self,
        history: Sequence[Union[HistoryRecord, Dict[str, Any]]],
        carry_state: Optional[Union[CycleCarryState, Dict[str, Any]]] = None,
        period: Optional[int] = None,
    ) -> PredictionResult:
        """
        Forecast the class of the next round.

        Args:
            history: Settled rounds, newest first (records or raw dicts)
            carry_state: State returned alongside the previous prediction
            period: Id of the round being predicted (default: newest + 1)

        Returns:
            PredictionResult; degenerate inputs yield a forced result
        """
        if isinstance(carry_state, CycleCarryState):
            carry = carry_state
        else:
            carry = CycleCarryState.from_dict(carry_state)

        records = parse_history(history)
        with self._lock:
            self._cycles += 1
            return self._run_cycle(records, carry, period if period is not None else next_period_id(records))

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            status = self.state.to_dict()
            status['cycles'] = self._cycles
            status['analyzers'] = [spec.name for spec in self.analyzers]
            return status

    # =========================================================================
    # CYCLE
    # =========================================================================

    def _run_cycle(self, records, carry: CycleCarryState, current_period: Optional[int]) -> PredictionResult:
        cfg = self.config.fusion
        state = self.state

        time = self.clock.time_features()
        prime = get_prime_time_session(time.hour)
        sentiment = self.sentiment.read()

        logic = [f"Forecast(IST_Hr:{time.hour})", sentiment.reason]
        if prime is not None:
            logic.append(f"PrimeTime:{prime.session}")

        global_accuracy = carry.long_term_global_accuracy
        realized = records[0].outcome if records and carry.last_predicted is not None else None

        reflexive = state.reflexive.check(
            carry.last_predicted, carry.last_confidence_level, realized, carry.last_confidence
        )
        if reflexive:
            logic.append(f"ReflexiveCorrection(Countdown:{state.reflexive.countdown})")

        trend = get_market_regime_and_trend_context(records)
        stability = analyze_trend_stability(records)
        entropy = analyze_market_entropy_state(records, trend, stability)
        regime_probabilities = analyze_advanced_market_regime(trend, entropy)
        logic.append(
            f"TrendCtx(Dir:{trend.direction},Str:{trend.strength.value},"
            f"Vol:{trend.volatility.value},Regime:{trend.macro_regime})"
        )
        logic.append(f"MarketEntropy:{entropy.state.value}")
        logic.append(f"AdvRegime:{regime_probabilities.details}")

        concentration = not stability.is_stable or reflexive or entropy.state.is_chaotic

        drift_state = DriftState.STABLE
        if realized is not None:
            drift_state = state.drift.update(realized is carry.last_predicted)
            if drift_state != DriftState.STABLE:
                logic.append(f"Drift:{drift_state.value}")
                concentration = True
        if concentration:
            logic.append("ConcentrationModeActive")

        if realized is not None:
            state.performance.update(
                carry.last_votes,
                realized,
                carry.last_period,
                carry.last_volatility,
                carry.last_confidence,
                last_predicted=carry.last_predicted,
                concentration_mode=carry.last_concentration_mode,
                entropy_state=carry.last_entropy_state,
            )
            state.regimes.update(carry.last_macro_regime, realized, carry.last_predicted, global_accuracy)

        next_accuracy = global_accuracy
        if realized is not None:
            next_accuracy = update_global_accuracy(global_accuracy, realized is carry.last_predicted)

        frame = _CycleFrame(
            trend, entropy, concentration, reflexive, drift_state, logic,
            period=current_period, global_accuracy=next_accuracy,
        )

        if len(records) < cfg.min_history:
            logic.append("InsufficientHistory_ForceRandom")
            return self._forced(frame, "InsufficientHistory")

        profile = state.regimes.get(trend.macro_regime)
        aggression = profile.contextual_aggression * (prime.aggression if prime else 1.0)
        if reflexive or drift_state == DriftState.DRIFT:
            aggression *= cfg.reflexive_aggression
        elif concentration:
            aggression *= cfg.concentration_aggression

        ctx = CycleContext(
            history=records,
            trend=trend,
            entropy=entropy,
            stability=stability,
            time=time,
            features=build_feature_set(history_numbers(records), trend, time),
            rng=self.rng,
        )

        def adjust(v: SignalVote, raw_weight: float):
            v.adjusted_weight = state.performance.get_dynamic_weight_adjustment(
                v.source, raw_weight, current_period, trend.volatility, len(records)
            )
            v.is_on_probation = state.performance.is_on_probation(v.source)

        votes: List[SignalVote] = []
        for spec in self.analyzers:
            if not profile.allows(spec.regime_tag):
                continue
            result = spec.run(ctx.with_prior_votes(votes) if spec.meta else ctx)
            if result is None:
                continue
            adjust(result, result.weight * aggression)
            votes.append(result)

        consensus = analyze_prediction_consensus(votes, trend)
        logic.append(f"Consensus:{consensus.details},Factor:{consensus.factor:.2f}")
        superposition = analyze_superposition(votes, consensus, cfg.superposition_weight)
        if superposition is not None:
            adjust(superposition, superposition.weight)
            votes.append(superposition)

        floor = self.config.learner.min_absolute_weight
        valid = [v for v in votes if v.adjusted_weight > floor]
        logic.append(f"ValidSignals({len(valid)}/{len(votes)})")
        if not valid:
            logic.append("NoValidSignals_ForceRandom")
            return self._forced(frame, "NoValidSignals")

        big, small = weighted_split(valid)
        tilt = regime_probabilities.bull_trend - regime_probabilities.bear_trend
        big *= (1 + tilt) * consensus.factor
        small *= (1 - tilt) * (2.0 - consensus.factor)
        total = big + small

        if big > small:
            decision = Outcome.BIG
        elif small > big:
            decision = Outcome.SMALL
        else:
            decision = self._coin_flip()
        confidence = max(big, small) / total if total > 0 else 0.5

        boost = (prime.confidence if prime else 1.0) * sentiment.factor
        confidence = min(1.0, max(0.0, 0.5 + (confidence - 0.5) * boost))

        consistency = analyze_signal_consistency(valid)
        confluence = analyze_path_confluence(valid, decision, floor * 10)
        uncertainty = calculate_uncertainty_score(
            trend, stability, entropy, consistency, confluence, global_accuracy, reflexive, drift_state
        )
        factor = uncertainty_factor(uncertainty.score, cfg.uncertainty_scale)
        confidence = 0.5 + (confidence - 0.5) * factor
        logic.append(f"Uncertainty(Score:{uncertainty.score:.0f},Factor:{factor:.2f})")

        quality = prediction_quality_score(consistency, confluence, uncertainty.score)
        logic.append(f"PQS:{quality:.3f}")

        level = assign_confidence_level(confidence, quality, prime is not None, cfg)
        strict = reflexive or drift_state == DriftState.DRIFT
        forced = should_force(uncertainty.score, quality, strict, cfg)
        if forced:
            level = 1
            confidence = forced_confidence(self.rng, cfg)
            logic.append(f"FORCED_PREDICTION(Uncertainty:{uncertainty.score:.1f},PQS:{quality:.3f})")

        contributing = sorted(valid, key=lambda v: v.adjusted_weight, reverse=True)[:cfg.max_reported_signals]
        result = self._build(
            frame,
            decision=decision,
            confidence=confidence,
            level=level,
            forced=forced,
            source=ENGINE_SOURCE,
            quality=quality,
            uncertainty=uncertainty.score,
            reasons=uncertainty.reasons,
            confluence=confluence.score,
            contributing=contributing,
            adjusted=valid,
        )

        logger.info(
            f"Forecast: {decision.value} @ {confidence:.1%} | Lvl: {level} | PQS: {quality:.2f} | "
            f"Forced: {forced} | Drift: {drift_state.value} | Regime: {trend.macro_regime}"
        )
        return result

    # =========================================================================
    # RESULT BUILDERS
    # =========================================================================

    def _coin_flip(self) -> Outcome:
        return Outcome.BIG if self.rng.random() > 0.5 else Outcome.SMALL

    def _forced(self, frame: _CycleFrame, source: str) -> PredictionResult:
        decision = self._coin_flip()
        confidence = forced_confidence(self.rng, self.config.fusion)
        logger.info(f"Forced forecast ({source}): {decision.value} @ {confidence:.1%}")
        return self._build(
            frame,
            decision=decision,
            confidence=confidence,
            level=1,
            forced=True,
            source=source,
            quality=0.01,
        )

    @staticmethod
    def _build(
        frame: _CycleFrame,
        decision: Outcome,
        confidence: float,
        level: int,
        forced: bool,
        source: str,
        quality: float,
        uncertainty: float = 0.0,
        reasons: str = "",
        confluence: float = 0.0,
        contributing: Optional[List[SignalVote]] = None,
        adjusted: Optional[List[SignalVote]] = None,
    ) -> PredictionResult:
        own = confidence
        other = 1 - confidence
        big_display, small_display = (own, other) if decision is Outcome.BIG else (other, own)
        return PredictionResult(
            final_decision=decision,
            final_confidence=confidence,
            confidence_level=level,
            is_forced_prediction=forced,
            big_confidence=max(0.001, min(0.999, big_display)),
            small_confidence=max(0.001, min(0.999, small_display)),
            overall_logic=" -> ".join(frame.logic),
            source=source,
            macro_regime=frame.trend.macro_regime,
            entropy_state=frame.entropy.state,
            volatility=frame.trend.volatility,
            concentration_mode=frame.concentration_mode,
            prediction_quality_score=quality,
            reflexive_correction_active=frame.reflexive,
            drift_state=frame.drift_state,
            uncertainty_score=uncertainty,
            uncertainty_reasons=reasons,
            path_confluence_score=confluence,
            contributing_signals=list(contributing or []),
            adjusted_votes=list(adjusted or []),
            period=frame.period,
            long_term_global_accuracy=frame.global_accuracy,
        )
