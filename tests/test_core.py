"""
Tests for Core Module
=====================

Tests configuration, types, logging and external feature providers.
"""

import json
import logging
import sys
from datetime import datetime, timezone

import numpy as np
import pytest

from forecaster.core.config import EngineConfig, FusionConfig
from forecaster.core.logger import get_logger, setup_logger
from forecaster.core.types import (
    CycleCarryState,
    DriftState,
    EntropyState,
    HistoryRecord,
    Outcome,
    PredictionResult,
    RoundStatus,
    SignalVote,
    VolatilityLevel,
    parse_history,
)
from forecaster.external import (
    NeutralSentimentProvider,
    SessionClock,
    SimulatedSentimentProvider,
    TimeFeatures,
    get_prime_time_session,
)


class TestOutcome:
    """Test Outcome enum."""

    def test_values(self):
        assert Outcome.BIG.value == "BIG"
        assert Outcome.SMALL.value == "SMALL"

    @pytest.mark.parametrize("number,expected", [
        (0, Outcome.SMALL), (4, Outcome.SMALL), (5, Outcome.BIG), (9, Outcome.BIG),
        ("7", Outcome.BIG), (" 3 ", Outcome.SMALL),
    ])
    def test_from_number(self, number, expected):
        assert Outcome.from_number(number) is expected

    @pytest.mark.parametrize("number", [None, "", "x", 10, -1, "4.5"])
    def test_from_number_invalid(self, number):
        assert Outcome.from_number(number) is None

    def test_opposite(self):
        assert Outcome.BIG.opposite is Outcome.SMALL
        assert Outcome.SMALL.opposite is Outcome.BIG


class TestHistoryRecord:
    """Test HistoryRecord parsing."""

    def test_from_dict(self):
        record = HistoryRecord.from_dict({'period': 20250101001, 'actual': '8', 'status': 'Win'})

        assert record.period == "20250101001"
        assert record.actual_number == 8
        assert record.status is RoundStatus.WIN
        assert record.outcome is Outcome.BIG
        assert record.is_confirmed

    def test_actual_number_key(self):
        record = HistoryRecord.from_dict({'period': '1', 'actualNumber': 2})
        assert record.outcome is Outcome.SMALL
        assert record.status is None
        assert not record.is_confirmed

    def test_unknown_status_is_unconfirmed(self):
        record = HistoryRecord.from_dict({'period': '1', 'actual': '2', 'status': 'pending'})
        assert record.status is None

    def test_invalid_digit(self):
        assert HistoryRecord.from_dict({'period': '1', 'actual': 'x'}) is None
        assert HistoryRecord.from_dict({'period': '1'}) is None
        assert HistoryRecord.from_dict("not a dict") is None

    def test_frozen(self):
        record = HistoryRecord(period="1", actual_number=3)
        with pytest.raises(AttributeError):
            record.actual_number = 7

    def test_parse_history_filters_malformed(self):
        raw = [
            {'period': '3', 'actual': '7', 'status': 'WIN'},
            {'period': '2', 'actual': None},
            {'period': '1', 'actual': '12'},
            HistoryRecord(period="0", actual_number=1),
        ]
        history = parse_history(raw)

        assert isinstance(history, tuple)
        assert [r.period for r in history] == ["3", "0"]

    def test_parse_history_empty(self):
        assert parse_history(None) == ()
        assert parse_history([]) == ()


class TestCycleCarryState:
    """Test the caller's carry-forward state."""

    def test_defaults(self):
        carry = CycleCarryState()
        assert carry.last_predicted is None
        assert carry.long_term_global_accuracy == 0.5
        assert carry.last_votes == []

    def test_dict_transport(self):
        carry = CycleCarryState(
            last_predicted=Outcome.BIG,
            last_confidence=0.71,
            last_confidence_level=2,
            last_macro_regime="RANGE_LOW_VOL",
            last_votes=[SignalVote("RSI", Outcome.SMALL, 0.08, adjusted_weight=0.05, is_on_probation=True)],
            last_concentration_mode=True,
            last_entropy_state=EntropyState.ORDERLY,
            last_volatility=VolatilityLevel.LOW,
            long_term_global_accuracy=0.53,
            last_period=1001,
        )
        payload = json.loads(json.dumps(carry.to_dict()))
        restored = CycleCarryState.from_dict(payload)

        assert restored.last_predicted is Outcome.BIG
        assert restored.last_confidence_level == 2
        assert restored.last_entropy_state is EntropyState.ORDERLY
        assert restored.last_volatility is VolatilityLevel.LOW
        assert restored.last_period == 1001
        assert restored.last_votes[0].source == "RSI"
        assert restored.last_votes[0].adjusted_weight == 0.05
        assert restored.last_votes[0].is_on_probation

    def test_from_dict_tolerates_garbage(self):
        carry = CycleCarryState.from_dict({
            'lastPredictedOutcome': 'MAYBE',
            'lastMarketEntropyState': 'NOPE',
            'lastPeriodFull': 'abc',
            'lastPredictionSignals': [{'source': 'X', 'prediction': 'UP'}, None],
        })
        assert carry.last_predicted is None
        assert carry.last_entropy_state is EntropyState.STABLE_MODERATE
        assert carry.last_period is None
        assert carry.last_votes == []


class TestPredictionResult:
    """Test PredictionResult transport."""

    def _result(self):
        votes = [SignalVote("Bollinger", Outcome.SMALL, 0.07, adjusted_weight=0.06)]
        return PredictionResult(
            final_decision=Outcome.SMALL,
            final_confidence=0.66,
            confidence_level=2,
            is_forced_prediction=False,
            big_confidence=0.34,
            small_confidence=0.66,
            overall_logic="a -> b",
            source="RealTimeFusion",
            macro_regime="RANGE_MED_VOL",
            entropy_state=EntropyState.STABLE_MODERATE,
            volatility=VolatilityLevel.MEDIUM,
            concentration_mode=False,
            prediction_quality_score=0.61,
            reflexive_correction_active=False,
            contributing_signals=votes,
            adjusted_votes=votes,
        )

    def test_to_dict(self):
        d = self._result().to_dict()

        assert d['finalDecision'] == "SMALL"
        assert d['predictions']['SMALL']['confidence'] == 0.66
        assert d['driftState'] == DriftState.STABLE.value
        assert d['contributingSignals'][0]['source'] == "Bollinger"
        json.dumps(d)

    def test_carry_state(self):
        carry = self._result().carry_state(long_term_global_accuracy=0.52, period=77)

        assert carry.last_predicted is Outcome.SMALL
        assert carry.last_confidence == 0.66
        assert carry.last_macro_regime == "RANGE_MED_VOL"
        assert carry.last_votes[0].source == "Bollinger"
        assert carry.long_term_global_accuracy == 0.52
        assert carry.last_period == 77

    def test_carry_state_defaults_to_recorded_values(self):
        result = self._result()
        result.period, result.long_term_global_accuracy = 78, 0.47

        carry = result.carry_state()
        assert carry.last_period == 78
        assert carry.long_term_global_accuracy == 0.47

    def test_to_dict_restores_carry_state(self):
        result = self._result()
        result.period, result.long_term_global_accuracy = 78, 0.47

        restored = CycleCarryState.from_dict(json.loads(json.dumps(result.to_dict())))

        assert restored.last_period == 78
        assert restored.long_term_global_accuracy == 0.47
        assert restored.last_predicted is Outcome.SMALL
        assert restored.last_confidence_level == 2
        assert restored.last_macro_regime == "RANGE_MED_VOL"

    def test_engine_result_restores_carry_state(self, engine, alternating_history):
        result = engine.predict(alternating_history)
        restored = CycleCarryState.from_dict(json.loads(json.dumps(result.to_dict())))

        assert restored.last_predicted is result.final_decision
        assert restored.last_confidence == result.final_confidence
        assert restored.last_entropy_state is result.entropy_state
        assert restored.last_period == 100001
        assert restored.long_term_global_accuracy == 0.5


class TestConfig:
    """Test configuration loading and validation."""

    def test_defaults(self):
        config = EngineConfig()
        config.validate()

        assert config.fusion.min_history == 52
        assert config.learner.performance_window == 30
        assert config.learner.inactivity_periods == 90
        assert config.drift.warning_level == 2.0
        assert config.drift.drift_level == 3.0

    def test_load_missing_file_returns_defaults(self, tmp_path):
        config = EngineConfig.load(str(tmp_path / "missing.yaml"))
        assert config.fusion.min_history == 52

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("fusion:\n  min_history: 60\n  extended_analyzers: true\nseed: 11\n")

        config = EngineConfig.load(str(path))

        assert config.fusion.min_history == 60
        assert config.fusion.extended_analyzers is True
        assert config.learner.performance_window == 30
        assert config.seed == 11

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert EngineConfig.load(str(path)).fusion.min_history == 52

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            EngineConfig.from_dict({'fusion': {'no_such_key': 1}})

    def test_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            EngineConfig.from_dict({'learner': {'probation_threshold': 0.7}})
        with pytest.raises(ValueError):
            EngineConfig.from_dict({'drift': {'warning_level': 3.0, 'drift_level': 2.0}})
        with pytest.raises(ValueError):
            EngineConfig.from_dict({'fusion': {'strict_uncertainty_threshold': 120.0}})

    def test_to_dict(self):
        d = EngineConfig(seed=3).to_dict()
        assert d['seed'] == 3
        assert d['fusion'] == FusionConfig().__dict__


class TestLogger:
    """Test logger setup."""

    def test_setup_is_cached(self, tmp_path):
        first = setup_logger("forecaster.test_cache", log_file=str(tmp_path / "logs" / "f.log"))
        second = setup_logger("forecaster.test_cache")

        assert first is second
        assert get_logger("forecaster.test_cache") is first
        assert (tmp_path / "logs").exists()
        assert first.propagate is False

    def test_console_uses_stderr(self):
        logger = setup_logger("forecaster.test_console", level="debug")

        streams = [h.stream for h in logger.handlers if isinstance(h, logging.StreamHandler)]
        assert streams == [sys.stderr]
        assert logger.level == logging.DEBUG

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logger("forecaster.test_bad_level", level="LOUD")
        with pytest.raises(ValueError):
            EngineConfig.from_dict({'logging': {'level': 'LOUD'}})

    def test_get_unknown_logger(self):
        assert isinstance(get_logger("forecaster.not_configured"), logging.Logger)


class TestExternal:
    """Test time and sentiment providers."""

    def test_time_features(self):
        features = TimeFeatures.from_hour(6)
        assert features.sin == pytest.approx(1.0)
        assert features.cos == pytest.approx(0.0, abs=1e-9)
        assert TimeFeatures.from_hour(25).hour == 1

    def test_session_clock_uses_ist(self):
        clock = SessionClock(now=lambda: datetime(2025, 1, 1, 5, 0, tzinfo=timezone.utc))
        assert clock.time_features().hour == 10

    def test_naive_time_is_utc(self):
        clock = SessionClock(now=lambda: datetime(2025, 1, 1, 14, 0))
        assert clock.time_features().hour == 19

    @pytest.mark.parametrize("hour,session", [
        (10, "PRIME_MORNING"),
        (13, "PRIME_AFTERNOON_1"),
        (15, "PRIME_AFTERNOON_2"),
        (17, "PRIME_EVENING"),
        (19, "PRIME_EVENING_PEAK"),
    ])
    def test_prime_time(self, hour, session):
        assert get_prime_time_session(hour).session == session

    @pytest.mark.parametrize("hour", [0, 8, 12, 14, 16, 20, 23])
    def test_off_peak(self, hour):
        assert get_prime_time_session(hour) is None

    def test_neutral_sentiment(self):
        assert NeutralSentimentProvider().read().factor == 1.0

    def test_simulated_sentiment_range(self):
        provider = SimulatedSentimentProvider(np.random.default_rng(1))
        for _ in range(50):
            reading = provider.read()
            assert 0.87 <= reading.factor <= 1.07
            assert reading.reason.startswith("ExtData(")
