"""
Tests for the Forecast Engine
=============================

End-to-end cycles, carry state, session helpers and the CLI entry point.
"""

import json
import logging
import sys
import threading
from dataclasses import replace

import pytest

from conftest import alternating_numbers, make_history, random_numbers
from forecaster import (
    CycleCarryState,
    EngineConfig,
    EngineState,
    ForecastEngine,
    ForecastSession,
    Outcome,
    advance_carry_state,
    next_period_id,
)
from forecaster.core import logger as logger_module
from forecaster.core.types import HistoryRecord
from forecaster.engine import ENGINE_SOURCE, update_global_accuracy


class _FixedModel:
    name = "FixedModel"

    def predict(self, features):
        return Outcome.BIG, 1.0


def high_confidence_miss():
    """Carry of a level-3 BIG call; pair it with a SMALL newest record."""
    return CycleCarryState(last_predicted=Outcome.BIG, last_confidence=0.9, last_confidence_level=3)


def small_newest_history():
    return make_history(alternating_numbers(60, newest=2, other=7))


class TestForcedResults:

    def test_insufficient_history(self, engine):
        result = engine.predict(make_history(random_numbers(30)))

        assert result.is_forced_prediction
        assert result.source == "InsufficientHistory"
        assert result.confidence_level == 1
        assert 0.49 <= result.final_confidence <= 0.51
        assert result.prediction_quality_score == 0.01
        assert result.contributing_signals == []

    def test_empty_history(self, engine):
        result = engine.predict([])

        assert result.is_forced_prediction
        assert result.source == "InsufficientHistory"
        assert result.final_decision in (Outcome.BIG, Outcome.SMALL)

    def test_min_history_boundary(self, engine):
        assert engine.predict(make_history(random_numbers(51))).source == "InsufficientHistory"
        assert engine.predict(make_history(random_numbers(52))).source != "InsufficientHistory"

    def test_malformed_records_dropped(self, engine):
        raw = [record.to_dict() for record in make_history(random_numbers(55))]
        raw[3] = {'period': '1', 'actual': 'x'}
        raw[10] = {'period': '2'}
        raw[20] = "not a record"

        # 52 usable records remain
        result = engine.predict(raw)
        assert result.source != "InsufficientHistory"


class TestFullCycle:

    @pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
    def test_output_bounds(self, engine, seed):
        result = engine.predict(make_history(random_numbers(80, seed=seed)))

        assert 0.0 <= result.final_confidence <= 1.0
        assert 0.001 <= result.big_confidence <= 0.999
        assert 0.001 <= result.small_confidence <= 0.999
        assert result.big_confidence + result.small_confidence == pytest.approx(1.0)
        assert result.confidence_level in (1, 2, 3)
        assert 0.01 <= result.prediction_quality_score <= 0.99
        assert len(result.contributing_signals) <= 15
        if result.is_forced_prediction:
            assert result.confidence_level == 1

    def test_alternating_series(self, engine, alternating_history):
        result = engine.predict(alternating_history)

        # Enough history for a full cycle; the uncertainty gate forces this one
        assert result.source == ENGINE_SOURCE
        assert result.is_forced_prediction
        assert result.confidence_level == 1
        assert result.uncertainty_score >= engine.config.fusion.uncertainty_threshold
        assert "FORCED_PREDICTION" in result.overall_logic
        assert "InsufficientHistory" not in result.overall_logic
        assert any(v.source.startswith("Alt-") for v in result.adjusted_votes)
        assert result.concentration_mode
        assert result.macro_regime.endswith("_TRANSITION")

    def test_adjusted_votes_above_floor(self, engine):
        result = engine.predict(make_history(random_numbers(80, seed=11)))
        floor = engine.config.learner.min_absolute_weight

        assert all(v.adjusted_weight > floor for v in result.adjusted_votes)
        weights = [v.adjusted_weight for v in result.contributing_signals]
        assert weights == sorted(weights, reverse=True)

    def test_deterministic_with_seed(self, fixed_clock):
        history = make_history(random_numbers(90, seed=5))
        first = ForecastEngine(EngineConfig(seed=42), clock=fixed_clock).predict(history)
        second = ForecastEngine(EngineConfig(seed=42), clock=fixed_clock).predict(history)

        assert first.to_dict() == second.to_dict()

    def test_custom_model(self, config, fixed_clock, alternating_history):
        engine = ForecastEngine(config, model=_FixedModel(), clock=fixed_clock)
        result = engine.predict(alternating_history)

        model_votes = [v for v in result.adjusted_votes if v.source == "FixedModel"]
        assert len(model_votes) == 1
        assert model_votes[0].prediction is Outcome.BIG

    def test_extended_analyzers(self, fixed_clock):
        config = EngineConfig(seed=1)
        config.fusion.extended_analyzers = True
        engine = ForecastEngine(config, clock=fixed_clock)

        names = engine.get_status()['analyzers']
        assert "NGram3" in names
        assert names[-1] == "Bayesian"

    def test_result_is_json_serializable(self, engine, alternating_history):
        result = engine.predict(alternating_history)
        payload = json.loads(json.dumps(result.to_dict()))

        assert payload['finalDecision'] in ("BIG", "SMALL")
        assert set(payload['predictions']) == {"BIG", "SMALL"}
        json.dumps(result.carry_state().to_dict())


class TestCarryState:

    def test_reflexive_correction_engages(self, engine):
        history = small_newest_history()

        first = engine.predict(history, high_confidence_miss())
        second = engine.predict(history, high_confidence_miss())

        assert not first.reflexive_correction_active
        assert second.reflexive_correction_active
        assert second.concentration_mode
        assert "ReflexiveCorrection" in second.uncertainty_reasons or second.is_forced_prediction

    def test_reflexive_window_counts_down(self, engine):
        history = small_newest_history()
        engine.predict(history, high_confidence_miss())
        engine.predict(history, high_confidence_miss())

        active = [engine.predict(history).reflexive_correction_active for _ in range(6)]
        assert active == [True] * 5 + [False]

    def test_carry_accepted_as_dict(self, engine):
        history = small_newest_history()
        engine.predict(history, high_confidence_miss().to_dict())
        second = engine.predict(history, high_confidence_miss().to_dict())

        assert second.reflexive_correction_active

    def test_learning_uses_carried_votes(self, engine, alternating_history):
        result = engine.predict(alternating_history)
        carry = advance_carry_state(None, result, alternating_history)
        engine.predict(make_history(alternating_numbers(61, newest=2, other=7), newest_period=100001), carry)

        stats = engine.get_status()["signals"]
        carried = {v.source for v in carry.last_votes}
        assert carried
        assert all(stats[source]["total"] == 1 for source in carried)

    def test_shared_state(self, config, fixed_clock):
        state = EngineState.create(config)
        first = ForecastEngine(config, state=state, clock=fixed_clock)
        second = ForecastEngine(config, state=state, clock=fixed_clock)

        history = small_newest_history()
        first.predict(history, high_confidence_miss())
        first.predict(history, high_confidence_miss())

        assert second.state.reflexive.is_active
        assert second.predict(history).reflexive_correction_active


class TestSession:

    def test_next_period_id(self):
        assert next_period_id(make_history([1, 2], newest_period=500)) == 501
        assert next_period_id([HistoryRecord(period="abc", actual_number=3)]) is None
        assert next_period_id([]) is None

    def test_global_accuracy_ema(self):
        assert update_global_accuracy(0.5, True) == pytest.approx(0.51)
        assert update_global_accuracy(0.5, False) == pytest.approx(0.49)

    def test_advance_scores_previous_call(self, alternating_history, engine):
        result = engine.predict(alternating_history)
        # Newest record is a 7, i.e. BIG
        carry = CycleCarryState(last_predicted=Outcome.BIG, long_term_global_accuracy=0.5)

        next_carry = advance_carry_state(carry, result, alternating_history)

        assert next_carry.long_term_global_accuracy == pytest.approx(0.51)
        assert next_carry.last_period == 100001
        assert next_carry.last_predicted is result.final_decision

    def test_first_cycle_keeps_accuracy(self, alternating_history, engine):
        result = engine.predict(alternating_history)
        assert advance_carry_state(None, result, alternating_history).long_term_global_accuracy == 0.5

    def test_session_learns_with_text_period_ids(self, engine):
        session = ForecastSession(engine)
        numbers = random_numbers(120, seed=9)

        for offset in range(20, 0, -1):
            history = make_history(numbers[offset:offset + 80], newest_period=100000 - offset)
            session.step(tuple(replace(r, period=f"R-{r.period}") for r in history))

        assert session.carry.last_period is None
        totals = [stats['total'] for stats in engine.get_status()['signals'].values()]
        assert max(totals) > 1

    def test_result_records_period_and_accuracy(self, alternating_history, engine):
        carry = CycleCarryState(last_predicted=Outcome.BIG, long_term_global_accuracy=0.5)
        result = engine.predict(alternating_history, carry)

        assert result.period == 100001
        assert result.long_term_global_accuracy == pytest.approx(0.51)
        assert result.carry_state() == advance_carry_state(carry, result, alternating_history)

    def test_serialized_result_is_a_carry_state(self, alternating_history, engine):
        first = engine.predict(alternating_history)
        payload = json.loads(json.dumps(first.to_dict()))

        following = make_history(alternating_numbers(61, newest=2, other=7), newest_period=100001)
        engine.predict(following, payload)

        stats = engine.get_status()['signals']
        assert payload['lastPeriodFull'] == 100001
        assert all(stats[v['source']]['total'] == 1 for v in payload['lastPredictionSignals'])

    def test_session_loop(self, engine):
        session = ForecastSession(engine)
        numbers = random_numbers(120, seed=9)

        for offset in range(10, 0, -1):
            history = make_history(numbers[offset:offset + 80], newest_period=100000 - offset)
            session.step(history)

        assert session.steps == 10
        assert 0.0 <= session.carry.long_term_global_accuracy <= 1.0
        assert session.carry.last_period == 100000
        assert engine.get_status()['cycles'] == 10

        session.reset()
        assert session.steps == 0
        assert session.carry.last_predicted is None


class TestConcurrency:

    def test_parallel_predictions(self, engine):
        errors = []
        results = []

        def worker(seed):
            try:
                for i in range(5):
                    results.append(engine.predict(make_history(random_numbers(70, seed=seed * 10 + i))))
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(seed,)) for seed in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(results) == 20
        assert engine.get_status()['cycles'] == 20


class TestCli:

    @pytest.fixture(autouse=True)
    def restore_package_logger(self, monkeypatch):
        monkeypatch.setattr(logger_module, "_configured", {})
        package = logging.getLogger("forecaster")
        handlers, propagate, level = list(package.handlers), package.propagate, package.level
        yield
        package.handlers = handlers
        package.propagate = propagate
        package.setLevel(level)

    def _run(self, monkeypatch, *args):
        import run_forecast
        monkeypatch.setattr(sys, 'argv', ['run_forecast.py', *args])
        return run_forecast.main()

    def test_forecast_and_carry(self, tmp_path, monkeypatch, capsys):
        history_file = tmp_path / "history.json"
        carry_file = tmp_path / "carry.json"
        history_file.write_text(json.dumps([r.to_dict() for r in make_history(random_numbers(60))]))

        code = self._run(
            monkeypatch,
            '--history', str(history_file),
            '--config', str(tmp_path / "missing.yaml"),
            '--carry-out', str(carry_file),
            '--seed', '3',
        )

        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output['finalDecision'] in ("BIG", "SMALL")
        carry = json.loads(carry_file.read_text())
        assert carry['lastPeriodFull'] == 100001
        assert carry['lastPredictedOutcome'] == output['finalDecision']

    def test_invalid_config(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("fusion:\n  no_such_option: 1\n")
        history_file = tmp_path / "history.json"
        history_file.write_text("[]")

        assert self._run(monkeypatch, '--history', str(history_file), '--config', str(config_file)) == 2

    def test_unreadable_history(self, tmp_path, monkeypatch):
        code = self._run(
            monkeypatch,
            '--history', str(tmp_path / "absent.json"),
            '--config', str(tmp_path / "missing.yaml"),
        )
        assert code == 1
