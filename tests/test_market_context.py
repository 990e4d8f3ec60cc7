"""
Tests for Market Context Classification
=======================================

Trend context, macro regime, stability and entropy state.
"""

import pytest

from conftest import alternating_numbers, make_history, random_numbers
from forecaster.core.types import (
    EntropyReport,
    EntropyState,
    RegimeProbabilities,
    StabilityReport,
    TrendContext,
    TrendStrength,
    VolatilityLevel,
)
from forecaster.market import (
    analyze_advanced_market_regime,
    analyze_market_entropy_state,
    analyze_trend_stability,
    classify_macro_regime,
    get_market_regime_and_trend_context,
    get_trend_context,
)


def rising_history():
    # Chronologically 40 zeros then 10 nines, newest first
    return make_history([9] * 10 + [0] * 40)


def falling_history():
    return make_history([0] * 10 + [9] * 40)


class TestTrendContext:

    def test_insufficient_history(self):
        context = get_market_regime_and_trend_context(make_history([5] * 19))

        assert context.strength is TrendStrength.UNKNOWN
        assert context.volatility is VolatilityLevel.UNKNOWN
        assert context.macro_regime == "UNKNOWN_REGIME"

    def test_rising_series_leans_big(self):
        context = get_market_regime_and_trend_context(rising_history())

        assert context.direction == "BIG"
        assert context.strength in (TrendStrength.STRONG, TrendStrength.MODERATE)
        assert context.volatility is VolatilityLevel.HIGH
        assert context.macro_regime.startswith("TREND_")
        assert context.leans_big

    def test_falling_series_leans_small(self):
        context = get_market_regime_and_trend_context(falling_history())

        assert context.direction == "SMALL"
        assert context.leans_small
        assert context.strength in (TrendStrength.STRONG, TrendStrength.MODERATE)

    def test_flat_series_is_very_low_volatility(self):
        context = get_trend_context(make_history([5] * 40))

        assert context.volatility is VolatilityLevel.VERY_LOW
        assert context.strength is TrendStrength.RANGING

    def test_idempotent(self):
        history = make_history(random_numbers(80, seed=3))
        assert get_market_regime_and_trend_context(history) == get_market_regime_and_trend_context(history)

    def test_transition_suffix(self):
        context = get_market_regime_and_trend_context(make_history(alternating_numbers(60)))

        assert context.is_transitioning
        assert context.macro_regime.endswith("_TRANSITION")
        assert context.macro_regime in context.details


class TestMacroRegime:

    @pytest.mark.parametrize("strength,volatility,expected", [
        (TrendStrength.STRONG, VolatilityLevel.LOW, "TREND_STRONG_LOW_VOL"),
        (TrendStrength.STRONG, VolatilityLevel.VERY_LOW, "TREND_STRONG_LOW_VOL"),
        (TrendStrength.STRONG, VolatilityLevel.HIGH, "TREND_STRONG_HIGH_VOL"),
        (TrendStrength.MODERATE, VolatilityLevel.MEDIUM, "TREND_MOD_MED_VOL"),
        (TrendStrength.RANGING, VolatilityLevel.LOW, "RANGE_LOW_VOL"),
        (TrendStrength.RANGING, VolatilityLevel.HIGH, "RANGE_HIGH_VOL"),
        (TrendStrength.WEAK, VolatilityLevel.HIGH, "WEAK_HIGH_VOL"),
        (TrendStrength.WEAK, VolatilityLevel.MEDIUM, "WEAK_MED_VOL"),
        (TrendStrength.WEAK, VolatilityLevel.VERY_LOW, "WEAK_LOW_VOL"),
        (TrendStrength.WEAK, VolatilityLevel.UNKNOWN, "WEAK_LOW_VOL"),
    ])
    def test_mapping(self, strength, volatility, expected):
        assert classify_macro_regime(strength, volatility) == expected


class TestStability:

    def test_short_history_is_stable(self):
        assert analyze_trend_stability(make_history([7] * 24)).is_stable

    def test_unconfirmed_records_ignored(self):
        report = analyze_trend_stability(make_history([7] * 30, status=None))

        assert report.is_stable
        assert "confirmed" in report.reason

    def test_dominance(self):
        report = analyze_trend_stability(make_history([7] * 30))

        assert not report.is_stable
        assert "Dominance" in report.reason
        assert report.dominance == "BIG_DOMINANCE"

    def test_small_dominance(self):
        report = analyze_trend_stability(make_history([1] * 30))
        assert report.dominance == "SMALL_DOMINANCE"

    def test_choppiness(self):
        report = analyze_trend_stability(make_history(alternating_numbers(30, newest=6, other=3)))

        assert not report.is_stable
        assert "Choppiness" in report.reason

    def test_numeric_volatility(self):
        numbers = [9, 0, 0, 9, 9, 0, 0, 9, 9, 0, 0, 9, 9, 0, 0, 9, 9, 0, 0, 9, 9, 0, 0, 9, 9, 0]
        report = analyze_trend_stability(make_history(numbers))

        assert not report.is_stable
        assert "Volatility" in report.reason


class TestEntropyState:

    def test_insufficient_history(self):
        report = analyze_market_entropy_state(make_history([5] * 10), TrendContext(), StabilityReport(True, ""))
        assert report.state is EntropyState.UNCERTAIN_ENTROPY

    def test_orderly(self):
        history = make_history([7] * 30)
        report = analyze_market_entropy_state(history, TrendContext(), StabilityReport(True, ""))
        assert report.state is EntropyState.ORDERLY

    def test_instability_override(self):
        history = make_history([7] * 30)
        stability = analyze_trend_stability(history)
        report = analyze_market_entropy_state(history, TrendContext(), stability)

        assert report.state is EntropyState.POTENTIAL_CHAOS_FROM_INSTABILITY
        assert "StabilityOverride" in report.details

    def test_stable_chaos(self):
        history = make_history(alternating_numbers(30, newest=6, other=3))
        report = analyze_market_entropy_state(history, TrendContext(), StabilityReport(True, ""))

        assert report.state is EntropyState.STABLE_CHAOS
        assert report.state.is_chaotic


class TestAdvancedRegime:

    def test_default_is_uniform(self):
        probabilities = analyze_advanced_market_regime(TrendContext(), EntropyReport(EntropyState.STABLE_MODERATE))
        assert probabilities == RegimeProbabilities()

    def test_orderly_strong_trend(self):
        trend = TrendContext(direction="BIG", strength=TrendStrength.STRONG, volatility=VolatilityLevel.LOW)
        probabilities = analyze_advanced_market_regime(trend, EntropyReport(EntropyState.ORDERLY))

        assert probabilities.bull_trend == 0.8
        assert probabilities.bear_trend == 0.05

    def test_quiet_range(self):
        trend = TrendContext(strength=TrendStrength.RANGING, volatility=VolatilityLevel.VERY_LOW)
        probabilities = analyze_advanced_market_regime(trend, EntropyReport(EntropyState.STABLE_MODERATE))
        assert probabilities.quiet_range == 0.7
