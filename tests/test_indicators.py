"""
Tests for the Primitive Statistics Library
==========================================
"""

import math

import pytest

from forecaster import indicators
from forecaster.core.types import Outcome

B, S = Outcome.BIG, Outcome.SMALL


class TestMovingAverages:

    def test_sma_uses_newest_window(self):
        assert indicators.sma([5, 3, 1, 9], 2) == 4.0

    def test_short_window_is_none(self):
        assert indicators.sma([1, 2], 3) is None
        assert indicators.ema([1, 2], 3) is None
        assert indicators.vwap([1, 2], 3) is None
        assert indicators.sma([1, 2], 0) is None

    def test_ema_series_seeds_with_sma(self):
        series = indicators.ema_series([1, 2, 3, 4], 2)

        assert math.isnan(series[0])
        assert series[1] == pytest.approx(1.5)
        assert series[2] == pytest.approx(2.5)
        assert series[3] == pytest.approx(3.5)

    def test_ema_newest_first(self):
        # Newest-first [4, 3, 2, 1] is the chronological series above
        assert indicators.ema([4, 3, 2, 1], 2) == pytest.approx(3.5)

    def test_ema_of_constant(self):
        assert indicators.ema([6] * 30, 10) == pytest.approx(6.0)

    def test_vwap_unit_volume_is_mean(self):
        assert indicators.vwap([2, 4, 6, 100], 3) == pytest.approx(4.0)

    def test_vwap_with_volume(self):
        assert indicators.vwap([2, 4], 2, volumes=[3, 1]) == pytest.approx(2.5)

    def test_vwap_zero_volume(self):
        assert indicators.vwap([2, 4], 2, volumes=[0, 0]) is None


class TestDispersion:

    def test_population_std(self):
        assert indicators.std_dev([2, 4, 4, 4, 5, 5, 7, 9], 8) == pytest.approx(2.0)

    def test_std_needs_two_values(self):
        assert indicators.std_dev([5], 1) is None

    def test_z_score(self):
        assert indicators.z_score([9, 5, 5, 5, 5], 5) == pytest.approx(2.0)

    def test_z_score_flat_window(self):
        assert indicators.z_score([5] * 10, 10) is None


class TestOscillators:

    def test_rsi_all_gains(self):
        # Newest first, so the chronological series only rises
        assert indicators.rsi([9, 8, 7, 6, 5, 4, 3, 2, 1, 0], 5) == 100.0

    def test_rsi_all_losses(self):
        assert indicators.rsi([0, 1, 2, 3, 4, 5, 6, 7, 8, 9], 5) == 0.0

    def test_rsi_bounds(self):
        value = indicators.rsi([3, 7, 1, 8, 2, 9, 4, 4, 6, 0, 5, 7, 2, 8, 1, 6], 14)
        assert 0.0 <= value <= 100.0

    def test_rsi_short_history(self):
        assert indicators.rsi([1] * 14, 14) is None

    def test_macd_line_length(self):
        line = indicators.macd_line_series(list(range(10)) * 4, 12, 26)
        assert len(line) == 40 - 26 + 1

    def test_macd_rejects_inverted_periods(self):
        assert indicators.macd_line_series([1] * 40, 26, 12) is None

    def test_macd_of_constant_is_zero(self):
        line = indicators.macd_line_series([4] * 40, 12, 26)
        assert all(abs(v) < 1e-12 for v in line)

    def test_rolling_midpoint(self):
        midpoint = indicators.rolling_midpoint([1, 9, 3, 5], 3)
        assert math.isnan(midpoint[1])
        assert midpoint[2] == pytest.approx(5.0)
        assert midpoint[3] == pytest.approx(6.0)

    def test_stochastic_flat_window_repeats(self):
        assert indicators.stochastic_k([5] * 6, 3) == [50.0] * 4

    def test_stochastic_k(self):
        assert indicators.stochastic_k([0, 5, 10], 3) == [100.0]

    def test_trailing_sma(self):
        assert indicators.trailing_sma([1, 2, 3, 4], 2) == [1.5, 2.5, 3.5]


class TestEntropy:

    def test_balanced_window(self):
        assert indicators.binary_entropy([B, S] * 5, 10) == pytest.approx(1.0)

    def test_pure_window(self):
        assert indicators.binary_entropy([B] * 10, 10) == pytest.approx(0.0)

    def test_only_newest_window_counts(self):
        assert indicators.binary_entropy([B] * 10 + [S] * 10, 10) == pytest.approx(0.0)

    def test_short_input(self):
        assert indicators.binary_entropy([B] * 5, 10) is None

    def test_no_valid_labels(self):
        assert indicators.binary_entropy([None] * 10, 10) == 1.0
