"""
Pytest Fixtures for the Forecaster
==================================

Shared test fixtures used across all test files.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest

from forecaster.core.config import EngineConfig
from forecaster.core.types import HistoryRecord, RoundStatus
from forecaster.engine import ForecastEngine
from forecaster.external import SessionClock
from forecaster.signals.base import CycleContext

# 03:00 UTC is 08:30 IST, outside every prime-time session
OFF_PEAK = datetime(2025, 1, 1, 3, 0, tzinfo=timezone.utc)


def make_history(numbers, newest_period=100000, status=RoundStatus.WIN):
    """Newest-first records for newest-first digits, periods counting down."""
    return tuple(
        HistoryRecord(period=str(newest_period - i), actual_number=int(n), status=status)
        for i, n in enumerate(numbers)
    )


def alternating_numbers(count, newest=7, other=2):
    return [newest if i % 2 == 0 else other for i in range(count)]


def random_numbers(count, seed=0):
    return [int(n) for n in np.random.default_rng(seed).integers(0, 10, count)]


def make_context(numbers, **kwargs):
    return CycleContext(history=make_history(numbers), **kwargs)


@pytest.fixture
def fixed_clock():
    return SessionClock(now=lambda: OFF_PEAK)


@pytest.fixture
def config():
    return EngineConfig(seed=7)


@pytest.fixture
def engine(config, fixed_clock):
    """Seeded engine with a fixed off-peak clock and neutral sentiment."""
    return ForecastEngine(config, clock=fixed_clock)


@pytest.fixture
def alternating_history():
    return make_history(alternating_numbers(60))
