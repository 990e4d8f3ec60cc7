"""
BIG/SMALL Forecaster - Adaptive Ensemble Forecasting Engine
===========================================================

Forecasts the class (BIG 5-9 / SMALL 0-4) of the next round of a repeating
digit game from the newest-first round history.

Modules:
--------
- core: Configuration, types, logging
- indicators: Primitive rolling statistics
- signals: Analyzer library and registry
- market: Trend, regime, stability and entropy classification
- learning: Signal performance, regime profiles, drift, reflexive correction
- fusion: Consensus, confluence, uncertainty and quality scoring
- engine: ForecastEngine (one prediction cycle)
- session: Carry-state helpers for callers

Usage:
------
    from forecaster import ForecastEngine, ForecastSession
    from forecaster.core import EngineConfig

    session = ForecastSession(ForecastEngine(EngineConfig.load("config.yaml")))
    result = session.step(history)

Quick Start:
------------
    python run_forecast.py --history history.json
"""

__version__ = "1.0.0"

from .core import CycleCarryState, EngineConfig, HistoryRecord, Outcome, PredictionResult
from .engine import EngineState, ForecastEngine, next_period_id
from .session import ForecastSession, advance_carry_state

__all__ = [
    'CycleCarryState',
    'EngineConfig',
    'EngineState',
    'ForecastEngine',
    'ForecastSession',
    'HistoryRecord',
    'Outcome',
    'PredictionResult',
    'advance_carry_state',
    'next_period_id',
]
