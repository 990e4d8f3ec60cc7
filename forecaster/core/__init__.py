"""
Core Module - Shared Components
===============================
Configuration, logging and typed data structures used across the engine.
"""

from .config import EngineConfig, LearnerConfig, RegimeLearnerConfig, DriftConfig, FusionConfig, LoggingConfig
from .logger import setup_logger, get_logger
from .types import (
    Outcome,
    RoundStatus,
    TrendStrength,
    VolatilityLevel,
    EntropyState,
    DriftState,
    SignalCategory,
    RegimeTag,
    HistoryRecord,
    TrendContext,
    SignalVote,
    CycleCarryState,
    PredictionResult,
    parse_history,
)

__all__ = [
    'EngineConfig',
    'LearnerConfig',
    'RegimeLearnerConfig',
    'DriftConfig',
    'FusionConfig',
    'LoggingConfig',
    'setup_logger',
    'get_logger',
    'Outcome',
    'RoundStatus',
    'TrendStrength',
    'VolatilityLevel',
    'EntropyState',
    'DriftState',
    'SignalCategory',
    'RegimeTag',
    'HistoryRecord',
    'TrendContext',
    'SignalVote',
    'CycleCarryState',
    'PredictionResult',
    'parse_history',
]
