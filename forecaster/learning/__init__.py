"""
Learning Module
===============
Online learning state owned by the caller and injected into the engine:

- SignalPerformanceTracker: per-source weight multipliers and probation
- RegimeProfileBook: per-regime aggression and analyzer gating
- DriftDetector: DDM over the ensemble's hit/miss stream
- ReflexiveCorrection: reaction to consecutive high-confidence misses
"""

from .performance_learner import SignalPerformanceTracker, SignalPerformanceRecord, BucketStats
from .regime_profiles import RegimeProfileBook, RegimeProfile, REGIME_CATALOG
from .drift_detector import DriftDetector
from .confidence_gate import (
    ReflexiveCorrection,
    assign_confidence_level,
    forced_confidence,
    should_force,
    uncertainty_threshold,
)

__all__ = [
    'SignalPerformanceTracker',
    'SignalPerformanceRecord',
    'BucketStats',
    'RegimeProfileBook',
    'RegimeProfile',
    'REGIME_CATALOG',
    'DriftDetector',
    'ReflexiveCorrection',
    'assign_confidence_level',
    'forced_confidence',
    'should_force',
    'uncertainty_threshold',
]
