"""
Fusion Module
=============
Consensus, confluence, uncertainty and quality scoring of the vote set.
"""

from .consensus import (
    ConsensusResult,
    PathConfluence,
    SignalConsistency,
    analyze_path_confluence,
    analyze_prediction_consensus,
    analyze_signal_consistency,
    analyze_superposition,
)
from .uncertainty import UncertaintyScore, calculate_uncertainty_score, prediction_quality_score, uncertainty_factor

__all__ = [
    'ConsensusResult',
    'PathConfluence',
    'SignalConsistency',
    'UncertaintyScore',
    'analyze_path_confluence',
    'analyze_prediction_consensus',
    'analyze_signal_consistency',
    'analyze_superposition',
    'calculate_uncertainty_score',
    'prediction_quality_score',
    'uncertainty_factor',
]
