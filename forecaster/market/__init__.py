"""
Market Context Module
=====================
Trend, regime, stability and entropy classification of the round history.
"""

from .context import get_trend_context, get_market_regime_and_trend_context, classify_macro_regime
from .entropy import analyze_trend_stability, analyze_market_entropy_state, analyze_advanced_market_regime

__all__ = [
    'get_trend_context',
    'get_market_regime_and_trend_context',
    'classify_macro_regime',
    'analyze_trend_stability',
    'analyze_market_entropy_state',
    'analyze_advanced_market_regime',
]
