"""
Signal Analyzers
================
Registry of every analyzer with its category, regime tag and base weight.

``default_analyzers()`` is the production pipeline. With ``extended=True``
the secondary analyzers (deviation, entropy, harmonic, n-gram, cycle,
volatility persistence, fractal dimension, lagged correlation, weighted
history, squeeze breakout, phase space, Monte Carlo and lead-lag) join it.
"""

from typing import List, Optional

from ..core.types import RegimeTag, SignalCategory
from .base import AnalyzerSpec, CycleContext, vote, weighted_split
from .momentum import analyze_macd, analyze_rsi, analyze_stochastic, macd_state, stochastic_state
from .mean_reversion import (
    analyze_bollinger,
    analyze_ma_deviation,
    analyze_streaks,
    analyze_vwap_deviation,
    analyze_z_score,
)
from .trend import analyze_ichimoku, analyze_state_space_momentum
from .patterns import (
    analyze_alternating,
    analyze_cyclical,
    analyze_double,
    analyze_entanglement,
    analyze_harmonic,
    analyze_mirror,
    analyze_n_gram,
    analyze_phase_space,
    analyze_transitions,
    analyze_two_plus_one,
    analyze_waveform,
    analyze_weighted_history,
)
from .volatility import (
    analyze_entropy,
    analyze_fractal_dimension,
    analyze_tunneling,
    analyze_volatility_breakout,
    analyze_volatility_persistence,
    fractal_dimension,
)
from .meta import analyze_bayesian, analyze_lead_lag, analyze_monte_carlo, analyze_volatility_trend_fusion
from .model import HeuristicVoteModel, ModelAnalyzer, VoteModel, build_feature_set

Cat = SignalCategory
Tag = RegimeTag


def default_analyzers(model: Optional[VoteModel] = None, extended: bool = False) -> List[AnalyzerSpec]:
    """Analyzer pipeline in execution order. Meta analyzers come last."""
    specs = [
        AnalyzerSpec("Transitions", analyze_transitions, Cat.PATTERN, Tag.PATTERN, 0.05),
        AnalyzerSpec("Streaks", analyze_streaks, Cat.MEAN_REVERSION, Tag.MEAN_REVERSION, 0.045),
        AnalyzerSpec("Alternating", analyze_alternating, Cat.PATTERN, Tag.PATTERN, 0.06),
        AnalyzerSpec("TwoPlusOne", analyze_two_plus_one, Cat.PATTERN, Tag.PATTERN, 0.07),
        AnalyzerSpec("Double", analyze_double, Cat.PATTERN, Tag.PATTERN, 0.075),
        AnalyzerSpec("Mirror", analyze_mirror, Cat.PATTERN, Tag.PATTERN, 0.08),
        AnalyzerSpec("RSI", analyze_rsi, Cat.MOMENTUM, Tag.MOMENTUM, 0.08, {'period': 14}),
        AnalyzerSpec("MACD", analyze_macd, Cat.TREND, Tag.TREND, 0.09,
                     {'short_period': 12, 'long_period': 26, 'signal_period': 9}),
        AnalyzerSpec("Bollinger", analyze_bollinger, Cat.MEAN_REVERSION, Tag.MEAN_REVERSION, 0.07,
                     {'period': 20, 'std_multiplier': 2.1}),
        AnalyzerSpec("Ichimoku", analyze_ichimoku, Cat.TREND, Tag.TREND, 0.14,
                     {'tenkan_period': 9, 'kijun_period': 26, 'senkou_b_period': 52}),
        AnalyzerSpec("Stochastic", analyze_stochastic, Cat.MOMENTUM, Tag.MOMENTUM, 0.08,
                     {'k_period': 14, 'd_period': 3, 'smooth_k': 3}),
        AnalyzerSpec("ZScore", analyze_z_score, Cat.MEAN_REVERSION, Tag.MEAN_REVERSION, 0.12,
                     {'period': 20, 'threshold': 2.0}),
        AnalyzerSpec("StateSpace", analyze_state_space_momentum, Cat.TREND, Tag.TREND, 0.11, {'period': 15}),
        AnalyzerSpec("Waveform", analyze_waveform, Cat.PATTERN, Tag.PATTERN, 0.035),
        AnalyzerSpec("Tunneling", analyze_tunneling, Cat.VOLATILITY, Tag.VOLATILITY, 0.055),
    ]

    if extended:
        specs += [
            AnalyzerSpec("MADev", analyze_ma_deviation, Cat.MEAN_REVERSION, Tag.MEAN_REVERSION, 0.06,
                         {'long_period': 20, 'normalization_period': 10}),
            AnalyzerSpec("VWAPDev", analyze_vwap_deviation, Cat.MEAN_REVERSION, Tag.VWAP_DEV, 0.05,
                         {'vwap_period': 20, 'normalization_period': 10}),
            AnalyzerSpec("Entropy", analyze_entropy, Cat.PROBABILISTIC, Tag.ENTROPY, 0.04, {'period': 10}),
            AnalyzerSpec("Harmonic", analyze_harmonic, Cat.PATTERN, Tag.HARMONIC, 0.05),
            AnalyzerSpec("NGram3", analyze_n_gram, Cat.PATTERN, Tag.PATTERN, 0.07, {'n': 3}),
            AnalyzerSpec("NGram4", analyze_n_gram, Cat.PATTERN, Tag.PATTERN, 0.06, {'n': 4}),
            AnalyzerSpec("Cyclical", analyze_cyclical, Cat.PATTERN, Tag.PATTERN, 0.05, {'period': 20}),
            AnalyzerSpec("VolPersist", analyze_volatility_persistence, Cat.VOLATILITY, Tag.VOL_PERSIST, 0.04,
                         {'period': 10}),
            AnalyzerSpec("FractalDim", analyze_fractal_dimension, Cat.VOLATILITY, Tag.FRACTAL_DIM, 0.05,
                         {'period': 14}),
            AnalyzerSpec("Entanglement", analyze_entanglement, Cat.PATTERN, Tag.PATTERN, 0.04, {'lag': 5}),
            AnalyzerSpec("WeightedHist", analyze_weighted_history, Cat.PATTERN, Tag.PATTERN, 0.04,
                         {'decay': 0.85}),
            AnalyzerSpec("VolBreakout", analyze_volatility_breakout, Cat.VOLATILITY, Tag.VOL_BREAK, 0.04),
            AnalyzerSpec("PhaseSpace", analyze_phase_space, Cat.PATTERN, Tag.PATTERN, 0.04),
        ]

    specs += [
        AnalyzerSpec("Fusion", analyze_volatility_trend_fusion, Cat.TREND, Tag.FUSION, 0.25),
        AnalyzerSpec("Model", ModelAnalyzer(model), Cat.ML, Tag.ML, 0.40),
    ]

    if extended:
        specs += [
            AnalyzerSpec("LeadLag", analyze_lead_lag, Cat.MOMENTUM, Tag.LEAD_LAG, 0.07, meta=True),
            AnalyzerSpec("MonteCarlo", analyze_monte_carlo, Cat.PROBABILISTIC, Tag.PROBABILISTIC, 0.08,
                         meta=True),
        ]

    specs.append(AnalyzerSpec("Bayesian", analyze_bayesian, Cat.PROBABILISTIC, Tag.PROBABILISTIC, 0.15, meta=True))
    return specs


__all__ = [
    'AnalyzerSpec',
    'CycleContext',
    'HeuristicVoteModel',
    'ModelAnalyzer',
    'VoteModel',
    'build_feature_set',
    'default_analyzers',
    'fractal_dimension',
    'macd_state',
    'stochastic_state',
    'vote',
    'weighted_split',
]
