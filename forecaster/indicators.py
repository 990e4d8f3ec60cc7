"""
Primitive Statistics Library
============================
Moving averages, dispersion, oscillators and entropy over the numeric
projection of the round history.

CONVENTIONS:
- Inputs are ordered most-recent-first unless a function says otherwise.
- Every function returns None when the window is shorter than the lookback.
  Callers treat None as "skip this signal", never as zero.
"""

import logging
from typing import Optional, Sequence, List

import numpy as np
import pandas as pd
from scipy.stats import entropy as shannon_entropy

from .core.types import Outcome

logger = logging.getLogger(__name__)


# =============================================================================
# MOVING AVERAGES
# =============================================================================

def sma(data: Sequence[float], period: int) -> Optional[float]:
    """Simple moving average of the newest ``period`` values."""
    if period <= 0 or data is None or len(data) < period:
        return None
    return float(np.mean(np.asarray(data[:period], dtype=float)))


def ema_series(chronological: Sequence[float], period: int) -> Optional[np.ndarray]:
    """
    EMA evaluated at every chronological index.

    The first defined value (index ``period - 1``) is the SMA of the oldest
    window; later values roll forward with k = 2 / (period + 1).
    Entries before the seed are NaN.
    """
    if period <= 0 or chronological is None or len(chronological) < period:
        return None
    values = np.asarray(chronological, dtype=float)
    seeded = np.concatenate([[values[:period].mean()], values[period:]])
    rolled = pd.Series(seeded).ewm(alpha=2.0 / (period + 1), adjust=False).mean().to_numpy()

    out = np.full(len(values), np.nan)
    out[period - 1:] = rolled
    return out


def ema(data: Sequence[float], period: int) -> Optional[float]:
    """EMA as of the newest value (input most-recent-first)."""
    if period <= 0 or data is None or len(data) < period:
        return None
    series = ema_series(list(reversed(data)), period)
    return float(series[-1])


def vwap(data: Sequence[float], period: int, volumes: Optional[Sequence[float]] = None) -> Optional[float]:
    """Volume-weighted average of the newest window. Volume defaults to 1."""
    if period <= 0 or data is None or len(data) < period:
        return None
    prices = np.asarray(data[:period], dtype=float)
    vols = np.ones(period) if volumes is None else np.asarray(volumes[:period], dtype=float)
    mask = vols > 0
    total_volume = vols[mask].sum()
    if total_volume == 0:
        return None
    return float((prices[mask] * vols[mask]).sum() / total_volume)


# =============================================================================
# DISPERSION
# =============================================================================

def std_dev(data: Sequence[float], period: int) -> Optional[float]:
    """Population standard deviation of the newest ``period`` values."""
    if period <= 0 or data is None or len(data) < period or period < 2:
        return None
    return float(np.std(np.asarray(data[:period], dtype=float)))


def z_score(data: Sequence[float], period: int) -> Optional[float]:
    """Z-score of the newest value against the newest window."""
    mean = sma(data, period)
    sd = std_dev(data, period)
    if mean is None or sd is None or sd == 0:
        return None
    return (data[0] - mean) / sd


# =============================================================================
# OSCILLATORS
# =============================================================================

def rsi(data: Sequence[float], period: int) -> Optional[float]:
    """Relative Strength Index with Wilder smoothing."""
    if period <= 0 or data is None or len(data) < period + 1:
        return None
    chronological = np.asarray(list(reversed(data)), dtype=float)
    changes = np.diff(chronological)
    gains = np.clip(changes, 0, None)
    losses = np.clip(-changes, 0, None)

    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100 - (100 / (1 + rs)))


def macd_line_series(data: Sequence[float], short_period: int, long_period: int) -> Optional[np.ndarray]:
    """
    MACD line at every chronological index from ``long_period - 1`` onward.

    Returned oldest-first.
    """
    if short_period <= 0 or long_period <= 0 or short_period >= long_period:
        return None
    if data is None or len(data) < long_period:
        return None
    chronological = list(reversed(data))
    short_ema = ema_series(chronological, short_period)
    long_ema = ema_series(chronological, long_period)
    return (short_ema - long_ema)[long_period - 1:]


def rolling_midpoint(chronological: Sequence[float], period: int) -> Optional[np.ndarray]:
    """(highest high + lowest low) / 2 over a trailing window, NaN before it fills."""
    if period <= 0 or chronological is None or len(chronological) < period:
        return None
    series = pd.Series(np.asarray(chronological, dtype=float))
    window = series.rolling(period)
    return ((window.max() + window.min()) / 2).to_numpy()


def stochastic_k(chronological: Sequence[float], period: int) -> Optional[List[float]]:
    """
    Raw %K values, oldest-first.

    A flat window repeats the previous %K (50 for the first one).
    """
    if period <= 0 or chronological is None or len(chronological) < period:
        return None
    series = pd.Series(np.asarray(chronological, dtype=float))
    highs = series.rolling(period).max().to_numpy()[period - 1:]
    lows = series.rolling(period).min().to_numpy()[period - 1:]
    closes = series.to_numpy()[period - 1:]

    k_values: List[float] = []
    for close, high, low in zip(closes, highs, lows):
        if high == low:
            k_values.append(k_values[-1] if k_values else 50.0)
        else:
            k_values.append(100.0 * (close - low) / (high - low))
    return k_values


def trailing_sma(values: Sequence[float], period: int) -> Optional[List[float]]:
    """SMA of each trailing window of an oldest-first sequence."""
    if period <= 0 or values is None or len(values) < period:
        return None
    return pd.Series(np.asarray(values, dtype=float)).rolling(period).mean().dropna().tolist()


# =============================================================================
# INFORMATION THEORY
# =============================================================================

def binary_entropy(outcomes: Sequence[Optional[Outcome]], window: int) -> Optional[float]:
    """
    Shannon entropy (bits) of the BIG/SMALL split over the newest window.

    Returns None when fewer than ``window`` labels are supplied, and 1.0
    (maximally uncertain) when the window holds no valid labels.
    """
    if outcomes is None or len(outcomes) < window:
        return None
    recent = outcomes[:window]
    counts = [
        sum(1 for o in recent if o is Outcome.BIG),
        sum(1 for o in recent if o is Outcome.SMALL),
    ]
    if sum(counts) == 0:
        return 1.0
    value = float(shannon_entropy(counts, base=2))
    return 1.0 if np.isnan(value) else value
