"""
Meta Analyzers
==============
Signals built from the cycle context or from the votes already cast:

- Volatility x trend x entropy fusion
- Bayesian sequential update over trend, momentum and mean-reversion votes
- Monte Carlo resampling of the current vote split
- RSI/MACD lead-lag confirmation
"""

import logging
from typing import Dict, Optional

from ..core.types import EntropyState, Outcome, SignalCategory, SignalVote, TrendStrength, VolatilityLevel
from .base import CycleContext, vote

logger = logging.getLogger(__name__)

BAYESIAN_CATEGORIES = (SignalCategory.TREND, SignalCategory.MOMENTUM, SignalCategory.MEAN_REVERSION)


def analyze_volatility_trend_fusion(ctx: CycleContext, base_weight: float) -> Optional[SignalVote]:
    """
    Context-only meta signal.

    STRONG trend, LOW/MEDIUM volatility, ORDERLY entropy: continuation x1.4.
    STRONG trend, HIGH volatility, chaotic entropy: exhaustion reversal x1.2.
    RANGING, LOW volatility, ORDERLY: coin-flip reversion x0.8.
    """
    trend, state = ctx.trend, ctx.entropy.state
    with_trend = Outcome.BIG if trend.leans_big else Outcome.SMALL

    if (
        trend.strength == TrendStrength.STRONG
        and trend.volatility in (VolatilityLevel.LOW, VolatilityLevel.MEDIUM)
        and state == EntropyState.ORDERLY
    ):
        return vote("Vol-Trend-Fusion", with_trend, base_weight * 1.4)
    if trend.strength == TrendStrength.STRONG and trend.volatility == VolatilityLevel.HIGH and state.is_chaotic:
        return vote("Vol-Trend-Fusion", with_trend.opposite, base_weight * 1.2)
    if (
        trend.strength == TrendStrength.RANGING
        and trend.volatility == VolatilityLevel.LOW
        and state == EntropyState.ORDERLY
    ):
        prediction = Outcome.BIG if ctx.rng.random() > 0.5 else Outcome.SMALL
        return vote("Vol-Trend-Fusion", prediction, base_weight * 0.8)
    return None


def analyze_bayesian(ctx: CycleContext, base_weight: float, min_votes: int = 5,
                     threshold: float = 0.65) -> Optional[SignalVote]:
    """
    Sequential Bayesian update from a 50/50 prior.

    Each of the trend, momentum and mean-reversion categories contributes its
    adjusted-weight split as the likelihood. Fires above a 0.65 posterior
    with weight x (p - 0.5) x 2.
    """
    votes = ctx.prior_votes
    if len(votes) < min_votes:
        return None

    evidence: Dict[SignalCategory, Dict[Outcome, float]] = {
        category: {Outcome.BIG: 0.0, Outcome.SMALL: 0.0} for category in BAYESIAN_CATEGORIES
    }
    for v in votes:
        if v.category in evidence:
            evidence[v.category][v.prediction] += v.adjusted_weight

    p_big = p_small = 0.5
    for split in evidence.values():
        total = split[Outcome.BIG] + split[Outcome.SMALL]
        if total <= 0:
            continue
        big = split[Outcome.BIG] / total * p_big
        small = split[Outcome.SMALL] / total * p_small
        if big + small > 0:
            p_big, p_small = big / (big + small), small / (big + small)

    if p_big > p_small and p_big > threshold:
        return vote("Bayesian", Outcome.BIG, base_weight * (p_big - 0.5) * 2)
    if p_small > p_big and p_small > threshold:
        return vote("Bayesian", Outcome.SMALL, base_weight * (p_small - 0.5) * 2)
    return None


def analyze_monte_carlo(ctx: CycleContext, base_weight: float, min_votes: int = 5,
                        simulations: int = 1000) -> Optional[SignalVote]:
    """
    Resample the raw-weight vote split ``simulations`` times.

    Fires only when the simulated BIG share leaves the 0.3-0.7 band.
    """
    votes = ctx.prior_votes
    if len(votes) < min_votes:
        return None
    big = sum(v.weight for v in votes if v.prediction is Outcome.BIG)
    small = sum(v.weight for v in votes if v.prediction is Outcome.SMALL)
    if big + small <= 0:
        return None

    share = float((ctx.rng.random(simulations) < big / (big + small)).mean())
    if share > 0.7:
        return vote("MonteCarlo", Outcome.BIG, base_weight * share)
    if share < 0.3:
        return vote("MonteCarlo", Outcome.SMALL, base_weight * (1 - share))
    return None


def analyze_lead_lag(ctx: CycleContext, base_weight: float) -> Optional[SignalVote]:
    """RSI and a MACD vote agree and the trend does not lean the other way."""
    rsi = next((v for v in ctx.prior_votes if v.source == "RSI"), None)
    macd = next((v for v in ctx.prior_votes if v.source.startswith("MACD")), None)
    if rsi is None or macd is None or rsi.prediction is not macd.prediction:
        return None

    trend = ctx.trend
    ranging = trend.strength == TrendStrength.RANGING
    if rsi.prediction is Outcome.BIG and "CrossB" in macd.source and (ranging or trend.leans_big):
        return vote("LeadLagConfirm", Outcome.BIG, base_weight * 0.5)
    if rsi.prediction is Outcome.SMALL and "CrossS" in macd.source and (ranging or trend.leans_small):
        return vote("LeadLagConfirm", Outcome.SMALL, base_weight * 0.5)
    return None
