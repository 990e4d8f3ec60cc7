"""
Trend Analyzers
===============
Ichimoku confluence and a one-step exponential velocity estimator.
"""

import logging
from typing import Optional

import numpy as np

from ..core.types import Outcome, SignalVote
from .. import indicators
from .base import CycleContext, vote

logger = logging.getLogger(__name__)


def _direction(above: bool, below: bool) -> Optional[Outcome]:
    if above:
        return Outcome.BIG
    if below:
        return Outcome.SMALL
    return None


def analyze_ichimoku(ctx: CycleContext, base_weight: float, tenkan_period: int = 9, kijun_period: int = 26,
                     senkou_b_period: int = 52) -> Optional[SignalVote]:
    """
    Tenkan/kijun cross, price vs cloud and chikou confluence.

    Factor by agreement:
        cross + cloud + chikou   0.95
        cross + cloud            0.70
        cloud + chikou           0.65
        cross against cloud      0.55 (follows the cross)
        cloud alone              0.50
    A fresh close across the kijun in the cloud's direction adds 0.15.
    """
    if tenkan_period <= 0 or kijun_period <= 0 or senkou_b_period <= 0:
        return None
    chronological = list(reversed(ctx.numbers))
    n = len(chronological)
    if n < max(senkou_b_period, kijun_period) + kijun_period - 1:
        return None

    tenkan = indicators.rolling_midpoint(chronological, tenkan_period)
    kijun = indicators.rolling_midpoint(chronological, kijun_period)
    senkou_b = indicators.rolling_midpoint(chronological, senkou_b_period)
    senkou_a = (tenkan + kijun) / 2

    cloud_index = n - 1 - kijun_period
    current_tenkan, prev_tenkan = tenkan[-1], tenkan[-2]
    current_kijun, prev_kijun = kijun[-1], kijun[-2]
    cloud_a, cloud_b = senkou_a[cloud_index], senkou_b[cloud_index]
    if np.isnan([current_tenkan, current_kijun, cloud_a, cloud_b]).any():
        return None

    last_price = chronological[-1]
    price_kijun_ago = chronological[cloud_index]

    cross = None
    if not np.isnan(prev_tenkan) and not np.isnan(prev_kijun):
        cross = _direction(
            prev_tenkan <= prev_kijun and current_tenkan > current_kijun,
            prev_tenkan >= prev_kijun and current_tenkan < current_kijun,
        )
    cloud = _direction(last_price > max(cloud_a, cloud_b), last_price < min(cloud_a, cloud_b))
    chikou = _direction(last_price > price_kijun_ago, last_price < price_kijun_ago)

    if cloud is None:
        return None
    if cross is cloud and chikou is cloud:
        prediction, strength = cloud, 0.95
    elif cross is cloud:
        prediction, strength = cloud, 0.7
    elif chikou is cloud:
        prediction, strength = cloud, 0.65
    elif cross is not None:
        prediction, strength = cross, 0.55
    else:
        prediction, strength = cloud, 0.5

    if not np.isnan(prev_kijun):
        previous_price = chronological[-2]
        if prediction is Outcome.BIG and cloud is Outcome.BIG and last_price > current_kijun \
                and previous_price <= prev_kijun:
            strength = min(1.0, strength + 0.15)
        elif prediction is Outcome.SMALL and cloud is Outcome.SMALL and last_price < current_kijun \
                and previous_price >= prev_kijun:
            strength = min(1.0, strength + 0.15)

    return vote("Ichimoku", prediction, base_weight * strength)


def analyze_state_space_momentum(ctx: CycleContext, base_weight: float, period: int = 15,
                                 gain: float = 0.6) -> Optional[SignalVote]:
    """
    Compare a filtered step velocity with the average step.

    velocity_t = velocity_{t-1} + gain * (step_t - velocity_{t-1}) over the
    whole history. Accelerating upward (> 1.8x average and > 0.5) votes BIG;
    a velocity below 1.8x average and under -0.5 votes SMALL.
    """
    if len(ctx.numbers) < period * 2:
        return None

    steps = np.diff(np.asarray(list(reversed(ctx.numbers)), dtype=float))
    velocity = 0.0
    for step in steps:
        velocity += gain * (step - velocity)
    average = float(steps.mean())

    if velocity > average * 1.8 and velocity > 0.5:
        prediction = Outcome.BIG
    elif velocity < average * 1.8 and velocity < -0.5:
        prediction = Outcome.SMALL
    else:
        return None

    strength = min(1.0, abs(velocity - average) / (abs(average) + 1))
    return vote("StateSpaceMomentum", prediction, base_weight * strength)
