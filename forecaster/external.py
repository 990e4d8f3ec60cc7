"""
External Feature Providers
==========================
Time-of-day and sentiment inputs that come from outside the round history.

The engine only depends on the small interfaces defined here:
- SessionClock: current IST hour with a cyclical sin/cos encoding
- SentimentProvider: a multiplicative confidence factor plus a reason string

Real data sources (weather, news, index volatility) are out of scope; the
neutral provider is the default and the simulated one reproduces the legacy
random draw for experiments.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol
from zoneinfo import ZoneInfo

import numpy as np

logger = logging.getLogger(__name__)

IST = ZoneInfo("Asia/Kolkata")


@dataclass(frozen=True)
class TimeFeatures:
    """Hour of day with cyclical encoding."""
    hour: int
    sin: float
    cos: float

    @classmethod
    def from_hour(cls, hour: int) -> "TimeFeatures":
        hour = hour % 24
        angle = hour / 24 * 2 * math.pi
        return cls(hour=hour, sin=math.sin(angle), cos=math.cos(angle))


class SessionClock:
    """Wall-clock source. Inject ``now`` for deterministic tests."""

    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        self._now = now or (lambda: datetime.now(timezone.utc))

    def time_features(self) -> TimeFeatures:
        current = self._now()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return TimeFeatures.from_hour(current.astimezone(IST).hour)


@dataclass(frozen=True)
class PrimeTimeSession:
    session: str
    aggression: float
    confidence: float


def get_prime_time_session(ist_hour: int) -> Optional[PrimeTimeSession]:
    """Return the boost profile for an IST hour, or None outside prime time."""
    if 10 <= ist_hour < 12:
        return PrimeTimeSession("PRIME_MORNING", 1.25, 1.15)
    if 13 <= ist_hour < 14:
        return PrimeTimeSession("PRIME_AFTERNOON_1", 1.15, 1.10)
    if 15 <= ist_hour < 16:
        return PrimeTimeSession("PRIME_AFTERNOON_2", 1.15, 1.10)
    if 17 <= ist_hour < 20:
        if ist_hour == 19:
            return PrimeTimeSession("PRIME_EVENING_PEAK", 1.35, 1.25)
        return PrimeTimeSession("PRIME_EVENING", 1.30, 1.20)
    return None


@dataclass(frozen=True)
class SentimentReading:
    factor: float
    reason: str


class SentimentProvider(Protocol):
    def read(self) -> SentimentReading:
        ...


class NeutralSentimentProvider:
    """No external information: factor 1.0."""

    def read(self) -> SentimentReading:
        return SentimentReading(factor=1.0, reason="ExtData(Neutral)")


class SimulatedSentimentProvider:
    """
    Random weather x news x index-volatility draw.

    Factor range is roughly [0.88, 1.06]. Only useful for experiments.
    """

    WEATHER = {"Clear": 1.01, "Clouds": 1.01, "Haze": 1.0, "Smoke": 1.0, "Rain": 0.99, "Drizzle": 0.99}
    NEWS = {
        "Strongly Positive": 1.05,
        "Positive": 1.02,
        "Neutral": 1.0,
        "Negative": 0.98,
        "Strongly Negative": 0.95,
    }
    MARKET_VOL = {"Low": 1.0, "Normal": 1.0, "Elevated": 0.97, "High": 0.94}

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng or np.random.default_rng()

    def _pick(self, table: dict):
        key = list(table)[int(self.rng.integers(len(table)))]
        return key, table[key]

    def read(self) -> SentimentReading:
        weather, weather_factor = self._pick(self.WEATHER)
        news, news_factor = self._pick(self.NEWS)
        market_vol, vol_factor = self._pick(self.MARKET_VOL)
        return SentimentReading(
            factor=weather_factor * news_factor * vol_factor,
            reason=f"ExtData(Weather:{weather},News:{news},MktVol:{market_vol})",
        )
