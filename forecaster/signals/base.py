"""
Analyzer Interface
==================
Every signal analyzer has the same shape:

    analyzer(ctx: CycleContext, base_weight: float, **params) -> Optional[SignalVote]

The context carries everything an analyzer may read. Analyzers never mutate
it and return None when their preconditions are not met.

Registration attaches the fixed SignalCategory (used by consensus and
confluence) and the RegimeTag (used by regime gating) to each analyzer.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..core.types import (
    EntropyReport,
    EntropyState,
    HistoryRecord,
    Outcome,
    RegimeTag,
    SignalCategory,
    SignalVote,
    StabilityReport,
    TrendContext,
    history_numbers,
    history_outcomes,
)
from ..external import TimeFeatures

logger = logging.getLogger(__name__)


@dataclass
class CycleContext:
    """Read-only inputs of one prediction cycle."""
    history: Tuple[HistoryRecord, ...]
    trend: TrendContext = field(default_factory=TrendContext)
    entropy: EntropyReport = field(default_factory=lambda: EntropyReport(EntropyState.STABLE_MODERATE))
    stability: StabilityReport = field(default_factory=lambda: StabilityReport(True, "n/a"))
    time: TimeFeatures = field(default_factory=lambda: TimeFeatures.from_hour(0))
    features: Optional[Dict[str, float]] = None
    prior_votes: List[SignalVote] = field(default_factory=list)
    rng: np.random.Generator = field(default_factory=np.random.default_rng)

    numbers: List[int] = field(init=False, repr=False)
    outcomes: List[Outcome] = field(init=False, repr=False)

    def __post_init__(self):
        self.history = tuple(self.history)
        self.numbers = history_numbers(self.history)
        self.outcomes = history_outcomes(self.history)

    def with_prior_votes(self, votes: Sequence[SignalVote]) -> "CycleContext":
        """Same cycle, with the votes produced so far visible to meta analyzers."""
        return CycleContext(
            history=self.history,
            trend=self.trend,
            entropy=self.entropy,
            stability=self.stability,
            time=self.time,
            features=self.features,
            prior_votes=list(votes),
            rng=self.rng,
        )


Analyzer = Callable[..., Optional[SignalVote]]


@dataclass(frozen=True)
class AnalyzerSpec:
    """
    Registration entry for one analyzer.

    Attributes:
        name: Registry key (the vote's source may be more specific)
        fn: The analyzer function
        category: Consensus/confluence category of every vote it emits
        regime_tag: Tag checked against the active regime profile
        base_weight: Raw weight before the analyzer's strength factor
        params: Lookback parameters passed as keyword arguments
        meta: Meta analyzers run after the history analyzers and see their votes
    """
    name: str
    fn: Analyzer
    category: SignalCategory
    regime_tag: RegimeTag
    base_weight: float
    params: Dict[str, Any] = field(default_factory=dict)
    meta: bool = False

    def run(self, ctx: CycleContext) -> Optional[SignalVote]:
        result = self.fn(ctx, self.base_weight, **self.params)
        if result is None or result.weight <= 0:
            return None
        result.category = self.category
        return result


def vote(source: str, prediction: Outcome, weight: float) -> SignalVote:
    """Shorthand used by analyzers."""
    return SignalVote(source=source, prediction=prediction, weight=float(weight))


def weighted_split(votes: Sequence[SignalVote]) -> Tuple[float, float]:
    """Sum of adjusted weights behind BIG and behind SMALL."""
    big = sum(v.adjusted_weight for v in votes if v.prediction is Outcome.BIG)
    small = sum(v.adjusted_weight for v in votes if v.prediction is Outcome.SMALL)
    return big, small
