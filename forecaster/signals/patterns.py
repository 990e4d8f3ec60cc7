"""
Pattern Analyzers
=================
Short fixed-length sequence patterns over the BIG/SMALL classes, plus
frequency lookups (Markov transitions, n-grams), cycle repetition,
lagged self-correlation and a harmonic swing detector on the digits.
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Tuple

from ..core.types import Outcome, SignalVote
from .base import CycleContext, vote

logger = logging.getLogger(__name__)

B, S = Outcome.BIG, Outcome.SMALL


def _letters(outcomes) -> str:
    return "".join("B" if o is B else "S" for o in outcomes)


def analyze_transitions(ctx: CycleContext, base_weight: float, min_history: int = 15,
                        min_observations: int = 6, margin: float = 0.30) -> Optional[SignalVote]:
    """First-order Markov transition from the newest class."""
    outcomes = ctx.outcomes
    if len(outcomes) < min_history:
        return None

    transitions: Dict[Outcome, Counter] = defaultdict(Counter)
    for current, previous in zip(outcomes, outcomes[1:]):
        transitions[previous][current] += 1

    counts = transitions[outcomes[0]]
    total = sum(counts.values())
    if total < min_observations:
        return None

    p_big, p_small = counts[B] / total, counts[S] / total
    if p_big > p_small + margin:
        return vote("Transition", B, base_weight * p_big)
    if p_small > p_big + margin:
        return vote("Transition", S, base_weight * p_small)
    return None


def analyze_alternating(ctx: CycleContext, base_weight: float) -> Optional[SignalVote]:
    """Four-step alternation of the newest classes."""
    if len(ctx.outcomes) < 5:
        return None
    pattern = _letters(ctx.outcomes[:4])
    if pattern == "SBSB":
        return vote("Alt-BSBS->S", S, base_weight * 1.15)
    if pattern == "BSBS":
        return vote("Alt-SBSB->B", B, base_weight * 1.15)
    return None


def analyze_two_plus_one(ctx: CycleContext, base_weight: float) -> Optional[SignalVote]:
    """Two-then-one continuation (newest first: BBS -> B, SSB -> S)."""
    if len(ctx.outcomes) < 3:
        return None
    pattern = _letters(ctx.outcomes[:3])
    if pattern == "BBS":
        return vote("Pattern-BBS->B", B, base_weight * 0.85)
    if pattern == "SSB":
        return vote("Pattern-SSB->S", S, base_weight * 0.85)
    return None


def analyze_double(ctx: CycleContext, base_weight: float) -> Optional[SignalVote]:
    """Double pair continuation (newest first: BBSS -> B, SSBB -> S)."""
    if len(ctx.outcomes) < 4:
        return None
    pattern = _letters(ctx.outcomes[:4])
    if pattern == "BBSS":
        return vote("Pattern-SSBB->B", B, base_weight * 1.1)
    if pattern == "SSBB":
        return vote("Pattern-BBSS->S", S, base_weight * 1.1)
    return None


def analyze_mirror(ctx: CycleContext, base_weight: float) -> Optional[SignalVote]:
    """ABBA mirror predicts A."""
    if len(ctx.outcomes) < 4:
        return None
    a, b, c, d = ctx.outcomes[:4]
    if a is d and b is c and a is not b:
        return vote(f"Pattern-Mirror->{a.value}", a, base_weight * 1.2)
    return None


def analyze_weighted_history(ctx: CycleContext, base_weight: float, decay: float = 0.85,
                             depth: int = 20) -> Optional[SignalVote]:
    """Exponentially decayed class majority over the newest ``depth`` rounds."""
    if len(ctx.outcomes) < 5:
        return None
    big = small = 0.0
    weight = 1.0
    for outcome in ctx.outcomes[:depth]:
        if outcome is B:
            big += weight
        else:
            small += weight
        weight *= decay

    total = big + small + 0.0001
    if big > small:
        return vote("WeightedHist", B, base_weight * big / total)
    if small > big:
        return vote("WeightedHist", S, base_weight * small / total)
    return None


def analyze_n_gram(ctx: CycleContext, base_weight: float, n: int = 3, min_observations: int = 4,
                   margin: float = 0.30, min_probability: float = 0.65) -> Optional[SignalVote]:
    """
    Look up what followed earlier occurrences of the newest n classes.

    Needs at least four earlier occurrences and a clear winner (margin 0.30,
    probability above 0.65).
    """
    outcomes = ctx.outcomes
    if len(outcomes) < n + 10:
        return None

    recent = tuple(outcomes[:n])
    following = Counter()
    for i in range(len(outcomes) - n):
        if tuple(outcomes[i + 1:i + 1 + n]) == recent:
            following[outcomes[i]] += 1

    total = sum(following.values())
    if total < min_observations:
        return None
    p_big, p_small = following[B] / total, following[S] / total
    if p_big > p_small + margin and p_big > min_probability:
        return vote(f"{n}GramB", B, base_weight * p_big * 1.1)
    if p_small > p_big + margin and p_small > min_probability:
        return vote(f"{n}GramS", S, base_weight * p_small * 1.1)
    return None


def analyze_cyclical(ctx: CycleContext, base_weight: float, period: int = 20) -> Optional[SignalVote]:
    """
    Repeating cycle of length 3-6 within the newest ``period`` classes.

    The two newest cycles must be identical and the third must match for at
    least two thirds of its length.
    """
    if period < 8 or len(ctx.outcomes) < period:
        return None
    outcomes = ctx.outcomes[:period]

    for cycle in range(3, 7):
        if len(outcomes) < cycle * 2.8:
            continue
        if outcomes[:cycle] != outcomes[cycle:cycle * 2]:
            continue

        matched = 0
        for k in range(cycle):
            if cycle * 2 + k >= len(outcomes) or outcomes[cycle * 2 + k] is not outcomes[k]:
                break
            matched += 1

        if matched >= int(cycle * 0.66):
            factor = 0.65 + 1 / cycle + matched / cycle * 0.2
            return vote(f"Cycle{cycle}StrongCont", outcomes[cycle - 1], base_weight * factor)
    return None


def analyze_waveform(ctx: CycleContext, base_weight: float) -> Optional[SignalVote]:
    """Constructive (BBSS-like) or destructive (alternating) interference of the newest four."""
    if len(ctx.outcomes) < 8:
        return None
    w0, w1, w2, w3 = ctx.outcomes[:4]
    if w0 is w1 and w2 is w3 and w0 is not w2:
        return vote("Waveform-Constructive", w0, base_weight * 1.2)
    if w0 is not w1 and w1 is not w2 and w2 is not w3:
        return vote("Waveform-Destructive", w0.opposite, base_weight)
    return None


def analyze_phase_space(ctx: CycleContext, base_weight: float, window: int = 10,
                        attractor: int = 7) -> Optional[SignalVote]:
    """Majority attractor: at least 7 of the newest 10 share a class."""
    if len(ctx.outcomes) < window:
        return None
    counts = Counter(ctx.outcomes[:window])
    half = window / 2
    if counts[B] >= attractor:
        return vote("PhaseSpace-BigAttractor", B, base_weight * (counts[B] - half) / half)
    if counts[S] >= attractor:
        return vote("PhaseSpace-SmallAttractor", S, base_weight * (counts[S] - half) / half)
    return None


def analyze_entanglement(ctx: CycleContext, base_weight: float, lag: int = 5,
                         window: int = 10, threshold: int = 8) -> Optional[SignalVote]:
    """Lagged self-correlation: 8 of 10 newest rounds match (or oppose) the round ``lag`` earlier."""
    outcomes = ctx.outcomes
    if lag < 1 or len(outcomes) < lag + window:
        return None

    matches = sum(1 for i in range(window) if outcomes[i] is outcomes[i + lag])
    anchor = outcomes[lag - 1]
    if matches >= threshold:
        return vote(f"Entangled-Corr-Lag{lag}", anchor, base_weight)
    if window - matches >= threshold:
        return vote(f"Entangled-AntiCorr-Lag{lag}", anchor.opposite, base_weight)
    return None


def _find_swings(chronological: List[int]) -> List[Tuple[str, int]]:
    """Alternating (type, price) swings, newest first. Repeats keep the extreme."""
    swings: List[Tuple[str, int]] = []
    for i in range(2, len(chronological) - 2):
        price = chronological[i]
        neighbours = (chronological[i - 2], chronological[i - 1], chronological[i + 1], chronological[i + 2])
        if all(price > other for other in neighbours):
            kind = "peak"
        elif all(price < other for other in neighbours):
            kind = "trough"
        else:
            continue

        if not swings or swings[0][0] != kind:
            swings.insert(0, (kind, price))
        elif kind == "peak" and price > swings[0][1]:
            swings[0] = (kind, price)
        elif kind == "trough" and price < swings[0][1]:
            swings[0] = (kind, price)
    return swings


def analyze_harmonic(ctx: CycleContext, base_weight: float, min_numbers: int = 20) -> Optional[SignalVote]:
    """
    Gartley-style potential reversal zone.

    Three alternating swings X, B, C with BC retracing 0.382-0.886 of XB.
    A newest value within 2% of X -/+ 0.786 XB votes for the reversal.
    """
    numbers = ctx.numbers
    if len(numbers) < min_numbers:
        return None

    swings = _find_swings(list(reversed(numbers)))
    if len(swings) < 3:
        return None
    (c_kind, c_price), (b_kind, b_price), (x_kind, x_price) = swings[:3]

    xb = abs(b_price - x_price)
    bc = abs(c_price - b_price)
    if xb < 0.8 or bc < 0.5:
        return None
    if not 0.382 <= bc / xb <= 0.886:
        return None

    last = numbers[0]
    if x_kind == "peak" and b_kind == "trough" and c_kind == "peak":
        zone = x_price - xb * 0.786
        if zone * 0.98 <= last <= zone * 1.02 and last < b_price:
            return vote("HarmonicPotV3", B, base_weight * 0.6)
    elif x_kind == "trough" and b_kind == "peak" and c_kind == "trough":
        zone = x_price + xb * 0.786
        if zone * 0.98 <= last <= zone * 1.02 and last > b_price:
            return vote("HarmonicPotV3", S, base_weight * 0.6)
    return None
