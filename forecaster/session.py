"""
Caller-side Session Helpers
===========================
The engine does not persist anything between calls. These helpers do the
caller's part of the loop: build the next carry state from a result and
keep the long-term global accuracy as an exponential running mean.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Union

from .core.types import CycleCarryState, HistoryRecord, PredictionResult, parse_history
from .engine import ForecastEngine, next_period_id, update_global_accuracy

logger = logging.getLogger(__name__)


def advance_carry_state(
    carry: Optional[CycleCarryState],
    result: PredictionResult,
    history: Sequence[Union[HistoryRecord, Dict[str, Any]]],
) -> CycleCarryState:
    """
    Carry state for the cycle after ``result``.

    Args:
        carry: Carry state that was passed into the cycle (None on the first)
        result: Result of that cycle
        history: History that was passed into the cycle

    Returns:
        New CycleCarryState; global accuracy moves only when the previous
        prediction can be scored against the newest record
    """
    carry = carry or CycleCarryState()
    records = parse_history(history)
    accuracy = carry.long_term_global_accuracy

    if carry.last_predicted is not None and records:
        accuracy = update_global_accuracy(accuracy, records[0].outcome is carry.last_predicted)

    return result.carry_state(long_term_global_accuracy=accuracy, period=next_period_id(records))


class ForecastSession:
    """
    In-process caller holding an engine and its carry state.

    Usage:
        session = ForecastSession()
        for history in feed:
            result = session.step(history)
    """

    def __init__(self, engine: Optional[ForecastEngine] = None, carry: Optional[CycleCarryState] = None):
        self.engine = engine or ForecastEngine()
        self.carry = carry or CycleCarryState()
        self.steps = 0

    def step(self, history: Sequence[Union[HistoryRecord, Dict[str, Any]]]) -> PredictionResult:
        records = parse_history(history)
        result = self.engine.predict(records, self.carry)
        self.carry = advance_carry_state(self.carry, result, records)
        self.steps += 1
        logger.debug(
            f"Session step {self.steps}: {result.final_decision.value} "
            f"(global acc {self.carry.long_term_global_accuracy:.3f})"
        )
        return result

    def reset(self):
        self.carry = CycleCarryState()
        self.steps = 0
