"""
Replays a trace against a problem.

Firings are grouped into ticks by start time. Inside a tick every firing takes
its inputs from the stocks as they were before the tick; outputs are held back
and only merged once the next firing has a different time, or at the end.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from krpsim.errors import (
    FeasibilityError,
    FinalStocksMismatchError,
    InsufficientStockError,
    UnknownProcessError,
)
from krpsim.model import Problem, Schedule, Snapshot, merge
from krpsim.tracelog import Firing, expand_log

logger = logging.getLogger(__name__)


class TraceVerifier:
    """Checks a claimed trace and final stocks. ``errors`` holds the first violation."""

    def __init__(self, problem: Problem):
        self.problem = problem
        self.errors: List[FeasibilityError] = []

    def replay(self, firings: Iterable[Firing]) -> Snapshot:
        """Final stocks after replaying ``firings``; raises FeasibilityError on the first violation."""
        current: Snapshot = dict(self.problem.stocks)
        buffered: Snapshot = {}
        tick: Optional[int] = None

        for firing in sorted(firings, key=lambda f: f.time):
            if firing.time != tick:
                current = merge(current, buffered)
                buffered = {}
                tick = firing.time

            if not self.problem.has_process(firing.process_id):
                raise UnknownProcessError(firing.process_id, firing.time)
            process = self.problem.process(firing.process_id)

            for name, qty in process.inputs:
                available = current.get(name, 0)
                if available < qty:
                    raise InsufficientStockError(process.id, firing.time, name, qty, available)

            for name, qty in process.inputs:
                current[name] = current.get(name, 0) - qty
            for name, qty in process.outputs:
                buffered[name] = buffered.get(name, 0) + qty

        return merge(current, buffered)

    def validate(self, firings: Iterable[Firing], final_stocks: Dict[str, int]) -> bool:
        """True if the trace replays and ends on ``final_stocks`` (absent stocks count as 0)."""
        self.errors = []
        try:
            actual = self.replay(firings)
            names = set(actual) | set(final_stocks)
            if any(actual.get(name, 0) != final_stocks.get(name, 0) for name in names):
                raise FinalStocksMismatchError(dict(final_stocks), actual)
        except FeasibilityError as e:
            self.errors.append(e)
            logger.info("Trace rejected: %s", e)
            return False
        return True

    def validate_schedule(self, schedule: Schedule) -> bool:
        return self.validate(expand_log(schedule.log), schedule.stocks)
