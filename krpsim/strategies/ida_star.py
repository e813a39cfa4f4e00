"""
Iterative-deepening A*.

Each round is a depth-first walk that only expands states whose
``elapsed + estimate`` stays within the round's threshold. The smallest value
that overshot becomes the next threshold. The walk uses an explicit stack and
carries the best state as an accumulator, so deep schedules do not grow the
Python call stack. Firing granularity matches the other informed searches:
one record of n runs advances the elapsed time by ``duration * n``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set, Tuple

from krpsim.cancellation import CancellationToken
from krpsim.heuristic import distance_estimate, stock_scores
from krpsim.model import Problem, Schedule, State
from krpsim.strategies.base import Strategy, serial_successors

logger = logging.getLogger(__name__)


class IterativeDeepeningAStar(Strategy):
    name = "idastar"

    def __init__(self, problem: Problem, seed: Optional[int] = None):
        super().__init__(problem, seed)
        self.scores: Dict[str, int] = stock_scores(problem)

    def estimate(self, state: State) -> int:
        return state.time + distance_estimate(state.snapshot, self.scores)

    def solve(self, token: CancellationToken) -> Schedule:
        start = self.initial_state()
        best = start
        threshold = self.estimate(start)
        rounds = 0

        while not token.cancelled:
            best, next_threshold = self.bounded_search(start, threshold, best, token)
            rounds += 1
            logger.debug("%s: round %d with threshold %d done", self.name, rounds, threshold)
            if next_threshold is None or next_threshold == threshold:
                break
            threshold = next_threshold

        logger.info("%s: stopped after %d rounds at threshold %d", self.name, rounds, threshold)
        return self.result(best)

    def bounded_search(
        self, start: State, limit: int, best: State, token: CancellationToken
    ) -> Tuple[State, Optional[int]]:
        """
        One depth-first round. Returns the updated best state and the next
        threshold, or None when nothing exceeded ``limit`` (or on cancellation).
        """
        next_threshold: Optional[int] = None
        visited: Set[tuple] = set()
        stack: List[State] = [start]

        while stack:
            if token.cancelled:
                return best, None

            state = stack.pop()
            cost = self.estimate(state)
            if cost > limit:
                next_threshold = cost if next_threshold is None else min(next_threshold, cost)
                continue

            key = state.key()
            if key in visited:
                continue
            visited.add(key)

            if state.is_better_than(best, self.problem):
                best = state

            children = list(serial_successors(self.problem, state))
            # reversed so the first generated child is explored first
            stack.extend(reversed(children))

        return best, next_threshold
