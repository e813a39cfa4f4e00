"""
Tabu search.

A move fires one process at its maximal count. Recently visited snapshots are
tabu; when every move is tabu the first one is taken anyway to diversify.
Firing granularity: a batch of n runs is one record and advances the elapsed
time by a single ``duration``.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional

from krpsim.cancellation import CancellationToken
from krpsim.model import Problem, Schedule, State, feasible_processes, fire
from krpsim.strategies.base import Strategy

logger = logging.getLogger(__name__)


class TabuSearch(Strategy):
    name = "tabu"

    def __init__(
        self,
        problem: Problem,
        seed: Optional[int] = None,
        tabu_size: int = 50,
        max_iterations: Optional[int] = None,
    ):
        super().__init__(problem, seed)
        self.tabu_size = tabu_size
        self.max_iterations = max_iterations
        self.tabu: Deque[frozenset] = deque(maxlen=tabu_size)

    def neighbors(self, state: State):
        return [
            fire(state, process, runs, process.duration)
            for process, runs in feasible_processes(self.problem, state.stocks)
        ]

    def choose(self, neighbors: List[State]) -> State:
        """Best neighbor whose snapshot is not tabu, else the first neighbor."""
        allowed = [n for n in neighbors if frozenset(n.snapshot.items()) not in self.tabu]
        if allowed:
            return max(allowed, key=lambda n: n.rank(self.problem))
        return neighbors[0]

    def solve(self, token: CancellationToken) -> Schedule:
        current = self.initial_state()
        best = current
        self.tabu.clear()
        iteration = 0

        while not token.cancelled:
            if self.max_iterations is not None and iteration >= self.max_iterations:
                break

            neighbors = self.neighbors(current)
            if not neighbors:
                logger.info("%s: no process can run at time %d", self.name, current.time)
                break

            current = self.choose(neighbors)
            self.tabu.append(frozenset(current.snapshot.items()))
            if current.is_better_than(best, self.problem):
                best = current
            iteration += 1

        logger.info("%s: %d iterations, best %s", self.name, iteration, best.rank(self.problem))
        return self.result(best)
