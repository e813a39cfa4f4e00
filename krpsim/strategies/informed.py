"""
Best-first graph search over resource-flow states.

Both searches pop the most promising state first: the highest objective tally,
then the lowest elapsed time. A* additionally folds the heuristic distance of
the state's stocks into the first key. Firing granularity: one record of n
runs advances the elapsed time by ``duration * n``.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from abc import abstractmethod
from typing import Dict, List, Optional, Set, Tuple

from krpsim.cancellation import CancellationToken
from krpsim.heuristic import distance_estimate, stock_scores
from krpsim.model import Problem, Schedule, State
from krpsim.strategies.base import Strategy, serial_successors

logger = logging.getLogger(__name__)


class BestFirstSearch(Strategy):
    @abstractmethod
    def priority(self, state: State) -> Tuple[int, int]:
        """smaller pops first"""

    def solve(self, token: CancellationToken) -> Schedule:
        start = self.initial_state()
        best = start
        # the counter keeps heap entries comparable without comparing states
        counter = itertools.count()
        frontier: List[Tuple[Tuple[int, int], int, State]] = [(self.priority(start), next(counter), start)]
        visited: Set[tuple] = set()

        while frontier:
            if token.cancelled:
                logger.info("%s: timer elapsed, stopping with %d states visited", self.name, len(visited))
                break

            _, _, state = heapq.heappop(frontier)
            key = state.key()
            if key in visited:
                continue
            visited.add(key)

            if state.is_better_than(best, self.problem):
                best = state
                logger.debug("%s: new best %s at time %d", self.name, best.rank(self.problem), best.time)

            for child in serial_successors(self.problem, state):
                heapq.heappush(frontier, (self.priority(child), next(counter), child))
        else:
            logger.info("%s: state space exhausted after %d states", self.name, len(visited))

        return self.result(best)


class UniformCostSearch(BestFirstSearch):
    """Orders the frontier by objective tally alone, no heuristic."""

    name = "dijkstra"

    def priority(self, state: State) -> Tuple[int, int]:
        primary, secondary = state.rank(self.problem)
        return -primary, -secondary


class AStarSearch(BestFirstSearch):
    """Objective tally adjusted by the distance of the closest held stock."""

    name = "astar"

    def __init__(self, problem: Problem, seed: Optional[int] = None):
        super().__init__(problem, seed)
        self.scores: Dict[str, int] = stock_scores(problem)

    def priority(self, state: State) -> Tuple[int, int]:
        primary, secondary = state.rank(self.problem)
        return -primary + distance_estimate(state.snapshot, self.scores), -secondary
