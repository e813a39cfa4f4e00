from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Iterator, Optional

from krpsim.cancellation import CancellationToken
from krpsim.model import Problem, Schedule, State, feasible_processes, fire


class Strategy(ABC):
    """
    One way of searching for a schedule.

    Every strategy receives its own problem, polls the cancellation token at
    its iteration boundaries and returns the best schedule found so far.
    """

    name: str = ""

    def __init__(self, problem: Problem, seed: Optional[int] = None):
        self.problem = problem
        self.seed = seed
        self.random = random.Random(seed)

    @abstractmethod
    def solve(self, token: CancellationToken) -> Schedule:
        """searches until done or until ``token`` is cancelled"""

    def initial_state(self) -> State:
        return State.initial(self.problem)

    def result(self, state: State) -> Schedule:
        return Schedule.from_state(state, self.name)


def serial_successors(problem: Problem, state: State) -> Iterator[State]:
    """Every process at every feasible count; a batch of n runs takes n durations."""
    for process, runs in feasible_processes(problem, state.stocks):
        for count in range(1, runs + 1):
            yield fire(state, process, count, process.duration * count)
