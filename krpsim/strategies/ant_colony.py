"""
Ant colony optimization.

Each process carries a pheromone level. An ant builds a schedule step by step,
drawing the next feasible process with probability proportional to
``pheromone / duration`` and running it a random number of times. After every
generation pheromones evaporate and each process used by an ant is reinforced
by ``objective / elapsed time * runs``.
Firing granularity: a batch of n runs is one record and advances the elapsed
time by a single ``duration``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import numpy as np

from krpsim.cancellation import CancellationToken
from krpsim.model import Problem, Schedule, State, feasible_processes, fire, objective_sum
from krpsim.strategies.base import Strategy

logger = logging.getLogger(__name__)


class AntColony(Strategy):
    name = "aco"

    def __init__(
        self,
        problem: Problem,
        seed: Optional[int] = None,
        ants: int = 10,
        evaporation: float = 0.9,
        stall_limit: int = 5,
        max_steps: int = 50,
        max_generations: Optional[int] = None,
    ):
        super().__init__(problem, seed)
        self.rng = np.random.default_rng(seed)
        self.ants = ants
        self.evaporation = evaporation
        self.stall_limit = stall_limit
        self.max_steps = max_steps
        self.max_generations = max_generations
        self.index: Dict[str, int] = {process.id: i for i, process in enumerate(problem.processes)}
        # zero-duration processes are weighted like unit-duration ones
        self.visibility = np.array([1.0 / max(process.duration, 1) for process in problem.processes])

    def construct(self, pheromones: np.ndarray, token: CancellationToken) -> State:
        state = self.initial_state()
        last_score = state.rank(self.problem)[0]
        stalled = 0

        for _ in range(self.max_steps):
            if token.cancelled:
                break
            moves = feasible_processes(self.problem, state.stocks)
            if not moves:
                break

            indices = np.array([self.index[process.id] for process, _ in moves])
            weights = pheromones[indices] * self.visibility[indices]
            total = weights.sum()
            choice = self.rng.choice(len(moves), p=weights / total if total > 0 else None)
            process, runs = moves[choice]
            count = int(self.rng.integers(1, runs, endpoint=True))
            state = fire(state, process, count, process.duration)

            score = state.rank(self.problem)[0]
            stalled = stalled + 1 if score <= last_score else 0
            last_score = score
            if stalled >= self.stall_limit:
                break

        return state

    def deposit(self, state: State) -> float:
        if self.problem.stock_objectives:
            score = objective_sum(self.problem.stock_objectives, state.snapshot)
        else:
            score = 1
        return score / max(state.time, 1)

    def update_pheromones(self, pheromones: np.ndarray, colony: List[State]):
        pheromones *= self.evaporation
        for state in colony:
            amount = self.deposit(state)
            for record in state.log:
                pheromones[self.index[record.process_id]] += amount * record.count

    def solve(self, token: CancellationToken) -> Schedule:
        pheromones = np.ones(len(self.problem.processes))
        best = self.initial_state()
        generation = 0

        while True:
            colony = [self.construct(pheromones, token) for _ in range(self.ants)]
            for state in colony:
                if state.is_better_than(best, self.problem):
                    best = state
                    logger.debug("%s: generation %d, new best %s", self.name, generation, best.rank(self.problem))
            self.update_pheromones(pheromones, colony)
            generation += 1

            if token.cancelled:
                break
            if self.max_generations is not None and generation >= self.max_generations:
                break

        logger.info("%s: %d generations, best %s", self.name, generation, best.rank(self.problem))
        return self.result(best)
