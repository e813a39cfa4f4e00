"""
Simulated annealing over firing histories.

The walk only ever extends the current history by one random firing. Energy is
elapsed time minus ``reward_weight`` times the objective stocks, lower is
better. The temperature decays geometrically every iteration and the loop runs
until cancelled; there is no temperature floor. When the current history can
not be extended any more, the walk restarts from the initial stocks.
Firing granularity: one record of n runs advances the elapsed time by
``duration * n``.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from krpsim.cancellation import CancellationToken
from krpsim.model import Problem, Schedule, State, feasible_processes, fire, objective_sum
from krpsim.strategies.base import Strategy

logger = logging.getLogger(__name__)


class SimulatedAnnealing(Strategy):
    name = "annealing"

    def __init__(
        self,
        problem: Problem,
        seed: Optional[int] = None,
        initial_temperature: float = 200.0,
        alpha: float = 0.995,
        reward_weight: float = 10.0,
        max_iterations: Optional[int] = None,
    ):
        super().__init__(problem, seed)
        self.initial_temperature = initial_temperature
        self.alpha = alpha
        self.reward_weight = reward_weight
        self.max_iterations = max_iterations

    def energy(self, state: State) -> float:
        reward = objective_sum(self.problem.stock_objectives, state.snapshot)
        return state.time - self.reward_weight * reward

    def accept(self, current_energy: float, new_energy: float, temperature: float) -> bool:
        if new_energy < current_energy:
            return True
        if temperature <= 0:
            return False
        return self.random.random() < math.exp((current_energy - new_energy) / temperature)

    def neighbor(self, state: State) -> Optional[State]:
        moves = feasible_processes(self.problem, state.stocks)
        if not moves:
            return None
        process, runs = self.random.choice(moves)
        count = self.random.randint(1, runs)
        return fire(state, process, count, process.duration * count)

    def solve(self, token: CancellationToken) -> Schedule:
        initial = self.initial_state()
        current = initial
        best = initial
        temperature = self.initial_temperature
        iteration = 0
        restarts = 0

        while not token.cancelled:
            if self.max_iterations is not None and iteration >= self.max_iterations:
                break

            candidate = self.neighbor(current)
            if candidate is None:
                if current is initial:
                    logger.info("%s: no process can run from the initial stocks", self.name)
                    break
                current = initial
                restarts += 1
            elif self.accept(self.energy(current), self.energy(candidate), temperature):
                current = candidate
                if current.is_better_than(best, self.problem):
                    best = current
                    logger.debug(
                        "%s: [%d] new best %s, temperature %.3g",
                        self.name, iteration, best.rank(self.problem), temperature,
                    )

            temperature *= self.alpha
            iteration += 1

        logger.info("%s: %d iterations, %d restarts, best %s", self.name, iteration, restarts, best.rank(self.problem))
        return self.result(best)
