"""
Serial generation scheme: a single greedy pass with a priority rule.

At every step the feasible process with the best score runs at its maximal
count. Score: +quantity per objective output, -quantity per objective input,
-quantity/2 per other input. Firing granularity: a batch of n runs is one
record and advances the elapsed time by a single ``duration``.
"""

from __future__ import annotations

import logging
from typing import Optional

from krpsim.cancellation import CancellationToken
from krpsim.model import Problem, Process, Schedule, feasible_processes, fire
from krpsim.strategies.base import Strategy

logger = logging.getLogger(__name__)


class SerialGenerationScheme(Strategy):
    name = "sgs"

    def __init__(self, problem: Problem, seed: Optional[int] = None, max_steps: Optional[int] = None):
        super().__init__(problem, seed)
        self.max_steps = max_steps
        self.objectives = set(problem.stock_objectives)

    def score(self, process: Process) -> int:
        score = 0
        for name, qty in process.outputs:
            if name in self.objectives:
                score += qty
        for name, qty in process.inputs:
            if name in self.objectives:
                score -= qty
            else:
                score -= qty // 2
        return score

    def solve(self, token: CancellationToken) -> Schedule:
        state = self.initial_state()
        steps = 0

        while not token.cancelled:
            if self.max_steps is not None and steps >= self.max_steps:
                break
            moves = feasible_processes(self.problem, state.stocks)
            if not moves:
                break
            # max keeps the first process on ties
            process, runs = max(moves, key=lambda move: self.score(move[0]))
            state = fire(state, process, runs, process.duration)
            steps += 1

        logger.info("%s: %d steps, finished at time %d", self.name, steps, state.time)
        return self.result(state)
