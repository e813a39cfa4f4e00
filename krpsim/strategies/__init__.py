"""
Strategy registry.

Every strategy shares one contract: build it from a problem, call
``solve(token)``, get a ``Schedule`` back. ``run_strategy`` gives each run its
own deep copy of the problem.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Dict, Optional, Type

from krpsim.cancellation import CancellationToken
from krpsim.model import Problem, Schedule
from krpsim.strategies.annealing import SimulatedAnnealing
from krpsim.strategies.ant_colony import AntColony
from krpsim.strategies.base import Strategy
from krpsim.strategies.genetic import GeneticAlgorithm
from krpsim.strategies.ida_star import IterativeDeepeningAStar
from krpsim.strategies.informed import AStarSearch, UniformCostSearch
from krpsim.strategies.sgs import SerialGenerationScheme
from krpsim.strategies.tabu import TabuSearch

logger = logging.getLogger(__name__)

STRATEGIES: Dict[str, Type[Strategy]] = {
    cls.name: cls
    for cls in (
        UniformCostSearch,
        AStarSearch,
        IterativeDeepeningAStar,
        TabuSearch,
        SimulatedAnnealing,
        GeneticAlgorithm,
        AntColony,
        SerialGenerationScheme,
    )
}


def run_strategy(
    name: str,
    problem: Problem,
    token: CancellationToken,
    seed: Optional[int] = None,
    **options,
) -> Schedule:
    """Run strategy ``name`` on a private copy of ``problem``."""
    if name not in STRATEGIES:
        raise ValueError(f"Unknown strategy {name!r}, expected one of {', '.join(STRATEGIES)}")

    strategy = STRATEGIES[name](copy.deepcopy(problem), seed=seed, **options)
    start_time = time.time()
    schedule = strategy.solve(token)
    logger.info("%s executed in %.3f seconds", name, time.time() - start_time)
    return schedule


__all__ = [
    "STRATEGIES",
    "AStarSearch",
    "AntColony",
    "GeneticAlgorithm",
    "IterativeDeepeningAStar",
    "SerialGenerationScheme",
    "SimulatedAnnealing",
    "Strategy",
    "TabuSearch",
    "UniformCostSearch",
    "run_strategy",
]
