"""
Genetic algorithm over process priority sequences.

A genome is a sequence of process ids. It is decoded by a greedy simulation:
walk the sequence and run each process once if its inputs are available,
then start over, until a full pass runs nothing (or ``max_passes`` is hit).
Firing granularity: every record is a single run and advances the elapsed
time by ``duration``.

Survivors are the top half by the objective outcome of their simulation
first and by the heuristic-weighted value of all their stocks (the fitness)
second. Fitness alone could rank an individual holding many intermediate
stocks above one that actually produced objective stocks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from krpsim.cancellation import CancellationToken
from krpsim.heuristic import proximity_weights, stock_scores, weighted_stock_value
from krpsim.model import Problem, Schedule, State, fire, max_feasible_runs
from krpsim.strategies.base import Strategy

logger = logging.getLogger(__name__)


@dataclass
class Individual:
    genome: List[str]
    state: State
    fitness: int

    def key(self, problem: Problem) -> Tuple[Tuple[int, int], int]:
        return self.state.rank(problem), self.fitness


class GeneticAlgorithm(Strategy):
    name = "genetic"

    def __init__(
        self,
        problem: Problem,
        seed: Optional[int] = None,
        population_size: int = 50,
        genome_length: Optional[int] = None,
        mutation_rate: float = 0.1,
        max_passes: int = 50,
        max_generations: Optional[int] = None,
    ):
        super().__init__(problem, seed)
        self.population_size = max(2, population_size)
        self.genome_length = genome_length or 2 * len(problem.processes)
        self.mutation_rate = mutation_rate
        self.max_passes = max_passes
        self.max_generations = max_generations
        self.weights: Dict[str, int] = proximity_weights(stock_scores(problem))
        self.process_ids = [process.id for process in problem.processes]

    def random_genome(self) -> List[str]:
        repeats = -(-self.genome_length // len(self.process_ids))
        genome = (self.process_ids * repeats)[: self.genome_length]
        self.random.shuffle(genome)
        return genome

    def simulate(self, genome: List[str]) -> State:
        state = self.initial_state()
        for _ in range(self.max_passes):
            ran = False
            for process_id in genome:
                process = self.problem.process(process_id)
                if max_feasible_runs(process, state.stocks) > 0:
                    state = fire(state, process, 1, process.duration)
                    ran = True
            if not ran:
                break
        return state

    def evaluate(self, genome: List[str]) -> Individual:
        state = self.simulate(genome)
        return Individual(genome, state, weighted_stock_value(state.snapshot, self.weights))

    def crossover(self, first: List[str], second: List[str]) -> List[str]:
        point = self.random.randrange(len(first))
        return first[:point] + second[point:]

    def mutate(self, genome: List[str]) -> List[str]:
        if self.random.random() < self.mutation_rate:
            genome = list(genome)
            genome[self.random.randrange(len(genome))] = self.random.choice(self.process_ids)
        return genome

    def solve(self, token: CancellationToken) -> Schedule:
        genomes = [self.random_genome() for _ in range(self.population_size)]
        best: Optional[Individual] = None
        generation = 0

        # one generation is always evaluated, even with an exhausted budget
        while True:
            population = sorted(
                (self.evaluate(genome) for genome in genomes),
                key=lambda individual: individual.key(self.problem),
                reverse=True,
            )
            if best is None or population[0].key(self.problem) > best.key(self.problem):
                best = population[0]
                logger.debug("%s: generation %d, new best %s", self.name, generation, best.key(self.problem))
            generation += 1

            if token.cancelled:
                break
            if self.max_generations is not None and generation >= self.max_generations:
                break

            survivors = [individual.genome for individual in population[: self.population_size // 2]]
            genomes = list(survivors)
            while len(genomes) < self.population_size:
                child = self.crossover(self.random.choice(survivors), self.random.choice(survivors))
                genomes.append(self.mutate(child))

        logger.info("%s: %d generations, best %s", self.name, generation, best.key(self.problem))
        return self.result(best.state)
