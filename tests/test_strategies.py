import logging
import re

import numpy as np
import pytest

from krpsim.cancellation import CancellationToken
from krpsim.model import ExecutionRecord, Problem, Process, Schedule, State, fire
from krpsim.strategies import (
    STRATEGIES,
    AntColony,
    AStarSearch,
    GeneticAlgorithm,
    IterativeDeepeningAStar,
    SerialGenerationScheme,
    SimulatedAnnealing,
    TabuSearch,
    UniformCostSearch,
    run_strategy,
)
from krpsim.verifier import TraceVerifier

# options that bound every strategy without relying on the clock
BOUNDED = {
    "dijkstra": {},
    "astar": {},
    "idastar": {},
    "tabu": {"max_iterations": 100},
    "annealing": {"max_iterations": 2000},
    "genetic": {"max_generations": 10, "population_size": 20},
    "aco": {"max_generations": 20},
    "sgs": {},
}


def assert_verifies(problem: Problem, schedule: Schedule):
    verifier = TraceVerifier(problem)
    assert verifier.validate_schedule(schedule), verifier.errors


class TestRegistry:
    def test_every_strategy_is_registered(self):
        assert list(STRATEGIES) == ["dijkstra", "astar", "idastar", "tabu", "annealing", "genetic", "aco", "sgs"]

    def test_unknown_strategy(self, apple_problem, token):
        with pytest.raises(ValueError, match="Unknown strategy"):
            run_strategy("hill_climbing", apple_problem, token)

    def test_problem_is_not_shared(self, apple_problem, token):
        schedule = run_strategy("sgs", apple_problem, token)
        assert schedule.strategy == "sgs"
        assert apple_problem.stocks == {"euro": 10, "apple": 0}


class TestAppleScenario:
    """Ten euros, two euros per apple: every strategy ends with five apples."""

    FINAL = {"euro": 0, "apple": 5}

    @pytest.mark.parametrize("strategy", [UniformCostSearch, AStarSearch, IterativeDeepeningAStar])
    def test_exact_searches_take_one_duration_per_run(self, strategy, apple_problem, token):
        schedule = strategy(apple_problem).solve(token)
        assert schedule.stocks == self.FINAL
        assert schedule.runs == 5
        assert schedule.time == 5

    def test_annealing_takes_one_duration_per_run(self, apple_problem, token):
        schedule = SimulatedAnnealing(apple_problem, seed=3, max_iterations=500).solve(token)
        assert schedule.stocks == self.FINAL
        assert schedule.time == 5
        assert schedule.time == sum(record.count for record in schedule.log)

    def test_tabu_fires_one_batch(self, apple_problem, token):
        schedule = TabuSearch(apple_problem, max_iterations=10).solve(token)
        assert schedule.stocks == self.FINAL
        assert schedule.log == [ExecutionRecord("buy_apple", 5, 0)]
        assert schedule.time == 1

    def test_sgs_fires_one_batch(self, apple_problem, token):
        schedule = SerialGenerationScheme(apple_problem).solve(token)
        assert schedule.stocks == self.FINAL
        assert schedule.log == [ExecutionRecord("buy_apple", 5, 0)]
        assert schedule.time == 1

    def test_aco_batches_take_one_duration(self, apple_problem, token):
        schedule = AntColony(apple_problem, seed=11, max_generations=20).solve(token)
        assert schedule.stocks == self.FINAL
        assert schedule.time == len(schedule.log)
        assert schedule.time == 1

    def test_genetic_fires_single_runs(self, apple_problem, token):
        schedule = GeneticAlgorithm(apple_problem, seed=5, max_generations=3).solve(token)
        assert schedule.stocks == self.FINAL
        assert schedule.log == [ExecutionRecord("buy_apple", 1, start) for start in range(5)]
        assert schedule.time == 5


class TestContract:
    @pytest.mark.parametrize("name", list(STRATEGIES))
    def test_schedule_replays(self, name, bakery_problem, token):
        schedule = run_strategy(name, bakery_problem, token, seed=1, **BOUNDED[name])
        assert schedule.stocks["bread"] >= 1
        assert_verifies(bakery_problem, schedule)

    @pytest.mark.parametrize("name", list(STRATEGIES))
    def test_cancelled_token_returns_promptly(self, name, bakery_problem, cancelled_token):
        schedule = run_strategy(name, bakery_problem, cancelled_token, seed=1)
        assert isinstance(schedule, Schedule)
        assert_verifies(bakery_problem, schedule)

    @pytest.mark.parametrize("name", list(STRATEGIES))
    def test_objective_never_produced(self, name, token):
        problem = Problem(
            stocks={"euro": 4, "gold": 0},
            processes=[Process("waste", [("euro", 1)], [("scrap", 1)], 1)],
            objectives=["gold"],
        )
        schedule = run_strategy(name, problem, token, seed=2, **BOUNDED[name])
        assert schedule.stocks["gold"] == 0
        assert_verifies(problem, schedule)

    @pytest.mark.parametrize("name", list(STRATEGIES))
    def test_nothing_can_run(self, name, token):
        problem = Problem(
            stocks={"euro": 1},
            processes=[Process("buy", [("euro", 2)], [("apple", 1)], 1)],
            objectives=["apple"],
        )
        schedule = run_strategy(name, problem, token, seed=0, **BOUNDED[name])
        assert schedule.log == []
        assert schedule.time == 0
        assert schedule.stocks == {"euro": 1, "apple": 0}

    @pytest.mark.parametrize("name", list(STRATEGIES))
    def test_time_objective_only(self, name, token):
        problem = Problem(
            stocks={"euro": 4},
            processes=[Process("buy", [("euro", 2)], [("apple", 1)], 3)],
            objectives=["time"],
        )
        schedule = run_strategy(name, problem, token, seed=0, **BOUNDED[name])
        assert_verifies(problem, schedule)

    def test_zero_duration_outputs_wait_for_the_clock(self, token):
        problem = Problem(
            stocks={"ore": 2},
            processes=[
                Process("crush", [("ore", 1)], [("gravel", 1)], 0),
                Process("sell", [("gravel", 1)], [("coin", 1)], 1),
            ],
            objectives=["coin"],
        )
        for name in STRATEGIES:
            schedule = run_strategy(name, problem, token, seed=4, **BOUNDED[name])
            assert_verifies(problem, schedule)

    def test_timer_bounds_an_unbounded_search(self):
        problem = Problem(
            stocks={"a": 1},
            processes=[
                Process("flip", [("a", 1)], [("b", 1)], 1),
                Process("flop", [("b", 1)], [("a", 1), ("fruit", 1)], 1),
            ],
            objectives=["fruit"],
        )
        token = CancellationToken.after(0.3)
        schedule = run_strategy("dijkstra", problem, token)
        assert token.cancelled
        assert schedule.stocks["fruit"] >= 1
        assert_verifies(problem, schedule)


class TestAnnealing:
    def test_accept(self, apple_problem):
        annealing = SimulatedAnnealing(apple_problem, seed=0)
        assert annealing.accept(10, 5, 0)
        assert not annealing.accept(5, 10, 0)
        assert not annealing.accept(5, 5, 0)
        assert annealing.accept(5, 6, 1e9)

    def test_energy_rewards_objectives(self, apple_problem):
        annealing = SimulatedAnnealing(apple_problem, reward_weight=10)
        assert annealing.energy(annealing.initial_state()) == 0


class TestGenetic:
    def test_genome_covers_processes(self, bakery_problem):
        genetic = GeneticAlgorithm(bakery_problem, seed=0)
        genome = genetic.random_genome()
        assert len(genome) == 4
        assert sorted(genome) == ["bake", "bake", "buy_flour", "buy_flour"]

    def test_crossover_keeps_length(self, bakery_problem):
        genetic = GeneticAlgorithm(bakery_problem, seed=0)
        child = genetic.crossover(["bake"] * 4, ["buy_flour"] * 4)
        assert len(child) == 4

    def test_mutation_rate_zero_keeps_genome(self, bakery_problem):
        genetic = GeneticAlgorithm(bakery_problem, seed=0, mutation_rate=0)
        assert genetic.mutate(["bake", "buy_flour"]) == ["bake", "buy_flour"]

    def test_simulation_is_greedy(self, bakery_problem):
        genetic = GeneticAlgorithm(bakery_problem, seed=0)
        state = genetic.simulate(["buy_flour", "bake"])
        assert state.snapshot == {"euro": 0, "flour": 0, "bread": 2}


class TestSgs:
    def test_scores(self, bakery_problem):
        sgs = SerialGenerationScheme(bakery_problem)
        assert sgs.score(bakery_problem.process("buy_flour")) == -1
        assert sgs.score(bakery_problem.process("bake")) == 0


@pytest.fixture
def shuttle():
    """Two states only: a unit moves between a and b forever."""
    return Problem(
        stocks={"a": 1},
        processes=[
            Process("to_b", [("a", 1)], [("b", 1)], 1),
            Process("to_a", [("b", 1)], [("a", 1)], 1),
        ],
        objectives=["a"],
    )


class TestTabu:
    def test_prefers_best_non_tabu_neighbor(self, apple_problem):
        tabu = TabuSearch(apple_problem)
        start = tabu.initial_state()
        small = fire(start, apple_problem.process("buy_apple"), 1, 1)
        large = fire(start, apple_problem.process("buy_apple"), 5, 1)
        assert tabu.choose([small, large]) is large

        tabu.tabu.append(frozenset(large.snapshot.items()))
        assert tabu.choose([large, small]) is small

    def test_all_tabu_takes_first_neighbor(self, shuttle):
        tabu = TabuSearch(shuttle)
        state = fire(tabu.initial_state(), shuttle.process("to_b"), 1, 1)
        tabu.tabu.append(frozenset(state.snapshot.items()))
        assert tabu.choose([state]) is state

    def test_keeps_moving_when_every_move_is_tabu(self, shuttle, token, caplog):
        caplog.set_level(logging.INFO, logger="krpsim.strategies.tabu")
        tabu = TabuSearch(shuttle, tabu_size=10, max_iterations=30)
        schedule = tabu.solve(token)

        assert "tabu: 30 iterations" in caplog.text
        assert len(tabu.tabu) == 10
        assert schedule.stocks == {"a": 1, "b": 0}
        assert schedule.time == 0


class TestAntColony:
    def test_evaporation_then_deposit(self, bakery_problem):
        aco = AntColony(bakery_problem, seed=0, evaporation=0.9)
        start = aco.initial_state()
        baked = fire(start, bakery_problem.process("buy_flour"), 3, 1)
        baked = fire(baked, bakery_problem.process("bake"), 2, 2)
        idle = fire(start, bakery_problem.process("buy_flour"), 1, 1)

        pheromones = np.ones(2)
        aco.update_pheromones(pheromones, [baked, idle])

        # bread 2 over time 3, reinforced once per run
        assert pheromones == pytest.approx([0.9 + 2 / 3 * 3, 0.9 + 2 / 3 * 2])

    def test_deposit_with_time_objective(self):
        problem = Problem({"a": 2}, [Process("p", [("a", 1)], [("b", 1)], 4)], ["time"])
        aco = AntColony(problem, seed=0)
        state = fire(aco.initial_state(), problem.process("p"), 2, 4)
        assert aco.deposit(state) == pytest.approx(0.25)
        assert aco.deposit(aco.initial_state()) == 1


class TestIdaStar:
    def test_threshold_grows_to_smallest_overshoot(self, apple_problem, token):
        ida = IterativeDeepeningAStar(apple_problem)
        start = ida.initial_state()
        assert ida.estimate(start) == 1

        best, next_threshold = ida.bounded_search(start, 1, start, token)
        assert next_threshold == 2
        assert best.snapshot == {"euro": 8, "apple": 1}

        best, next_threshold = ida.bounded_search(start, 3, start, token)
        assert next_threshold == 4
        assert best.snapshot["apple"] == 3

    def test_last_round_reports_no_threshold(self, apple_problem, token):
        ida = IterativeDeepeningAStar(apple_problem)
        start = ida.initial_state()
        best, next_threshold = ida.bounded_search(start, 5, start, token)
        assert next_threshold is None
        assert best.snapshot == {"euro": 0, "apple": 5}

    def test_cancelled_round(self, apple_problem, cancelled_token):
        ida = IterativeDeepeningAStar(apple_problem)
        start = ida.initial_state()
        assert ida.bounded_search(start, 5, start, cancelled_token) == (start, None)


class TestAnnealingRestart:
    def test_restarts_from_initial_stocks(self, apple_problem, token, caplog):
        caplog.set_level(logging.INFO, logger="krpsim.strategies.annealing")
        annealing = SimulatedAnnealing(apple_problem, seed=8, max_iterations=60)
        schedule = annealing.solve(token)

        restarts = int(re.search(r"(\d+) restarts", caplog.text).group(1))
        assert restarts >= 1
        assert schedule.stocks == {"euro": 0, "apple": 5}

    def test_stuck_walk_goes_back_to_initial_state(self, apple_problem):
        annealing = SimulatedAnnealing(apple_problem, seed=0)
        state = fire(annealing.initial_state(), apple_problem.process("buy_apple"), 5, 5)
        assert annealing.neighbor(state) is None
        assert isinstance(annealing.neighbor(annealing.initial_state()), State)
