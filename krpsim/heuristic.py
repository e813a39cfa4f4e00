"""
Per-stock distance to the objectives.

Computed once per problem by a breadth-first walk backwards over the
"process makes X out of Y" relation: objective stocks get 0, the inputs of
processes producing them get 1, and so on. A stock keeps the first distance it
is given. This is a priority hint, not a lower bound.
"""

from __future__ import annotations

from collections import deque
from typing import Dict

from krpsim.model import Problem, Snapshot


def stock_scores(problem: Problem) -> Dict[str, int]:
    """Map each stock reachable backwards from an objective to its BFS level."""
    scores: Dict[str, int] = {}
    to_visit = deque((name, 0) for name in problem.stock_objectives)

    while to_visit:
        stock, distance = to_visit.popleft()
        if stock in scores:
            continue
        scores[stock] = distance

        for process in problem.processes:
            if any(name == stock for name, _ in process.outputs):
                for name, _ in process.inputs:
                    if name not in scores:
                        to_visit.append((name, distance + 1))

    return scores


def distance_estimate(stocks: Snapshot, scores: Dict[str, int]) -> int:
    """
    Distance of the closest stock that is actually held.

    0 once an objective stock is present, ``max level + 1`` when nothing held
    leads to an objective.
    """
    unreachable = max(scores.values(), default=0) + 1
    return min(
        (scores[name] for name, qty in stocks.items() if qty > 0 and name in scores),
        default=unreachable,
    )


def proximity_weights(scores: Dict[str, int]) -> Dict[str, int]:
    """Reward weight per stock: the closer to an objective, the larger."""
    top = max(scores.values(), default=0) + 1
    return {name: top - distance for name, distance in scores.items()}


def weighted_stock_value(stocks: Snapshot, weights: Dict[str, int]) -> int:
    return sum(weights.get(name, 0) * qty for name, qty in stocks.items())
