"""
Resource-flow model: stocks, processes, objectives and the pure transition
functions every strategy is built on.

A stock snapshot is a plain ``Dict[str, int]``; names that are missing hold 0.
Snapshots are never mutated in place once handed out.

Same-tick isolation: firings that start at the same time all draw their inputs
from the snapshot as it was before that time. Their outputs only become
visible once the clock moves on. ``State`` keeps such outputs in ``pending``
until a firing advances the elapsed time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from typing_extensions import Self

from krpsim.errors import ModelError

# objective sentinel: minimize total elapsed time
TIME_OBJECTIVE = "time"

Snapshot = Dict[str, int]


@dataclass(frozen=True)
class Process:
    """A timed transformation consuming ``inputs`` and producing ``outputs``."""

    id: str
    inputs: Tuple[Tuple[str, int], ...] = ()
    outputs: Tuple[Tuple[str, int], ...] = ()
    duration: int = 0

    def __post_init__(self):
        object.__setattr__(self, "inputs", tuple((name, int(qty)) for name, qty in self.inputs))
        object.__setattr__(self, "outputs", tuple((name, int(qty)) for name, qty in self.outputs))
        if self.duration < 0:
            raise ModelError(f"Process {self.id}: negative duration {self.duration}")
        for name, qty in self.inputs + self.outputs:
            if qty < 0:
                raise ModelError(f"Process {self.id}: negative quantity {qty} of {name}")

    @property
    def stock_names(self) -> List[str]:
        return [name for name, _ in self.inputs + self.outputs]


@dataclass
class Problem:
    """
    Initial stocks, processes and objectives.

    Stocks referenced by a process but not declared are registered with
    quantity 0, so every snapshot derived from the problem has the full key set.
    A problem is treated as immutable once built; strategies work on copies.
    """

    stocks: Snapshot
    processes: List[Process]
    objectives: List[str]
    _by_id: Dict[str, Process] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        self.stocks = dict(self.stocks)
        self.processes = list(self.processes)
        self.objectives = list(self.objectives)

        if not self.objectives:
            raise ModelError("Missing optimize objective")
        if not self.processes:
            raise ModelError("Missing process")

        for name, qty in self.stocks.items():
            if qty < 0:
                raise ModelError(f"Stock {name}: negative quantity {qty}")

        self._by_id = {}
        for process in self.processes:
            if process.id in self._by_id or process.id in self.stocks:
                raise ModelError(f"Duplicated identifier {process.id}")
            self._by_id[process.id] = process

        for process in self.processes:
            for name in process.stock_names:
                if name in self._by_id:
                    raise ModelError(f"Process {process.id}: {name} is a process, not a stock")
                self.stocks.setdefault(name, 0)

        if not self.stocks:
            raise ModelError("Missing stocks")

    @property
    def stock_objectives(self) -> List[str]:
        return [name for name in self.objectives if name != TIME_OBJECTIVE]

    @property
    def optimize_time(self) -> bool:
        return TIME_OBJECTIVE in self.objectives

    def process(self, process_id: str) -> Process:
        """Look up a process by id (KeyError if unknown)."""
        return self._by_id[process_id]

    def has_process(self, process_id: str) -> bool:
        return process_id in self._by_id

    def rank(self, stocks: Snapshot, time: int) -> Tuple[int, int]:
        """
        Comparable score of an outcome, larger is better.

        With stock objectives: their total quantity, ties broken by lower time.
        With only the time objective: lower time.
        """
        if self.stock_objectives:
            return objective_sum(self.stock_objectives, stocks), -time
        return -time, 0


class ExecutionRecord(NamedTuple):
    """``count`` runs of ``process_id`` all started at ``start``."""

    process_id: str
    count: int
    start: int


def objective_sum(names: Sequence[str], stocks: Snapshot) -> int:
    return sum(stocks.get(name, 0) for name in names)


def objective_value(problem: Problem, stocks: Snapshot, time: int) -> int:
    """Sum of objective stock quantities, or the elapsed time for a time-only objective."""
    if problem.stock_objectives:
        return objective_sum(problem.stock_objectives, stocks)
    return time


def max_feasible_runs(process: Process, stocks: Snapshot) -> int:
    """
    Largest n such that every input quantity * n is available in ``stocks``.

    Inputs with quantity 0 do not bound the count. A process without any
    bounding input cannot be given a finite count and returns 0.
    """
    runs: Optional[int] = None
    for name, qty in process.inputs:
        if qty == 0:
            continue
        possible = stocks.get(name, 0) // qty
        runs = possible if runs is None else min(runs, possible)
    return runs or 0


def _check_count(process: Process, stocks: Snapshot, count: int):
    if count < 0:
        raise ValueError(f"Negative run count {count} for {process.id}")
    if count > max_feasible_runs(process, stocks):
        raise ValueError(
            f"Cannot run {process.id} {count} times, "
            f"at most {max_feasible_runs(process, stocks)} runs are feasible"
        )


def _consume(stocks: Snapshot, process: Process, count: int) -> Snapshot:
    result = dict(stocks)
    for name, qty in process.inputs:
        result[name] = result.get(name, 0) - qty * count
    return result


def _produce(stocks: Snapshot, process: Process, count: int) -> Snapshot:
    result = dict(stocks)
    for name, qty in process.outputs:
        result[name] = result.get(name, 0) + qty * count
    return result


def merge(stocks: Snapshot, other: Snapshot) -> Snapshot:
    result = dict(stocks)
    for name, qty in other.items():
        result[name] = result.get(name, 0) + qty
    return result


def apply(stocks: Snapshot, process: Process, count: int) -> Snapshot:
    """Return ``stocks`` with inputs * count subtracted and outputs * count added."""
    if count == 0:
        return dict(stocks)
    _check_count(process, stocks, count)
    return _produce(_consume(stocks, process, count), process, count)


def feasible_processes(problem: Problem, stocks: Snapshot) -> List[Tuple[Process, int]]:
    """Every process that can run at least once, with its maximal run count."""
    result = []
    for process in problem.processes:
        runs = max_feasible_runs(process, stocks)
        if runs > 0:
            result.append((process, runs))
    return result


@dataclass(frozen=True, eq=False)
class State:
    """
    A point in the search: elapsed time, visible stocks and pending outputs.

    ``pending`` holds outputs of firings that started at ``time``; they are not
    usable by another firing starting at ``time``. The execution log is not
    copied per state: each state keeps the record that produced it and a
    reference to its parent.
    """

    time: int
    stocks: Snapshot
    pending: Snapshot = field(default_factory=dict)
    record: Optional[ExecutionRecord] = None
    parent: Optional[State] = None

    @classmethod
    def initial(cls, problem: Problem) -> State:
        return cls(0, dict(problem.stocks))

    @property
    def snapshot(self) -> Snapshot:
        """Visible stocks with pending outputs merged in."""
        if not self.pending:
            return dict(self.stocks)
        return merge(self.stocks, self.pending)

    @property
    def log(self) -> List[ExecutionRecord]:
        records = []
        node: Optional[State] = self
        while node is not None and node.record is not None:
            records.append(node.record)
            node = node.parent
        records.reverse()
        return records

    def key(self) -> Tuple[int, frozenset, frozenset]:
        """Hashable identity used by visited sets."""
        return (
            self.time,
            frozenset(self.stocks.items()),
            frozenset((k, v) for k, v in self.pending.items() if v),
        )

    def rank(self, problem: Problem) -> Tuple[int, int]:
        return problem.rank(self.snapshot, self.time)

    def is_better_than(self, other: Self, problem: Problem) -> bool:
        return self.rank(problem) > other.rank(problem)


def fire(state: State, process: Process, count: int, advance: int) -> State:
    """
    Start ``count`` runs of ``process`` at ``state.time`` and move the clock by ``advance``.

    Inputs are taken from the visible stocks only. When the clock moves, every
    output of the current tick (this firing included) becomes visible.
    """
    if count < 1:
        raise ValueError(f"Run count must be positive, got {count} for {process.id}")
    _check_count(process, state.stocks, count)

    stocks = _consume(state.stocks, process, count)
    pending = _produce(state.pending, process, count)
    if advance > 0:
        stocks = merge(stocks, pending)
        pending = {}

    return State(
        time=state.time + advance,
        stocks=stocks,
        pending=pending,
        record=ExecutionRecord(process.id, count, state.time),
        parent=state,
    )


@dataclass(frozen=True)
class Schedule:
    """
    Result of one strategy run: elapsed time, final stocks, execution log.

    Unpacks as ``time, stocks, log = schedule``.
    """

    time: int
    stocks: Snapshot
    log: List[ExecutionRecord]
    strategy: str = ""

    def __iter__(self) -> Iterator:
        return iter((self.time, self.stocks, self.log))

    @classmethod
    def from_state(cls, state: State, strategy: str = "") -> Schedule:
        return cls(state.time, state.snapshot, state.log, strategy)

    @property
    def runs(self) -> int:
        return sum(record.count for record in self.log)
