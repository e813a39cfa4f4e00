"""krpsim: resource-flow production scheduling."""

from krpsim.cancellation import CancellationToken, cancel_on_interrupt
from krpsim.errors import (
    FeasibilityError,
    FinalStocksMismatchError,
    InsufficientStockError,
    KrpsimError,
    ModelError,
    UnknownProcessError,
)
from krpsim.model import (
    TIME_OBJECTIVE,
    ExecutionRecord,
    Problem,
    Process,
    Schedule,
    State,
    apply,
    feasible_processes,
    fire,
    max_feasible_runs,
    objective_value,
)
from krpsim.parser import load_problem, parse_problem
from krpsim.strategies import STRATEGIES, run_strategy
from krpsim.tracelog import Firing, Trace, format_trace, parse_trace, read_trace, write_trace
from krpsim.verifier import TraceVerifier

__version__ = "0.1.0"

__all__ = [
    "STRATEGIES",
    "TIME_OBJECTIVE",
    "CancellationToken",
    "ExecutionRecord",
    "FeasibilityError",
    "FinalStocksMismatchError",
    "Firing",
    "InsufficientStockError",
    "KrpsimError",
    "ModelError",
    "Problem",
    "Process",
    "Schedule",
    "State",
    "Trace",
    "TraceVerifier",
    "UnknownProcessError",
    "apply",
    "cancel_on_interrupt",
    "feasible_processes",
    "fire",
    "format_trace",
    "load_problem",
    "max_feasible_runs",
    "objective_value",
    "parse_problem",
    "parse_trace",
    "read_trace",
    "run_strategy",
    "write_trace",
]
