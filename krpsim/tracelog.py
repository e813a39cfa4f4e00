"""
Trace log files.

Format: one ``time:process`` line per single run, in non-decreasing time
order, then the ``Final stocks:`` marker followed by one ``stock:quantity``
line per stock. Lines starting with ``#`` are informational.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, NamedTuple

from krpsim.model import ExecutionRecord, Schedule

logger = logging.getLogger(__name__)

FINAL_STOCKS_MARKER = "Final stocks:"

_ENTRY = re.compile(r"^(\d+)\s*:\s*(\S+)$")
_STOCK = re.compile(r"^(\S+?)\s*:\s*(\d+)$")


class Firing(NamedTuple):
    """A single run of ``process_id`` started at ``time``."""

    time: int
    process_id: str


@dataclass
class Trace:
    firings: List[Firing] = field(default_factory=list)
    final_stocks: Dict[str, int] = field(default_factory=dict)
    has_final_stocks: bool = False
    warnings: List[str] = field(default_factory=list)


def expand_log(log: List[ExecutionRecord]) -> List[Firing]:
    """One firing per run, ordered by start time."""
    firings = []
    for record in sorted(log, key=lambda r: r.start):
        firings.extend(Firing(record.start, record.process_id) for _ in range(record.count))
    return firings


def format_trace(schedule: Schedule) -> str:
    lines = []
    if schedule.strategy:
        lines.append(f"# strategy: {schedule.strategy}")
    lines.extend(f"{firing.time}:{firing.process_id}" for firing in expand_log(schedule.log))
    lines.append(f"# finished at time {schedule.time}")
    lines.append(FINAL_STOCKS_MARKER)
    lines.extend(f"{name}:{qty}" for name, qty in sorted(schedule.stocks.items()))
    return "\n".join(lines) + "\n"


def write_trace(schedule: Schedule, path: Path) -> Path:
    path = Path(path)
    path.write_text(format_trace(schedule))
    logger.info("Trace of %s written to %s", schedule.strategy or "schedule", path)
    return path


def parse_trace(text: str) -> Trace:
    """Parse a trace log. Malformed lines are skipped and reported in ``warnings``."""
    trace = Trace()

    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if line == FINAL_STOCKS_MARKER:
            trace.has_final_stocks = True
            continue

        if trace.has_final_stocks:
            m = _STOCK.match(line)
            if not m:
                trace.warnings.append(f"line {number}: invalid final stock line: {line}")
                continue
            trace.final_stocks[m.group(1)] = int(m.group(2))
        else:
            m = _ENTRY.match(line)
            if not m:
                trace.warnings.append(f"line {number}: invalid execution line: {line}")
                continue
            trace.firings.append(Firing(int(m.group(1)), m.group(2)))

    if not trace.has_final_stocks:
        trace.warnings.append("Final stocks not found in trace")
    return trace


def read_trace(path: Path) -> Trace:
    return parse_trace(Path(path).read_text())


class TraceWriter:
    """
    Writes traces in the background.

    ``submit`` returns immediately; ``join`` waits for every pending write and
    re-raises the first error.
    """

    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="trace-writer")
        self._futures: List[Future] = []

    def submit(self, schedule: Schedule, path: Path) -> Future:
        future = self._executor.submit(write_trace, schedule, path)
        self._futures.append(future)
        return future

    def join(self) -> List[Path]:
        try:
            return [future.result() for future in self._futures]
        finally:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> TraceWriter:
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.join()
        else:
            self._executor.shutdown(wait=True)
