"""
Reader for the krpsim problem format.

    # comment
    euro:10
    buy_apple:(euro:2):(apple:1):1
    optimize:(time;apple)

A stock line is ``name:quantity``. A process line is
``name:(inputs):(outputs):duration`` where both lists are ``stock:quantity``
pairs separated by ``;`` and may be empty. The optimize line appears once.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from krpsim.errors import ModelError
from krpsim.model import TIME_OBJECTIVE, Problem, Process

_NAME = r"[^\W\d_][^\s():;]*"
_STOCK_LINE = re.compile(rf"^({_NAME})\s*:\s*(\d+)$")
_PROCESS_LINE = re.compile(
    rf"^({_NAME})\s*:\s*(?:\(([^()]*)\))?\s*:\s*(?:\(([^()]*)\))?\s*:\s*(\d+)$"
)
_OPTIMIZE_LINE = re.compile(r"^optimize\s*:\s*\(([^()]*)\)$")
_PAIR = re.compile(rf"^({_NAME})\s*:\s*(\d+)$")


def _parse_pairs(raw: Optional[str], line_number: int) -> List[Tuple[str, int]]:
    pairs: List[Tuple[str, int]] = []
    if raw is None:
        return pairs
    for tok in raw.split(";"):
        tok = tok.strip()
        if tok == "":
            continue
        m = _PAIR.match(tok)
        if not m:
            raise ModelError(f"Invalid stock quantity {tok!r}", line_number)
        pairs.append((m.group(1), int(m.group(2))))
    return pairs


def _parse_objectives(raw: str, line_number: int) -> List[str]:
    objectives = []
    for tok in raw.split(";"):
        tok = tok.strip()
        if not re.fullmatch(_NAME, tok):
            raise ModelError(f"Invalid objective {tok!r}", line_number)
        objectives.append(tok)
    return objectives


def parse_problem(text: str) -> Problem:
    stocks: Dict[str, int] = {}
    processes: List[Process] = []
    process_ids = set()
    objectives: Optional[List[str]] = None

    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        m = _OPTIMIZE_LINE.match(line)
        if m:
            if objectives is not None:
                raise ModelError("Duplicated optimize line", line_number)
            objectives = _parse_objectives(m.group(1), line_number)
            continue

        m = _PROCESS_LINE.match(line)
        if m:
            process_id = m.group(1)
            if process_id in stocks or process_id in process_ids or process_id == TIME_OBJECTIVE:
                raise ModelError(f"Duplicated identifier {process_id}", line_number)
            process_ids.add(process_id)
            processes.append(
                Process(
                    id=process_id,
                    inputs=_parse_pairs(m.group(2), line_number),
                    outputs=_parse_pairs(m.group(3), line_number),
                    duration=int(m.group(4)),
                )
            )
            continue

        m = _STOCK_LINE.match(line)
        if m:
            name = m.group(1)
            if name in stocks or name in process_ids or name == TIME_OBJECTIVE:
                raise ModelError(f"Duplicated identifier {name}", line_number)
            stocks[name] = int(m.group(2))
            continue

        raise ModelError(f"Unexpected line {line!r}", line_number)

    if objectives is None:
        raise ModelError("Missing optimize line")
    if not stocks:
        raise ModelError("Missing stocks")
    return Problem(stocks=stocks, processes=processes, objectives=objectives)


def load_problem(path: Path) -> Problem:
    """Load a problem file."""
    return parse_problem(Path(path).read_text())
