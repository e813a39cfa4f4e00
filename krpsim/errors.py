"""
Exceptions raised by krpsim.

ModelError covers malformed problems, FeasibilityError and its subclasses
cover verifier findings. Running out of time budget is not an error:
strategies return their best schedule instead.
"""

from __future__ import annotations

from typing import Dict, Optional


class KrpsimError(Exception):
    """Base class for krpsim errors."""


class ModelError(KrpsimError, ValueError):
    """Malformed problem: duplicated identifiers, missing sections, bad lines."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class FeasibilityError(KrpsimError):
    """A claimed trace cannot be replayed against the problem."""


class UnknownProcessError(FeasibilityError):
    def __init__(self, process_id: str, time: int):
        super().__init__(f"Process '{process_id}' not found at time {time}.")
        self.process_id = process_id
        self.time = time


class InsufficientStockError(FeasibilityError):
    def __init__(self, process_id: str, time: int, stock: str, required: int, available: int):
        super().__init__(
            f"Not enough stock for process '{process_id}' at time {time}. "
            f"Needed {required} of {stock}, but only {available} available."
        )
        self.process_id = process_id
        self.time = time
        self.stock = stock
        self.required = required
        self.available = available


class FinalStocksMismatchError(FeasibilityError):
    def __init__(self, expected: Dict[str, int], actual: Dict[str, int]):
        super().__init__(
            f"Final stocks do not match. Expected {dict(sorted(expected.items()))}, "
            f"but found {dict(sorted(actual.items()))}."
        )
        self.expected = expected
        self.actual = actual
