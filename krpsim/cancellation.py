"""
Cooperative cancellation shared by every strategy.

A token is set by exactly one timer and, optionally, by the SIGINT handler.
Strategies never block on it: they poll ``token.cancelled`` at iteration
boundaries and return their best result so far once it is set.
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import List, Optional

logger = logging.getLogger(__name__)

_interrupt_tokens: List["CancellationToken"] = []
_interrupt_installed = False
_interrupted = False
_interrupt_lock = threading.Lock()


class CancellationToken:
    """Read-mostly flag; ``cancel`` is the only writer."""

    def __init__(self):
        self._event = threading.Event()
        self._timer: Optional[threading.Timer] = None

    @classmethod
    def after(cls, seconds: float) -> CancellationToken:
        """Token that cancels itself once ``seconds`` have elapsed."""
        token = cls()
        token.start_timer(seconds)
        return token

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        self._event.set()

    def start_timer(self, seconds: float):
        """Arm the timer. A budget of zero or less cancels right away."""
        if self._timer is not None:
            raise RuntimeError("Timer already started for this token")
        if seconds <= 0:
            self.cancel()
            return
        self._timer = threading.Timer(seconds, self._expire)
        self._timer.daemon = True
        self._timer.start()

    def stop_timer(self):
        if self._timer is not None:
            self._timer.cancel()

    def _expire(self):
        logger.debug("Time budget elapsed")
        self.cancel()


def _on_interrupt(signum, frame):
    global _interrupted
    logger.info("Interrupted, stopping search")
    _interrupted = True
    for token in list(_interrupt_tokens):
        token.cancel()


def interrupted() -> bool:
    """True once SIGINT has been received; stays set for the whole process."""
    return _interrupted


def cancel_on_interrupt(token: CancellationToken):
    """
    Cancel ``token`` when SIGINT is received.

    A token registered after an interrupt is cancelled right away. The signal
    handler is installed at most once per process; later calls only register
    more tokens. Must be called from the main thread the first time.
    """
    global _interrupt_installed
    with _interrupt_lock:
        if _interrupted:
            token.cancel()
            return
        _interrupt_tokens.append(token)
        if not _interrupt_installed:
            signal.signal(signal.SIGINT, _on_interrupt)
            _interrupt_installed = True


def release_interrupt(token: CancellationToken):
    """Stop tracking ``token`` once its run is over."""
    with _interrupt_lock:
        if token in _interrupt_tokens:
            _interrupt_tokens.remove(token)
