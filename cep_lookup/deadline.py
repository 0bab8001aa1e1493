"""
Deadline controller for a single race.

A DeadlineScope is created once per race and handed to every provider
task and to the coordinator. It moves from live to expired/cancelled
exactly once. The shared condition lets waiters on the outcome channels
wake up the moment the scope fires.
"""

import math
import threading
import time
from typing import Optional

from logging_config import get_logger

logger = get_logger(__name__)


class DeadlineScope:
    """
    Shared "time remaining / cancel now" token for one race.

    Usage:
        with create_scope(1.0) as scope:
            ...  # scope is cancelled on every exit path
    """

    def __init__(self, timeout: float):
        if timeout is None or not math.isfinite(timeout) or timeout <= 0:
            raise ValueError(f"timeout must be a positive number, got {timeout!r}")

        self.timeout = timeout
        self.condition = threading.Condition()
        self._deadline = time.monotonic() + timeout
        self._fired = threading.Event()
        self._reason: Optional[str] = None

        self._timer = threading.Timer(timeout, self._expire)
        self._timer.daemon = True
        self._timer.start()

    @property
    def reason(self) -> Optional[str]:
        """'deadline', the cancel reason, or None while live."""
        return self._reason

    def is_live(self) -> bool:
        """True until the deadline passes or cancel() is called."""
        if self._fired.is_set():
            return False
        if time.monotonic() >= self._deadline:
            # Timer thread may not have run yet
            self._fire('deadline')
            return False
        return True

    def remaining(self) -> float:
        """Seconds left before the deadline, 0.0 once fired."""
        if not self.is_live():
            return 0.0
        return max(0.0, self._deadline - time.monotonic())

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the scope expires or is cancelled.

        Returns:
            True if the scope fired, False if `timeout` elapsed first
        """
        if timeout is None:
            timeout = self.remaining()
        fired = self._fired.wait(timeout)
        return fired or not self.is_live()

    def cancel(self, reason: str = 'cancelled') -> bool:
        """
        Fire the scope. Irreversible; later calls are no-ops.

        Returns:
            True if this call fired the scope
        """
        self._timer.cancel()
        return self._fire(reason)

    def _expire(self):
        self._fire('deadline')

    def _fire(self, reason: str) -> bool:
        with self.condition:
            if self._fired.is_set():
                return False
            self._reason = reason
            self._fired.set()
            self.condition.notify_all()

        logger.debug("Scope fired", extra={"reason": reason})
        return True

    def __enter__(self) -> 'DeadlineScope':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cancel()
        return False

    def __repr__(self) -> str:
        state = 'live' if self.is_live() else f'fired:{self._reason}'
        return f"<DeadlineScope timeout={self.timeout} {state}>"


def create_scope(timeout: float) -> DeadlineScope:
    """Create a fresh scope that fires after `timeout` seconds."""
    return DeadlineScope(timeout)
