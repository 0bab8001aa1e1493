"""
Bounded outcome channels between provider tasks and the coordinator.

Each race owns two channels (successes, failures). Both share the race's
DeadlineScope condition, so a single wait wakes on a delivery to either
channel or on the scope firing.
"""

import itertools
from collections import deque
from typing import Any, Optional, Tuple

from logging_config import get_logger

logger = get_logger(__name__)


class OutcomeChannel:
    """
    Single-reader bounded buffer with cancellation-checked delivery.

    Writers call offer() from worker threads; the coordinator calls poll()
    while holding scope.condition.
    """

    def __init__(self, scope, capacity: int, name: str, sequence: Optional[itertools.count] = None):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.name = name
        self.capacity = capacity
        self._scope = scope
        self._items = deque()
        self._sequence = sequence if sequence is not None else itertools.count()

    def offer(self, item: Any) -> bool:
        """
        Deliver an item without blocking.

        Returns:
            False if the scope already fired or the buffer is full; the
            item is dropped in that case
        """
        with self._scope.condition:
            if not self._scope.is_live():
                return False
            if len(self._items) >= self.capacity:
                logger.warning(f"Channel '{self.name}' full, dropping item")
                return False
            self._items.append((next(self._sequence), item))
            self._scope.condition.notify_all()
            return True

    def peek_sequence(self) -> Optional[int]:
        """Arrival number of the oldest pending item, or None."""
        with self._scope.condition:
            return self._items[0][0] if self._items else None

    def poll(self) -> Optional[Any]:
        """Remove and return the oldest pending item, or None."""
        with self._scope.condition:
            if not self._items:
                return None
            return self._items.popleft()[1]

    def __len__(self) -> int:
        with self._scope.condition:
            return len(self._items)


def make_channels(scope, capacity: int) -> Tuple[OutcomeChannel, OutcomeChannel]:
    """Create the (successes, failures) pair for one race."""
    sequence = itertools.count()
    return (
        OutcomeChannel(scope, capacity, 'successes', sequence),
        OutcomeChannel(scope, capacity, 'failures', sequence),
    )
