"""
Event Buffer
============

Thread-safe drain-on-read buffer for upstream events.

This module provides the EventBuffer class, which is the only interface
between the StreamClient (producer) and the poll endpoint (consumer).

Design Rules:
    - Unbounded (nothing is ever dropped, only drained)
    - append() and drain_all() share a single lock
    - Payloads are opaque: never decoded, parsed or copied
    - Exposes minimal metrics for observability
"""

import logging
import threading
from typing import Any, List


logger = logging.getLogger(__name__)


class EventBuffer:
    """
    Ordered buffer of opaque payloads with atomic drain.

    A single lock guards the underlying list, so a payload appended
    while a drain is in progress ends up either in that drain's result
    or in the next one, never both and never neither.

    The buffer has no size bound. A consumer that never polls causes
    unbounded memory growth; crossing high_water_mark only logs a
    warning.

    Attributes:
        high_water_mark: Size at which a warning is logged (0 = disabled)

    Example:
        buffer = EventBuffer()

        # Producer
        buffer.append('{"event": "chat"}')

        # Consumer
        events = buffer.drain_all()
    """

    def __init__(self, high_water_mark: int = 10_000) -> None:
        """
        Initialize event buffer.

        Args:
            high_water_mark: Buffered size that triggers a warning.
                Must be >= 0; 0 disables the warning.
        """
        if high_water_mark < 0:
            raise ValueError("high_water_mark must be >= 0")

        self._high_water_mark = high_water_mark
        self._lock = threading.Lock()
        self._events: List[Any] = []
        self._total_appended: int = 0
        self._total_drained: int = 0
        self._drain_count: int = 0
        self._above_high_water: bool = False

    @property
    def high_water_mark(self) -> int:
        """Size at which a warning is logged."""
        return self._high_water_mark

    @property
    def size(self) -> int:
        """Current number of buffered events."""
        with self._lock:
            return len(self._events)

    def append(self, payload: Any) -> None:
        """
        Add payload to the tail of the buffer.

        Args:
            payload: Opaque event content, stored as-is
        """
        with self._lock:
            self._events.append(payload)
            self._total_appended += 1
            size = len(self._events)
            crossed = (
                self._high_water_mark > 0
                and size >= self._high_water_mark
                and not self._above_high_water
            )
            if crossed:
                self._above_high_water = True

        if crossed:
            logger.warning(
                f"Event buffer reached {size} events "
                f"(high water mark {self._high_water_mark}); "
                f"is the consumer polling?"
            )

    def drain_all(self) -> List[Any]:
        """
        Return all buffered events and reset the buffer to empty.

        Returns:
            Buffered payloads in arrival order (empty list if none).
        """
        with self._lock:
            drained = self._events
            self._events = []
            self._total_drained += len(drained)
            self._drain_count += 1
            self._above_high_water = False

        if drained:
            logger.debug(f"Drained {len(drained)} events")
        return drained

    def metrics(self) -> dict:
        """
        Get buffer metrics for observability.

        Returns:
            Dict with size, total_appended, total_drained,
            drain_count, high_water_mark
        """
        with self._lock:
            return {
                "size": len(self._events),
                "total_appended": self._total_appended,
                "total_drained": self._total_drained,
                "drain_count": self._drain_count,
                "high_water_mark": self._high_water_mark,
            }
