"""
Import notifications.

After a successful commit the coordinator publishes one ImportEvent
(type "insert", count = rows written) followed by one DataChanged signal.
Listeners register with ``ImportEventHub.subscribe`` and receive events
synchronously in subscription order.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from intake_kernel.logging_config import get_logger

logger = get_logger("ingestion.events")


@dataclass(frozen=True)
class ImportEvent:
    type: str
    count: int
    entity_key: str
    batch_id: UUID | None = None


@dataclass(frozen=True)
class DataChanged:
    entity_key: str | None = None


Event = ImportEvent | DataChanged
Listener = Callable[[Event], None]


class ImportEventHub:
    """Observer registry for import notifications."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: Event) -> None:
        """
        Deliver ``event`` to every listener.

        The commit has already happened when this runs, so a failing listener
        is logged and the remaining listeners still receive the event.
        """
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "listener_failed",
                    extra={"event_type": type(event).__name__},
                )

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
