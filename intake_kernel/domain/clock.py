"""
Clock -- injectable time source.

Enrichment falls back to "the current calendar year" when a row carries no
fiscal year, period or posting date. That fallback reads the year from an
injected Clock so that the same batch processed twice under a
DeterministicClock produces identical rows.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Services that need the current time receive a Clock through their
    constructor; pipeline code never calls ``datetime.now()`` directly.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time (timezone-aware)."""
        ...

    def current_year(self) -> int:
        """Get the current calendar year."""
        return self.now().year


class SystemClock(Clock):
    """Production clock that returns actual system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Test clock; ``now()`` always returns the fixed time."""

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )

    def now(self) -> datetime:
        return self._fixed_time
