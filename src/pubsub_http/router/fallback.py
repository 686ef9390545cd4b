"""
Remembered fallback host.

After a request only succeeds on a fallback host, that host is preferred for
subsequent requests until its record expires.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class FallbackRecord:
    """A fallback host and the clock time (seconds) it stays preferred until."""

    host: str
    valid_until: float

    def is_valid(self, now: float) -> bool:
        """Check if the record has not yet expired."""
        return now < self.valid_until


class FallbackState:
    """
    Holds at most one FallbackRecord for a client.

    Not synchronized; concurrent requests may race on it, which at worst
    costs one extra probe of a fallback host.
    """

    def __init__(self, clock: Clock = time.monotonic):
        self._clock = clock
        self._record: FallbackRecord | None = None

    def now(self) -> float:
        return self._clock()

    def get(self) -> FallbackRecord | None:
        """
        Get the current record.

        Returns:
            The record, or None if absent or expired (an expired record is
            dropped)
        """
        record = self._record
        if record is None:
            return None
        if not record.is_valid(self.now()):
            logger.info(f"Fallback host {record.host} expired")
            self._record = None
            return None
        return record

    def set(self, host: str, ttl_ms: float) -> FallbackRecord:
        """
        Prefer a host for the next ttl_ms milliseconds.

        Raises:
            ValueError: If ttl_ms is not positive
        """
        if ttl_ms <= 0:
            raise ValueError(f"ttl_ms must be positive, got {ttl_ms}")
        record = FallbackRecord(host=host, valid_until=self.now() + ttl_ms / 1000)
        self._record = record
        logger.info(f"Using fallback host {host} for the next {ttl_ms / 1000:.0f}s")
        return record

    def clear(self) -> None:
        """Forget the current record."""
        if self._record is not None:
            logger.info(f"Cleared fallback host {self._record.host}")
        self._record = None
