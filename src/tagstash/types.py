"""Core types for tagstash cache library."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A serialized value held by a backend, with its absolute expiry."""

    key: str
    value: str  # Serialized payload
    expires_at: float  # Unix timestamp, seconds

    def is_expired(self, now: float) -> bool:
        """Check whether the entry has expired at the given instant."""
        return now >= self.expires_at


# Minutes (int/float), "30s"/"5m" strings, a timedelta or an absolute datetime
Ttl = int | float | str | timedelta | datetime

# A plain value, a zero-arg callable, or an awaitable (or a callable returning one)
Producer = Any | Callable[[], Any] | Awaitable[Any]
