"""Cache event payloads and the sink they are delivered to."""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class CacheHit:
    """A key was found in the cache."""

    EVENT: ClassVar[str] = "cache.hit"

    key: str
    value: Any
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class CacheMissed:
    """A key was not found in the cache."""

    EVENT: ClassVar[str] = "cache.missed"

    key: str
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class KeyWritten:
    """A key was written. minutes == 0 means it was stored forever."""

    EVENT: ClassVar[str] = "cache.key_written"

    key: str
    value: Any
    minutes: float
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class KeyForgotten:
    """A key was removed."""

    EVENT: ClassVar[str] = "cache.key_forgotten"

    key: str
    tags: list[str] = field(default_factory=list)


CacheEvent = CacheHit | CacheMissed | KeyWritten | KeyForgotten


@runtime_checkable
class EventSink(Protocol):
    """Receives cache events. May return an awaitable; it is not awaited inline."""

    def fire(self, event: str, payload: CacheEvent) -> Any:
        """Deliver one event."""
        ...
