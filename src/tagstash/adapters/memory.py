"""In-memory storage adapter (async only)."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from tagstash.duration import FOREVER_MINUTES, expiration_for
from tagstash.serialization import deserialize, serialize
from tagstash.types import CacheEntry

if TYPE_CHECKING:
    from tagstash.tagged_cache import TaggedCache


class AsyncMemoryAdapter:
    """Async in-memory storage adapter with lazy expiry.

    Expired entries are dropped when a read notices them. There is no lock:
    concurrent increments of one key are a read-modify-write race.
    """

    def __init__(self) -> None:
        self._storage: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Any | None:
        """Get a value by key."""
        entry = self._live_entry(key)
        if entry is None:
            return None
        return deserialize(entry.value)

    async def many(self, keys: list[str]) -> dict[str, Any | None]:
        """Get several values at once."""
        values = await asyncio.gather(*(self.get(key) for key in keys))
        return dict(zip(keys, values))

    async def put(self, key: str, value: Any, minutes: float) -> None:
        """Store a value for the given number of minutes."""
        self._storage[key] = CacheEntry(
            key=key,
            value=serialize(value),
            expires_at=expiration_for(minutes),
        )

    async def put_many(self, values: dict[str, Any], minutes: float) -> None:
        """Store several values for the given number of minutes."""
        await asyncio.gather(
            *(self.put(key, value, minutes) for key, value in values.items())
        )

    async def increment(self, key: str, value: int = 1) -> int | bool:
        """Increment an integer value."""
        return self._increment_or_decrement(key, value)

    async def decrement(self, key: str, value: int = 1) -> int | bool:
        """Decrement an integer value."""
        return self._increment_or_decrement(key, -value)

    async def forever(self, key: str, value: Any) -> None:
        """Store a value for FOREVER_MINUTES."""
        await self.put(key, value, FOREVER_MINUTES)

    async def forget(self, key: str) -> bool:
        """Delete a value."""
        self._storage.pop(key, None)
        return True

    async def flush(self) -> None:
        """Clear all cached entries."""
        self._storage.clear()

    def tags(self, names: Iterable[str]) -> TaggedCache:
        """Begin a tagged operation over the given tag names."""
        from tagstash.tag_set import TagSet
        from tagstash.tagged_cache import TaggedCache

        return TaggedCache(self, TagSet(self, names))

    def get_prefix(self) -> str:
        """Memory keys are never prefixed."""
        return ""

    async def disconnect(self) -> None:
        """Disconnect from the storage backend (no-op for memory)."""
        pass

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._storage.get(key)
        if entry is None:
            return None
        if entry.is_expired(time.time()):
            del self._storage[key]
            return None
        return entry

    def _increment_or_decrement(self, key: str, delta: int) -> int | bool:
        entry = self._live_entry(key)
        if entry is None:
            return False
        try:
            current = int(entry.value)
        except ValueError:
            return False
        new_value = current + delta
        self._storage[key] = replace(entry, value=str(new_value))
        return new_value
