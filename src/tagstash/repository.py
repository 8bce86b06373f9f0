"""Cache repository - generic operations layered on any storage adapter.

The repository owns TTL normalization and event notification:
- get(), many(), has(), pull(): reads, firing hit/missed events
- put(), put_many(), add(), forever(): writes, firing key-written events
- remember(), remember_forever(): read-through helpers
- increment(), decrement(), forget(), flush(): passthroughs
- tags(): tagged views, when the adapter supports them
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from tagstash.adapters.base import (
    AsyncAtomicAddAdapter,
    AsyncStorageAdapter,
    TaggableAdapter,
)
from tagstash.duration import resolve_minutes
from tagstash.errors import UnsupportedOperationError
from tagstash.events import (
    CacheEvent,
    CacheHit,
    CacheMissed,
    EventSink,
    KeyForgotten,
    KeyWritten,
)
from tagstash.serialization import deserialize, serialize, value_of
from tagstash.types import Producer, Ttl

if TYPE_CHECKING:
    from tagstash.tagged_cache import TaggedCache

logger = logging.getLogger(__name__)


class Repository:
    """Async cache repository over a storage adapter."""

    def __init__(
        self,
        store: AsyncStorageAdapter,
        *,
        events: EventSink | None = None,
    ) -> None:
        self._store = store
        self._events = events
        self._background_tasks: set[asyncio.Future[Any]] = set()

    def set_event_dispatcher(self, events: EventSink | None) -> None:
        """Set (or clear) the sink cache events are fired into."""
        self._events = events

    def get_store(self) -> AsyncStorageAdapter:
        """Get the underlying storage adapter."""
        return self._store

    async def has(self, key: str) -> bool:
        """Determine if an item exists in the cache."""
        return (await self.get(key)) is not None

    async def get(self, key: str, default: Producer = None) -> Any:
        """Retrieve an item, or the resolved default on a miss.

        A callable default is invoked (and awaited if needed); its result is
        not cached.
        """
        value = await self._store.get(await self._item_key(key))

        if value is None:
            self._fire_cache_event(CacheMissed(key, self._event_tags()))
            return await value_of(default)

        self._fire_cache_event(CacheHit(key, value, self._event_tags()))
        return value

    async def many(self, keys: Iterable[str]) -> dict[str, Any]:
        """Retrieve multiple items. Misses map to None."""
        keys = list(keys)
        item_keys = [await self._item_key(key) for key in keys]
        found = await self._store.many(item_keys)

        values: dict[str, Any] = {}
        for key, item_key in zip(keys, item_keys):
            value = found.get(item_key)
            if value is None:
                self._fire_cache_event(CacheMissed(key, self._event_tags()))
            else:
                self._fire_cache_event(CacheHit(key, value, self._event_tags()))
            values[key] = value
        return values

    async def pull(self, key: str, default: Producer = None) -> Any:
        """Retrieve an item and delete it. Not atomic against other writers."""
        value = await self.get(key, default)
        await self.forget(key)
        return value

    async def put(self, key: str, value: Any, ttl: Ttl | None = None) -> None:
        """Store an item. None values and non-positive TTLs are ignored."""
        if value is None:
            return

        minutes = self._get_minutes(ttl)
        if minutes is None:
            return

        await self._write(key, value, minutes)
        self._fire_cache_event(KeyWritten(key, value, minutes, self._event_tags()))

    async def put_many(self, values: dict[str, Any], ttl: Ttl | None = None) -> None:
        """Store multiple items under a single TTL."""
        minutes = self._get_minutes(ttl)
        if minutes is None:
            return

        values = {key: value for key, value in values.items() if value is not None}
        if not values:
            return

        await self._write_many(values, minutes)
        for key, value in values.items():
            self._fire_cache_event(KeyWritten(key, value, minutes, self._event_tags()))

    async def add(self, key: str, value: Any, ttl: Ttl | None = None) -> bool:
        """Store an item only if the key is absent.

        Uses the adapter's native add-if-absent when it has one. Otherwise
        this is a get followed by a put, with a race window in between.
        """
        minutes = self._get_minutes(ttl)
        if minutes is None or value is None:
            return False

        if isinstance(self._store, AsyncAtomicAddAdapter):
            added = await self._write_add(key, value, minutes)
            if added:
                self._fire_cache_event(
                    KeyWritten(key, value, minutes, self._event_tags())
                )
            return added

        if (await self.get(key)) is None:
            await self.put(key, value, minutes)
            return True

        return False

    async def increment(self, key: str, value: int = 1) -> int | bool:
        """Increment the value of an item in the cache."""
        return await self._store.increment(await self._item_key(key), value)

    async def decrement(self, key: str, value: int = 1) -> int | bool:
        """Decrement the value of an item in the cache."""
        return await self._store.decrement(await self._item_key(key), value)

    async def forever(self, key: str, value: Any) -> None:
        """Store an item in the cache indefinitely."""
        if value is None:
            return

        await self._write_forever(key, value)
        self._fire_cache_event(KeyWritten(key, value, 0, self._event_tags()))

    async def remember(self, key: str, ttl: Ttl | None, producer: Producer) -> Any:
        """Get an item, or compute, store and return it.

        The returned value on a miss is a serialized copy, so mutating it
        never leaks into what later reads see.
        """
        value = await self.get(key)
        if value is not None:
            return value

        value = await value_of(producer)
        await self.put(key, value, ttl)
        return deserialize(serialize(value))

    async def remember_forever(self, key: str, producer: Producer) -> Any:
        """Get an item, or compute and store it forever."""
        value = await self.get(key)
        if value is not None:
            return value

        value = await value_of(producer)
        await self.forever(key, value)
        return deserialize(serialize(value))

    async def sear(self, key: str, producer: Producer) -> Any:
        """Alias of remember_forever()."""
        return await self.remember_forever(key, producer)

    async def forget(self, key: str) -> bool:
        """Remove an item from the cache."""
        success = await self._store.forget(await self._item_key(key))
        self._fire_cache_event(KeyForgotten(key, self._event_tags()))
        return success

    async def flush(self) -> None:
        """Remove every item owned by the underlying adapter."""
        await self._store.flush()

    def tags(self, names: Iterable[str] | str, *more: str) -> TaggedCache:
        """Begin a tagged cache operation.

        Raises:
            UnsupportedOperationError: If the adapter does not support tagging.
        """
        if isinstance(names, str):
            names = [names, *more]
        else:
            names = [*names, *more]

        if not isinstance(self._store, TaggableAdapter):
            raise UnsupportedOperationError(
                f"{type(self._store).__name__} does not support tagging"
            )

        tagged = self._store.tags(names)
        if self._events is not None:
            tagged.set_event_dispatcher(self._events)
        return tagged

    async def disconnect(self) -> None:
        """Disconnect from the storage backend."""
        await self._store.disconnect()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    async def _item_key(self, key: str) -> str:
        """Format the storage key for a cache item."""
        return key

    async def _write(self, key: str, value: Any, minutes: float) -> None:
        await self._store.put(await self._item_key(key), value, minutes)

    async def _write_many(self, values: dict[str, Any], minutes: float) -> None:
        items = {await self._item_key(key): value for key, value in values.items()}
        await self._store.put_many(items, minutes)

    async def _write_forever(self, key: str, value: Any) -> None:
        await self._store.forever(await self._item_key(key), value)

    async def _write_add(self, key: str, value: Any, minutes: float) -> bool:
        assert isinstance(self._store, AsyncAtomicAddAdapter)
        return await self._store.add(await self._item_key(key), value, minutes)

    def _event_tags(self) -> list[str]:
        """Tag names attached to every event this repository fires."""
        return []

    def _get_minutes(self, ttl: Ttl | None) -> float | None:
        return resolve_minutes(ttl)

    def _fire_cache_event(self, event: CacheEvent) -> None:
        """Fire an event without letting the sink affect the operation."""
        if self._events is None:
            return

        try:
            result = self._events.fire(event.EVENT, event)
        except Exception:
            logger.warning(
                "Cache event listener failed for %s", event.EVENT, exc_info=True
            )
            return

        if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
            task = asyncio.ensure_future(result)
            self._background_tasks.add(task)
            task.add_done_callback(self._on_event_delivered)

    def _on_event_delivered(self, task: asyncio.Future[Any]) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Cache event listener failed", exc_info=error)


def create_cache(
    adapter: AsyncStorageAdapter,
    *,
    events: EventSink | None = None,
) -> Repository:
    """Create a cache repository.

    Args:
        adapter: Storage adapter
        events: Optional sink receiving hit/missed/written/forgotten events

    Returns:
        Repository wrapping the adapter
    """
    return Repository(adapter, events=events)


__all__ = ["Repository", "create_cache"]
