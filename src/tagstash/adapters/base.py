"""Base adapter protocols for storage backends."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from tagstash.tagged_cache import TaggedCache


@runtime_checkable
class AsyncStorageAdapter(Protocol):
    """Async storage adapter interface.

    Values go in as Python objects and come back deserialized. Durations are
    in minutes; callers filter out non-positive ones before they get here.
    """

    async def get(self, key: str) -> Any | None:
        """Get a value by key, None if absent or expired."""
        ...

    async def many(self, keys: list[str]) -> dict[str, Any | None]:
        """Get several values at once, None for each miss."""
        ...

    async def put(self, key: str, value: Any, minutes: float) -> None:
        """Store a value for the given number of minutes."""
        ...

    async def put_many(self, values: dict[str, Any], minutes: float) -> None:
        """Store several values for the given number of minutes."""
        ...

    async def increment(self, key: str, value: int = 1) -> int | bool:
        """Increment an integer value. False if absent or not an integer."""
        ...

    async def decrement(self, key: str, value: int = 1) -> int | bool:
        """Decrement an integer value. False if absent or not an integer."""
        ...

    async def forever(self, key: str, value: Any) -> None:
        """Store a value without a meaningful expiry."""
        ...

    async def forget(self, key: str) -> bool:
        """Delete a value. Always True."""
        ...

    async def flush(self) -> None:
        """Remove every key owned by this adapter."""
        ...

    def get_prefix(self) -> str:
        """Get the key prefix applied by this adapter."""
        ...

    async def disconnect(self) -> None:
        """Disconnect from the storage backend."""
        ...


@runtime_checkable
class TaggableAdapter(Protocol):
    """Optional mixin for adapters that support tagged cache views."""

    def tags(self, names: Iterable[str]) -> TaggedCache:
        """Begin a tagged operation over the given tag names."""
        ...


@runtime_checkable
class AsyncAtomicAddAdapter(Protocol):
    """Optional mixin for adapters with a native add-if-absent."""

    async def add(self, key: str, value: Any, minutes: float) -> bool:
        """Store a value only if the key is absent."""
        ...


@runtime_checkable
class AsyncReferenceTrackingAdapter(Protocol):
    """Optional mixin for adapters offering deletable named sets of keys."""

    async def add_reference(self, reference_key: str, key: str) -> None:
        """Record key in the set stored at reference_key."""
        ...

    async def references(self, reference_key: str) -> set[str]:
        """Get every key recorded in the set at reference_key."""
        ...

    async def forget_many(self, keys: Iterable[str]) -> None:
        """Delete several keys (values or reference sets) at once."""
        ...
