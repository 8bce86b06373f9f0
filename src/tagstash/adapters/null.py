"""Null storage adapter - caching disabled."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tagstash.tagged_cache import TaggedCache


class AsyncNullAdapter:
    """Accepts every write and forgets it; every read misses."""

    async def get(self, key: str) -> Any | None:
        """Always miss."""
        return None

    async def many(self, keys: list[str]) -> dict[str, Any | None]:
        """Miss every key."""
        return dict.fromkeys(keys)

    async def put(self, key: str, value: Any, minutes: float) -> None:
        """Discard the value."""

    async def put_many(self, values: dict[str, Any], minutes: float) -> None:
        """Discard the values."""

    async def increment(self, key: str, value: int = 1) -> int | bool:
        """Nothing to increment."""
        return False

    async def decrement(self, key: str, value: int = 1) -> int | bool:
        """Nothing to decrement."""
        return False

    async def forever(self, key: str, value: Any) -> None:
        """Discard the value."""

    async def forget(self, key: str) -> bool:
        """Report success; there is nothing to delete."""
        return True

    async def flush(self) -> None:
        """Nothing to flush."""

    def tags(self, names: Iterable[str]) -> TaggedCache:
        """Begin a tagged operation over the given tag names."""
        from tagstash.tag_set import TagSet
        from tagstash.tagged_cache import TaggedCache

        return TaggedCache(self, TagSet(self, names))

    def get_prefix(self) -> str:
        """No prefix is used."""
        return ""

    async def disconnect(self) -> None:
        """Nothing to close."""
