"""Redis storage adapter."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from redis.exceptions import ResponseError

from tagstash.duration import ttl_seconds
from tagstash.serialization import deserialize, serialize

if TYPE_CHECKING:
    from tagstash.tagged_cache import TaggedCache

logger = logging.getLogger(__name__)

# INCRBY on an absent key would create it; only touch keys that exist.
_INCREMENT_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return false
end
return redis.call('INCRBY', KEYS[1], ARGV[1])
"""


class AsyncRedisAdapter:
    """Async Redis storage adapter.

    Uses native key expiry, native counters and native sets, so tagged
    caches on this adapter track references and flush eagerly.
    """

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        *,
        prefix: str = "",
    ) -> None:
        self._client = client
        self._prefix = f"{prefix}:" if prefix else ""

    def _key(self, key: str) -> str:
        """Generate full Redis key."""
        return self._prefix + key

    async def get(self, key: str) -> Any | None:
        """Get a value by key."""
        return deserialize(await self._client.get(self._key(key)))

    async def many(self, keys: list[str]) -> dict[str, Any | None]:
        """Get several values with a single MGET."""
        if not keys:
            return {}
        values = await self._client.mget([self._key(key) for key in keys])
        return {key: deserialize(value) for key, value in zip(keys, values)}

    async def put(self, key: str, value: Any, minutes: float) -> None:
        """Store a value with automatic expiration."""
        await self._client.setex(self._key(key), ttl_seconds(minutes), serialize(value))

    async def put_many(self, values: dict[str, Any], minutes: float) -> None:
        """Store several values in one non-transactional pipeline."""
        seconds = ttl_seconds(minutes)
        async with self._client.pipeline(transaction=False) as pipe:
            for key, value in values.items():
                pipe.setex(self._key(key), seconds, serialize(value))
            await pipe.execute()

    async def add(self, key: str, value: Any, minutes: float) -> bool:
        """Store a value only if the key is absent (SET NX)."""
        result = await self._client.set(
            self._key(key), serialize(value), ex=ttl_seconds(minutes), nx=True
        )
        return bool(result)

    async def increment(self, key: str, value: int = 1) -> int | bool:
        """Increment an integer value atomically."""
        return await self._increment_by(key, value)

    async def decrement(self, key: str, value: int = 1) -> int | bool:
        """Decrement an integer value atomically."""
        return await self._increment_by(key, -value)

    async def forever(self, key: str, value: Any) -> None:
        """Store a value without expiration."""
        await self._client.set(self._key(key), serialize(value))

    async def forget(self, key: str) -> bool:
        """Delete a value."""
        await self._client.delete(self._key(key))
        return True

    async def forget_many(self, keys: Iterable[str]) -> None:
        """Delete several keys in one command."""
        full_keys = [self._key(key) for key in keys]
        if full_keys:
            await self._client.delete(*full_keys)

    async def add_reference(self, reference_key: str, key: str) -> None:
        """Record key in the set stored at reference_key."""
        await self._client.sadd(self._key(reference_key), key)

    async def references(self, reference_key: str) -> set[str]:
        """Get every key recorded in the set at reference_key."""
        members = await self._client.smembers(self._key(reference_key))
        return {
            member.decode("utf-8") if isinstance(member, bytes) else member
            for member in members
        }

    async def flush(self) -> None:
        """Delete every key under this adapter's prefix (the whole db if none)."""
        if not self._prefix:
            await self._client.flushdb()
            return

        # Use SCAN to find and delete all prefixed keys
        cursor: int = 0
        pattern = f"{self._prefix}*"
        while True:
            result = await self._client.scan(cursor, match=pattern, count=100)
            cursor = result[0]
            keys = result[1]
            if keys:
                await self._client.delete(*keys)
            if cursor == 0:
                break

    def tags(self, names: Iterable[str]) -> TaggedCache:
        """Begin a tagged operation over the given tag names."""
        from tagstash.tag_set import TagSet
        from tagstash.tagged_cache import TaggedCache

        return TaggedCache(self, TagSet(self, names))

    def get_prefix(self) -> str:
        """Get the key prefix applied to every key."""
        return self._prefix

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()

    async def _increment_by(self, key: str, delta: int) -> int | bool:
        try:
            result = await self._client.eval(
                _INCREMENT_SCRIPT, 1, self._key(key), delta
            )
        except ResponseError as error:
            message = str(error)
            if "not an integer" not in message and not message.startswith(
                "WRONGTYPE"
            ):
                raise
            logger.debug("Value at %s is not an integer", key, exc_info=True)
            return False
        if result is None:
            return False
        return int(result)
