"""Integration tests for the Redis adapter using testcontainers."""

import pytest

# Skip all tests if redis or testcontainers are not installed
pytest.importorskip("redis")
pytest.importorskip("testcontainers")

import asyncio  # noqa: E402

import redis  # noqa: E402
import redis.asyncio  # noqa: E402
from testcontainers.redis import RedisContainer  # noqa: E402

from tagstash import (  # noqa: E402
    AsyncAtomicAddAdapter,
    AsyncReferenceTrackingAdapter,
    Repository,
    TaggableAdapter,
)
from tagstash.adapters.redis import AsyncRedisAdapter  # noqa: E402
from tagstash.tagged_cache import REFERENCE_KEY_STANDARD  # noqa: E402


@pytest.fixture(scope="module")
def redis_container():
    """Start a Redis container for the test module."""
    with RedisContainer() as container:
        yield container


@pytest.fixture
def redis_client(redis_container):
    """Create a sync Redis client for inspecting raw state."""
    client = redis.Redis(
        host=redis_container.get_container_host_ip(),
        port=redis_container.get_exposed_port(6379),
        decode_responses=False,
    )
    yield client
    client.flushdb()
    client.close()


@pytest.fixture
def async_redis_client(redis_container, redis_client):
    """Create an async Redis client."""
    return redis.asyncio.Redis(
        host=redis_container.get_container_host_ip(),
        port=redis_container.get_exposed_port(6379),
        decode_responses=False,
    )


@pytest.fixture
def redis_adapter(async_redis_client) -> AsyncRedisAdapter:
    """Create an AsyncRedisAdapter with a test prefix."""
    return AsyncRedisAdapter(async_redis_client, prefix="test")


class TestAsyncRedisAdapter:
    """Integration tests for AsyncRedisAdapter."""

    def test_capabilities(self, redis_adapter: AsyncRedisAdapter) -> None:
        assert isinstance(redis_adapter, TaggableAdapter)
        assert isinstance(redis_adapter, AsyncAtomicAddAdapter)
        assert isinstance(redis_adapter, AsyncReferenceTrackingAdapter)

    async def test_get_nonexistent_returns_none(
        self, redis_adapter: AsyncRedisAdapter
    ) -> None:
        """Test that getting a nonexistent key returns None."""
        assert await redis_adapter.get("nonexistent") is None

    async def test_put_and_get(self, redis_adapter: AsyncRedisAdapter, redis_client) -> None:
        """Test setting and getting a value."""
        await redis_adapter.put("key1", {"id": "456", "name": "Async Test"}, 1)
        assert await redis_adapter.get("key1") == {"id": "456", "name": "Async Test"}
        assert 0 < redis_client.ttl("test:key1") <= 60

    async def test_zero_minutes_rounds_up(
        self, redis_adapter: AsyncRedisAdapter, redis_client
    ) -> None:
        await redis_adapter.put("key1", "value", 0)
        assert redis_client.ttl("test:key1") == 1

    async def test_many_and_put_many(self, redis_adapter: AsyncRedisAdapter) -> None:
        await redis_adapter.put_many({"a": 1, "b": [2]}, 1)
        assert await redis_adapter.many(["a", "b", "c"]) == {"a": 1, "b": [2], "c": None}
        assert await redis_adapter.many([]) == {}

    async def test_add(self, redis_adapter: AsyncRedisAdapter) -> None:
        assert await redis_adapter.add("key1", "first", 1) is True
        assert await redis_adapter.add("key1", "second", 1) is False
        assert await redis_adapter.get("key1") == "first"

    async def test_increment_decrement(self, redis_adapter: AsyncRedisAdapter) -> None:
        await redis_adapter.put("count", 10, 1)
        assert await redis_adapter.increment("count", 5) == 15
        assert await redis_adapter.decrement("count", 20) == -5
        assert await redis_adapter.get("count") == -5

    async def test_increment_missing_does_not_create(
        self, redis_adapter: AsyncRedisAdapter, redis_client
    ) -> None:
        assert await redis_adapter.increment("missing") is False
        assert redis_client.exists("test:missing") == 0

    async def test_increment_non_numeric_is_false(
        self, redis_adapter: AsyncRedisAdapter
    ) -> None:
        await redis_adapter.put("name", "alice", 1)
        assert await redis_adapter.increment("name") is False
        assert await redis_adapter.decrement("name") is False
        assert await redis_adapter.get("name") == "alice"

    async def test_forever_has_no_expiry(
        self, redis_adapter: AsyncRedisAdapter, redis_client
    ) -> None:
        await redis_adapter.forever("key1", "value")
        assert redis_client.ttl("test:key1") == -1

    async def test_forget(self, redis_adapter: AsyncRedisAdapter) -> None:
        """Test deleting a value."""
        await redis_adapter.put("key1", "value", 1)
        assert await redis_adapter.forget("key1") is True
        assert await redis_adapter.get("key1") is None
        assert await redis_adapter.forget("key1") is True

    async def test_flush_is_scoped_to_prefix(
        self, redis_adapter: AsyncRedisAdapter, redis_client
    ) -> None:
        """Test that flush only removes this adapter's keys."""
        redis_client.set("unrelated", "keep")
        await redis_adapter.put("key1", "value", 1)
        await redis_adapter.forever("key2", "value")

        await redis_adapter.flush()

        assert await redis_adapter.get("key1") is None
        assert await redis_adapter.get("key2") is None
        assert redis_client.get("unrelated") == b"keep"

    async def test_references(self, redis_adapter: AsyncRedisAdapter) -> None:
        await redis_adapter.add_reference("seg:standard_ref", "abc:key1")
        await redis_adapter.add_reference("seg:standard_ref", "abc:key2")
        assert await redis_adapter.references("seg:standard_ref") == {
            "abc:key1",
            "abc:key2",
        }

    async def test_ttl_expiration(self, redis_adapter: AsyncRedisAdapter) -> None:
        """Test that entries expire based on TTL."""
        await redis_adapter.put("expiring_key", "value", 0)  # one second

        # Should exist immediately
        assert await redis_adapter.get("expiring_key") == "value"

        # Wait for expiration
        await asyncio.sleep(1.2)

        # Should be gone
        assert await redis_adapter.get("expiring_key") is None


class TestRedisTaggedCache:
    """Tagged caches on Redis flush eagerly through reference sets."""

    async def test_flush_one_tag(self, redis_adapter: AsyncRedisAdapter) -> None:
        cache = Repository(redis_adapter)
        await cache.tags(["people", "programmer"]).put("Hany", "Hany", 1)
        await cache.tags(["people", "artist"]).put("Hamza", "Hamza", 1)

        await cache.tags(["artist"]).flush()

        assert await cache.tags(["people", "artist"]).get("Hamza") is None
        assert await cache.tags(["people", "programmer"]).get("Hany") == "Hany"

    async def test_flush_shared_tag(self, redis_adapter: AsyncRedisAdapter) -> None:
        cache = Repository(redis_adapter)
        await cache.tags(["people", "programmer"]).put("Hany", "Hany", 1)
        await cache.tags(["people", "artist"]).put("Hamza", "Hamza", 1)

        await cache.tags(["people"]).flush()

        assert await cache.tags(["people", "artist"]).get("Hamza") is None
        assert await cache.tags(["people", "programmer"]).get("Hany") is None

    async def test_flush_deletes_physical_keys(
        self, redis_adapter: AsyncRedisAdapter, redis_client
    ) -> None:
        cache = Repository(redis_adapter)
        tagged = cache.tags(["people", "artist"])
        await tagged.put("Hamza", "Hamza", 1)
        physical = await tagged.tagged_item_key("Hamza")
        artist_id = await tagged.get_tags().tag_id("artist")

        reference = f"test:{artist_id}:{REFERENCE_KEY_STANDARD}"
        assert redis_client.smembers(reference) == {physical.encode()}

        await cache.tags(["artist"]).flush()

        assert redis_client.exists(f"test:{physical}") == 0
        assert redis_client.exists(reference) == 0

    async def test_tagged_add_is_native(
        self, redis_adapter: AsyncRedisAdapter, redis_client
    ) -> None:
        tagged = Repository(redis_adapter).tags(["people"])
        assert await tagged.add("Hany", "first", 1) is True
        assert await tagged.add("Hany", "second", 1) is False
        assert await tagged.get("Hany") == "first"

        physical = await tagged.tagged_item_key("Hany")
        assert redis_client.exists(f"test:{physical}") == 1

        await tagged.flush()
        assert redis_client.exists(f"test:{physical}") == 0


class FailingEvalClient:
    """Stand-in client whose script calls fail with a fixed server error."""

    def __init__(self, message: str) -> None:
        self.message = message

    async def eval(self, *args):
        raise redis.exceptions.ResponseError(self.message)


class TestIncrementErrors:
    """Only type errors from the counter script are reported as False."""

    async def test_wrong_type_is_false(
        self, redis_adapter: AsyncRedisAdapter, redis_client
    ) -> None:
        redis_client.sadd("test:members", "a")
        assert await redis_adapter.increment("members") is False

    async def test_not_an_integer_is_false(self) -> None:
        adapter = AsyncRedisAdapter(
            FailingEvalClient("ERR value is not an integer or out of range")
        )
        assert await adapter.increment("count") is False

    async def test_server_faults_propagate(self) -> None:
        adapter = AsyncRedisAdapter(
            FailingEvalClient("OOM command not allowed when used memory > 'maxmemory'.")
        )
        with pytest.raises(redis.exceptions.ResponseError, match="OOM"):
            await adapter.decrement("count")
