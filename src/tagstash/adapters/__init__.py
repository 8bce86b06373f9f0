"""Storage adapters for tagstash cache library (async only)."""

from contextlib import suppress

from tagstash.adapters.base import (
    AsyncAtomicAddAdapter,
    AsyncReferenceTrackingAdapter,
    AsyncStorageAdapter,
    TaggableAdapter,
)
from tagstash.adapters.memory import AsyncMemoryAdapter
from tagstash.adapters.null import AsyncNullAdapter

# Optional adapters - only available when dependencies are installed
with suppress(ImportError):
    from tagstash.adapters.redis import AsyncRedisAdapter

with suppress(ImportError):
    from tagstash.adapters.database import AsyncDatabaseAdapter

__all__ = [
    "AsyncAtomicAddAdapter",
    "AsyncDatabaseAdapter",
    "AsyncMemoryAdapter",
    "AsyncNullAdapter",
    "AsyncRedisAdapter",
    "AsyncReferenceTrackingAdapter",
    "AsyncStorageAdapter",
    "TaggableAdapter",
]
