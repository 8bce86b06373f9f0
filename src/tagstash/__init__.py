"""tagstash - Tag-versioned caching over interchangeable backends."""

from contextlib import suppress

# Adapters (async only)
from tagstash.adapters import (
    AsyncAtomicAddAdapter,
    AsyncMemoryAdapter,
    AsyncNullAdapter,
    AsyncReferenceTrackingAdapter,
    AsyncStorageAdapter,
    TaggableAdapter,
)

# Duration parsing
from tagstash.duration import FOREVER_MINUTES, parse_duration, resolve_minutes
from tagstash.errors import UnsupportedOperationError

# Events
from tagstash.events import (
    CacheHit,
    CacheMissed,
    EventSink,
    KeyForgotten,
    KeyWritten,
)

# Repository API
from tagstash.repository import Repository, create_cache
from tagstash.serialization import deserialize, serialize, value_of
from tagstash.tag_set import TagSet
from tagstash.tagged_cache import TaggedCache

# Core types
from tagstash.types import CacheEntry, Ttl

# Optional adapter imports - only available when dependencies are installed
with suppress(ImportError):
    from tagstash.adapters import AsyncRedisAdapter

with suppress(ImportError):
    from tagstash.adapters import AsyncDatabaseAdapter

__version__ = "0.1.0"

__all__ = [
    "FOREVER_MINUTES",
    "AsyncAtomicAddAdapter",
    "AsyncDatabaseAdapter",
    "AsyncMemoryAdapter",
    "AsyncNullAdapter",
    "AsyncRedisAdapter",
    "AsyncReferenceTrackingAdapter",
    "AsyncStorageAdapter",
    "CacheEntry",
    "CacheHit",
    "CacheMissed",
    "EventSink",
    "KeyForgotten",
    "KeyWritten",
    "Repository",
    "TagSet",
    "TaggableAdapter",
    "TaggedCache",
    "Ttl",
    "UnsupportedOperationError",
    "create_cache",
    "deserialize",
    "parse_duration",
    "resolve_minutes",
    "serialize",
    "value_of",
]
