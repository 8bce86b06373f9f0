"""Tagged cache - a repository whose keys live inside a tag namespace."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from tagstash.adapters.base import (
    AsyncAtomicAddAdapter,
    AsyncReferenceTrackingAdapter,
    AsyncStorageAdapter,
)
from tagstash.events import EventSink
from tagstash.repository import Repository
from tagstash.tag_set import NAMESPACE_SEPARATOR, TagSet

logger = logging.getLogger(__name__)

REFERENCE_KEY_FOREVER = "forever_ref"
REFERENCE_KEY_STANDARD = "standard_ref"


class TaggedCache(Repository):
    """Repository view scoped to a set of tags.

    Item keys are prefixed with a hash of the tag namespace, so flushing the
    view only has to reset its tags. Adapters that can track references also
    get the old entries deleted eagerly on flush.
    """

    def __init__(
        self,
        store: AsyncStorageAdapter,
        tags: TagSet,
        *,
        events: EventSink | None = None,
    ) -> None:
        super().__init__(store, events=events)
        self._tags = tags

    def get_tags(self) -> TagSet:
        """Get the tag set scoping this view."""
        return self._tags

    async def flush(self) -> None:
        """Invalidate every item stored under this view's tags."""
        if isinstance(self._store, AsyncReferenceTrackingAdapter):
            namespace = await self._tags.get_namespace()
            await self._delete_keys_by_reference(namespace, REFERENCE_KEY_FOREVER)
            await self._delete_keys_by_reference(namespace, REFERENCE_KEY_STANDARD)

        await self._tags.reset()

    async def tagged_item_key(self, key: str) -> str:
        """Get the fully qualified storage key for a tagged item."""
        return self._namespaced_key(await self._tags.get_namespace(), key)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    async def _item_key(self, key: str) -> str:
        return await self.tagged_item_key(key)

    def _event_tags(self) -> list[str]:
        return self._tags.get_names()

    async def _write(self, key: str, value: Any, minutes: float) -> None:
        namespace = await self._tags.get_namespace()
        item_key = self._namespaced_key(namespace, key)
        await self._push_keys(namespace, item_key, REFERENCE_KEY_STANDARD)
        await self._store.put(item_key, value, minutes)

    async def _write_many(self, values: dict[str, Any], minutes: float) -> None:
        namespace = await self._tags.get_namespace()
        items: dict[str, Any] = {}
        for key, value in values.items():
            item_key = self._namespaced_key(namespace, key)
            await self._push_keys(namespace, item_key, REFERENCE_KEY_STANDARD)
            items[item_key] = value
        await self._store.put_many(items, minutes)

    async def _write_forever(self, key: str, value: Any) -> None:
        namespace = await self._tags.get_namespace()
        item_key = self._namespaced_key(namespace, key)
        await self._push_keys(namespace, item_key, REFERENCE_KEY_FOREVER)
        await self._store.forever(item_key, value)

    async def _write_add(self, key: str, value: Any, minutes: float) -> bool:
        assert isinstance(self._store, AsyncAtomicAddAdapter)
        namespace = await self._tags.get_namespace()
        item_key = self._namespaced_key(namespace, key)
        await self._push_keys(namespace, item_key, REFERENCE_KEY_STANDARD)
        return await self._store.add(item_key, value, minutes)

    def _namespaced_key(self, namespace: str, key: str) -> str:
        digest = hashlib.sha1(namespace.encode("utf-8")).hexdigest()
        return f"{digest}:{key}"

    async def _push_keys(self, namespace: str, item_key: str, reference: str) -> None:
        """Record item_key against every tag segment of the namespace."""
        if not isinstance(self._store, AsyncReferenceTrackingAdapter):
            return
        for segment in namespace.split(NAMESPACE_SEPARATOR):
            reference_key = _reference_key(segment, reference)
            await self._store.add_reference(reference_key, item_key)

    async def _delete_keys_by_reference(self, namespace: str, reference: str) -> None:
        """Delete every item recorded against a reference, then the reference."""
        assert isinstance(self._store, AsyncReferenceTrackingAdapter)
        for segment in namespace.split(NAMESPACE_SEPARATOR):
            reference_key = _reference_key(segment, reference)
            keys = await self._store.references(reference_key)
            if keys:
                await self._store.forget_many(keys)
            await self._store.forget_many([reference_key])
            logger.debug("Flushed %d keys referenced by %s", len(keys), reference_key)


def _reference_key(segment: str, reference: str) -> str:
    return f"{segment}:{reference}"


__all__ = [
    "REFERENCE_KEY_FOREVER",
    "REFERENCE_KEY_STANDARD",
    "TaggedCache",
]
