"""Tag versioning - the namespace half of tagged invalidation."""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Iterable

from tagstash.adapters.base import AsyncStorageAdapter

logger = logging.getLogger(__name__)

NAMESPACE_SEPARATOR = "|"


class TagSet:
    """An ordered set of tag names and their current version ids.

    Each tag's version id is a random token stored forever under
    ``tag:<name>:key``. The namespace of the set is the ids joined in
    declaration order, so resetting any one tag changes the namespace of
    every set that contains it.
    """

    def __init__(self, store: AsyncStorageAdapter, names: Iterable[str] = ()) -> None:
        self._store = store
        self._names = list(names)

    async def reset(self) -> None:
        """Reset all tags in the set."""
        for name in self._names:
            await self.reset_tag(name)

    async def tag_id(self, name: str) -> str:
        """Get the version id for a tag, creating one if it has none yet.

        Two concurrent first lookups may both create an id; the last write
        wins and entries written under the losing id become unreachable.
        """
        tag_id = await self._store.get(self.tag_key(name))
        return tag_id or await self.reset_tag(name)

    async def tag_ids(self) -> list[str]:
        """Get the version ids for every tag, in declaration order."""
        return list(await asyncio.gather(*(self.tag_id(name) for name in self._names)))

    async def get_namespace(self) -> str:
        """Get a namespace that changes whenever any tag in the set is reset."""
        return NAMESPACE_SEPARATOR.join(await self.tag_ids())

    async def reset_tag(self, name: str) -> str:
        """Replace a tag's version id with a fresh one and return it."""
        tag_id = secrets.token_hex(8)
        await self._store.forever(self.tag_key(name), tag_id)
        logger.debug("Reset tag %s to version %s", name, tag_id)
        return tag_id

    def tag_key(self, name: str) -> str:
        """Get the storage key holding a tag's version id."""
        return f"tag:{name}:key"

    def get_names(self) -> list[str]:
        """Get all of the tag names in the set."""
        return list(self._names)
