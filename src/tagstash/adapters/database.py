"""Table-backed storage adapter on SQLite (aiosqlite)."""

from __future__ import annotations

import asyncio
import logging
import random
import sqlite3
import time
from typing import Any

import aiosqlite

from tagstash.duration import FOREVER_MINUTES, expiration_for
from tagstash.serialization import deserialize, serialize

logger = logging.getLogger(__name__)

# Garbage collection probability is expressed in parts per million.
GC_PROBABILITY_SCALE = 1_000_000


class AsyncDatabaseAdapter:
    """Async storage adapter over a ``(key, value, expiration)`` table.

    The table itself is created by the application, e.g.::

        CREATE TABLE cache (
            key TEXT NOT NULL UNIQUE,
            value TEXT NOT NULL,
            expiration INTEGER NOT NULL
        )

    Every successful put sweeps expired rows with probability
    ``gc_probability / 1_000_000``; 0 disables the sweep.
    """

    def __init__(
        self,
        connection: aiosqlite.Connection,
        *,
        table: str = "cache",
        prefix: str = "",
        gc_probability: int = 100,
    ) -> None:
        if not 0 <= gc_probability <= GC_PROBABILITY_SCALE:
            raise ValueError(
                f"gc_probability must be between 0 and {GC_PROBABILITY_SCALE}"
            )
        self._connection = connection
        self._table = table
        self._prefix = f"{prefix}:" if prefix else ""
        self._gc_probability = gc_probability
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Any | None:
        """Get a value by key, deleting the row if it has expired."""
        async with self._connection.execute(
            f"SELECT value, expiration FROM {self._table} WHERE key = ?",
            (self._prefix + key,),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None

        if time.time() >= row[1]:
            await self.forget(key)
            return None

        return deserialize(row[0])

    async def many(self, keys: list[str]) -> dict[str, Any | None]:
        """Get several values at once."""
        values = await asyncio.gather(*(self.get(key) for key in keys))
        return dict(zip(keys, values))

    async def put(self, key: str, value: Any, minutes: float) -> None:
        """Insert the row, or update it when the key already exists."""
        prefixed_key = self._prefix + key
        payload = serialize(value)
        expiration = expiration_for(minutes)

        async with self._lock:
            try:
                try:
                    await self._connection.execute(
                        f"INSERT INTO {self._table} (key, value, expiration)"
                        " VALUES (?, ?, ?)",
                        (prefixed_key, payload, expiration),
                    )
                except sqlite3.IntegrityError:
                    await self._connection.execute(
                        f"UPDATE {self._table} SET value = ?, expiration = ?"
                        " WHERE key = ?",
                        (payload, expiration, prefixed_key),
                    )
                await self._connection.commit()
            except BaseException:
                await self._connection.rollback()
                raise

        await self.collect_garbage()

    async def put_many(self, values: dict[str, Any], minutes: float) -> None:
        """Store several values, one row at a time."""
        await asyncio.gather(
            *(self.put(key, value, minutes) for key, value in values.items())
        )

    async def increment(self, key: str, value: int = 1) -> int | bool:
        """Increment an integer value under the database write lock."""
        return await self._increment_or_decrement(key, value)

    async def decrement(self, key: str, value: int = 1) -> int | bool:
        """Decrement an integer value under the database write lock."""
        return await self._increment_or_decrement(key, -value)

    async def forever(self, key: str, value: Any) -> None:
        """Store a value for FOREVER_MINUTES."""
        await self.put(key, value, FOREVER_MINUTES)

    async def forget(self, key: str) -> bool:
        """Delete a row."""
        async with self._lock:
            await self._connection.execute(
                f"DELETE FROM {self._table} WHERE key = ?", (self._prefix + key,)
            )
            await self._connection.commit()
        return True

    async def flush(self) -> None:
        """Delete every row carrying this adapter's prefix (all rows if none)."""
        async with self._lock:
            if self._prefix:
                await self._connection.execute(
                    f"DELETE FROM {self._table} WHERE substr(key, 1, ?) = ?",
                    (len(self._prefix), self._prefix),
                )
            else:
                await self._connection.execute(f"DELETE FROM {self._table}")
            await self._connection.commit()

    async def collect_garbage(self, *, force: bool = False) -> None:
        """Delete expired rows, with gc_probability unless forced."""
        if not force and random.randrange(GC_PROBABILITY_SCALE) >= self._gc_probability:
            return

        async with self._lock:
            cursor = await self._connection.execute(
                f"DELETE FROM {self._table} WHERE expiration <= ?",
                (int(time.time()),),
            )
            await self._connection.commit()
        logger.debug("Garbage collected %d expired cache rows", cursor.rowcount)

    def get_prefix(self) -> str:
        """Get the key prefix applied to every row."""
        return self._prefix

    async def disconnect(self) -> None:
        """Close the database connection."""
        await self._connection.close()

    async def _increment_or_decrement(self, key: str, delta: int) -> int | bool:
        prefixed_key = self._prefix + key

        async with self._lock:
            # BEGIN IMMEDIATE takes SQLite's write lock up front, so the
            # read and the update below cannot interleave with another writer.
            await self._connection.execute("BEGIN IMMEDIATE")
            try:
                async with self._connection.execute(
                    f"SELECT value, expiration FROM {self._table} WHERE key = ?",
                    (prefixed_key,),
                ) as cursor:
                    row = await cursor.fetchone()

                if row is None or time.time() >= row[1]:
                    await self._connection.rollback()
                    return False

                try:
                    current = int(row[0])
                except ValueError:
                    await self._connection.rollback()
                    return False

                new_value = current + delta
                await self._connection.execute(
                    f"UPDATE {self._table} SET value = ? WHERE key = ?",
                    (str(new_value), prefixed_key),
                )
                await self._connection.commit()
            except BaseException:
                await self._connection.rollback()
                raise

        return new_value
