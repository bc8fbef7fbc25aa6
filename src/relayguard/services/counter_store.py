"""
Durable TTL-scoped integer counters.

Policies only ever call ``get`` and ``set``. Expiry is the store's job: once a
key's TTL has elapsed, ``get`` reports it as absent.
"""

from __future__ import annotations

import heapq
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

import aiosqlite

from .base import BaseService

Clock = Callable[[], float]


class CounterStoreError(RuntimeError):
    """The backing store could not be read or written."""


@runtime_checkable
class CounterStore(Protocol):
    """Key/value store of integers with per-key expiry."""

    async def get(self, key: str) -> Optional[int]:
        """Return the live value for *key*, or None if absent or expired."""
        ...

    async def set(self, key: str, value: int, ttl_ms: int) -> None:
        """Store *value* under *key*, expiring *ttl_ms* milliseconds from now."""
        ...


def _now_ms(clock: Clock) -> int:
    return int(clock() * 1000)


@dataclass
class _Entry:
    value: int
    expires_at_ms: int


class MemoryCounterStore:
    """In-process counter store. Not shared between processes.

    Expiry times go on a min-heap as keys are written. Each write first drops
    every key whose TTL has elapsed, so keys that are never read again do not
    accumulate. Heap entries made stale by a later refresh are skipped.
    """

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._store: dict[str, _Entry] = {}
        self._expiry: list[tuple[int, str]] = []

    async def get(self, key: str) -> Optional[int]:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.expires_at_ms <= _now_ms(self._clock):
            self._store.pop(key, None)
            return None
        return entry.value

    async def set(self, key: str, value: int, ttl_ms: int) -> None:
        now = _now_ms(self._clock)
        self._drop_expired(now)
        expires_at_ms = now + max(1, int(ttl_ms))
        self._store[key] = _Entry(value=int(value), expires_at_ms=expires_at_ms)
        heapq.heappush(self._expiry, (expires_at_ms, key))

    def _drop_expired(self, now: int) -> int:
        removed = 0
        while self._expiry and self._expiry[0][0] <= now:
            expires_at_ms, key = heapq.heappop(self._expiry)
            entry = self._store.get(key)
            if entry is not None and entry.expires_at_ms == expires_at_ms:
                del self._store[key]
                removed += 1
        return removed

    def prune(self) -> int:
        return self._drop_expired(_now_ms(self._clock))

    async def purge_expired(self) -> int:
        return self.prune()

    def __len__(self) -> int:
        return len(self._store)


class SqliteCounterStore(BaseService):
    """SQLite-backed counter store shared by every process pointing at the same file.

    Errors from SQLite are re-raised as CounterStoreError so callers can decide
    how to degrade without knowing about aiosqlite.
    """

    def __init__(self, sqlite_path: str, clock: Clock = time.time) -> None:
        super().__init__(sqlite_path)
        self._clock = clock

    async def init(self) -> None:
        """Switch the file to WAL and create the counter table.

        WAL lets several relay worker processes read and write the same
        counters without blocking each other. The journal mode persists in the
        file, so this only has to happen once per database.
        """
        try:
            async with aiosqlite.connect(self._path) as db:
                await db.execute("PRAGMA journal_mode=WAL")
                await db.execute("PRAGMA synchronous=NORMAL")
                await db.commit()
            await super().init()
        except (aiosqlite.Error, OSError) as e:
            raise CounterStoreError(f"counter store init failed for {self._path}: {e}") from e
        self._logger.info("Counter store ready at %s", self._path)

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS rate_counters (
              key TEXT PRIMARY KEY,
              value INTEGER NOT NULL,
              expires_at_ms INTEGER NOT NULL
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_rate_counters_expiry ON rate_counters(expires_at_ms)")

    async def get(self, key: str) -> Optional[int]:
        try:
            async with aiosqlite.connect(self._path) as db:
                async with db.execute(
                    "SELECT value, expires_at_ms FROM rate_counters WHERE key = ?",
                    (key,),
                ) as cur:
                    row = await cur.fetchone()
        except (aiosqlite.Error, OSError) as e:
            raise CounterStoreError(f"counter read failed for {key!r}: {e}") from e

        if row is None:
            return None
        value, expires_at_ms = row
        if int(expires_at_ms) <= _now_ms(self._clock):
            return None
        return int(value)

    async def set(self, key: str, value: int, ttl_ms: int) -> None:
        expires_at_ms = _now_ms(self._clock) + max(1, int(ttl_ms))
        try:
            async with aiosqlite.connect(self._path) as db:
                await db.execute(
                    """
                    INSERT INTO rate_counters (key, value, expires_at_ms) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                      value = excluded.value,
                      expires_at_ms = excluded.expires_at_ms
                    """,
                    (key, int(value), expires_at_ms),
                )
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            raise CounterStoreError(f"counter write failed for {key!r}: {e}") from e

    async def purge_expired(self) -> int:
        """Delete expired rows. Returns the number removed."""
        try:
            async with aiosqlite.connect(self._path) as db:
                cur = await db.execute(
                    "DELETE FROM rate_counters WHERE expires_at_ms <= ?",
                    (_now_ms(self._clock),),
                )
                await db.commit()
                removed = cur.rowcount
        except (aiosqlite.Error, OSError) as e:
            raise CounterStoreError(f"counter purge failed: {e}") from e

        if removed:
            self._logger.debug("Purged %s expired counters", removed)
        return int(removed)
