from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from .counter_store import CounterStoreError

log = logging.getLogger("relayguard.janitor")


class Purgeable(Protocol):
    async def purge_expired(self) -> int:
        ...


class CounterJanitor:
    """Background task that deletes expired counters on a fixed interval."""

    def __init__(self, store: Purgeable, interval_seconds: float = 60.0) -> None:
        self._store = store
        self._interval = max(0.001, float(interval_seconds))
        self._stop = asyncio.Event()
        self._runner: Optional[asyncio.Task[None]] = None
        self.purged_total = 0

    def start(self) -> None:
        if self._runner and not self._runner.done():
            return
        self._stop.clear()
        self._runner = asyncio.create_task(self._run(), name="relayguard-counter-janitor")
        log.info("CounterJanitor started (every %.1fs)", self._interval)

    async def stop(self) -> None:
        self._stop.set()
        if self._runner:
            await self._runner
        log.info("CounterJanitor stopped (purged %s)", self.purged_total)

    async def purge_once(self) -> int:
        try:
            removed = await self._store.purge_expired()
        except CounterStoreError as e:
            log.warning("Counter purge failed: %s", e)
            return 0
        self.purged_total += removed
        return removed

    async def _run(self) -> None:
        while not self._stop.is_set():
            await self.purge_once()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
