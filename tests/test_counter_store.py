import asyncio

import aiosqlite
import pytest

from conftest import FakeClock, build_input_message
from relayguard.policies.rate_limit import RateLimitOptions, rate_limit_policy
from relayguard.services.counter_store import (
    CounterStore,
    CounterStoreError,
    MemoryCounterStore,
    SqliteCounterStore,
)
from relayguard.services.janitor import CounterJanitor


@pytest.mark.asyncio
async def test_memory_store_expires_keys(memory_store, clock):
    assert await memory_store.get("a") is None

    await memory_store.set("a", 5, 100)
    assert await memory_store.get("a") == 5

    clock.advance_ms(99)
    assert await memory_store.get("a") == 5
    clock.advance_ms(1)
    assert await memory_store.get("a") is None


@pytest.mark.asyncio
async def test_memory_store_prune(memory_store, clock):
    await memory_store.set("a", 1, 100)
    await memory_store.set("b", 1, 1000)
    clock.advance_ms(500)

    assert memory_store.prune() == 1
    assert len(memory_store) == 1


def test_stores_satisfy_protocol(tmp_path):
    assert isinstance(MemoryCounterStore(), CounterStore)
    assert isinstance(SqliteCounterStore(str(tmp_path / "c.sqlite3")), CounterStore)


@pytest.mark.asyncio
async def test_sqlite_store_roundtrip_and_expiry(tmp_path):
    clock = FakeClock()
    path = str(tmp_path / "counters.sqlite3")
    store = SqliteCounterStore(path, clock=clock)
    await store.init()

    assert await store.get("1.2.3.4") is None
    await store.set("1.2.3.4", 1, 1000)
    await store.set("1.2.3.4", 2, 1000)
    assert await store.get("1.2.3.4") == 2

    clock.advance_ms(1000)
    assert await store.get("1.2.3.4") is None
    assert await store.purge_expired() == 1


@pytest.mark.asyncio
async def test_sqlite_store_shared_between_handles(tmp_path):
    clock = FakeClock()
    path = str(tmp_path / "shared.sqlite3")
    first = SqliteCounterStore(path, clock=clock)
    second = SqliteCounterStore(path, clock=clock)
    await first.init()

    await first.set("k", 7, 60_000)
    assert await second.get("k") == 7


@pytest.mark.asyncio
async def test_sqlite_store_without_schema_raises_store_error(tmp_path):
    store = SqliteCounterStore(str(tmp_path / "empty.sqlite3"))

    with pytest.raises(CounterStoreError):
        await store.get("k")
    with pytest.raises(CounterStoreError):
        await store.set("k", 1, 1000)


@pytest.mark.asyncio
async def test_memory_store_drops_expired_keys_on_write(memory_store, clock):
    opts = RateLimitOptions(store=memory_store, interval_ms=1000, max_requests=10)

    for i in range(1000):
        msg = build_input_message(source_info=f"10.{i // 256}.{i % 256}.1")
        assert (await rate_limit_policy(msg, opts)).action == "accept"
        clock.advance_ms(5000)

    assert len(memory_store) <= 1


@pytest.mark.asyncio
async def test_memory_store_refresh_outlives_stale_expiry(memory_store, clock):
    await memory_store.set("a", 1, 1000)
    clock.advance_ms(900)
    await memory_store.set("a", 2, 1000)
    clock.advance_ms(200)
    await memory_store.set("b", 1, 1000)

    # The first expiry for "a" has passed, but the refresh keeps it alive.
    assert await memory_store.get("a") == 2
    assert len(memory_store) == 2


@pytest.mark.asyncio
async def test_sqlite_init_enables_wal(tmp_path):
    path = str(tmp_path / "wal.sqlite3")
    await SqliteCounterStore(path).init()

    async with aiosqlite.connect(path) as db:
        async with db.execute("PRAGMA journal_mode") as cur:
            (mode,) = await cur.fetchone()
    assert mode.lower() == "wal"


@pytest.mark.asyncio
async def test_janitor_purges_sqlite_counters(tmp_path):
    clock = FakeClock()
    path = str(tmp_path / "janitor.sqlite3")
    store = SqliteCounterStore(path, clock=clock)
    await store.init()

    for i in range(50):
        await store.set(f"10.0.0.{i}", 1, 1000)
    clock.advance_ms(1000)
    await store.set("10.0.1.1", 1, 1000)

    janitor = CounterJanitor(store, interval_seconds=0.01)
    janitor.start()
    await asyncio.sleep(0.05)
    await janitor.stop()

    assert janitor.purged_total == 50
    async with aiosqlite.connect(path) as db:
        async with db.execute("SELECT COUNT(*) FROM rate_counters") as cur:
            (rows,) = await cur.fetchone()
    assert rows == 1


@pytest.mark.asyncio
async def test_janitor_survives_store_errors(tmp_path):
    # No schema yet: every purge raises CounterStoreError.
    janitor = CounterJanitor(SqliteCounterStore(str(tmp_path / "none.sqlite3")))
    assert await janitor.purge_once() == 0
