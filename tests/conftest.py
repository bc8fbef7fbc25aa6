"""
Shared fixtures for relayguard tests.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Optional

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from relayguard.models import Event, InputMessage
from relayguard.services.counter_store import MemoryCounterStore

_ids = itertools.count(1)


def build_event(**overrides: Any) -> Event:
    n = next(_ids)
    fields: dict[str, Any] = {
        "id": f"{n:064x}",
        "sig": "",
        "kind": 1,
        "tags": [],
        "pubkey": "79c2cae114ea28a981e7559b4fe7854a473521a8d22a66bbab9fa248eb820ff6",
        "content": "",
        "created_at": 0,
    }
    fields.update(overrides)
    return Event(**fields)


def build_input_message(**overrides: Any) -> InputMessage:
    fields: dict[str, Any] = {
        "type": "new",
        "event": build_event(),
        "received_at": 0,
        "source_type": "IP4",
        "source_info": "127.0.0.1",
    }
    fields.update(overrides)
    return InputMessage(**fields)


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: int) -> None:
        self.now += ms / 1000.0


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryCounterStore:
    return MemoryCounterStore(clock=clock)


class FakeModerationService:
    """In-process moderation endpoint with a scriptable answer."""

    def __init__(self) -> None:
        self.status = 200
        self.body: Any = {"accept": True, "extra_data": None}
        self.raw_body: Optional[str] = None
        self.hang = False
        self.release = asyncio.Event()
        self.requests: list[dict[str, Any]] = []
        self.server: Optional[TestServer] = None

    @property
    def url(self) -> str:
        assert self.server is not None
        return str(self.server.make_url("/moderation"))

    async def handle(self, request: web.Request) -> web.Response:
        self.requests.append(
            {
                "authorization": request.headers.get("Authorization"),
                "json": await request.json(),
            }
        )
        if self.hang:
            await self.release.wait()
        if self.raw_body is not None:
            return web.Response(status=self.status, text=self.raw_body, content_type="application/json")
        return web.json_response(self.body, status=self.status)


@pytest_asyncio.fixture
async def moderation_service():
    service = FakeModerationService()
    app = web.Application()
    app.router.add_post("/moderation", service.handle)
    server = TestServer(app)
    await server.start_server()
    service.server = server
    try:
        yield service
    finally:
        service.release.set()
        await server.close()
