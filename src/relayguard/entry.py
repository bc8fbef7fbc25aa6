from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp
from dotenv import load_dotenv

from .config import Settings, load_settings
from .logging_setup import setup_logging
from .pipeline import PolicyEntry
from .policies import (
    GenericApiOptions,
    RateLimitOptions,
    generic_api_policy,
    keyword_policy,
    rate_limit_policy,
)
from .runner import read_stdin_lines, run, stdout_writer
from .services.counter_store import CounterStore, SqliteCounterStore
from .services.janitor import CounterJanitor

log = logging.getLogger("relayguard.entry")


def build_policies(
    settings: Settings,
    store: CounterStore,
    session: Optional[aiohttp.ClientSession] = None,
) -> list[PolicyEntry]:
    """Default chain: keyword filter, IP rate limit, then remote moderation."""
    policies: list[PolicyEntry] = []

    if settings.banned_words:
        policies.append((keyword_policy, settings.banned_words))

    policies.append(
        (
            rate_limit_policy,
            RateLimitOptions(
                store=store,
                interval_ms=settings.rate_limit_interval_ms,
                max_requests=settings.rate_limit_max,
                whitelist=frozenset(settings.ip_whitelist),
            ),
        )
    )

    if settings.moderation_endpoint:
        policies.append(
            (
                generic_api_policy,
                GenericApiOptions(
                    endpoint=settings.moderation_endpoint,
                    api_key=settings.moderation_api_key,
                    kinds=frozenset(settings.moderation_kinds),
                    timeout_ms=settings.moderation_timeout_ms,
                    reject_type="shadowReject" if settings.moderation_reject_type == "shadowReject" else "reject",
                    accept_on_fail=settings.moderation_accept_on_fail,
                    session=session,
                ),
            )
        )

    return policies


async def main_async() -> None:
    load_dotenv()
    settings = load_settings()
    setup_logging(settings.log_level)

    store = SqliteCounterStore(settings.sqlite_path)
    await store.init()
    janitor = CounterJanitor(store, settings.counter_purge_interval_s)
    janitor.start()
    log.info("Starting relayguard")

    try:
        async with aiohttp.ClientSession() as session:
            policies = build_policies(settings, store, session)
            count = await run(policies, read_stdin_lines(), stdout_writer())
    finally:
        await janitor.stop()

    log.info("Input closed after %s verdicts", count)


def main() -> None:
    asyncio.run(main_async())
