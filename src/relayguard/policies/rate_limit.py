"""
Fixed-window rate limiting per source IP.

Each source key owns one counter in the store. Every request reads the counter
and writes back ``count + 1`` with the TTL reset to the full interval, so the
window stays open for as long as the source keeps sending. The counter only
disappears after a quiet period of one interval.

The read and the write are two separate store calls. Two concurrent requests
from the same source can both read the same value, so the limit is a soft
bound under bursts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Collection

from ..models import InputMessage, OutputMessage, accept, reject
from ..services.counter_store import CounterStore, CounterStoreError

log = logging.getLogger("relayguard.rate_limit")

RATE_LIMIT_MSG = "Rate-limited."


@dataclass(frozen=True)
class RateLimitOptions:
    store: CounterStore
    interval_ms: int = 60_000
    max_requests: int = 10
    whitelist: Collection[str] = ()
    # Verdict when the store itself fails: accept (True) or reject (False).
    fail_open: bool = True


async def rate_limit_policy(msg: InputMessage, opts: RateLimitOptions) -> OutputMessage:
    event = msg.event

    if not msg.is_ip_source or msg.source_info in opts.whitelist:
        return accept(event)

    key = msg.source_info
    try:
        count = await opts.store.get(key) or 0
        await opts.store.set(key, count + 1, opts.interval_ms)
    except CounterStoreError as e:
        log.warning("Rate limit store unavailable for %s (fail_open=%s): %s", key, opts.fail_open, e)
        return accept(event) if opts.fail_open else reject(event, RATE_LIMIT_MSG)

    if count >= opts.max_requests:
        log.info("Rate-limited %s (%s requests in window)", key, count + 1)
        return reject(event, RATE_LIMIT_MSG)

    return accept(event)
