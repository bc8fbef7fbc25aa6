from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

from ..models import InputMessage, OutputMessage, accept, reject
from ..services.counter_store import CounterStore, CounterStoreError

log = logging.getLogger("relayguard.anti_duplication")

DUPLICATE_MSG = "Anti-duplication policy: Please do not spam."


@dataclass(frozen=True)
class AntiDuplicationOptions:
    store: CounterStore
    ttl_ms: int = 60_000
    # Short messages ("gm", "+") repeat legitimately.
    min_length: int = 50


def _content_key(content: str) -> str:
    return "dup:" + hashlib.sha256(content.encode("utf-8")).hexdigest()


async def anti_duplication_policy(msg: InputMessage, opts: AntiDuplicationOptions) -> OutputMessage:
    """Reject content that was already seen within ``ttl_ms``."""
    event = msg.event
    if len(event.content) < opts.min_length:
        return accept(event)

    key = _content_key(event.content)
    try:
        seen = await opts.store.get(key)
        await opts.store.set(key, (seen or 0) + 1, opts.ttl_ms)
    except CounterStoreError as e:
        log.warning("Anti-duplication store unavailable: %s", e)
        return accept(event)

    if seen:
        return reject(event, DUPLICATE_MSG)
    return accept(event)
