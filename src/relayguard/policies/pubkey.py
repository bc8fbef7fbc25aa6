from __future__ import annotations

from typing import Collection

from ..models import InputMessage, OutputMessage, accept, reject

BANNED_MSG = "Event author is banned."
NOT_WHITELISTED_MSG = "Event author is not whitelisted."


async def pubkey_ban_policy(msg: InputMessage, pubkeys: Collection[str] = ()) -> OutputMessage:
    event = msg.event
    if event.pubkey in pubkeys:
        return reject(event, BANNED_MSG)
    return accept(event)


async def whitelist_policy(msg: InputMessage, pubkeys: Collection[str] = ()) -> OutputMessage:
    """Only accept events from the listed authors. An empty list rejects everyone."""
    event = msg.event
    if event.pubkey in pubkeys:
        return accept(event)
    return reject(event, NOT_WHITELISTED_MSG)
