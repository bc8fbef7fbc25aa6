from __future__ import annotations

from ..models import InputMessage, OutputMessage, accept, reject

READ_ONLY_MSG = "The relay is read-only."


async def noop_policy(msg: InputMessage, _opts: object = None) -> OutputMessage:
    """Accept everything."""
    return accept(msg.event)


async def read_only_policy(msg: InputMessage, _opts: object = None) -> OutputMessage:
    """Reject everything."""
    return reject(msg.event, READ_ONLY_MSG)
