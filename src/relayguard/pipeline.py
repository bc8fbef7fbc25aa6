from __future__ import annotations

import logging
from typing import Any, Sequence, Tuple, Union

from .models import InputMessage, OutputMessage, Policy, accept

log = logging.getLogger("relayguard.pipeline")

PolicyTuple = Tuple[Policy, Any]
PolicyEntry = Union[Policy, PolicyTuple]


def _unpack(entry: PolicyEntry) -> PolicyTuple:
    if isinstance(entry, tuple):
        policy, opts = entry
        return policy, opts
    return entry, None


async def pipeline(msg: InputMessage, policies: Sequence[PolicyEntry]) -> OutputMessage:
    """Run *policies* in order and return the first verdict that is not accept.

    Entries are either a bare policy or a ``(policy, options)`` tuple. If every
    policy accepts, the event is accepted.
    """
    for entry in policies:
        policy, opts = _unpack(entry)
        try:
            result = await policy(msg) if opts is None else await policy(msg, opts)
        except Exception:
            name = getattr(policy, "__name__", repr(policy))
            log.exception("Policy %s raised for event %s; treating as accept", name, msg.event.id)
            continue

        if result.action != "accept":
            return result

    return accept(msg.event)
