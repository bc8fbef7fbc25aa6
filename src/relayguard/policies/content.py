from __future__ import annotations

import json
import re
from typing import Union

from ..models import InputMessage, OutputMessage, accept, reject

PATTERN_MSG = "blocked: content matches a forbidden pattern."
HELLTHREAD_MSG = "Event rejected due to too many tags."
SIZE_MSG = "Event is too large."


async def regex_policy(msg: InputMessage, pattern: Union[str, re.Pattern[str]]) -> OutputMessage:
    event = msg.event
    try:
        rx = re.compile(pattern) if isinstance(pattern, str) else pattern
    except re.error:
        # An invalid pattern never matches.
        return accept(event)
    if rx.search(event.content):
        return reject(event, PATTERN_MSG)
    return accept(event)


async def hellthread_policy(msg: InputMessage, limit: int = 100) -> OutputMessage:
    """Reject text notes that mention more than *limit* pubkeys."""
    event = msg.event
    if event.kind == 1:
        p_tags = sum(1 for tag in event.tags if tag and tag[0] == "p")
        if p_tags > limit:
            return reject(event, HELLTHREAD_MSG)
    return accept(event)


async def size_limit_policy(msg: InputMessage, max_bytes: int = 8192) -> OutputMessage:
    event = msg.event
    size = len(json.dumps(event.to_dict(), ensure_ascii=False).encode("utf-8"))
    if size > max_bytes:
        return reject(event, SIZE_MSG)
    return accept(event)
