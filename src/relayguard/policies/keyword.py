from __future__ import annotations

from typing import Iterable

from ..models import InputMessage, OutputMessage, accept, reject

KEYWORD_REJECT_MSG = "blocked: contains a forbidden word."


async def keyword_policy(msg: InputMessage, words: Iterable[str] = ()) -> OutputMessage:
    """Reject events whose content contains any of *words*.

    Matching is a plain substring test on the raw content: no case folding,
    no normalization, no tokenizing.
    """
    event = msg.event
    content = event.content
    for word in words:
        if word and word in content:
            return reject(event, KEYWORD_REJECT_MSG)
    return accept(event)
