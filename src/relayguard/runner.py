"""
Line-oriented driver: one JSON InputMessage per input line, one JSON
OutputMessage per output line, in the same order.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import AsyncIterator, Callable, Optional, Sequence, TextIO

from .models import InputMessage, OutputMessage
from .pipeline import PolicyEntry, pipeline

log = logging.getLogger("relayguard.runner")

MALFORMED_MSG = "invalid: malformed event."


def parse_line(line: str) -> InputMessage:
    """Decode one input line. Raises ValueError on anything malformed."""
    try:
        data = json.loads(line)
        return InputMessage.from_dict(data)
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"malformed input message: {e!r}") from e


def recover_event_id(line: str) -> Optional[str]:
    """Best-effort event id from a line that failed to parse."""
    try:
        data = json.loads(line)
    except ValueError:
        return None
    event = data.get("event") if isinstance(data, dict) else None
    event_id = event.get("id") if isinstance(event, dict) else None
    return event_id if isinstance(event_id, str) and event_id else None


def format_output(out: OutputMessage) -> str:
    return json.dumps(out.to_dict(), separators=(",", ":"), ensure_ascii=False)


async def read_stdin_lines(stream: TextIO = sys.stdin) -> AsyncIterator[str]:
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            return
        yield line


async def run(
    policies: Sequence[PolicyEntry],
    lines: AsyncIterator[str],
    write: Callable[[str], None],
) -> int:
    """Evaluate each line through *policies* and write its verdict.

    Returns the number of verdicts written. A malformed line that still
    carries an event id is rejected; blank lines and lines with no
    recoverable id are skipped.
    """
    written = 0
    async for line in lines:
        if not line.strip():
            continue
        try:
            msg = parse_line(line)
        except ValueError as e:
            event_id = recover_event_id(line)
            if event_id is None:
                log.warning("Skipping input line with no event id: %s", e)
                continue
            log.warning("Rejecting malformed event %s: %s", event_id, e)
            out = OutputMessage(id=event_id, action="reject", msg=MALFORMED_MSG)
        else:
            out = await pipeline(msg, policies)
        write(format_output(out))
        written += 1
    return written


def stdout_writer(stream: TextIO = sys.stdout) -> Callable[[str], None]:
    def _write(text: str) -> None:
        stream.write(text + "\n")
        stream.flush()

    return _write
