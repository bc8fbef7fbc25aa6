"""
Remote moderation API policy.

Sends the event to an HTTP moderation service and lets a handler decide what
to do with its answer. The service is treated as unreliable: a timeout or any
transport/status/decoding error is replaced by a default result built from
``accept_on_fail``, so the policy always produces a verdict.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Collection, Literal, Optional

import aiohttp

from ..models import Event, InputMessage, ModerationResult, OutputMessage, accept, reject, shadow_reject

log = logging.getLogger("relayguard.generic_api")

DEFAULT_ENDPOINT = "http://localhost:3000/moderation"
FLAGGED_MSG = "blocked: content flagged by moderation tool."

# Returns True to reject the event, False to accept it.
GenericApiHandler = Callable[[Event, ModerationResult], bool]


def generic_flagged_handler(event: Event, result: ModerationResult) -> bool:
    """Reject anything the service did not explicitly accept."""
    return not result.accept


@dataclass(frozen=True)
class GenericApiOptions:
    endpoint: str = DEFAULT_ENDPOINT
    api_key: str = ""
    kinds: Collection[int] = (1,)
    timeout_ms: int = 5000
    handler: GenericApiHandler = generic_flagged_handler
    reject_type: Literal["reject", "shadowReject"] = "reject"
    accept_on_fail: bool = True
    # Reuse a long-lived session when given; otherwise one is opened per request.
    session: Optional[aiohttp.ClientSession] = None


async def _post_event(session: aiohttp.ClientSession, opts: GenericApiOptions, event: Event) -> ModerationResult:
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {opts.api_key}",
    }
    async with session.post(opts.endpoint, json={"input": event.to_dict()}, headers=headers) as resp:
        # Raises ClientResponseError on non-2xx.
        resp.raise_for_status()
        data = await resp.json(content_type=None)
    return ModerationResult.from_dict(data)


async def _request(opts: GenericApiOptions, event: Event) -> ModerationResult:
    if opts.session is not None:
        return await _post_event(opts.session, opts, event)
    async with aiohttp.ClientSession() as session:
        return await _post_event(session, opts, event)


async def check_moderation(event: Event, opts: GenericApiOptions) -> ModerationResult:
    """Ask the moderation service about *event* within ``opts.timeout_ms``.

    The request runs as a task raced against the deadline. A request still
    pending at the deadline is cancelled and its result discarded.
    """
    fallback = ModerationResult(accept=opts.accept_on_fail, extra_data=None)
    task = asyncio.create_task(_request(opts, event), name=f"relayguard-moderation-{event.id[:8]}")
    try:
        done, _ = await asyncio.wait({task}, timeout=max(0, opts.timeout_ms) / 1000.0)
    finally:
        if not task.done():
            task.cancel()

    if task not in done:
        log.warning("Moderation request for %s timed out after %sms", event.id, opts.timeout_ms)
        # Let the cancelled request unwind so its session and connection are closed.
        await asyncio.gather(task, return_exceptions=True)
        return fallback

    try:
        return task.result()
    except aiohttp.ClientResponseError as e:
        log.warning("Moderation service returned HTTP %s for %s", e.status, event.id)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        log.warning("Moderation request for %s failed: %s", event.id, e)
    except ValueError as e:
        # JSON decoding errors and malformed result bodies both land here.
        log.warning("Moderation response for %s could not be parsed: %s", event.id, e)
    except Exception:
        log.exception("Unexpected moderation error for %s", event.id)
    return fallback


async def generic_api_policy(msg: InputMessage, opts: Optional[GenericApiOptions] = None) -> OutputMessage:
    opts = opts or GenericApiOptions()
    event = msg.event

    if event.kind not in opts.kinds:
        return accept(event)

    result = await check_moderation(event, opts)

    try:
        flagged = opts.handler(event, result)
    except Exception:
        log.exception("Moderation handler failed for %s; using accept_on_fail=%s", event.id, opts.accept_on_fail)
        flagged = not opts.accept_on_fail

    if flagged:
        if opts.reject_type == "shadowReject":
            return shadow_reject(event)
        return reject(event, FLAGGED_MSG)

    return accept(event)
