from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal, Optional


MessageType = Literal["new", "lookback"]

SourceType = Literal["IP4", "IP6", "Import", "Stream", "Sync"]

Action = Literal["accept", "reject", "shadowReject"]

IP_SOURCE_TYPES: frozenset[str] = frozenset({"IP4", "IP6"})


@dataclass(frozen=True)
class Event:
    """Signed content event as delivered by the relay. Read-only for policies."""

    id: str
    sig: str
    kind: int
    pubkey: str
    content: str
    created_at: int
    tags: list[list[str]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Event":
        return cls(
            id=str(data["id"]),
            sig=str(data.get("sig", "")),
            kind=int(data["kind"]),
            pubkey=str(data.get("pubkey", "")),
            content=str(data.get("content", "")),
            created_at=int(data.get("created_at", 0)),
            tags=[[str(x) for x in tag] for tag in (data.get("tags") or [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sig": self.sig,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "pubkey": self.pubkey,
            "content": self.content,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class InputMessage:
    """One inbound event plus the relay's dispatch metadata."""

    type: MessageType
    event: Event
    received_at: int
    source_type: SourceType
    # IP address for IP4/IP6, otherwise whatever the relay reports for the source
    source_info: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InputMessage":
        return cls(
            type=data.get("type", "new"),
            event=Event.from_dict(data["event"]),
            received_at=int(data.get("receivedAt", 0)),
            source_type=data.get("sourceType", "IP4"),
            source_info=str(data.get("sourceInfo", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "event": self.event.to_dict(),
            "receivedAt": self.received_at,
            "sourceType": self.source_type,
            "sourceInfo": self.source_info,
        }

    @property
    def is_ip_source(self) -> bool:
        return self.source_type in IP_SOURCE_TYPES


@dataclass(frozen=True)
class OutputMessage:
    """Verdict for a single event."""

    id: str
    action: Action
    msg: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "action": self.action, "msg": self.msg}


@dataclass(frozen=True)
class ModerationResult:
    """Answer from a remote moderation service.

    Example payloads: {"accept": true, "extra_data": null} or {"accept": false}
    """

    accept: bool
    extra_data: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "ModerationResult":
        if not isinstance(data, dict) or not isinstance(data.get("accept"), bool):
            raise ValueError("moderation response must be an object with a boolean 'accept'")
        extra = data.get("extra_data")
        if extra is not None and not isinstance(extra, str):
            # Structured extras (scores, labels) stay parseable by handlers.
            extra = json.dumps(extra, separators=(",", ":"))
        return cls(accept=data["accept"], extra_data=extra)


def accept(event: Event) -> OutputMessage:
    return OutputMessage(id=event.id, action="accept", msg="")


def reject(event: Event, msg: str) -> OutputMessage:
    return OutputMessage(id=event.id, action="reject", msg=msg)


def shadow_reject(event: Event) -> OutputMessage:
    # Shadow rejects never tell the submitter why.
    return OutputMessage(id=event.id, action="shadowReject", msg="")


# A policy turns a message (plus its own options) into a verdict and must never raise.
Policy = Callable[..., Awaitable[OutputMessage]]
