from __future__ import annotations

import os
from dataclasses import dataclass


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


def _get_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(x.strip() for x in raw.split(",") if x.strip())


def _get_int_list(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    try:
        values = tuple(int(x) for x in _get_list(name))
    except ValueError:
        return default
    return values or default


@dataclass(frozen=True)
class Settings:
    sqlite_path: str
    log_level: str
    # Rate limiting (IP4/IP6 sources only)
    ip_whitelist: tuple[str, ...]
    rate_limit_interval_ms: int
    rate_limit_max: int
    # Seconds between sweeps of expired counters.
    counter_purge_interval_s: int = 60
    # Keyword filter; empty disables the policy.
    banned_words: tuple[str, ...] = ()
    # Remote moderation; an empty endpoint disables the policy.
    moderation_endpoint: str = ""
    moderation_api_key: str = ""
    moderation_kinds: tuple[int, ...] = (1,)
    moderation_timeout_ms: int = 5000
    moderation_reject_type: str = "reject"  # "reject" | "shadowReject"
    moderation_accept_on_fail: bool = True


def load_settings() -> Settings:
    reject_type = os.getenv("MODERATION_REJECT_TYPE", "reject").strip()
    if reject_type not in {"reject", "shadowReject"}:
        reject_type = "reject"
    return Settings(
        sqlite_path=(os.getenv("SQLITE_PATH", "relayguard.sqlite3").strip() or "relayguard.sqlite3"),
        log_level=(os.getenv("LOG_LEVEL", "INFO").strip() or "INFO"),
        ip_whitelist=_get_list("IP_WHITELIST"),
        rate_limit_interval_ms=_get_int("RATE_LIMIT_INTERVAL", 60_000),
        rate_limit_max=_get_int("RATE_LIMIT_MAX", 10),
        counter_purge_interval_s=_get_int("COUNTER_PURGE_INTERVAL", 60),
        banned_words=_get_list("BANNED_WORDS"),
        moderation_endpoint=os.getenv("MODERATION_ENDPOINT", "").strip(),
        moderation_api_key=os.getenv("MODERATION_API_KEY", "").strip(),
        moderation_kinds=_get_int_list("MODERATION_KINDS", (1,)),
        moderation_timeout_ms=_get_int("MODERATION_TIMEOUT_MS", 5000),
        moderation_reject_type=reject_type,
        moderation_accept_on_fail=_get_bool("MODERATION_ACCEPT_ON_FAIL", True),
    )
