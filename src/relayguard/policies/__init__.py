"""Relay moderation policies.

Every policy is ``async (InputMessage, options) -> OutputMessage`` and resolves
to a verdict on every path.
"""

from .anti_duplication import AntiDuplicationOptions, anti_duplication_policy
from .basic import noop_policy, read_only_policy
from .content import hellthread_policy, regex_policy, size_limit_policy
from .generic_api import GenericApiOptions, generic_api_policy, generic_flagged_handler
from .keyword import keyword_policy
from .pubkey import pubkey_ban_policy, whitelist_policy
from .rate_limit import RateLimitOptions, rate_limit_policy

__all__ = [
    "AntiDuplicationOptions",
    "GenericApiOptions",
    "RateLimitOptions",
    "anti_duplication_policy",
    "generic_api_policy",
    "generic_flagged_handler",
    "hellthread_policy",
    "keyword_policy",
    "noop_policy",
    "pubkey_ban_policy",
    "rate_limit_policy",
    "read_only_policy",
    "regex_policy",
    "size_limit_policy",
    "whitelist_policy",
]
