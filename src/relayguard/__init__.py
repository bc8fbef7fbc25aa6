"""Write-policy pipeline for event relays.

- models (decision contract)
- policies (keyword, rate limit, remote moderation, ...)
- pipeline (first non-accept verdict wins)
- services (durable TTL counters)
"""

from .models import Event, InputMessage, ModerationResult, OutputMessage
from .pipeline import pipeline

__all__ = ["Event", "InputMessage", "ModerationResult", "OutputMessage", "pipeline"]
