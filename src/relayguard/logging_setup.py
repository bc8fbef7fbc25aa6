from __future__ import annotations

import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """Send all relayguard logs to stderr; stdout is reserved for verdicts."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # aiohttp is chatty at DEBUG.
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
