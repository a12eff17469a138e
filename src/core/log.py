# src/core/log.py

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Stream handler on the root logger. Only entry points call this; library code never does."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError("Unknown log level")
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    # SDK transport chatter stays at WARNING unless explicitly debugging
    for noisy in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING if level > logging.DEBUG else level)
