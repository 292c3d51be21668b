from __future__ import annotations

import logging
import os

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

# Libraries that are chatty at INFO/DEBUG and drown out per-code results.
_NOISY = ("asyncio", "aiohttp.access", "urllib3")


def setup_logging(level: str | int | None = None) -> None:
    """
    Configure application logging with a consistent formatter.
    """
    if level is None:
        level = os.getenv("PROBE_LOG_LEVEL", "INFO")

    if isinstance(level, str):
        level = _LEVELS.get(level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    for name in _NOISY:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
