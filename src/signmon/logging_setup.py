"""Idempotent stderr logging setup."""

from __future__ import annotations

import logging
import os
import sys

_CONFIGURED = False

LOG_LEVEL_ENV = "SIGNMON_LOG_LEVEL"


def resolve_level(level: int | str | None) -> int:
    """Turn a level name or number into a logging level.

    ``None`` falls back to ``SIGNMON_LOG_LEVEL``, then INFO.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, logging.INFO)
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def setup_logging(level: int | str | None = None) -> None:
    """Configure signmon logging to stderr. Safe to call multiple times."""
    global _CONFIGURED  # noqa: PLW0603
    if _CONFIGURED:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    )

    logger = logging.getLogger("signmon")
    logger.setLevel(resolve_level(level))
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True
