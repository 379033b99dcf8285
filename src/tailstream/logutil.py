"""Project-wide logging utilities.

Provides a single package logger configured lazily; applications embedding
tailstream can override handlers or levels as needed. We default to WARNING to
stay quiet unless something noteworthy happens (e.g., a stream error nobody
listens for). ``TAILSTREAM_LOG_LEVEL`` overrides the default level, which is
handy for watching poll and lifecycle traffic at DEBUG.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

LEVEL_ENV = "TAILSTREAM_LOG_LEVEL"

_LOGGER: Optional[logging.Logger] = None


def _level_from_env() -> int:
    raw = os.environ.get(LEVEL_ENV, "").strip().upper()
    if not raw:
        return logging.WARNING
    level = logging.getLevelName(raw)
    # getLevelName returns "Level X" for unknown names
    return level if isinstance(level, int) else logging.WARNING


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """Return the package logger, or its ``tailstream.<component>`` child."""
    global _LOGGER
    if _LOGGER is None:
        logger = logging.getLogger("tailstream")
        # Only add a handler if the application hasn't configured logging.
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("[%(name)s] %(levelname)s: %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(_level_from_env())
        _LOGGER = logger
    if component:
        return _LOGGER.getChild(component)
    return _LOGGER

__all__ = ["get_logger", "LEVEL_ENV"]
