"""
logging_config.py - Centralized logging configuration.

Every module logs through `get_logger(__name__)`; the API entrypoint and the
CLI call `setup_logging()` once at startup. Uvicorn's own loggers are routed
through the same root handler so request logs share one format.
"""

from __future__ import annotations

import logging
import os
import sys

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def level_from_env(default: int = logging.INFO) -> int:
    """Resolve LOG_LEVEL (name or number) into a logging level."""
    raw = os.getenv("LOG_LEVEL", "").strip()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


def setup_logging(level: int | None = None, json_format: bool = False) -> None:
    """Configure root logger with consistent formatting.

    Args:
        level: Logging level. Falls back to LOG_LEVEL, then INFO.
        json_format: If True, emit JSON-like log lines.
    """
    if level is None:
        level = level_from_env()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if json_format:
        formatter = logging.Formatter(
            '{"timestamp":"%(asctime)s","level":"%(levelname)s",'
            '"module":"%(name)s","message":"%(message)s"}',
            datefmt="%H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(name)-16s] %(levelname)-7s %(message)s",
            datefmt="%H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    for name in UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    """Get a named logger."""
    return logging.getLogger(name)
