"""
grammar_builder/logging_setup.py
--------------------------------

Central logging configuration for the grammar build driver.

Goals:
- Provide a single place to configure log rendering and level.
- Make it easy to get a logger in any module:
      import structlog
      logger = structlog.get_logger()
- Allow overrides via environment variables:
      GRAMMAR_BUILD_LOG_LEVEL   (e.g. DEBUG, INFO, WARNING, ERROR)
      GRAMMAR_BUILD_LOG_FORMAT  ("console" or "json")

Usage
=====

In your module:

    import structlog

    logger = structlog.get_logger()

    logger.info("grammar_generated", grammar=str(path))

In your CLI script:

    from grammar_builder.logging_setup import init_logging

    if __name__ == "__main__":
        init_logging()  # ensures consistent global config

Implementation notes
====================

- Library modules never configure logging; the CLI owns it.
- `init_logging` is idempotent; calling it multiple times is safe.
- Output goes to stderr so that stdout stays free for summaries.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, Union

import structlog

# Internal flag to avoid re-configuring logging multiple times
_INITIALIZED = False

DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FORMATS = ("console", "json")


def _get_env_log_level() -> int:
    """
    Read GRAMMAR_BUILD_LOG_LEVEL from environment and map it to a logging level.
    Defaults to logging.INFO if unset or invalid.
    """
    level_name = os.getenv("GRAMMAR_BUILD_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def _coerce_level(level: Union[int, str, None]) -> int:
    if level is None:
        return _get_env_log_level()
    if isinstance(level, int):
        return level
    value = getattr(logging, str(level).strip().upper(), None)
    return value if isinstance(value, int) else logging.INFO


def init_logging(
    level: Union[int, str, None] = None,
    fmt: Optional[str] = None,
    *,
    force: bool = False,
) -> None:
    """
    Initialize structlog configuration.

    Args:
        level:
            Minimum level (e.g. logging.DEBUG or "DEBUG"). If None, it is read
            from GRAMMAR_BUILD_LOG_LEVEL, defaulting to INFO.
        fmt:
            "console" for human readable key/value lines, "json" for one JSON
            object per line. If None, read from GRAMMAR_BUILD_LOG_FORMAT.
        force:
            If True, reconfigure logging even if it was already initialized.
    """
    global _INITIALIZED

    if _INITIALIZED and not force:
        return

    min_level = _coerce_level(level)
    fmt = (fmt or os.getenv("GRAMMAR_BUILD_LOG_FORMAT", "console")).strip().lower()
    if fmt not in LOG_FORMATS:
        fmt = "console"

    renderer: structlog.typing.Processor
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt=DEFAULT_TIMESTAMP_FORMAT),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    _INITIALIZED = True


def reset_logging() -> None:
    """Restore structlog defaults (used by tests and by re-entrant CLIs)."""
    global _INITIALIZED
    structlog.reset_defaults()
    _INITIALIZED = False


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """
    Get a logger bound to the given name, ensuring logging is initialized.

    Args:
        name:
            Logger name, usually __name__ of the calling module.
    """
    if not _INITIALIZED:
        init_logging()
    return structlog.get_logger(name)


__all__ = ["init_logging", "reset_logging", "get_logger", "LOG_FORMATS"]
