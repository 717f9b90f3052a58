"""Logging bootstrap for packforge.

All modules log through structlog (``structlog.get_logger(__name__)``).
``configure_logging`` sets up the processor chain once per process; the
CLI calls it on start-up, library users may call it or configure structlog
themselves.

Environment:
    PACKFORGE_DEBUG: Set to '1', 'true', 'yes' (case-insensitive) to make
                     DEBUG the default level. Any other value or unset
                     keeps INFO.

Example:
    $ PACKFORGE_DEBUG=1 packforge export ...    # Debug enabled
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

_LOG_CONFIGURED = False


def debug_enabled() -> bool:
    """Return True if PACKFORGE_DEBUG asks for debug output."""
    return os.environ.get("PACKFORGE_DEBUG", "").lower() in ("1", "true", "yes")


def configure_logging(
    level: str | None = None, json_logs: bool = False, force: bool = False
) -> None:
    """Configure stdlib logging and structlog once per process.

    Args:
        level: Log level name. Defaults to DEBUG when PACKFORGE_DEBUG is set,
            INFO otherwise.
        json_logs: Render events as JSON lines instead of console output.
        force: Reconfigure even if logging was configured before.
    """
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED and not force:
        return

    if level is None:
        level = "DEBUG" if debug_enabled() else "INFO"
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    logging.basicConfig(level=log_level, format="%(message)s")

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    _LOG_CONFIGURED = True
