"""Structured logging for py-ko.

Every module asks ``get_logger(__name__)`` for a structlog logger and
logs events as short snake_case names with key-value context::

    logger.info("process_waited", pid=1234, success=True)

The loggers wrap stdlib ``logging.Logger`` objects, so output follows
whatever the host application configured for the ``py_ko`` tree.  An
unconfigured host hears nothing below WARNING, and nothing is ever
printed to stdout (a forked child's stdout may be a protocol pipe).
Applications that want readable output call ``configure_logging()``
once at startup.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.typing import BindableLogger


def configure_logging(level: str = "INFO", *, json: bool = False) -> None:
    """Route structlog through the stdlib logging module.

    Args:
        level: Minimum level name (``"DEBUG"``, ``"INFO"``, ...).
        json: Render one JSON object per line instead of console output.

    """
    logging.basicConfig(format="%(message)s", stream=sys.stderr)
    # basicConfig is a no-op once the root logger has handlers.
    logging.getLogger().setLevel(level.upper())
    renderer = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> BindableLogger:
    """Return a structlog logger writing to the stdlib logger *name*."""
    return structlog.wrap_logger(
        logging.getLogger(name),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
