"""Logging configuration module."""
from __future__ import annotations

from logging import CRITICAL, DEBUG, ERROR, INFO, WARNING, Handler, StreamHandler, getLogger
from typing import cast

import structlog
from structlog import dev, processors, stdlib
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import BoundLogger

LOG_LEVELS: dict[str, int] = {
    "debug": DEBUG,
    "info": INFO,
    "warning": WARNING,
    "error": ERROR,
    "critical": CRITICAL,
}


def configure_logging(level: str = "info", json_logs: bool = True) -> None:
    """Configure structured logging for the service.

    Args:
        level: Name of the minimum level to emit.
        json_logs: Render JSON lines instead of the console format.
    """
    log_level = LOG_LEVELS.get(level.lower(), INFO)

    root_logger = getLogger()
    root_logger.setLevel(log_level)

    handler: Handler = StreamHandler()
    handler.setLevel(log_level)

    shared_processors = [
        stdlib.add_logger_name,
        stdlib.add_log_level,
        stdlib.PositionalArgumentsFormatter(),
        TimeStamper(fmt="%Y-%m-%d %H:%M:%S.%f"),
    ]

    structlog.configure(
        processors=[
            stdlib.filter_by_level,
            *shared_processors,
            processors.format_exc_info,
            stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=stdlib.LoggerFactory(),
        wrapper_class=stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = stdlib.ProcessorFormatter(
        processor=JSONRenderer() if json_logs else dev.ConsoleRenderer(),
        foreign_pre_chain=shared_processors,
    )
    handler.setFormatter(formatter)

    # Clear existing handlers to prevent duplicates
    root_logger.handlers = []
    root_logger.addHandler(handler)


def get_logger(name: str | None = None) -> BoundLogger:
    """Return a structlog logger, optionally named."""
    if name is None:
        return cast(BoundLogger, structlog.get_logger())
    return cast(BoundLogger, structlog.get_logger(name))
