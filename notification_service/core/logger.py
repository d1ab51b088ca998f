import logging
import sys
from typing import Any

import structlog

from notification_service.core.config import settings


def _configure_stdlib_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )
    # botocore is chatty at INFO during long polling
    logging.getLogger("botocore").setLevel(logging.WARNING)


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    _configure_stdlib_logging(level or settings.log_level)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    if (log_format or settings.log_format) == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(**initial_values: Any) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger("notification_service")
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger
