"""
Structured logging configuration using structlog.

Every record carries the service name and environment, plus whatever the
request middleware bound (request_id, method, path). Attendance code logs
snake_case events with event_id/user_id context, e.g.

    logger.info("waitlist_promoted", event_id=7, user_id=42, capacity=50)

Production emits one JSON object per line; other environments use the
console renderer (colored only in development).
"""

import logging
import sys

import structlog
from structlog.typing import EventDict, Processor

from attendance.core.config import Settings, get_settings

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def _service_context(settings: Settings) -> Processor:
    def add_service_context(logger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", settings.APP_NAME)
        event_dict.setdefault("env", settings.ENVIRONMENT)
        return event_dict

    return add_service_context


def _renderer(settings: Settings) -> Processor:
    if settings.ENVIRONMENT == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=settings.ENVIRONMENT == "development")


def setup_logging() -> None:
    settings = get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_context(settings),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.ENVIRONMENT == "production":
        processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings),
            ],
        )
    )

    # replace rather than append so reloads don't duplicate output
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
