"""
Structured logging for Inkwell.

Log records are produced with structlog and routed through the stdlib root
logger, so uvicorn, SQLAlchemy and our own modules share one sink:

- Pretty console output in development
- JSON lines in production
"""
import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import BoundLogger

from inkwell.config import Settings

CONTROL_CHARS = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": ""})


def sanitize_event(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Escape control characters in the event so user input can't forge log lines."""
    event = event_dict.get("event")
    if isinstance(event, str):
        event_dict["event"] = event.translate(CONTROL_CHARS)
    return event_dict


def configure_logging(settings: Settings) -> None:
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        sanitize_event,
    ]

    if settings.ENVIRONMENT == "production":
        renderer = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.LOG_LEVEL.upper())


def get_logger(name: str) -> BoundLogger:
    return structlog.get_logger(name)
