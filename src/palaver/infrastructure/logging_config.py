"""Structlog configuration for bot turns.

Log events carry the service and environment from `Settings`, plus the
ids of the activity being processed: channel, conversation, activity and
the activity it replies to. Production renders JSON lines, development
renders colored console output.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from palaver.models.config import Settings, get_settings

# Context keys describing the activity of the current turn
ACTIVITY_LOG_FIELDS = (
    "channel_id",
    "conversation_id",
    "activity_id",
    "activity_type",
    "reply_to_id",
)


def activity_log_fields(activity: Any) -> dict[str, Any]:
    """Loggable ids of an activity; fields the activity lacks are left out."""
    if activity is None:
        return {}
    conversation = getattr(activity, "conversation", None)
    fields = {
        "channel_id": getattr(activity, "channel_id", None),
        "conversation_id": getattr(conversation, "id", None),
        "activity_id": getattr(activity, "id", None),
        "activity_type": getattr(activity, "type", None),
        "reply_to_id": getattr(activity, "reply_to_id", None),
    }
    return {key: value for key, value in fields.items() if value}


def service_info_processor(settings: Settings) -> Processor:
    """Processor stamping the service name and environment on every event."""

    def add_service_info(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", settings.service_name)
        event_dict.setdefault("environment", settings.env)
        return event_dict

    return add_service_info


def configure_structlog(level: str | None = None, settings: Settings | None = None) -> None:
    """Configure structlog for the environment in `settings`.

    Args:
        level: Log level name; defaults to `settings.log_level`.
        settings: Settings to read; defaults to `get_settings()`.
    """
    settings = settings or get_settings()
    production = settings.is_production

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        service_info_processor(settings),
    ]

    if production:
        renderer: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=[*shared_processors, *renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


configure_structlog()
