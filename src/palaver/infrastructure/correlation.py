"""Correlation of log events with HTTP requests and bot turns.

An HTTP request carries its correlation id in the `X-Correlation-ID`
header. Every turn run by an adapter is wrapped in `activity_scope`, which
reuses the request's correlation id (or starts a new one for console and
proactive turns) and binds the ids of the incoming activity to each log
event of the turn.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog

from .logging_config import activity_log_fields, bind_correlation_id, clear_context

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

CORRELATION_ID_HEADER = "X-Correlation-ID"


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation id for the current request and bind it for logging."""
    _correlation_id.set(correlation_id)
    bind_correlation_id(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def get_or_create_correlation_id() -> str:
    current = get_correlation_id()
    if current is None:
        current = generate_correlation_id()
        set_correlation_id(current)
    return current


def reset_correlation_context() -> None:
    _correlation_id.set(None)
    clear_context()


@contextmanager
def activity_scope(activity: Any, correlation_id: str | None = None) -> Iterator[str]:
    """Scope a turn's log context to `activity`.

    Binds the correlation id together with the channel, conversation and
    activity ids. Whatever was bound before the block is restored on exit.

    Args:
        activity: The incoming activity of the turn.
        correlation_id: Explicit id; defaults to the current request's id,
            or a new one when none is set.

    Yields:
        The correlation id in effect for the turn.
    """
    correlation_id = correlation_id or get_correlation_id() or generate_correlation_id()
    token = _correlation_id.set(correlation_id)
    try:
        with structlog.contextvars.bound_contextvars(
            correlation_id=correlation_id, **activity_log_fields(activity)
        ):
            yield correlation_id
    finally:
        _correlation_id.reset(token)
