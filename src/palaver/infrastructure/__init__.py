"""Logging, correlation and metrics for palaver services."""

from .correlation import (
    CORRELATION_ID_HEADER,
    activity_scope,
    generate_correlation_id,
    get_correlation_id,
    get_or_create_correlation_id,
    reset_correlation_context,
    set_correlation_id,
)
from .logging_config import (
    ACTIVITY_LOG_FIELDS,
    activity_log_fields,
    bind_context,
    bind_correlation_id,
    clear_context,
    configure_structlog,
    get_logger,
)
from .metrics import (
    activities_sent_total,
    health_check_status,
    qna_queries_total,
    record_activity_sent,
    record_connector_request,
    record_qna_query,
    record_request,
    record_storage_operation,
    record_telemetry_event,
    record_turn,
    record_turn_error,
    request_duration_seconds,
    requests_total,
    set_health_status,
    turns_total,
)

__all__ = [
    # Logging
    "get_logger",
    "bind_context",
    "bind_correlation_id",
    "activity_log_fields",
    "ACTIVITY_LOG_FIELDS",
    "clear_context",
    "configure_structlog",
    # Correlation
    "CORRELATION_ID_HEADER",
    "activity_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "get_or_create_correlation_id",
    "set_correlation_id",
    "reset_correlation_context",
    # Metrics
    "requests_total",
    "request_duration_seconds",
    "turns_total",
    "activities_sent_total",
    "qna_queries_total",
    "health_check_status",
    "record_request",
    "record_turn",
    "record_turn_error",
    "record_activity_sent",
    "record_telemetry_event",
    "record_qna_query",
    "record_connector_request",
    "record_storage_operation",
    "set_health_status",
]
