"""Prometheus metrics for palaver bots.

Provides metrics collection for:
- HTTP request rates and latencies
- Turns processed and activities sent
- Dialog and telemetry events
- QnA Maker and connector calls
- State storage operations
"""

from prometheus_client import Counter, Gauge, Histogram, Info

from palaver import __version__

# =============================================================================
# Application Info
# =============================================================================

app_info = Info(
    "palaver_app",
    "Application information",
)
app_info.info(
    {
        "version": __version__,
        "service": "palaver",
    }
)

# =============================================================================
# HTTP Metrics
# =============================================================================

requests_total = Counter(
    "palaver_requests_total",
    "Total number of HTTP requests",
    ["endpoint", "method", "status"],
)

request_duration_seconds = Histogram(
    "palaver_request_duration_seconds",
    "HTTP request duration in seconds",
    ["endpoint"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# =============================================================================
# Turn Metrics
# =============================================================================

turns_total = Counter(
    "palaver_turns_total",
    "Total turns processed",
    ["channel", "activity_type"],
)

turn_duration_seconds = Histogram(
    "palaver_turn_duration_seconds",
    "Turn processing time in seconds",
    ["channel"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

turn_errors_total = Counter(
    "palaver_turn_errors_total",
    "Total turns that raised an exception",
    ["channel", "error_type"],
)

activities_sent_total = Counter(
    "palaver_activities_sent_total",
    "Total outgoing activities",
    ["channel", "activity_type"],
)

turns_in_progress = Gauge(
    "palaver_turns_in_progress",
    "Number of turns currently being processed",
)

# =============================================================================
# Dialog / Telemetry Metrics
# =============================================================================

telemetry_events_total = Counter(
    "palaver_telemetry_events_total",
    "Telemetry events tracked by dialogs and middleware",
    ["event"],
)

# =============================================================================
# QnA Maker Metrics
# =============================================================================

qna_queries_total = Counter(
    "palaver_qna_queries_total",
    "Total QnA Maker generateAnswer calls",
    ["status"],
)

qna_latency_seconds = Histogram(
    "palaver_qna_latency_seconds",
    "QnA Maker request latency in seconds",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)

# =============================================================================
# Connector Metrics
# =============================================================================

connector_requests_total = Counter(
    "palaver_connector_requests_total",
    "Total Bot Connector REST calls",
    ["operation", "status"],
)

connector_latency_seconds = Histogram(
    "palaver_connector_latency_seconds",
    "Bot Connector request latency in seconds",
    ["operation"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)

# =============================================================================
# Storage Metrics
# =============================================================================

storage_operations_total = Counter(
    "palaver_storage_operations_total",
    "State storage operations",
    ["backend", "operation"],
)

# =============================================================================
# Health Check Metrics
# =============================================================================

health_check_status = Gauge(
    "palaver_health_check_status",
    "Health check status (1=healthy, 0=unhealthy)",
    ["component"],
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_request(endpoint: str, method: str, status: int, duration: float) -> None:
    """Record an HTTP request.

    Args:
        endpoint: The API endpoint
        method: HTTP method
        status: HTTP status code
        duration: Request duration in seconds
    """
    requests_total.labels(endpoint=endpoint, method=method, status=str(status)).inc()
    request_duration_seconds.labels(endpoint=endpoint).observe(duration)


def record_turn(channel: str | None, activity_type: str | None, duration: float) -> None:
    """Record a processed turn.

    Args:
        channel: Channel id of the inbound activity
        activity_type: Type of the inbound activity
        duration: Turn duration in seconds
    """
    channel = channel or "unknown"
    turns_total.labels(channel=channel, activity_type=activity_type or "unknown").inc()
    turn_duration_seconds.labels(channel=channel).observe(duration)


def record_turn_error(channel: str | None, error: BaseException) -> None:
    turn_errors_total.labels(channel=channel or "unknown", error_type=type(error).__name__).inc()


def record_activity_sent(channel: str | None, activity_type: str | None) -> None:
    activities_sent_total.labels(
        channel=channel or "unknown", activity_type=activity_type or "unknown"
    ).inc()


def record_telemetry_event(name: str) -> None:
    telemetry_events_total.labels(event=name).inc()


def record_qna_query(status: str, duration: float) -> None:
    """Record a QnA Maker query.

    Args:
        status: Request status (success/error)
        duration: Request duration in seconds
    """
    qna_queries_total.labels(status=status).inc()
    qna_latency_seconds.observe(duration)


def record_connector_request(operation: str, status: str, duration: float) -> None:
    """Record a Bot Connector REST call.

    Args:
        operation: Connector operation name (e.g. reply_to_activity)
        status: HTTP status code or "error"
        duration: Request duration in seconds
    """
    connector_requests_total.labels(operation=operation, status=status).inc()
    connector_latency_seconds.labels(operation=operation).observe(duration)


def record_storage_operation(backend: str, operation: str, count: int = 1) -> None:
    storage_operations_total.labels(backend=backend, operation=operation).inc(count)


def set_health_status(component: str, healthy: bool) -> None:
    """Set health check status for a component.

    Args:
        component: Component name
        healthy: Whether the component is healthy
    """
    health_check_status.labels(component=component).set(1 if healthy else 0)
