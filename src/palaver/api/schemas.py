"""Pydantic schemas for API responses."""

from datetime import datetime

from pydantic import BaseModel, Field

# ============================================================================
# Health Schemas
# ============================================================================


class ServiceHealth(BaseModel):
    """Health status of a dependency."""

    name: str
    status: str  # "healthy", "degraded", "unhealthy", "skipped"
    latency_ms: float | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy", "degraded", "unhealthy"
    version: str
    timestamp: datetime = Field(default_factory=datetime.now)
    services: list[ServiceHealth] = Field(default_factory=list)


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    checks: dict[str, bool] = Field(default_factory=dict)


# ============================================================================
# Error Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Details of an error."""

    code: str
    message: str
    field: str | None = None


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    details: list[ErrorDetail] = Field(default_factory=list)
    request_id: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)
