"""Health check endpoints."""

import time
from datetime import datetime

from fastapi import APIRouter, Request

from palaver import __version__
from palaver.core import RedisStorage
from palaver.infrastructure import set_health_status
from palaver.models import get_settings

from ..schemas import HealthResponse, ReadinessResponse, ServiceHealth

router = APIRouter(tags=["Health"])


async def _storage_health(request: Request) -> ServiceHealth:
    storage = getattr(request.app.state, "storage", None)
    if not isinstance(storage, RedisStorage):
        return ServiceHealth(name="storage", status="healthy", message="In-memory storage")

    start = time.time()
    try:
        await storage.ping()
    except Exception as e:
        set_health_status("redis", False)
        return ServiceHealth(name="redis", status="unhealthy", message=str(e))

    set_health_status("redis", True)
    return ServiceHealth(
        name="redis",
        status="healthy",
        latency_ms=(time.time() - start) * 1000,
        message="Redis reachable",
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint.

    Returns the overall health status of the service and its dependencies.
    """
    settings = get_settings()
    services = [await _storage_health(request)]
    overall_status = "healthy" if services[0].status == "healthy" else "degraded"

    services.append(
        ServiceHealth(
            name="channel_auth",
            status="healthy" if settings.auth_enabled else "degraded",
            message="App credentials configured" if settings.auth_enabled else "Authentication disabled",
        )
    )
    if not settings.auth_enabled and settings.is_production:
        overall_status = "degraded"

    services.append(
        ServiceHealth(
            name="qna_maker",
            status="healthy" if settings.qna_configured else "skipped",
            message="Knowledge base configured" if settings.qna_configured else "QnA Maker not configured",
        )
    )

    set_health_status("api", overall_status == "healthy")
    return HealthResponse(status=overall_status, version=__version__, timestamp=datetime.now(), services=services)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Returns whether the service is ready to accept activities.
    """
    checks = {
        "bot": getattr(request.app.state, "bot", None) is not None,
        "adapter": getattr(request.app.state, "adapter", None) is not None,
    }

    try:
        get_settings()
        checks["config"] = True
    except Exception:
        checks["config"] = False

    storage = await _storage_health(request)
    checks["storage"] = storage.status == "healthy"

    return ReadinessResponse(ready=all(checks.values()), checks=checks)


@router.get("/live")
async def liveness_check() -> dict:
    """Liveness check: the process is up."""
    return {"status": "alive", "timestamp": datetime.now().isoformat()}
