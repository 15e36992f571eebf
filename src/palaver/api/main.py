"""FastAPI application hosting a bot behind the Bot Framework messaging endpoint."""

import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from palaver import __version__
from palaver.adapters import BotFrameworkAdapter, BotFrameworkAdapterSettings
from palaver.core import ActivityHandler, BotAdapter, RedisStorage, get_storage
from palaver.demo import create_demo_bot, create_on_turn_error
from palaver.infrastructure import (
    CORRELATION_ID_HEADER,
    configure_structlog,
    get_logger,
    get_or_create_correlation_id,
    record_request,
    set_correlation_id,
)
from palaver.models import get_settings

from .routes import health_router, messages_router
from .schemas import ErrorResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    configure_structlog(settings.log_level)
    logger.info(
        "api_startup",
        service=settings.service_name,
        environment=settings.env,
        auth_enabled=settings.auth_enabled,
        storage=settings.storage,
        qna_configured=settings.qna_configured,
    )

    yield

    storage = getattr(app.state, "storage", None)
    if isinstance(storage, RedisStorage):
        await storage.close()
    logger.info("api_shutdown", service=settings.service_name)


def create_app(bot: ActivityHandler | None = None, adapter: BotAdapter | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        bot: Bot whose `on_turn` handles each activity; the demo bot by default
        adapter: Adapter with a `process_activity` method; a BotFrameworkAdapter
            built from settings by default
    """
    settings = get_settings()

    app = FastAPI(
        title="palaver",
        description="Bot Framework compatible conversational bot service.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    storage = None
    if bot is None:
        storage = get_storage(settings)
        bot = create_demo_bot(settings, storage)
    if adapter is None:
        adapter = BotFrameworkAdapter(
            BotFrameworkAdapterSettings.from_settings(settings),
            on_turn_error=create_on_turn_error(getattr(bot, "conversation_state", None)),
        )

    app.state.bot = bot
    app.state.adapter = adapter
    app.state.storage = storage

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        """Add correlation ID to all requests."""
        correlation_id = request.headers.get(CORRELATION_ID_HEADER)
        if not correlation_id:
            correlation_id = get_or_create_correlation_id()
        else:
            set_correlation_id(correlation_id)

        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        response.headers[CORRELATION_ID_HEADER] = correlation_id

        # Skip /metrics and health probes
        skip_metrics = request.url.path.startswith(("/metrics", "/health", "/ready", "/live"))
        if not skip_metrics:
            record_request(
                endpoint=request.url.path,
                method=request.method,
                status=response.status_code,
                duration=duration,
            )
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )

        return response

    app.include_router(health_router)
    app.include_router(messages_router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "unhandled_exception",
            method=request.method,
            path=request.url.path,
            error=str(exc),
            exc_info=True,
        )
        status_code = getattr(exc, "status_code", None) or 500
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error="Internal Server Error" if status_code == 500 else type(exc).__name__,
                details=[{"code": "INTERNAL_ERROR", "message": str(exc)}],
                request_id=request.headers.get(CORRELATION_ID_HEADER),
                timestamp=datetime.now(),
            ).model_dump(mode="json"),
        )

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with service info."""
        return {
            "name": settings.service_name,
            "version": __version__,
            "messages": "/api/messages",
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics",
            "status": "running",
        }

    return app


app = create_app()
