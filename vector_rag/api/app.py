"""FastAPI application entry point.

Configures the application with logging, exception handling, metrics and
health checks, and builds the retrieval services for the app's lifetime.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from vector_rag import __version__
from vector_rag.api.routes import router
from vector_rag.config import get_settings
from vector_rag.exceptions import ErrorCode, VectorRAGError
from vector_rag.logging_config import get_logger, setup_logging
from vector_rag.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)
from vector_rag.services import build_services

logger = get_logger(__name__)

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.COLLECTION_NOT_FOUND: 404,
    ErrorCode.COLLECTION_EXISTS: 409,
    ErrorCode.EMBEDDING_DIMENSION_MISMATCH: 409,
    ErrorCode.LLM_RATE_LIMIT: 429,
    ErrorCode.EMBEDDING_BACKEND_ERROR: 502,
    ErrorCode.EMBEDDING_EMPTY: 502,
    ErrorCode.LLM_SERVICE_ERROR: 502,
    ErrorCode.STORE_UNAVAILABLE: 503,
    ErrorCode.LLM_TIMEOUT: 504,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the services on startup and closes their clients on shutdown.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting vector-rag",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
            "embedding_provider": settings.embedding.provider.value,
            "collection": settings.qdrant.collection_name,
        },
    )

    services = build_services(settings)
    app.state.services = services

    yield

    logger.info("Shutting down vector-rag")
    await services.aclose()
    app.state.services = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="vector-rag",
        description="Embedding, vector storage and retrieval for RAG",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.services = None

    app.add_middleware(MetricsMiddleware)
    app.add_exception_handler(VectorRAGError, rag_exception_handler)

    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Metrics"])
    app.include_router(router)

    return app


async def rag_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Convert VectorRAGError exceptions to structured JSON responses."""
    if not isinstance(exc, VectorRAGError):
        return JSONResponse(
            status_code=500,
            content={"error": {"code": "RAG-1000", "message": str(exc), "details": {}}},
        )

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=_STATUS_BY_CODE.get(exc.code, 500),
        content=exc.to_dict(),
    )


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Readiness probe.

    Reports whether configuration loaded and services were built.
    """
    checks: dict[str, str] = {
        "config": "ok",
        "services": "ok" if request.app.state.services is not None else "not_built",
    }
    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "alive"}


async def metrics_endpoint() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


# Create the application instance
app = create_app()
