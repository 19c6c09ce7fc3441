"""
FastAPI application entry point for the host integration.
Configures logging, exception handlers, telemetry and routers.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from feedcore.api.dependencies import clear_caches, get_feed_service, get_http_client
from feedcore.api.routers import feed_router, health_router, keys_router, media_router
from feedcore.config import get_settings
from feedcore.config.logging import configure_logging
from feedcore.core.exceptions import AppException
from feedcore.core.telemetry import setup_telemetry


# =============================================================================
# Lifespan (Startup/Shutdown)
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    logger = logging.getLogger(__name__)
    settings = get_settings()

    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(
        f"Buffers: media={settings.MEDIA_BUCKET}, image={settings.IMAGE_BUCKET}, "
        f"dir={settings.CACHE_DIR or 'memory'}"
    )

    await get_feed_service().seed_prefetch()

    yield

    logger.info("Shutting down application")
    await get_http_client().aclose()
    clear_caches()


# =============================================================================
# Exception Handlers
# =============================================================================


async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """Handle custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions - return generic error."""
    logger = logging.getLogger(__name__)
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            }
        },
    )


# =============================================================================
# Application Factory
# =============================================================================


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    configure_logging(debug=settings.DEBUG)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
        Feed Core

        Personalization and resource-delivery engines for a video feed client.

        ## Features
        - Randomized interest/trending ranking with recycle mode and safety net
        - Chunked media and poster prefetching into versioned buckets
        - Narration key pool probing, ordering and rotation
        - Observability: JSON logs, Prometheus, OpenTelemetry
        """,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router)
    app.include_router(feed_router)
    app.include_router(media_router)
    app.include_router(keys_router)

    setup_telemetry(app)

    return app


app = create_app()


# =============================================================================
# Development Entry Point
# =============================================================================


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "feedcore.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
