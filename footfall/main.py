"""
Footfall Analytics API - Main Application Entry Point.

Privacy-preserving event ingestion and aggregation for a tourism site.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from footfall.core.config import IngestionConfig, settings
from footfall.core.database import close_db, init_db
from footfall.core.logging import configure_logging, get_logger
from footfall.middleware import ErrorHandlerMiddleware, RequestIdMiddleware
from footfall.routers import (
    alerts_router,
    export_router,
    funnels_router,
    health_router,
    reports_router,
    tracking_router,
    worker_router,
)

# Configure logging before anything else
configure_logging()
logger = get_logger(__name__)

API_PREFIX = "/api/analytics"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(
        "Starting application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    await init_db()

    # Initialize Sentry if configured
    if settings.sentry_dsn:
        import sentry_sdk

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,
            send_default_pii=False,
        )
        logger.info("Sentry initialized")

    yield

    logger.info("Shutting down application")
    await close_db()


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


def create_app(
    ingestion_config: Optional[IngestionConfig] = None,
    export_storage_dir: Optional[str | Path] = None,
) -> FastAPI:
    """
    Application factory function.

    The ingestion config is resolved here, once, and shared by every
    request through `app.state`. Stored report files are served from
    the path of `export_base_url`.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Privacy-preserving analytics ingestion and aggregation API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.ingestion_config = ingestion_config or IngestionConfig.from_settings(settings)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Add middleware (order matters - last added = outermost)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "X-Request-ID",
        ],
    )

    # Register routers
    app.include_router(health_router)
    app.include_router(tracking_router, prefix=API_PREFIX)
    app.include_router(export_router, prefix=API_PREFIX)
    app.include_router(funnels_router, prefix=API_PREFIX)
    app.include_router(alerts_router, prefix=API_PREFIX)
    app.include_router(reports_router, prefix=API_PREFIX)
    app.include_router(worker_router, prefix=API_PREFIX)

    # Report files written by the storage delivery channel
    exports_path = urlparse(settings.export_base_url).path.rstrip("/") or "/exports"
    app.mount(
        exports_path,
        StaticFiles(directory=str(export_storage_dir or settings.export_storage_dir), check_dir=False),
        name="exports",
    )

    logger.info(
        "Application created",
        routes=len(app.routes),
        cors_origins=len(settings.allowed_origins),
        heatmap_enabled=app.state.ingestion_config.heatmap_enabled,
    )

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "footfall.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
