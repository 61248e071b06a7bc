"""
Routine Sync - Main Application Entry Point

Mirrors weekday routine templates into concrete dates and lays them out.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from routine_sync.core.config import get_settings
from routine_sync.core.exceptions import (
    NotFoundError,
    RoutineSyncError,
    StoreUnavailableError,
    ValidationError,
)
from routine_sync.core.logger import setup_logger

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    logger.info(f"Starting Routine Sync in {settings.ENVIRONMENT} mode...")

    if not settings.is_test:
        from routine_sync.infrastructure.local.database import init_db

        await init_db()

    # Watch sessions and the daily window seed
    from routine_sync.services.background_scheduler import (
        start_background_scheduler,
        stop_background_scheduler,
    )

    await start_background_scheduler()

    yield

    # Shutdown
    logger.info("Shutting down Routine Sync...")
    await stop_background_scheduler()


def _error_body(exc: RoutineSyncError) -> dict:
    body = {"detail": exc.message}
    if exc.details is not None:
        body["details"] = exc.details
    return body


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Routine Sync",
        description="Weekly routine templates mirrored into a rolling window of dates",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(exc),
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_body(exc))

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_body(exc),
        )

    # Include routers
    from routine_sync.api import dates, routines, sync

    app.include_router(routines.router, prefix="/api/users/{uid}/routines", tags=["routines"])
    app.include_router(dates.router, prefix="/api/users/{uid}/dates", tags=["dates"])
    app.include_router(sync.router, prefix="/api/users/{uid}/sync", tags=["sync"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": "0.1.0",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "routine_sync.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
