"""
PrintDesk - FastAPI Application

Creates the FastAPI app, builds the service container and wires routers.

Run with: uvicorn printdesk.main:app --reload

Middleware order:
- CORS is FIRST (outermost) so preflight requests are answered before auth
- Request logging assigns X-Request-ID for every request
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import Settings, get_settings, load_environment, log_startup_diagnostics
from .core.errors import setup_error_handlers
from .core.logging import configure_structured_logging
from .core.middleware import RequestLoggingMiddleware
from .dependencies import Services
from .routers.admin import router as admin_router
from .routers.artifacts import router as artifacts_router
from .routers.health import router as health_router
from .routers.orders import router as orders_router
from .routers.stages import router as stages_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log the effective configuration on startup, release clients on shutdown."""
    services: Services = app.state.services

    logger.info(f"🚀 Starting PrintDesk v{__version__}")
    log_startup_diagnostics(services.settings)

    yield

    logger.info("🛑 Shutting down PrintDesk...")
    services.close()
    logger.info("✅ Shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[Services] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to use; defaults to get_settings()
        services: Prebuilt service container (tests inject in-memory
            capabilities here); defaults to Services.build(settings)

    Returns:
        Configured FastAPI application
    """
    if services is not None:
        settings = services.settings
    settings = settings or get_settings()
    services = services or Services.build(settings)

    app = FastAPI(
        title="PrintDesk",
        description="Print order fulfillment: stage tracking, vendor access and PDF artifacts.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.services = services

    # 1. CORS (MUST BE FIRST)
    logger.info(f"[CORS] Allowed origins: {settings.cors_allowed_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 2. Request logging
    app.add_middleware(RequestLoggingMiddleware)

    setup_error_handlers(app)

    app.include_router(health_router, prefix="/api")
    app.include_router(stages_router, prefix="/api")
    app.include_router(orders_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")
    app.include_router(artifacts_router, prefix="/api")

    @app.get("/", tags=["root"])
    async def root() -> dict[str, str]:
        """Root endpoint - service info."""
        return {
            "service": "PrintDesk",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
        }

    logger.info(f"FastAPI app created: {app.title}")

    return app


def _configure_from_environment() -> Settings:
    load_environment()
    settings = get_settings()
    configure_structured_logging(
        level=settings.LOG_LEVEL,
        json_output=settings.is_production,
    )
    return settings


# Create the application instance
app = create_app(_configure_from_environment())


# =============================================================================
# CLI Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "printdesk.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower(),
    )
