"""
Main FastAPI application for the Funding Follow-Up Engine.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .routes import enrichment, followup
from .services import get_services, initialize_services
from config.settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Follow-Up Engine starting up...")
    initialize_services()
    logger.info("Follow-Up Engine ready")
    yield
    logger.info("Follow-Up Engine shutting down...")
    await get_services().shutdown()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.api_title,
        description="Lead scoring and follow-up sequencing for funding applications.",
        version=settings.api_version,
        docs_url="/docs",
        redoc_url="/redoc",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.include_router(followup.router, prefix="/api/v1", tags=["Follow-Up"])
    app.include_router(enrichment.router, prefix="/api/v1", tags=["Enrichment"])

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "service": "Funding Follow-Up Engine",
            "version": settings.api_version,
            "status": "operational",
            "docs": "/docs",
        }

    # Health check
    @app.get("/health")
    async def health():
        services = get_services()
        return {
            "status": "healthy" if services.is_ready else "degraded",
            "services": services.health(),
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
