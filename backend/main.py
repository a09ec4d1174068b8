"""
Dealer KPI Dashboard - Main Application Entry Point

Serves the KPI calculation engine to the dashboard frontend.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dealer_kpi.core.config import get_settings
from dealer_kpi.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    logger.info(
        f"Starting Dealer KPI Dashboard in {settings.ENVIRONMENT} mode "
        f"(evaluation mode: {settings.KPI_EVALUATION_MODE})"
    )

    yield

    logger.info("Shutting down Dealer KPI Dashboard...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Dealer KPI Dashboard",
        description="Daily and month-to-date KPI calculation for dealership brands",
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

    from dealer_kpi.api import kpi

    app.include_router(kpi.router, prefix="/api/kpi", tags=["kpi"])

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
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
