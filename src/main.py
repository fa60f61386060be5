"""Main application entry point."""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.application.api import router
from src.application.api.presence_routes import router as presence_router
from src.application.api.ooo_routes import router as ooo_router
from src.application.api.tenancy_routes import router as tenancy_router
from src.application.api.domain_routes import router as domain_router
from src.application.api.routing_routes import router as routing_router
from src.application.api.routes import SERVICE_VERSION
from src.application.di import get_container, close_container


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("🚀 Starting application...")
    try:
        container = get_container()
        container.get_presence_service()
        await container.init_tenancy_repository()
        logger.info("✅ Application started successfully")
    except Exception as e:
        logger.error(f"❌ Error during startup: {e}")
        raise

    yield

    # Shutdown
    logger.info("🛑 Shutting down application...")
    try:
        await close_container()
        logger.info("✅ Application shut down successfully")
    except Exception as e:
        logger.error(f"❌ Error during shutdown: {e}")


# Create FastAPI application
app = FastAPI(
    title="People Picker Service",
    description="Directory presence cache and Office 365 tenancy routing",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

# Outlook add-in and admin panel origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "https://outlook.office.com",
        "https://*.outlook.office.com",
        "https://outlook.office365.com",
        # Local development
        "http://localhost:3000",
        "http://localhost:3001",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api/v1", tags=["health"])
app.include_router(presence_router, prefix="/api/v1", tags=["presence"])
app.include_router(ooo_router, prefix="/api/v1", tags=["out-of-office"])
app.include_router(tenancy_router, prefix="/api/v1", tags=["tenancies"])
app.include_router(domain_router, prefix="/api/v1", tags=["smtp-domains"])
app.include_router(routing_router, prefix="/api/v1", tags=["routing"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "People Picker Service",
        "version": SERVICE_VERSION,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"🚀 Starting server on {host}:{port}")

    uvicorn.run(
        "src.main:app",
        host=host,
        port=port,
        reload=os.getenv("ENVIRONMENT") == "development",
        log_level="info",
    )
