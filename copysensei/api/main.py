"""
FastAPI application main entry point.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from copysensei.api.routes import (
    chat_router,
    functions_router,
    profile_router,
    projects_router,
)
from copysensei.core.cache import cache
from copysensei.core.config import settings
from copysensei.core.database import close_db, init_db
from copysensei.core.observability import configure_logging, init_sentry

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    configure_logging()
    logger.info("Starting CopySensei Backend", environment=settings.environment)

    # Connect to Redis
    try:
        await cache.connect()
        logger.info("Redis connected")
    except Exception as e:
        logger.warning("Redis connection failed", error=str(e))

    # Initialize database
    try:
        await init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.warning("Database initialization failed", error=str(e))

    # Initialize Sentry for error tracking
    try:
        init_sentry()
    except Exception as e:
        logger.warning("Sentry initialization failed", error=str(e))

    yield

    # Shutdown
    logger.info("Shutting down CopySensei Backend")
    await cache.disconnect()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    CopySensei copywriting assistant backend

    - Projects with website research, tone of voice, notes and documents
    - Project chat with credit-metered copy generation
    - generate-copy and fetch-research functions
    """,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(profile_router, prefix=settings.api_v1_prefix)
app.include_router(projects_router, prefix=settings.api_v1_prefix)
app.include_router(chat_router, prefix=settings.api_v1_prefix)
app.include_router(functions_router, prefix=settings.functions_prefix)


# Health check endpoint
@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


# Root endpoint
@app.get("/")
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "endpoints": {
            "me": f"{settings.api_v1_prefix}/me",
            "projects": f"{settings.api_v1_prefix}/projects",
            "chat": f"{settings.api_v1_prefix}/projects/{{project_id}}/chat",
            "generate_copy": f"{settings.functions_prefix}/generate-copy",
            "fetch_research": f"{settings.functions_prefix}/fetch-research",
        },
    }
