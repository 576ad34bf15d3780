"""
Cab Pool Backend - FastAPI Application

Main application entry point with middleware, routers, and exception
handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import close_db, get_db, get_redis, init_db
from app.exceptions import CabPoolError, InternalError
from app.middleware.rate_limit import RateLimitMiddleware
from app.routers import groups, notifications, pool
from app.utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Please try again later."


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    Handles startup and shutdown events:
    - Configure logging
    - Initialize database connections
    - Cleanup on shutdown
    """
    setup_logging(settings.log_level)
    await init_db()

    try:
        await get_db().client.admin.command("ping")
        logger.info("Connected to db")
    except Exception as e:
        logger.error(f"FAILED to connect to db: {e}")

    try:
        await get_redis().ping()
        logger.info("Redis connected")
    except Exception as e:
        logger.error(f"FAILED to connect to Redis: {e}")

    yield

    await close_db()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Cab Pool API",
    description="""
    Campus cab pooling API

    ## Features
    - Pool requests with time/distance/gender matching
    - Travel groups with seat limits, admin hand-over and locking
    - In-app notification center

    ## Authentication
    All endpoints except health require a bearer JWT:
    `Authorization: Bearer <token>`
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    debug=settings.debug,
    lifespan=lifespan,
)


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RateLimitMiddleware)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(CabPoolError)
async def cab_pool_error_handler(request: Request, exc: CabPoolError):
    """Map domain errors to their HTTP status."""
    if isinstance(exc, InternalError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": GENERIC_ERROR})

    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are a 400, like every other validation failure."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors.

    SECURITY: Never leak internal error details.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": GENERIC_ERROR},
    )


# =============================================================================
# Routers
# =============================================================================

app.include_router(pool.router, prefix=f"{settings.api_v1_str}/pool", tags=["Pool"])
app.include_router(groups.router, prefix=f"{settings.api_v1_str}/group", tags=["Groups"])
app.include_router(
    notifications.router,
    prefix=f"{settings.api_v1_str}/notifications",
    tags=["Notifications"],
)


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Cab Pool API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }
