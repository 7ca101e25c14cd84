"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.deps import limiter
from app.config import get_settings
from app.llm import create_gateway_from_settings
from app.utils.errors import StorageError
from app.utils.logging import setup_logging

# Configure logging with file output
settings = get_settings()
setup_logging(level=settings.log_level, log_dir=settings.log_dir)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    logger.info(f"Starting application in {settings.environment} mode")
    app.state.gateway = create_gateway_from_settings(settings)
    logger.info(f"AI provider: {app.state.gateway.provider_name}")
    yield
    # Shutdown
    await app.state.gateway.aclose()
    logger.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title="Task Assistant API",
    description="AI assistance for tasks: support plans, decomposition and research",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# Attach rate limiter to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    """Task store outages surface as 503 instead of a bare 500."""
    logger.error(f"Task store failure on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": f"Task store unavailable: {exc.message}"},
    )


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# Import and include routers
from app.api import ai, health  # noqa: E402

app.include_router(health.router, tags=["Health"])
app.include_router(ai.router, tags=["AI"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Task Assistant API",
        "version": "1.0.0",
        "docs": "/docs" if not settings.is_production else None,
    }
