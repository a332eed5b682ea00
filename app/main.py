# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the ArchAssistant API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings, validate_environment
from app.exceptions import (
    ArchAssistantException,
    archassistant_exception_handler,
    validation_exception_handler,
)
from app.rate_limit import limit_api
from app.routers import billing, health, projects, snapshots, tasks
from app.auth import routes as auth_routes
from lib.supabase_client import SupabaseClientError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup validates provider settings: errors abort startup in
    production and are logged elsewhere; warnings are logged.
    """
    logger.info(f"Starting ArchAssistant API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    logger.info(f"LLM provider: {settings.LLM_PROVIDER}")

    env = validate_environment(settings)
    for warning in env.warnings:
        logger.warning(warning)
    for error in env.errors:
        logger.error(error)
    if not env.valid and settings.is_production:
        raise RuntimeError(
            "Environment validation failed: " + "; ".join(env.errors)
        )

    yield

    logger.info("Shutting down ArchAssistant API")


# Create FastAPI application
app = FastAPI(
    title="ArchAssistant API",
    description="""
## Architecture Documentation for GitHub Repositories

ArchAssistant reads a repository's file tree, generates an architecture
document with an LLM, and turns feature requests into implementation tasks.

### How It Works

1. **Connect** - Authorize GitHub and connect a repository
2. **Generate** - Create an architecture snapshot from the current tree
3. **Plan** - Describe a feature and get an implementation task
4. **Detect Drift** - Compare the repository against its latest snapshot

### Plans

| Plan | Repositories | Snapshots / month | Tasks / month |
|------|--------------|-------------------|---------------|
| **Free** | 1 | 3 | 10 |
| **Pro** | 5 | Unlimited | Unlimited |
| **Team** | Unlimited | Unlimited | Unlimited |
""",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Auth",
            "description": "Token verification and GitHub OAuth",
        },
        {
            "name": "Projects",
            "description": "Connected repositories, snapshot generation and drift detection",
        },
        {
            "name": "Snapshots",
            "description": "Generated architecture documents",
        },
        {
            "name": "Tasks",
            "description": "Generated implementation tasks",
        },
        {
            "name": "Billing",
            "description": "Plans, subscriptions, usage limits and Stripe webhooks",
        },
        {
            "name": "Health",
            "description": "API health and readiness checks",
        },
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(ArchAssistantException, archassistant_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)


@app.exception_handler(SupabaseClientError)
async def handle_supabase_error(request: Request, exc: SupabaseClientError):
    """Database failures are server errors carrying the client's code."""
    logger.error(f"Supabase error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=exc.to_dict())


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

# Authentication and GitHub OAuth endpoints (router carries /auth)
app.include_router(
    auth_routes.router,
    prefix="/api/v1",
)

# Health check endpoints
app.include_router(
    health.router,
    prefix="/api/v1",
    tags=["Health"]
)

# Project endpoints
app.include_router(
    projects.router,
    prefix="/api/v1/projects",
    tags=["Projects"],
    dependencies=[Depends(limit_api)],
)

# Snapshot endpoints
app.include_router(
    snapshots.router,
    prefix="/api/v1/snapshots",
    tags=["Snapshots"],
    dependencies=[Depends(limit_api)],
)

# Task endpoints
app.include_router(
    tasks.router,
    prefix="/api/v1/tasks",
    tags=["Tasks"],
    dependencies=[Depends(limit_api)],
)

# Billing endpoints (plans and webhook are public)
app.include_router(
    billing.router,
    prefix="/api/v1/billing",
    tags=["Billing"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "ArchAssistant API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/api/v1/health",
    }
