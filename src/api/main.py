"""
FastAPI application for the registration workflow.

Wires logging, the host directory, the draft store and the database pool
into app.state during startup.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.drafts.memory import InMemoryDraftStore
from src.adapters.host.memory import InMemoryHostPlatform
from src.adapters.repository.postgres import run_migrations
from src.api.v1 import router as v1_router
from src.config.logging_config import configure_logging
from src.config.settings import Settings, get_settings
from src.domain.records import Policy

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Self-service registration - stage, submit, confirm and edit registrations",
    },
    {
        "name": "admin",
        "description": "Review confirmed registrations (HTTP BASIC AUTH)",
    },
]


def build_host(settings: Settings) -> InMemoryHostPlatform:
    """Seed the in-memory host directory from settings."""
    host = InMemoryHostPlatform(
        tenants=settings.tenants,
        policies=[Policy(name=name, url=url) for name, url in settings.policies.items()],
        bcrypt_rounds=settings.bcrypt_cost,
    )
    if settings.admin_password is not None:
        host.add_admin(
            settings.admin_username,
            settings.admin_password.get_secret_value(),
            site_admin=True,
        )
    else:
        logger.warning("ADMIN_PASSWORD is not set; admin routes will reject every login")
    return host


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Refuses to start without TOKEN_SECRET
    - Creates database connection pool and runs migrations
    - Seeds the host directory and draft store
    - Closes connection pool on shutdown
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    logger.info("Starting application...")

    if settings.token_secret is None or not settings.token_secret.get_secret_value():
        raise RuntimeError("TOKEN_SECRET must be set before the application starts")

    logger.info("Connecting to database...")
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    app.state.pool = pool
    app.state.host = build_host(settings)
    app.state.drafts = InMemoryDraftStore(ttl_seconds=settings.draft_ttl_seconds)

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="registration",
    description="Self-service registration for a multi-tenant learning platform",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """Report healthy once the database answers a trivial query."""
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
