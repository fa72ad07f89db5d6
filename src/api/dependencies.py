"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from psycopg_pool import ConnectionPool

from src.adapters.drafts.memory import InMemoryDraftStore
from src.adapters.host.memory import InMemoryHostPlatform
from src.adapters.repository.postgres import PostgresRegistrationRepository
from src.adapters.smtp.console import ConsoleNotificationTransport
from src.config.settings import Settings, get_settings
from src.domain.records import Actor
from src.domain.registration import RegistrationService
from src.domain.review import ReviewService
from src.domain.tokens import TokenCodec
from src.domain.trust import parse_domain_list

# Module-level singleton - ConsoleNotificationTransport is stateless
_notifier = ConsoleNotificationTransport()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_repository(request: Request) -> PostgresRegistrationRepository:
    """Create repository with connection pool from app state."""
    pool = get_pool(request)
    return PostgresRegistrationRepository(pool)


def get_notifier() -> ConsoleNotificationTransport:
    """Get console notification transport (singleton)."""
    return _notifier


def get_host(request: Request) -> InMemoryHostPlatform:
    """Get the host platform adapter created at startup."""
    return request.app.state.host


def get_draft_store(request: Request) -> InMemoryDraftStore:
    """Get the draft store created at startup."""
    return request.app.state.drafts


@lru_cache(maxsize=4)
def _codec_for(secret: str) -> TokenCodec:
    return TokenCodec(secret)


def get_token_codec(settings: Settings = Depends(get_settings)) -> TokenCodec:
    """
    Build the token codec from the configured secret.

    Raises:
        RuntimeError: If TOKEN_SECRET is not configured
    """
    if settings.token_secret is None or not settings.token_secret.get_secret_value():
        raise RuntimeError("TOKEN_SECRET is not configured")
    return _codec_for(settings.token_secret.get_secret_value())


def get_registration_service(
    request: Request,
    codec: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the repository, host platform and notifier for the
    domain service.
    """
    host = get_host(request)
    return RegistrationService(
        repository=get_repository(request),
        accounts=host,
        tenants=host,
        notifier=get_notifier(),
        token_codec=codec,
        trusted_domains=parse_domain_list(settings.preapproved_domains),
        retention_hours=settings.unconfirmed_hours,
        system_assessor=settings.system_assessor_id,
        site_name=settings.site_name,
        base_url=settings.base_url,
    )


def get_review_service(
    request: Request,
    codec: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> ReviewService:
    """Create review service with injected dependencies."""
    host = get_host(request)
    return ReviewService(
        repository=get_repository(request),
        accounts=host,
        tenants=host,
        notifier=get_notifier(),
        token_codec=codec,
        reason_max_length=settings.reason_max_length,
        site_name=settings.site_name,
        base_url=settings.base_url,
    )


# HTTP BASIC AUTH security scheme for OpenAPI documentation
http_basic = HTTPBasic()


def get_current_actor(
    request: Request,
    credentials: HTTPBasicCredentials = Depends(http_basic),
) -> Actor:
    """
    Authenticate an admin from the HTTP BASIC AUTH header.

    FastAPI's HTTPBasic automatically returns 401 for a missing or
    malformed Authorization header.

    Raises:
        HTTPException: 401 if the host directory rejects the credentials
    """
    actor = get_host(request).authenticate(credentials.username.strip(), credentials.password)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return actor
