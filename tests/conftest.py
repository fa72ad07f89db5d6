"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An in-memory registration repository and host platform
- Domain services wired to mocks with a frozen clock
- A PostgreSQL pool for integration tests (skipped when unreachable)
"""

from collections.abc import Generator
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.host.memory import InMemoryHostPlatform
from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings
from src.domain.registration import RegistrationService
from src.domain.review import ReviewService
from src.domain.tokens import TokenCodec
from tests.fakes import NOW, OTHER_TENANT_ID, TENANT_ID, TEST_SECRET, InMemoryRegistrationRepository


@pytest.fixture
def repository() -> InMemoryRegistrationRepository:
    return InMemoryRegistrationRepository()


@pytest.fixture
def host() -> InMemoryHostPlatform:
    """Host platform with two tenants and a low bcrypt cost for speed."""
    platform = InMemoryHostPlatform(
        tenants={TENANT_ID: "Biology Lab", OTHER_TENANT_ID: "Physics Lab"},
        bcrypt_rounds=4,
    )
    platform.add_admin("siteadmin", "site-pass", site_admin=True)
    platform.add_admin("bioadmin", "bio-pass", tenant_id=TENANT_ID)
    platform.add_admin("physadmin", "phys-pass", tenant_id=OTHER_TENANT_ID)
    return platform


@pytest.fixture
def notifier() -> Mock:
    return Mock()


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET)


@pytest.fixture
def clock() -> Mock:
    """Frozen clock; tests move time with clock.return_value."""
    return Mock(return_value=NOW)


@pytest.fixture
def registration_service(
    repository: InMemoryRegistrationRepository,
    host: InMemoryHostPlatform,
    notifier: Mock,
    codec: TokenCodec,
    clock: Mock,
) -> RegistrationService:
    return RegistrationService(
        repository=repository,
        accounts=host,
        tenants=host,
        notifier=notifier,
        token_codec=codec,
        trusted_domains=["trusted.org"],
        retention_hours=24,
        system_assessor=2,
        site_name="Test Site",
        base_url="https://learn.example.com",
        clock=clock,
    )


@pytest.fixture
def review_service(
    repository: InMemoryRegistrationRepository,
    host: InMemoryHostPlatform,
    notifier: Mock,
    codec: TokenCodec,
    clock: Mock,
) -> ReviewService:
    return ReviewService(
        repository=repository,
        accounts=host,
        tenants=host,
        notifier=notifier,
        token_codec=codec,
        reason_max_length=500,
        site_name="Test Site",
        base_url="https://learn.example.com",
        clock=clock,
    )


@pytest.fixture(scope="session")
def pg_pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against DATABASE_URL with migrations applied.

    Tests using it are skipped when PostgreSQL is not reachable.
    """
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=False)
    try:
        pool.open(wait=True, timeout=3)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not available")

    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_pg(pg_pool: ConnectionPool) -> ConnectionPool:
    """Empty the registrations table before the test."""
    with pg_pool.connection() as conn:
        conn.execute("DELETE FROM registrations")
        conn.commit()
    return pg_pool

