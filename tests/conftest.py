"""Pytest fixtures for Guild tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from guild.api.app import create_app
from guild.config.settings import Settings
from guild.core.organization import OrganizationService
from guild.core.roles import UserRole
from guild.core.security import create_access_token, hash_password
from guild.db.config import create_engine, create_session_factory
from guild.db.models.base import Base
from guild.db.models.batch import BatchAdminAssignment
from guild.db.models.organization import Organization, SubscriptionStatus
from guild.db.models.user import User, VerificationStatus
from guild.db.repositories.batch import BatchRepository
from guild.entitlements.catalog import seed_catalog

TEST_PASSWORD = "correct-horse-battery"

# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Settings and database
# =============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings for a test run against a throwaway SQLite file."""
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'guild.db'}",
        ENVIRONMENT="test",
        DEBUG=True,
        JWT_SECRET_KEY=SecretStr("test-jwt-secret"),
        BCRYPT_ROUNDS=4,
        log_level="DEBUG",
    )


@pytest_asyncio.fixture
async def test_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Per-test engine with every table created.

    A file rather than an in-memory database, so the API and the test
    each get their own connections and only see committed data.
    """
    engine = create_engine(test_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def catalog(db_session: AsyncSession) -> None:
    """Seed the default feature catalog and plans."""
    await seed_catalog(db_session)
    await db_session.commit()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_organization(db_session: AsyncSession, test_settings: Settings, catalog: None):
    """Factory for committed organizations on a plan of the default catalog."""

    async def _make(
        tenant_code: str = "ALUMNI",
        plan_code: str | None = "FREE",
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        **kwargs,
    ) -> Organization:
        service = OrganizationService(db_session, test_settings)
        organization = await service.create_organization(
            name=kwargs.pop("name", f"{tenant_code.title()} Association"),
            tenant_code=tenant_code,
            plan_code=plan_code,
            subscription_status=status,
            **kwargs,
        )
        await db_session.commit()
        return organization

    return _make


@pytest_asyncio.fixture
async def organization(make_organization) -> Organization:
    return await make_organization()


@pytest.fixture
def make_user(db_session: AsyncSession, test_settings: Settings):
    """Factory for committed users in any role and verification state."""

    async def _make(
        organization: Organization,
        email: str,
        *,
        role: UserRole = UserRole.USER,
        status: VerificationStatus = VerificationStatus.PENDING,
        batch_year: int = 2022,
        full_name: str | None = None,
        is_active: bool = True,
    ) -> User:
        batches = BatchRepository(db_session, organization.organization_id)
        batch = await batches.ensure_batch(batch_year)
        user = User(
            organization_id=organization.organization_id,
            email=email.lower(),
            password_hash=hash_password(TEST_PASSWORD, test_settings),
            full_name=full_name or email.split("@")[0].title(),
            role=role.value,
            is_active=is_active,
            batch_year=batch_year,
            batch_id=batch.batch_id,
            verification_status=status.value,
            is_alumni_verified=status == VerificationStatus.VERIFIED,
            pending_verification=status == VerificationStatus.PENDING,
        )
        db_session.add(user)
        await db_session.flush()
        await batches.adjust_member_count(batch.batch_id, 1)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_batch_admin(db_session: AsyncSession, make_user):
    """Factory for a BATCH_ADMIN assigned to one or more batch years."""

    async def _make(organization: Organization, email: str, *years: int) -> User:
        admin = await make_user(
            organization,
            email,
            role=UserRole.BATCH_ADMIN,
            status=VerificationStatus.VERIFIED,
            batch_year=years[0],
        )
        for year in years:
            db_session.add(
                BatchAdminAssignment(
                    organization_id=organization.organization_id,
                    user_id=admin.user_id,
                    batch_year=year,
                )
            )
        await db_session.commit()
        return admin

    return _make


@pytest.fixture
def password() -> str:
    """Password every factory-made user logs in with."""
    return TEST_PASSWORD


@pytest.fixture
def auth_headers(test_settings: Settings):
    """Build request headers carrying a bearer token for ``user``."""

    def _headers(user: User, organization: Organization) -> dict[str, str]:
        token = create_access_token(
            user.user_id, organization.organization_id, user.role, test_settings
        )
        return {"Authorization": f"Bearer {token}", "X-Tenant-Code": organization.tenant_code}

    return _headers


# =============================================================================
# API test fixtures
# =============================================================================


@pytest.fixture
def test_app(
    test_settings: Settings, session_factory: async_sessionmaker[AsyncSession]
) -> FastAPI:
    """Create a FastAPI test application bound to the test database."""
    return create_app(settings=test_settings, session_factory=session_factory)


@pytest_asyncio.fixture
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing.

    Provides an httpx.AsyncClient configured to call the test application
    directly without network overhead.
    """
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client
