"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

import os

# WHY: Settings require JWT_SECRET at import time
os.environ.setdefault("JWT_SECRET", "test-secret-key-not-for-production")

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from tracker.main import app
from tracker.models.base import Base
from tracker.models.user import UserRole
from tracker.db.session import get_db
from tracker.services.checklist_suggestions import (
    ChecklistSuggestionService,
    get_checklist_suggestion_service,
)
from tests.factories import (
    OrganizationFactory,
    ProjectFactory,
    UserFactory,
    completion_response,
)


# Test database URL
# WHY: Using SQLite for tests eliminates external database dependencies
# and makes tests faster.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state.
    StaticPool keeps the single in-memory database alive across
    connections.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Yields:
        AsyncSession: Database session for the test
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def suggestion_stub() -> ChecklistSuggestionService:
    """
    Suggestion service with a stubbed OpenAI client.

    WHY: Tests never call the real API. Set the answer through
    suggestion_stub._client.chat.completions.create.return_value.
    """
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=completion_response('{"items": []}')
    )
    return ChecklistSuggestionService(api_key="test-key", model="test-model", limit=5, client=client)


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    suggestion_stub: ChecklistSuggestionService,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: AsyncClient allows testing FastAPI endpoints without running
    a real server, making tests faster and more reliable.

    Yields:
        AsyncClient: HTTP client for making test requests
    """

    async def override_get_db():
        """Override database dependency with test session."""
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_checklist_suggestion_service] = lambda: suggestion_stub

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# Organizations and members
# ============================================================================


@pytest_asyncio.fixture
async def test_org(db_session: AsyncSession):
    """
    Create a test organization.

    WHY: Every ticket belongs to an organization; most tests work inside
    this one.
    """
    return await OrganizationFactory.create(db_session, name="Acme Studio")


@pytest_asyncio.fixture
async def other_org(db_session: AsyncSession):
    """Second organization for cross-tenant isolation tests."""
    return await OrganizationFactory.create(db_session, name="Other Studio")


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession, test_org):
    """ADMIN member of test_org."""
    return await UserFactory.create(
        db_session,
        email="admin@acme.test",
        display_name="Ada Admin",
        role=UserRole.ADMIN,
        organization=test_org,
    )


@pytest_asyncio.fixture
async def test_manager(db_session: AsyncSession, test_org):
    """MANAGER member of test_org."""
    return await UserFactory.create(
        db_session,
        email="manager@acme.test",
        display_name="Max Manager",
        role=UserRole.MANAGER,
        organization=test_org,
    )


@pytest_asyncio.fixture
async def test_designer(db_session: AsyncSession, test_org):
    """DESIGNER member of test_org."""
    return await UserFactory.create(
        db_session,
        email="designer@acme.test",
        display_name="Dee Designer",
        role=UserRole.DESIGNER,
        organization=test_org,
    )


@pytest_asyncio.fixture
async def other_designer(db_session: AsyncSession, test_org):
    """Second DESIGNER of test_org, never assigned by default."""
    return await UserFactory.create(
        db_session,
        email="designer2@acme.test",
        display_name="Dana Designer",
        role=UserRole.DESIGNER,
        organization=test_org,
    )


@pytest_asyncio.fixture
async def foreign_admin(db_session: AsyncSession, other_org):
    """ADMIN of other_org."""
    return await UserFactory.create(
        db_session,
        email="admin@other.test",
        display_name="Olly Other",
        role=UserRole.ADMIN,
        organization=other_org,
    )


@pytest_asyncio.fixture
async def test_project(db_session: AsyncSession, test_org, test_manager):
    """Project of test_org created by test_manager."""
    return await ProjectFactory.create(
        db_session,
        organization=test_org,
        created_by=test_manager,
        name="Spring Campaign",
    )
