from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlmodel.pool import StaticPool

from kublade.core.database import create_all, create_sessionmaker
from kublade.core.database.entities.users import User
from kublade.core.database.repositories import AccessTokenRepository, UserRepository
from kublade.core.security import hash_password

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new session for each test."""
    async with create_sessionmaker(test_engine)() as session:
        yield session


async def _create_user(session: AsyncSession, name: str, email: str) -> User:
    # Few iterations keep the suite fast
    password = hash_password("secret-password", iterations=1_000)
    return await UserRepository(session).create(User(name=name, email=email, password=password))


@pytest_asyncio.fixture
async def owner(session: AsyncSession) -> User:
    """The first registered user, which holds every permission."""
    return await _create_user(session, "Owner", "owner@example.com")


@pytest_asyncio.fixture
async def member(session: AsyncSession, owner: User) -> User:
    """A regular user without any grants."""
    return await _create_user(session, "Member", "member@example.com")


@pytest.fixture
def auth_headers(session: AsyncSession) -> Callable[[User], Awaitable[dict]]:
    """Issue a token for a user and return the matching Authorization header."""

    async def _issue(user: User) -> dict:
        plain, _ = await AccessTokenRepository(session).issue(user, 60)
        return {"Authorization": f"Bearer {plain}"}

    return _issue


@pytest.fixture
def grant(session: AsyncSession) -> Callable[..., Awaitable[None]]:
    """Grant permissions directly to a user."""

    async def _grant(user: User, *permissions: str) -> None:
        await UserRepository(session).sync_permissions(user, permissions)

    return _grant
