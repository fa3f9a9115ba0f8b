"""
Shared fixtures.

Repository and service tests run against an in-memory SQLite database
through the same async SQLAlchemy models the application uses.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from schoolhub.core.database import Base
from schoolhub.core.security import PasswordHasher, TokenIssuer
from schoolhub.modules.auth.reset_tokens import ResetTokenManager
from schoolhub.modules.auth.service import AuthService
from schoolhub.modules.users import models  # noqa: F401 - registers tables on Base.metadata

TEST_SECRET = "test-signing-secret"


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    """Database session bound to the in-memory engine."""
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.rollback = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def hasher():
    """Cheapest bcrypt cost so tests stay fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_issuer():
    return TokenIssuer(secret=TEST_SECRET, expires_in=timedelta(days=30))


@pytest.fixture
def reset_tokens():
    return ResetTokenManager()


@pytest.fixture
def auth_service(db, hasher, token_issuer, reset_tokens):
    return AuthService(db, hasher=hasher, tokens=token_issuer, reset_tokens=reset_tokens)
