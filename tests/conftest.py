"""
Pytest configuration and shared fixtures.
"""

import os

# Settings are read once at import time, so configure before the app loads
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-for-taskdesk-unit-tests-0123456789")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "")

from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from taskdesk.auth.tokens import Role, TokenService
from taskdesk.database.connection import Database
from taskdesk.database.models import UserDB
from taskdesk.utils.datetime_utils import utc_now


@pytest.fixture
def token_service():
    """Token service with a fixed secret and the default one hour expiry."""
    return TokenService(secret="another-test-secret-0123456789-abcdefghij", ttl=timedelta(hours=1))


@pytest.fixture
def admin_user():
    return UserDB(
        id="admin-1",
        name="Ada Admin",
        email="ada@example.com",
        secret_hash="x",
        role=Role.ADMIN.value,
        created_at=utc_now(),
        updated_at=utc_now(),
    )


@pytest.fixture
def regular_user():
    return UserDB(
        id="user-1",
        name="Uma User",
        email="uma@example.com",
        secret_hash="x",
        role=Role.USER.value,
        created_at=utc_now(),
        updated_at=utc_now(),
    )


@pytest.fixture
def mock_database():
    """Mock database with session context manager."""
    db = Mock()
    session = AsyncMock()

    # Mock session context manager
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)

    # Mock session methods
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    session.get = AsyncMock()
    session.add = Mock()

    db.session = Mock(return_value=session)

    return db, session


@pytest_asyncio.fixture
async def sqlite_db(tmp_path):
    """A real transactional database backed by an aiosqlite file."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'taskdesk.db'}")
    assert await db.initialize()
    yield db
    await db.close()
