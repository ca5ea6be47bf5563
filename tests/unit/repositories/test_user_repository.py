"""
Unit tests for UserRepository (the credential store).

Tests identity creation, email uniqueness and secret verification.
"""

import pytest
from unittest.mock import AsyncMock, Mock, patch

from sqlalchemy.exc import IntegrityError

from taskdesk.database.exceptions import DatabaseConstraintError
from taskdesk.database.models import UserDB, UserRoleEnum
from taskdesk.database.repositories.users import UserRepository


@pytest.fixture
def user_repository(mock_database):
    """Create UserRepository with mocked database."""
    db, session = mock_database
    repo = UserRepository()
    repo.db = db
    return repo, session


def scalar(value):
    result = Mock()
    result.scalar_one_or_none = Mock(return_value=value)
    return result


# ============================================================
# CREATE TESTS
# ============================================================

@pytest.mark.asyncio
async def test_create_hashes_secret_and_lowercases_email(user_repository):
    repo, session = user_repository
    session.execute.return_value = scalar(None)

    with patch("taskdesk.database.repositories.users.hash_secret", AsyncMock(return_value="HASH")):
        user = await repo.create("Ada", "  Ada@Example.com ", "Str0ng-Secret!", UserRoleEnum.ADMIN)

    session.add.assert_called_once()
    assert user.email == "ada@example.com"
    assert user.secret_hash == "HASH"
    assert user.role == "Admin"


@pytest.mark.asyncio
async def test_create_duplicate_email_is_conflict(user_repository):
    repo, session = user_repository
    session.execute.return_value = scalar("existing-id")

    with patch("taskdesk.database.repositories.users.hash_secret", AsyncMock(return_value="HASH")):
        with pytest.raises(DatabaseConstraintError) as exc_info:
            await repo.create("Ada", "ada@example.com", "Str0ng-Secret!")

    assert exc_info.value.status_code == 409
    session.add.assert_not_called()


@pytest.mark.asyncio
async def test_create_integrity_race_is_conflict(user_repository):
    """A concurrent insert that slips past the pre-check still maps to Conflict."""
    repo, session = user_repository
    session.execute.return_value = scalar(None)
    session.flush.side_effect = IntegrityError("INSERT", {}, Exception("unique"))

    with patch("taskdesk.database.repositories.users.hash_secret", AsyncMock(return_value="HASH")):
        with pytest.raises(DatabaseConstraintError):
            await repo.create("Ada", "ada@example.com", "Str0ng-Secret!")


# ============================================================
# AUTHENTICATION TESTS
# ============================================================

@pytest.mark.asyncio
async def test_authenticate_unknown_email(user_repository):
    repo, session = user_repository
    session.execute.return_value = scalar(None)

    with patch(
        "taskdesk.database.repositories.users.verify_missing_identity",
        AsyncMock(return_value=False),
    ) as placeholder, patch(
        "taskdesk.database.repositories.users.verify_secret",
        AsyncMock(return_value=True),
    ) as verify:
        assert await repo.authenticate("nobody@example.com", "whatever") is None

    # An unknown email still pays for one hash check
    placeholder.assert_awaited_once_with("whatever")
    verify.assert_not_awaited()


@pytest.mark.asyncio
async def test_authenticate_wrong_secret(user_repository, regular_user):
    repo, session = user_repository
    session.execute.return_value = scalar(regular_user)

    with patch("taskdesk.database.repositories.users.verify_secret", AsyncMock(return_value=False)):
        assert await repo.authenticate("uma@example.com", "wrong") is None


@pytest.mark.asyncio
async def test_authenticate_success(user_repository, regular_user):
    repo, session = user_repository
    session.execute.return_value = scalar(regular_user)

    with patch("taskdesk.database.repositories.users.verify_secret", AsyncMock(return_value=True)) as verify:
        assert await repo.authenticate("UMA@example.com", "right") is regular_user

    verify.assert_awaited_once_with("right", regular_user.secret_hash)


# ============================================================
# UPDATE TESTS
# ============================================================

@pytest.mark.asyncio
async def test_update_missing_user_returns_none(user_repository):
    repo, session = user_repository
    session.get.return_value = None

    assert await repo.update("ghost", {"name": "Nobody"}) is None


@pytest.mark.asyncio
async def test_update_email_clash_is_conflict(user_repository, regular_user):
    repo, session = user_repository
    session.get.return_value = regular_user
    session.execute.return_value = scalar("other-id")

    with pytest.raises(DatabaseConstraintError):
        await repo.update(regular_user.id, {"email": "taken@example.com"})


@pytest.mark.asyncio
async def test_update_password_stores_new_hash(user_repository, regular_user):
    repo, session = user_repository
    session.get.return_value = regular_user

    with patch("taskdesk.database.repositories.users.hash_secret", AsyncMock(return_value="NEW")):
        user = await repo.update(regular_user.id, {"password": "N3w-Secret-Value!", "role": UserRoleEnum.ADMIN})

    assert user.secret_hash == "NEW"
    assert user.role == "Admin"
    assert not hasattr(user, "password")


# ============================================================
# BOOTSTRAP TESTS
# ============================================================

@pytest.mark.asyncio
async def test_ensure_admin_skips_existing(user_repository, admin_user):
    repo, session = user_repository
    session.execute.return_value = scalar(admin_user)
    repo.create = AsyncMock()

    assert await repo.ensure_admin("ada@example.com", "Str0ng-Secret!", "Ada") is None
    repo.create.assert_not_called()


@pytest.mark.asyncio
async def test_ensure_admin_creates_admin(user_repository, admin_user):
    repo, session = user_repository
    session.execute.return_value = scalar(None)
    repo.create = AsyncMock(return_value=admin_user)

    assert await repo.ensure_admin("ada@example.com", "Str0ng-Secret!", "Ada") is admin_user
    repo.create.assert_awaited_once_with(
        name="Ada",
        email="ada@example.com",
        password="Str0ng-Secret!",
        role=UserRoleEnum.ADMIN,
    )
