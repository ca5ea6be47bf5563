"""
User repository: the credential store.

Owns identities, their role and their secret hash. Emails are stored
lower-cased so uniqueness is case-insensitive. Read methods return ORM
rows; only ``taskdesk.models.responses`` turns them into outward
dictionaries, and that serializer drops the hash.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ...auth.passwords import hash_secret, verify_missing_identity, verify_secret
from ..connection import get_database
from ..exceptions import DatabaseConstraintError, DatabaseOperationError
from ..models import UserDB, UserRoleEnum

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "email", "role")


class UserRepository:
    """Repository for identity operations."""

    def __init__(self):
        self.db = get_database()

    async def create(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRoleEnum = UserRoleEnum.USER,
    ) -> UserDB:
        """Create an identity, hashing its secret."""
        email = email.strip().lower()
        secret_hash = await hash_secret(password)

        async with self.db.session() as session:
            existing = await session.execute(
                select(UserDB.id).where(UserDB.email == email)
            )
            if existing.scalar_one_or_none() is not None:
                raise DatabaseConstraintError(f"Email {email} already exists")

            try:
                user = UserDB(
                    name=name,
                    email=email,
                    secret_hash=secret_hash,
                    role=UserRoleEnum(role).value,
                )
                session.add(user)
                await session.flush()
                await session.refresh(user)

                logger.info(f"Created user {user.id} ({user.role})")
                return user

            except IntegrityError as e:
                logger.warning(f"Constraint violation creating user {email}: {e}")
                raise DatabaseConstraintError(f"Email {email} already exists")

            except Exception as e:
                logger.error(f"CRITICAL: User creation failed for {email}: {e}", exc_info=True)
                raise DatabaseOperationError("Failed to create user")

    async def find_by_email(self, email: str) -> Optional[UserDB]:
        """Get identity by email (case-insensitive)."""
        async with self.db.session() as session:
            result = await session.execute(
                select(UserDB).where(UserDB.email == email.strip().lower())
            )
            return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> Optional[UserDB]:
        """Get identity by id."""
        async with self.db.session() as session:
            result = await session.execute(
                select(UserDB).where(UserDB.id == user_id)
            )
            return result.scalar_one_or_none()

    async def verify_secret(self, user: Optional[UserDB], candidate: str) -> bool:
        """Check a plaintext candidate against the identity's stored hash."""
        if user is None:
            return await verify_missing_identity(candidate)
        return await verify_secret(candidate, user.secret_hash)

    async def authenticate(self, email: str, candidate: str) -> Optional[UserDB]:
        """Identity for a correct email/secret pair, else None."""
        user = await self.find_by_email(email)
        if not await self.verify_secret(user, candidate):
            return None
        return user

    async def get_page(self, offset: int = 0, limit: int = 20) -> Tuple[List[UserDB], int]:
        """Identities newest first, plus the total count."""
        async with self.db.session() as session:
            total = (await session.execute(select(func.count(UserDB.id)))).scalar() or 0
            result = await session.execute(
                select(UserDB)
                .order_by(UserDB.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(result.scalars().all()), total

    async def update(self, user_id: str, updates: Dict[str, Any]) -> Optional[UserDB]:
        """
        Update profile fields, role, and/or secret.

        A ``password`` key is hashed before storage. Returns None when the
        identity does not exist.
        """
        values = {key: updates[key] for key in UPDATABLE_FIELDS if updates.get(key) is not None}
        if values.get("email"):
            values["email"] = values["email"].strip().lower()
        if values.get("role"):
            values["role"] = UserRoleEnum(values["role"]).value
        if updates.get("password"):
            values["secret_hash"] = await hash_secret(updates["password"])

        async with self.db.session() as session:
            user = await session.get(UserDB, user_id)
            if user is None:
                return None

            if values.get("email") and values["email"] != user.email:
                clash = await session.execute(
                    select(UserDB.id).where(UserDB.email == values["email"], UserDB.id != user_id)
                )
                if clash.scalar_one_or_none() is not None:
                    raise DatabaseConstraintError(f"Email {values['email']} already exists")

            for key, value in values.items():
                setattr(user, key, value)

            try:
                await session.flush()
                await session.refresh(user)
            except IntegrityError as e:
                logger.warning(f"Constraint violation updating user {user_id}: {e}")
                raise DatabaseConstraintError("Email already exists")

            if "role" in values:
                # Outstanding tokens keep the old role until they expire
                logger.info(f"Role of {user_id} set to {values['role']}")
            return user

    async def ensure_admin(self, email: str, password: str, name: str) -> Optional[UserDB]:
        """Create the bootstrap administrator if no identity uses ``email``."""
        if await self.find_by_email(email):
            return None

        user = await self.create(name=name, email=email, password=password, role=UserRoleEnum.ADMIN)
        logger.info(f"Bootstrap administrator created: {user.email}")
        return user


# Singleton
_user_repository: Optional[UserRepository] = None


def get_user_repository() -> UserRepository:
    """Get the user repository singleton."""
    global _user_repository
    if _user_repository is None:
        _user_repository = UserRepository()
    return _user_repository
