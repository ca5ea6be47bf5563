"""
Consistency coordinator for multi-entity deletions.

Each operation runs as one database transaction: either every row it
touches is gone after commit, or (on any failure) nothing is. The
project cascade additionally holds the per-project single-writer
section shared with task creation, and takes a row lock on the project,
so no task can be created under a project while it is being removed.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.connection import Database, get_database
from ..database.exceptions import TransactionAbortedError
from ..database.models import ProjectDB, TaskDB, UserDB, project_members
from ..exceptions import ConflictError, NotFoundError, TaskdeskError
from ..utils.locks import KeyedLock, get_project_locks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CascadeResult:
    project_id: str
    tasks_deleted: int


class ConsistencyCoordinator:
    """All-or-nothing deletions spanning several tables."""

    def __init__(self, db: Optional[Database] = None, project_locks: Optional[KeyedLock] = None):
        self.db = db if db is not None else get_database()
        self.project_locks = project_locks if project_locks is not None else get_project_locks()

    async def delete_project_cascade(self, project_id: str) -> CascadeResult:
        """
        Delete a project and every task that references it.

        Raises:
            NotFoundError: project does not exist; nothing was written
            TransactionAbortedError: a step failed; the transaction was rolled back
        """
        async with self.project_locks.hold(project_id):
            try:
                async with self.db.session() as session:
                    if not await self._lock_project(session, project_id):
                        raise NotFoundError("Project not found")

                    tasks_deleted = await self._delete_tasks(session, project_id)
                    await self._delete_project(session, project_id)

            except TaskdeskError:
                raise
            except Exception as e:
                logger.error(f"Cascade delete of project {project_id} rolled back: {e}", exc_info=True)
                raise TransactionAbortedError("Project deletion failed, no changes were made") from e

        logger.info(f"Deleted project {project_id} with {tasks_deleted} tasks")
        return CascadeResult(project_id=project_id, tasks_deleted=tasks_deleted)

    async def _lock_project(self, session: AsyncSession, project_id: str) -> bool:
        result = await session.execute(
            select(ProjectDB.id).where(ProjectDB.id == project_id).with_for_update()
        )
        return result.scalar_one_or_none() is not None

    async def _delete_tasks(self, session: AsyncSession, project_id: str) -> int:
        result = await session.execute(
            delete(TaskDB).where(TaskDB.project_id == project_id)
        )
        return result.rowcount or 0

    async def _delete_project(self, session: AsyncSession, project_id: str) -> None:
        await session.execute(
            delete(project_members).where(project_members.c.project_id == project_id)
        )
        result = await session.execute(
            delete(ProjectDB).where(ProjectDB.id == project_id)
        )
        if result.rowcount != 1:
            raise RuntimeError(f"Expected to delete project {project_id}, removed {result.rowcount} rows")

    async def delete_user_account(self, user_id: str) -> None:
        """
        Remove an identity and its project memberships.

        An identity that still created or is assigned to tasks, or that
        created projects, is kept so that no row points at a missing user.

        Raises:
            NotFoundError: identity does not exist
            ConflictError: identity is still referenced
            TransactionAbortedError: a step failed; the transaction was rolled back
        """
        try:
            async with self.db.session() as session:
                user = await session.execute(
                    select(UserDB.id).where(UserDB.id == user_id).with_for_update()
                )
                if user.scalar_one_or_none() is None:
                    raise NotFoundError(f"User with ID {user_id} not found")

                task_refs = await session.execute(
                    select(func.count(TaskDB.id)).where(
                        or_(TaskDB.assigned_to == user_id, TaskDB.created_by == user_id)
                    )
                )
                project_refs = await session.execute(
                    select(func.count(ProjectDB.id)).where(ProjectDB.created_by == user_id)
                )
                if (task_refs.scalar() or 0) or (project_refs.scalar() or 0):
                    raise ConflictError(
                        f"User with ID {user_id} still owns or is assigned tasks or projects"
                    )

                await session.execute(
                    delete(project_members).where(project_members.c.user_id == user_id)
                )
                await session.execute(delete(UserDB).where(UserDB.id == user_id))

        except TaskdeskError:
            raise
        except Exception as e:
            logger.error(f"Deletion of user {user_id} rolled back: {e}", exc_info=True)
            raise TransactionAbortedError("User deletion failed, no changes were made") from e

        logger.info(f"Deleted user {user_id}")


# Singleton
_coordinator: Optional[ConsistencyCoordinator] = None


def get_consistency_coordinator() -> ConsistencyCoordinator:
    """Get the consistency coordinator singleton."""
    global _coordinator
    if _coordinator is None:
        _coordinator = ConsistencyCoordinator()
    return _coordinator
