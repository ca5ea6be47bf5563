"""
Task repository.

Handles:
- Task CRUD operations scoped to the calling identity
- Assignee status updates
- Dashboard statistics

Task creation (and moving a task to another project) takes the same
per-project single-writer section as the project cascade delete, plus a
shared row lock on the project, so a task can never be written under a
project that is concurrently being removed.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, case, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...exceptions import NotFoundError, ValidationFailedError
from ...utils.datetime_utils import start_of_month, start_of_next_month, utc_now
from ...utils.locks import get_project_locks
from ..connection import get_database
from ..exceptions import DatabaseConstraintError, DatabaseOperationError
from ..models import (
    ProjectDB,
    TaskDB,
    TaskPriorityEnum,
    TaskStatusEnum,
    UserDB,
)

logger = logging.getLogger(__name__)

ASSIGNEE_MISSING = "Some assigned users do not exist"
PROJECT_MISSING = "Project not found"

TASK_FIELDS = ("project_id", "title", "description", "priority", "status", "deadline", "assigned_to")
CLEARABLE_TASK_FIELDS = ("description",)

PRIORITY_RANK = case(
    (TaskDB.priority == TaskPriorityEnum.LOW.value, 1),
    (TaskDB.priority == TaskPriorityEnum.MEDIUM.value, 2),
    (TaskDB.priority == TaskPriorityEnum.HIGH.value, 3),
    else_=0,
)

SORT_COLUMNS = {
    "deadline": TaskDB.deadline,
    "priority": PRIORITY_RANK,
    "createdAt": TaskDB.created_at,
}


def related_to(identity_id: str):
    """Tasks an identity created or is assigned to."""
    return or_(TaskDB.created_by == identity_id, TaskDB.assigned_to == identity_id)


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


class TaskRepository:
    """Repository for task operations."""

    def __init__(self):
        self.db = get_database()
        self.project_locks = get_project_locks()

    async def _require_project(self, session: AsyncSession, project_id: str) -> None:
        result = await session.execute(
            select(ProjectDB.id).where(ProjectDB.id == project_id).with_for_update(read=True)
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError(PROJECT_MISSING)

    async def _require_assignee(self, session: AsyncSession, user_id: str) -> None:
        result = await session.execute(select(UserDB.id).where(UserDB.id == user_id))
        if result.scalar_one_or_none() is None:
            raise ValidationFailedError(ASSIGNEE_MISSING)

    # ==================== TASK CRUD ====================

    async def create(self, task_data: Dict[str, Any], created_by: str) -> TaskDB:
        """
        Create a task under an existing project.

        Raises:
            NotFoundError: project does not exist
            ValidationFailedError: assignee does not exist
        """
        project_id = task_data["project_id"]

        async with self.project_locks.hold(project_id):
            async with self.db.session() as session:
                await self._require_project(session, project_id)
                await self._require_assignee(session, task_data["assigned_to"])

                try:
                    task = TaskDB(
                        project_id=project_id,
                        title=task_data["title"],
                        description=task_data.get("description"),
                        priority=_enum_value(task_data.get("priority", TaskPriorityEnum.LOW)),
                        status=_enum_value(task_data.get("status", TaskStatusEnum.PENDING)),
                        deadline=task_data.get("deadline"),
                        assigned_to=task_data["assigned_to"],
                        created_by=created_by,
                    )
                    session.add(task)
                    await session.flush()
                    await session.refresh(task)

                    logger.info(f"Created task {task.id} in project {project_id}")
                    return task

                except IntegrityError as e:
                    logger.error(f"Constraint violation creating task: {e}")
                    raise DatabaseConstraintError("Cannot create task: constraint violation")

                except Exception as e:
                    logger.error(f"CRITICAL: Task creation failed: {e}", exc_info=True)
                    raise DatabaseOperationError("Failed to create task")

    async def get_for_identity(self, task_id: str, identity_id: str) -> Optional[TaskDB]:
        """Get a task only if the identity created it or is assigned to it."""
        async with self.db.session() as session:
            result = await session.execute(
                select(TaskDB).where(TaskDB.id == task_id, related_to(identity_id))
            )
            return result.scalar_one_or_none()

    async def update(self, task_id: str, identity_id: str, updates: Dict[str, Any]) -> TaskDB:
        """
        Overwrite any subset of task fields on a task related to the identity.

        Moving a task to another project takes that project's write section.
        """
        values = {
            key: _enum_value(updates[key])
            for key in TASK_FIELDS
            if key in updates and (updates[key] is not None or key in CLEARABLE_TASK_FIELDS)
        }
        new_project = values.get("project_id")

        if new_project:
            async with self.project_locks.hold(new_project):
                return await self._apply_update(task_id, identity_id, values)
        return await self._apply_update(task_id, identity_id, values)

    async def _apply_update(self, task_id: str, identity_id: str, values: Dict[str, Any]) -> TaskDB:
        async with self.db.session() as session:
            if values.get("project_id"):
                await self._require_project(session, values["project_id"])
            if values.get("assigned_to"):
                await self._require_assignee(session, values["assigned_to"])

            result = await session.execute(
                select(TaskDB)
                .where(TaskDB.id == task_id, related_to(identity_id))
                .with_for_update()
            )
            task = result.scalar_one_or_none()
            if task is None:
                raise NotFoundError("Task not found or not authorized")

            for key, value in values.items():
                setattr(task, key, value)

            try:
                await session.flush()
                await session.refresh(task)
            except IntegrityError as e:
                logger.error(f"Constraint violation updating task {task_id}: {e}")
                raise DatabaseConstraintError(f"Cannot update task {task_id}: constraint violation")

            logger.info(f"Updated task {task_id}: {sorted(values)}")
            return task

    async def update_status(self, task_id: str, assignee_id: str, status: TaskStatusEnum) -> TaskDB:
        """Overwrite the status of a task assigned to ``assignee_id``."""
        async with self.db.session() as session:
            result = await session.execute(
                select(TaskDB)
                .where(TaskDB.id == task_id, TaskDB.assigned_to == assignee_id)
                .with_for_update()
            )
            task = result.scalar_one_or_none()
            if task is None:
                raise NotFoundError("Task not found or not authorized")

            old_status = task.status
            task.status = _enum_value(status)
            await session.flush()
            await session.refresh(task)

            logger.info(f"Task {task_id} status changed: {old_status} -> {task.status}")
            return task

    async def delete(self, task_id: str, creator_id: str) -> None:
        """Delete a task created by ``creator_id``."""
        async with self.db.session() as session:
            result = await session.execute(
                delete(TaskDB).where(TaskDB.id == task_id, TaskDB.created_by == creator_id)
            )
            if not result.rowcount:
                raise NotFoundError("Task not found or you are not authorized to delete")

            logger.info(f"Deleted task {task_id}")

    # ==================== QUERY METHODS ====================

    async def get_page(
        self,
        identity_id: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        sort_fields: Optional[List[Tuple[str, bool]]] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[TaskDB], int]:
        """
        Filtered, sorted page of tasks plus the total match count.

        Args:
            identity_id: Restrict to tasks related to this identity (None = all)
            sort_fields: (field, descending) pairs; empty means newest first
        """
        conditions = []
        if identity_id:
            conditions.append(related_to(identity_id))
        if status:
            conditions.append(TaskDB.status == _enum_value(status))
        if priority:
            conditions.append(TaskDB.priority == _enum_value(priority))
        where = and_(*conditions) if conditions else None

        order_by = [
            SORT_COLUMNS[field].desc() if descending else SORT_COLUMNS[field].asc()
            for field, descending in (sort_fields or [])
        ] or [TaskDB.created_at.desc()]

        async with self.db.session() as session:
            count_query = select(func.count(TaskDB.id))
            query = select(TaskDB)
            if where is not None:
                count_query = count_query.where(where)
                query = query.where(where)

            total = (await session.execute(count_query)).scalar() or 0
            result = await session.execute(
                query.order_by(*order_by).offset(offset).limit(limit)
            )
            return list(result.scalars().all()), total

    async def get_dashboard_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Aggregate counts for the administrator dashboard."""
        now = now or utc_now()

        async with self.db.session() as session:
            status_rows = await session.execute(
                select(TaskDB.status, func.count(TaskDB.id)).group_by(TaskDB.status)
            )
            by_status = {row[0]: row[1] for row in status_rows}

            priority_rows = await session.execute(
                select(TaskDB.priority, func.count(TaskDB.id)).group_by(TaskDB.priority)
            )
            by_priority = {row[0]: row[1] for row in priority_rows}

            overdue = await session.execute(
                select(func.count(TaskDB.id)).where(
                    TaskDB.status != TaskStatusEnum.COMPLETED.value,
                    TaskDB.deadline < now,
                )
            )
            this_month = await session.execute(
                select(func.count(TaskDB.id)).where(
                    TaskDB.created_at >= start_of_month(now),
                    TaskDB.created_at < start_of_next_month(now),
                )
            )

            return {
                "totalTasks": sum(by_status.values()),
                "completedTasks": by_status.get(TaskStatusEnum.COMPLETED.value, 0),
                "pendingTasks": by_status.get(TaskStatusEnum.PENDING.value, 0),
                "overdueTasks": overdue.scalar() or 0,
                "tasksThisMonth": this_month.scalar() or 0,
                "priorityData": [
                    {"name": priority.value, "value": by_priority.get(priority.value, 0)}
                    for priority in (TaskPriorityEnum.HIGH, TaskPriorityEnum.MEDIUM, TaskPriorityEnum.LOW)
                ],
            }


# Singleton
_task_repository: Optional[TaskRepository] = None


def get_task_repository() -> TaskRepository:
    """Get the task repository singleton."""
    global _task_repository
    if _task_repository is None:
        _task_repository = TaskRepository()
    return _task_repository
