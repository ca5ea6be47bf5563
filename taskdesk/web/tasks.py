"""
Task routes.

Admins create, update and delete tasks; assignees move their own tasks
through the status values. After a task is committed its assignee gets
a ``new-task`` event if they are connected. Delivery is fire-and-forget
and never changes the response.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..auth import AuthContext, authenticate, require_admin
from ..database.repositories import get_task_repository
from ..exceptions import NotFoundError
from ..models.api_validation import TaskCreate, TaskFilter, TaskStatusUpdate, TaskUpdate
from ..models.responses import task_to_dict
from ..realtime import get_notification_router

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])


@router.post("", status_code=201)
async def create_task(body: TaskCreate, context: AuthContext = Depends(require_admin)):
    """Create a task and notify its assignee."""
    task = await get_task_repository().create(body.model_dump(), created_by=context.identity_id)
    data = task_to_dict(task)

    get_notification_router().notify_new_task(data)

    return {
        "status": "success",
        "message": "Task created successfully",
        "data": data,
    }


@router.get("")
async def list_tasks(
    filters: Annotated[TaskFilter, Query()],
    context: AuthContext = Depends(authenticate),
):
    """Admins see every task; everyone else sees tasks they created or are assigned to."""
    tasks, total = await get_task_repository().get_page(
        identity_id=None if context.is_admin else context.identity_id,
        status=filters.status,
        priority=filters.priority,
        sort_fields=filters.sort_fields(),
        offset=filters.offset,
        limit=filters.limit,
    )
    return {
        "status": "success",
        "results": len(tasks),
        "total": total,
        "page": filters.page,
        "data": [task_to_dict(task) for task in tasks],
    }


@router.get("/stats", dependencies=[Depends(require_admin)])
async def task_stats():
    stats = await get_task_repository().get_dashboard_stats()
    return {"status": "success", "data": stats}


@router.patch("/{task_id}/status")
async def update_task_status(
    task_id: str,
    body: TaskStatusUpdate,
    context: AuthContext = Depends(authenticate),
):
    """Assignee sets the status of their own task."""
    task = await get_task_repository().update_status(task_id, context.identity_id, body.status)
    return {
        "status": "success",
        "message": "Task status updated successfully",
        "data": task_to_dict(task),
    }


@router.get("/{task_id}")
async def get_task(task_id: str, context: AuthContext = Depends(authenticate)):
    task = await get_task_repository().get_for_identity(task_id, context.identity_id)
    if task is None:
        raise NotFoundError("Task not found")
    return {"status": "success", "data": task_to_dict(task)}


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdate,
    context: AuthContext = Depends(require_admin),
):
    task = await get_task_repository().update(
        task_id,
        context.identity_id,
        body.model_dump(exclude_unset=True),
    )
    return {
        "status": "success",
        "message": "Task updated successfully",
        "data": task_to_dict(task),
    }


@router.delete("/{task_id}")
async def delete_task(task_id: str, context: AuthContext = Depends(require_admin)):
    await get_task_repository().delete(task_id, context.identity_id)
    return {"status": "success", "message": "Task deleted successfully"}
