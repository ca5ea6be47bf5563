"""
Outward representations of stored entities.

These are the only functions that turn ORM rows into response bodies.
The user serializer never includes the secret hash.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import inspect

from ..database.models import ProjectDB, TaskDB, UserDB
from ..utils.datetime_utils import isoformat


def _loaded(instance: Any, attribute: str) -> bool:
    """True when a relationship is already loaded (no lazy IO needed)."""
    return attribute not in inspect(instance).unloaded


def user_summary(user: UserDB) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "email": user.email}


def user_to_dict(user: UserDB) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "createdAt": isoformat(user.created_at),
        "updatedAt": isoformat(user.updated_at),
    }


def task_to_dict(task: TaskDB) -> Dict[str, Any]:
    return {
        "id": task.id,
        "projectId": task.project_id,
        "title": task.title,
        "description": task.description,
        "priority": task.priority,
        "status": task.status,
        "deadline": isoformat(task.deadline),
        "assignedTo": task.assigned_to,
        "createdBy": task.created_by,
        "createdAt": isoformat(task.created_at),
        "updatedAt": isoformat(task.updated_at),
    }


def project_to_dict(project: ProjectDB, tasks: Optional[List[TaskDB]] = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "createdBy": project.created_by,
        "createdAt": isoformat(project.created_at),
        "updatedAt": isoformat(project.updated_at),
    }

    if _loaded(project, "members"):
        data["members"] = [user_summary(member) for member in project.members]
    if _loaded(project, "creator") and project.creator is not None:
        data["createdBy"] = user_summary(project.creator)

    if tasks is not None:
        data["tasks"] = [task_to_dict(task) for task in tasks]
    elif _loaded(project, "tasks"):
        data["tasks"] = [task_to_dict(task) for task in project.tasks]

    return data
