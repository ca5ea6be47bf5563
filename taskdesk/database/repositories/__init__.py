"""
Repository classes for database operations.

Each repository handles CRUD and queries for its entity type. Deletions
that span several tables live in ``taskdesk.services.consistency``.
"""

from .users import UserRepository, get_user_repository
from .projects import ProjectRepository, get_project_repository
from .tasks import TaskRepository, get_task_repository

__all__ = [
    "UserRepository",
    "get_user_repository",
    "ProjectRepository",
    "get_project_repository",
    "TaskRepository",
    "get_task_repository",
]
