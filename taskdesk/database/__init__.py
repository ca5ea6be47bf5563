"""
Database module for Taskdesk.

Handles:
- Identities, projects (with member sets) and tasks
- Async engine and transactional sessions
- Database error types
"""

from .connection import (
    get_database,
    Database,
    init_database,
    close_database,
)
from .exceptions import (
    DatabaseError,
    DatabaseConnectionError,
    DatabaseConstraintError,
    DatabaseOperationError,
    TransactionAbortedError,
)
from .models import (
    Base,
    UserDB,
    ProjectDB,
    TaskDB,
    UserRoleEnum,
    TaskPriorityEnum,
    TaskStatusEnum,
)

__all__ = [
    "get_database",
    "Database",
    "init_database",
    "close_database",
    "DatabaseError",
    "DatabaseConnectionError",
    "DatabaseConstraintError",
    "DatabaseOperationError",
    "TransactionAbortedError",
    "Base",
    "UserDB",
    "ProjectDB",
    "TaskDB",
    "UserRoleEnum",
    "TaskPriorityEnum",
    "TaskStatusEnum",
]
