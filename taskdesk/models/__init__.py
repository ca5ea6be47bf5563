from .api_validation import (
    LoginRequest,
    Pagination,
    ProjectFilter,
    ProjectWrite,
    SignupRequest,
    TaskCreate,
    TaskFilter,
    TaskStatusUpdate,
    TaskUpdate,
    UserCreate,
    UserUpdate,
)
from .responses import project_to_dict, task_to_dict, user_summary, user_to_dict

__all__ = [
    "LoginRequest",
    "Pagination",
    "ProjectFilter",
    "ProjectWrite",
    "SignupRequest",
    "TaskCreate",
    "TaskFilter",
    "TaskStatusUpdate",
    "TaskUpdate",
    "UserCreate",
    "UserUpdate",
    "project_to_dict",
    "task_to_dict",
    "user_summary",
    "user_to_dict",
]
