"""Utility modules for Taskdesk."""

from .background_tasks import (
    active_task_count,
    create_safe_task,
    drain_background_tasks,
    safe_background_task,
)
from .datetime_utils import (
    isoformat,
    start_of_month,
    start_of_next_month,
    to_naive_utc,
    utc_now,
)
from .locks import KeyedLock, get_project_locks

__all__ = [
    "active_task_count",
    "create_safe_task",
    "drain_background_tasks",
    "safe_background_task",
    "isoformat",
    "start_of_month",
    "start_of_next_month",
    "to_naive_utc",
    "utc_now",
    "KeyedLock",
    "get_project_locks",
]
