"""
Real-time presence and notification routing.

Single-process only: the registry lives in this process's memory and is
not shared across server instances.
"""

from .connection import ConnectionLifecycle, WebSocketConnection
from .notifier import (
    NEW_TASK_EVENT,
    NotificationRouter,
    get_notification_router,
)
from .presence import PresenceRegistry, get_presence_registry

__all__ = [
    "ConnectionLifecycle",
    "WebSocketConnection",
    "NEW_TASK_EVENT",
    "NotificationRouter",
    "get_notification_router",
    "PresenceRegistry",
    "get_presence_registry",
]
