"""
Notification router: best-effort delivery of events to live sessions.

Delivery is at-most-once to whichever connection is registered for the
identity at the moment ``notify`` is called. Nothing is queued for
offline identities and nothing is retried: the state that triggered the
event is already persisted and will be visible on the next fetch.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from ..utils.background_tasks import create_safe_task
from .presence import PresenceRegistry, get_presence_registry

logger = logging.getLogger(__name__)

NEW_TASK_EVENT = "new-task"

Sender = Callable[[Any, str, Dict[str, Any]], Awaitable[None]]


async def send_via_handle(handle: Any, event: str, payload: Dict[str, Any]) -> None:
    """Default transport: handles expose ``async send(event, payload)``."""
    await handle.send(event, payload)


class NotificationRouter:
    """Routes events to the live connection of an identity, if any."""

    def __init__(
        self,
        registry: Optional[PresenceRegistry] = None,
        sender: Sender = send_via_handle,
    ):
        self.registry = registry if registry is not None else get_presence_registry()
        self.sender = sender

    def notify(self, identity_id: str, event: str, payload: Dict[str, Any]) -> Optional[asyncio.Task]:
        """
        Schedule delivery of an event and return without waiting for it.

        Never raises. Delivery errors are logged by the background task.

        Returns:
            The scheduled delivery task, or None when nothing was scheduled
        """
        try:
            handle = self.registry.lookup(identity_id)
            if handle is None:
                logger.debug(f"No live connection for {identity_id}, dropping {event}")
                return None

            delivery = self.sender(handle, event, payload)
            try:
                return create_safe_task(delivery, f"notify-{event}-{identity_id}")
            except RuntimeError:
                # No running event loop to schedule on
                delivery.close()
                raise
        except Exception as e:
            logger.error(f"Could not schedule {event} for {identity_id}: {e}")
            return None

    def notify_new_task(self, task: Dict[str, Any]) -> Optional[asyncio.Task]:
        """Tell the assignee of a freshly created task about it."""
        assignee = task.get("assignedTo")
        if not assignee:
            return None

        return self.notify(
            assignee,
            NEW_TASK_EVENT,
            {
                "message": f"You have been assigned a new task: {task.get('title')}",
                "task": task,
            },
        )


# Singleton
_notification_router: Optional[NotificationRouter] = None


def get_notification_router() -> NotificationRouter:
    """Get the notification router singleton."""
    global _notification_router
    if _notification_router is None:
        _notification_router = NotificationRouter()
    return _notification_router
