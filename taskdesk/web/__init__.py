"""HTTP and WebSocket routes."""

from .auth import router as auth_router
from .projects import router as projects_router
from .realtime import router as realtime_router
from .tasks import router as tasks_router
from .users import router as users_router

routers = [
    auth_router,
    users_router,
    projects_router,
    tasks_router,
    realtime_router,
]

__all__ = ["routers"]
