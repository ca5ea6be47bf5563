"""
Application error taxonomy.

Each error carries the HTTP status it maps to and a human-readable
message. The FastAPI exception handlers in ``taskdesk.main`` turn them
into ``{"status": "failed", "message": ...}`` bodies.
"""

from typing import List, Optional, Union


class TaskdeskError(Exception):
    """Base exception for errors surfaced to API callers."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[Union[str, List[str]]] = None):
        self.message = message if message is not None else self.default_message
        super().__init__(self.message if isinstance(self.message, str) else "; ".join(self.message))


class UnauthenticatedError(TaskdeskError):
    """No session, or the presented token was rejected."""
    status_code = 401
    default_message = "Not logged in"


class ForbiddenError(TaskdeskError):
    """Valid session lacking the required role."""
    status_code = 403
    default_message = "You do not have permission"


class NotFoundError(TaskdeskError):
    """Referenced entity does not exist (or is not visible to the caller)."""
    status_code = 404
    default_message = "Not found"


class ValidationFailedError(TaskdeskError):
    """Malformed input or a foreign reference that does not resolve."""
    status_code = 400
    default_message = "Validation failed"


class ConflictError(TaskdeskError):
    """Uniqueness or referential conflict."""
    status_code = 409
    default_message = "Conflict"


class InternalError(TaskdeskError):
    """Store failure or aborted transaction."""
    status_code = 500
