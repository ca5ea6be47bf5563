"""Exceptions raised by the persistence layer."""

from ..exceptions import InternalError


class DatabaseError(InternalError):
    """Base exception for database errors."""
    default_message = "Database error"


class DatabaseConnectionError(DatabaseError):
    """Database is not configured or could not be reached."""
    default_message = "Database unavailable"


class DatabaseConstraintError(DatabaseError):
    """Unique or foreign key constraint violated by a write."""
    status_code = 409
    default_message = "Constraint violation"


class DatabaseOperationError(DatabaseError):
    """A statement failed for a reason other than a constraint."""
    default_message = "Database operation failed"


class TransactionAbortedError(DatabaseOperationError):
    """A multi-statement unit was rolled back; none of its writes are visible."""
    default_message = "Transaction aborted, no changes were made"
