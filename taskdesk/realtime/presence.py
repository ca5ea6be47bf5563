"""
Presence registry: which live connection currently speaks for an identity.

Process-wide, in-memory only. At most one handle per identity; a newer
registration silently supersedes the older one. Removal is keyed on the
stored handle value, so a late disconnect from a superseded connection
never evicts the connection that replaced it.
"""

import logging
import threading
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """Thread-safe identity -> connection handle map."""

    def __init__(self):
        self._routes: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(self, identity_id: str, handle: Any) -> Optional[Any]:
        """
        Map an identity to a handle, replacing any previous mapping.

        Returns:
            The superseded handle, or None if the identity was not present
        """
        with self._lock:
            # A connection speaks for one identity at a time
            for key in [k for k, v in self._routes.items() if v == handle and k != identity_id]:
                del self._routes[key]
            previous = self._routes.get(identity_id)
            self._routes[identity_id] = handle

        if previous is not None and previous != handle:
            logger.info(f"Presence: {identity_id} reconnected, older connection superseded")
        else:
            logger.info(f"Presence: {identity_id} online")
        return previous

    def unregister(self, handle: Any) -> Optional[str]:
        """
        Remove whichever identity currently maps to exactly this handle.

        A handle that never identified, or one already superseded by a
        newer registration, matches nothing and the call is a no-op.

        Returns:
            The identity that went offline, or None
        """
        with self._lock:
            identity_id = next(
                (key for key, value in self._routes.items() if value == handle),
                None,
            )
            if identity_id is not None:
                del self._routes[identity_id]

        if identity_id is not None:
            logger.info(f"Presence: {identity_id} offline")
        return identity_id

    def lookup(self, identity_id: str) -> Optional[Any]:
        """Current handle for an identity, or None when not connected."""
        with self._lock:
            return self._routes.get(identity_id)

    def count(self) -> int:
        """Number of identities with a live route."""
        with self._lock:
            return len(self._routes)


# Singleton
_presence_registry: Optional[PresenceRegistry] = None


def get_presence_registry() -> PresenceRegistry:
    """Get the presence registry singleton."""
    global _presence_registry
    if _presence_registry is None:
        _presence_registry = PresenceRegistry()
    return _presence_registry
