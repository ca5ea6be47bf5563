"""
Live connection handles and their lifecycle.

The transport emits three lifecycle events per connection:

1. connect     - socket accepted, no identity yet
2. identify    - client presents its session token; drives ``register``
3. disconnect  - socket closed; drives ``unregister``

Frames in both directions are JSON objects ``{"event": ..., "data": ...}``.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import WebSocket

from ..auth.guard import AuthContext, authenticate_token
from ..auth.tokens import TokenService
from .presence import PresenceRegistry, get_presence_registry

logger = logging.getLogger(__name__)

IDENTIFY_EVENT = "identify"
IDENTIFIED_EVENT = "identified"
ERROR_EVENT = "error"


class WebSocketConnection:
    """Connection handle wrapping a WebSocket. Compared by identity."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.id = uuid.uuid4().hex

    async def send(self, event: str, payload: Dict[str, Any]) -> None:
        await self.websocket.send_json({"event": event, "data": payload})

    def __repr__(self) -> str:
        return f"<WebSocketConnection {self.id}>"


class ConnectionLifecycle:
    """Applies transport lifecycle events to the presence registry."""

    def __init__(
        self,
        registry: Optional[PresenceRegistry] = None,
        token_service: Optional[TokenService] = None,
    ):
        self.registry = registry if registry is not None else get_presence_registry()
        self.token_service = token_service

    def on_connect(self, handle: Any) -> None:
        logger.debug(f"Connection opened: {handle!r}")

    def on_identify(self, handle: Any, token: Optional[str]) -> AuthContext:
        """
        Bind a connection to the identity proven by its token.

        Raises:
            UnauthenticatedError: token missing or rejected; nothing is registered
        """
        context = authenticate_token(token, self.token_service)
        self.registry.register(context.identity_id, handle)
        return context

    def on_disconnect(self, handle: Any) -> Optional[str]:
        identity_id = self.registry.unregister(handle)
        logger.debug(f"Connection closed: {handle!r} (identity={identity_id})")
        return identity_id
