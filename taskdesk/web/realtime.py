"""
Live connection endpoint.

A client opens ``/ws`` and sends ``{"event": "identify", "data": {"token": ...}}``.
From then on the connection receives events addressed to that identity
until it closes or the same identity connects again elsewhere.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..exceptions import UnauthenticatedError
from ..realtime.connection import (
    ERROR_EVENT,
    IDENTIFIED_EVENT,
    IDENTIFY_EVENT,
    ConnectionLifecycle,
    WebSocketConnection,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_lifecycle() -> ConnectionLifecycle:
    return ConnectionLifecycle()


@router.websocket("/ws")
async def live_connection(websocket: WebSocket):
    await websocket.accept()
    handle = WebSocketConnection(websocket)
    lifecycle = get_lifecycle()
    lifecycle.on_connect(handle)

    try:
        while True:
            try:
                frame = await websocket.receive_json()
            except (ValueError, KeyError):
                # Undecodable text, or a binary frame with no text payload
                await handle.send(ERROR_EVENT, {"message": "Frames must be JSON objects"})
                continue

            if not isinstance(frame, dict) or frame.get("event") != IDENTIFY_EVENT:
                await handle.send(ERROR_EVENT, {"message": "Unknown event"})
                continue

            data = frame.get("data") or {}
            token = data.get("token") if isinstance(data, dict) else None
            try:
                context = lifecycle.on_identify(handle, token)
            except UnauthenticatedError as e:
                await handle.send(ERROR_EVENT, {"message": e.message})
                continue

            await handle.send(IDENTIFIED_EVENT, {"userId": context.identity_id})

    except WebSocketDisconnect:
        pass
    finally:
        lifecycle.on_disconnect(handle)
