"""
Tests for the live connection endpoint and its lifecycle.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from taskdesk.auth.tokens import get_token_service
from taskdesk.exceptions import UnauthenticatedError
from taskdesk.main import app
from taskdesk.realtime.connection import ConnectionLifecycle, WebSocketConnection
from taskdesk.realtime.presence import PresenceRegistry


@pytest.fixture
def registry():
    return PresenceRegistry()


@pytest.fixture
def client(registry):
    lifecycle = ConnectionLifecycle(registry=registry)
    with patch("taskdesk.web.realtime.get_lifecycle", return_value=lifecycle):
        yield TestClient(app)


def identify(ws, token):
    ws.send_json({"event": "identify", "data": {"token": token}})
    return ws.receive_json()


# ==================== LIFECYCLE ====================

def test_identify_with_valid_token_registers(token_service, registry, regular_user):
    lifecycle = ConnectionLifecycle(registry=registry, token_service=token_service)
    handle = object()

    context = lifecycle.on_identify(handle, token_service.issue(regular_user))

    assert context.identity_id == "user-1"
    assert registry.lookup("user-1") is handle


def test_identify_with_bad_token_registers_nothing(token_service, registry):
    lifecycle = ConnectionLifecycle(registry=registry, token_service=token_service)

    with pytest.raises(UnauthenticatedError):
        lifecycle.on_identify(object(), "forged")

    assert registry.count() == 0


def test_disconnect_unregisters(token_service, registry, regular_user):
    lifecycle = ConnectionLifecycle(registry=registry, token_service=token_service)
    handle = object()
    lifecycle.on_identify(handle, token_service.issue(regular_user))

    assert lifecycle.on_disconnect(handle) == "user-1"
    assert registry.count() == 0


@pytest.mark.asyncio
async def test_connection_sends_event_frames():
    websocket = Mock()
    websocket.send_json = AsyncMock()
    handle = WebSocketConnection(websocket)

    await handle.send("new-task", {"task": {"id": "t1"}})

    websocket.send_json.assert_awaited_once_with({"event": "new-task", "data": {"task": {"id": "t1"}}})


# ==================== /ws ENDPOINT ====================

def test_ws_identify_and_disconnect(client, registry, regular_user):
    token = get_token_service().issue(regular_user)

    with client.websocket_connect("/ws") as ws:
        reply = identify(ws, token)

        assert reply == {"event": "identified", "data": {"userId": "user-1"}}
        assert registry.lookup("user-1") is not None

    assert registry.lookup("user-1") is None


def test_ws_invalid_token_gets_error_frame(client, registry):
    with client.websocket_connect("/ws") as ws:
        reply = identify(ws, "not-a-token")

        assert reply["event"] == "error"
        assert reply["data"]["message"] == "Invalid token"
        assert registry.count() == 0


def test_ws_unknown_event(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "shout", "data": {}})

        assert ws.receive_json()["event"] == "error"


def test_ws_malformed_text_gets_error_frame(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("{not json")

        reply = ws.receive_json()
        assert reply["event"] == "error"
        assert reply["data"]["message"] == "Frames must be JSON objects"


def test_ws_binary_frame_gets_error_frame_and_stays_open(client, registry, regular_user):
    with client.websocket_connect("/ws") as ws:
        ws.send_bytes(b"\x00\x01")

        reply = ws.receive_json()
        assert reply["event"] == "error"
        assert reply["data"]["message"] == "Frames must be JSON objects"

        reply = identify(ws, get_token_service().issue(regular_user))
        assert reply["event"] == "identified"
        assert registry.lookup("user-1") is not None


def test_ws_reconnect_keeps_newest(client, registry, regular_user):
    """Closing the older socket after a reconnect keeps the newer one registered."""
    token = get_token_service().issue(regular_user)

    older = client.websocket_connect("/ws").__enter__()
    identify(older, token)
    first = registry.lookup("user-1")

    with client.websocket_connect("/ws") as newer:
        identify(newer, token)
        second = registry.lookup("user-1")
        assert second is not first

        # Returns once the server has run its disconnect handling
        older.__exit__(None, None, None)

        assert registry.lookup("user-1") is second
