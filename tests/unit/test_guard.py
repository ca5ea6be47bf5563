"""
Tests for the authorization guard dependencies.

Checks that role checks are only reachable through authentication and
that role comparison is strict equality.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from taskdesk.auth.guard import (
    AuthContext,
    authenticate,
    authenticate_token,
    extract_bearer_token,
    require_admin,
    require_role,
)
from taskdesk.auth.tokens import Role
from taskdesk.exceptions import ForbiddenError, TaskdeskError, UnauthenticatedError


def identity(identity_id, role):
    return SimpleNamespace(id=identity_id, role=role)


@pytest.fixture
def guarded_app(token_service):
    """Tiny app exposing one route per guard, wired to the test token service."""
    app = FastAPI()

    @app.exception_handler(TaskdeskError)
    async def handler(request, exc):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.get("/me")
    async def me(context: AuthContext = Depends(authenticate)):
        return {"id": context.identity_id, "role": context.role.value}

    @app.get("/admin")
    async def admin(context: AuthContext = Depends(require_admin)):
        return {"id": context.identity_id}

    with patch("taskdesk.auth.guard.get_token_service", return_value=token_service):
        yield TestClient(app)


# ==================== HEADER PARSING ====================

@pytest.mark.parametrize("header,expected", [
    ("Bearer abc.def.ghi", "abc.def.ghi"),
    ("bearer abc", "abc"),
    ("  Bearer   abc  ", "abc"),
    ("Basic abc", None),
    ("Bearer", None),
    ("Bearer ", None),
    ("", None),
    (None, None),
])
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


# ==================== authenticate_token ====================

def test_missing_token_is_not_logged_in(token_service):
    with pytest.raises(UnauthenticatedError) as exc_info:
        authenticate_token(None, token_service)

    assert exc_info.value.message == "Not logged in"


def test_rejected_token_is_invalid(token_service):
    expired = token_service.issue(
        identity("u-1", Role.USER),
        issued_at=datetime.now(timezone.utc) - timedelta(hours=3),
    )

    with pytest.raises(UnauthenticatedError) as exc_info:
        authenticate_token(expired, token_service)

    assert exc_info.value.message == "Invalid token"
    assert exc_info.value.status_code == 401


def test_valid_token_yields_context(token_service):
    token = token_service.issue(identity("u-9", Role.ADMIN))

    context = authenticate_token(token, token_service)

    assert context == AuthContext(identity_id="u-9", role=Role.ADMIN)
    assert context.is_admin


# ==================== ROUTE DEPENDENCIES ====================

def test_route_without_token_is_401(guarded_app):
    response = guarded_app.get("/me")

    assert response.status_code == 401
    assert response.json()["message"] == "Not logged in"


def test_route_with_valid_token(guarded_app, token_service):
    token = token_service.issue(identity("u-1", Role.USER))

    response = guarded_app.get("/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json() == {"id": "u-1", "role": "User"}


def test_admin_route_without_token_is_401_not_403(guarded_app):
    response = guarded_app.get("/admin")

    assert response.status_code == 401


def test_admin_route_with_user_role_is_403(guarded_app, token_service):
    token = token_service.issue(identity("u-1", Role.USER))

    response = guarded_app.get("/admin", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


def test_admin_route_with_admin_role(guarded_app, token_service):
    token = token_service.issue(identity("a-1", Role.ADMIN))

    response = guarded_app.get("/admin", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json() == {"id": "a-1"}


# ==================== require_role ====================

@pytest.mark.asyncio
async def test_require_role_is_strict_equality():
    """Admin does not implicitly satisfy a User-only check."""
    user_only = require_role(Role.USER)

    with pytest.raises(ForbiddenError):
        await user_only(AuthContext(identity_id="a-1", role=Role.ADMIN))

    context = AuthContext(identity_id="u-1", role=Role.USER)
    assert await user_only(context) is context


@pytest.mark.asyncio
async def test_authenticate_attaches_context_to_request(token_service):
    request = Mock()
    request.state = SimpleNamespace()
    token = token_service.issue(identity("u-3", Role.USER))

    with patch("taskdesk.auth.guard.get_token_service", return_value=token_service):
        context = await authenticate(request, authorization=f"Bearer {token}")

    assert request.state.auth is context
    assert context.identity_id == "u-3"
