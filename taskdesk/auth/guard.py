"""
Authorization guard for API routes.

Two FastAPI dependencies:

- ``authenticate`` reads ``Authorization: Bearer <token>``, verifies the
  token and attaches an ``AuthContext`` to ``request.state.auth``.
- ``require_role(role)`` depends on ``authenticate`` and compares the
  attached role to the required one by strict equality.

Because ``require_role`` is built on top of ``authenticate``, a route
guarded by a role check can never be reached without a verified token,
and FastAPI resolves both before any body or path validation runs.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Header, Request

from ..exceptions import ForbiddenError, UnauthenticatedError
from .tokens import Role, TokenRejected, TokenService, get_token_service

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


@dataclass(frozen=True)
class AuthContext:
    """Identity attached to an authenticated request."""
    identity_id: str
    role: Role

    def has_role(self, role: Role) -> bool:
        return self.role == role

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the credential from a ``Bearer`` header value, if any."""
    if not authorization:
        return None

    scheme, _, credential = authorization.strip().partition(" ")
    credential = credential.strip()
    if scheme.lower() != BEARER_SCHEME or not credential:
        return None
    return credential


def authenticate_token(
    token: Optional[str],
    token_service: Optional[TokenService] = None,
) -> AuthContext:
    """
    Turn a raw token into an AuthContext.

    Raises:
        UnauthenticatedError: token missing or rejected for any reason
    """
    if not token:
        raise UnauthenticatedError("Not logged in")

    if token_service is None:
        token_service = get_token_service()
    result = token_service.verify(token)
    if isinstance(result, TokenRejected):
        logger.warning(f"Token rejected: {result.reason.value}")
        raise UnauthenticatedError("Invalid token")

    return AuthContext(identity_id=result.identity_id, role=result.role)


async def authenticate(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> AuthContext:
    """Dependency: require a valid session token."""
    context = authenticate_token(extract_bearer_token(authorization))
    request.state.auth = context
    return context


def require_role(role: Role) -> Callable:
    """
    Build a dependency that admits only callers holding exactly ``role``.

    Example:
        @router.delete("/{project_id}", dependencies=[Depends(require_role(Role.ADMIN))])
    """
    async def role_checker(context: AuthContext = Depends(authenticate)) -> AuthContext:
        if not context.has_role(role):
            logger.info(
                f"Forbidden: {context.identity_id} has role {context.role.value}, "
                f"{role.value} required"
            )
            raise ForbiddenError()
        return context

    role_checker.__name__ = f"require_{role.value.lower()}"
    return role_checker


require_admin = require_role(Role.ADMIN)
