"""
Authentication and authorization.

Handles:
- Secret hashing (bcrypt)
- Session token issue/verify (JWT)
- Request guard dependencies (authenticate, require_role)
"""

from .guard import (
    AuthContext,
    authenticate,
    authenticate_token,
    extract_bearer_token,
    require_admin,
    require_role,
)
from .passwords import hash_secret, verify_secret
from .tokens import (
    RejectionReason,
    Role,
    TokenClaims,
    TokenRejected,
    TokenService,
    get_token_service,
)

__all__ = [
    "AuthContext",
    "authenticate",
    "authenticate_token",
    "extract_bearer_token",
    "require_admin",
    "require_role",
    "hash_secret",
    "verify_secret",
    "RejectionReason",
    "Role",
    "TokenClaims",
    "TokenRejected",
    "TokenService",
    "get_token_service",
]
