"""
Session token issuance and verification.

Tokens are HS256 JWTs carrying the identity id (``sub``), its role, and
issue/expiry timestamps. Nothing is persisted: every request
reconstructs the caller from the token alone. The role is therefore a
snapshot taken at login and a role change only takes effect once a new
token is issued.

``verify`` never raises for a bad token. It returns either
``TokenClaims`` or ``TokenRejected`` and the caller decides how to
answer (the authorization guard turns every rejection into a 401).
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional, Union

import jwt

from config import settings
from ..database.models import UserRoleEnum as Role

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "role", "iat", "exp"]


class RejectionReason(str, Enum):
    """Why a token was refused."""
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature_invalid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TokenClaims:
    """Verified content of a session token."""
    identity_id: str
    role: Role
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class TokenRejected:
    """Outcome of verifying a token that must not be trusted."""
    reason: RejectionReason


VerificationResult = Union[TokenClaims, TokenRejected]


class TokenService:
    """Issues and verifies signed, time-bounded session tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=1),
    ):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl

    def issue(self, identity: Any, issued_at: Optional[datetime] = None) -> str:
        """
        Create a token for an identity.

        Args:
            identity: Any object exposing ``id`` and ``role``
            issued_at: Issue time (defaults to now); expiry is issue time plus ttl

        Returns:
            Encoded token string
        """
        role = Role(identity.role)
        issued_at = issued_at or datetime.now(timezone.utc)
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)

        payload = {
            "sub": str(identity.id),
            "role": role.value,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: Optional[str]) -> VerificationResult:
        """Check signature, expiry and claim shape of a token."""
        if not token or not isinstance(token, str):
            return TokenRejected(RejectionReason.MALFORMED)

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            return TokenRejected(RejectionReason.EXPIRED)
        except jwt.InvalidSignatureError:
            return TokenRejected(RejectionReason.SIGNATURE_INVALID)
        except jwt.InvalidTokenError as e:
            logger.debug(f"Token decode error: {e}")
            return TokenRejected(RejectionReason.MALFORMED)

        identity_id = claims.get("sub")
        if not isinstance(identity_id, str) or not identity_id:
            return TokenRejected(RejectionReason.MALFORMED)

        # Unknown roles are refused here, never at use time
        try:
            role = Role(claims.get("role"))
        except ValueError:
            return TokenRejected(RejectionReason.MALFORMED)

        try:
            issued_at = datetime.fromtimestamp(claims["iat"], tz=timezone.utc)
            expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            return TokenRejected(RejectionReason.MALFORMED)

        return TokenClaims(
            identity_id=identity_id,
            role=role,
            issued_at=issued_at,
            expires_at=expires_at,
        )


# Singleton
_token_service: Optional[TokenService] = None


def get_token_service() -> TokenService:
    """Get the token service singleton."""
    global _token_service
    if _token_service is None:
        secret = settings.jwt_secret
        if not secret:
            logger.warning(
                "JWT_SECRET not configured - using a random per-process secret, "
                "sessions will not survive a restart"
            )
            secret = secrets.token_urlsafe(48)
        _token_service = TokenService(
            secret=secret,
            algorithm=settings.jwt_algorithm,
            ttl=timedelta(seconds=settings.jwt_expiry_seconds),
        )
    return _token_service
