"""
Authentication routes: signup, login, logout, current identity.

Sessions are stateless bearer tokens; logout is an acknowledgement only
and the client discards its token.
"""

import logging

from fastapi import APIRouter, Depends, Request

from config import settings
from ..auth import AuthContext, Role, authenticate, get_token_service
from ..database.repositories import get_user_repository
from ..exceptions import ForbiddenError, NotFoundError, UnauthenticatedError
from ..middleware.rate_limit import limiter
from ..models.api_validation import LoginRequest, SignupRequest
from ..models.responses import user_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

LOGIN_FAILED = "Email or Password is incorrect"


@router.post("/signup", status_code=201)
@limiter.limit(settings.auth_rate_limit)
async def signup(request: Request, body: SignupRequest):
    """Create an account and start a session for it."""
    role = body.role or Role.USER
    if role == Role.ADMIN and not settings.allow_admin_signup:
        logger.warning(f"Refused Admin self-signup for {body.email}")
        raise ForbiddenError("You cannot sign up as an Admin")

    user = await get_user_repository().create(
        name=body.name,
        email=body.email,
        password=body.password,
        role=role,
    )
    token = get_token_service().issue(user)

    return {
        "status": "success",
        "message": "User registered successfully",
        "data": {"user": user_to_dict(user), "token": token},
    }


@router.post("/login")
@limiter.limit(settings.auth_rate_limit)
async def login(request: Request, body: LoginRequest):
    """Exchange email and password for a session token."""
    user = await get_user_repository().authenticate(body.email, body.password)
    if user is None:
        logger.warning(f"Failed login for {body.email}")
        raise UnauthenticatedError(LOGIN_FAILED)

    token = get_token_service().issue(user)
    logger.info(f"User {user.id} logged in")

    return {
        "status": "success",
        "message": "Logged in successfully",
        "data": {"user": user_to_dict(user), "token": token},
    }


@router.post("/logout")
async def logout(context: AuthContext = Depends(authenticate)):
    logger.info(f"User {context.identity_id} logged out")
    return {"status": "success", "message": "Logged out successfully"}


@router.get("/me")
async def me(context: AuthContext = Depends(authenticate)):
    """Identity behind the presented token."""
    user = await get_user_repository().find_by_id(context.identity_id)
    if user is None:
        raise NotFoundError("User not found")

    return {"status": "success", "data": user_to_dict(user)}
