"""
User administration routes (Admin only).
"""

import logging
import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..auth import require_admin
from ..database.repositories import get_user_repository
from ..exceptions import NotFoundError
from ..models.api_validation import Pagination, UserCreate, UserUpdate
from ..models.responses import user_to_dict
from ..services.consistency import get_consistency_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"],
    dependencies=[Depends(require_admin)],
)


@router.get("")
async def list_users(paging: Annotated[Pagination, Query()]):
    """Identities newest first."""
    users, total = await get_user_repository().get_page(offset=paging.offset, limit=paging.limit)

    return {
        "status": "success",
        "page": paging.page,
        "limit": paging.limit,
        "total": total,
        "totalPages": math.ceil(total / paging.limit),
        "data": [user_to_dict(user) for user in users],
    }


@router.post("", status_code=201)
async def create_user(body: UserCreate):
    user = await get_user_repository().create(
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    return {"status": "success", "data": user_to_dict(user)}


@router.get("/{user_id}")
async def get_user(user_id: str):
    user = await get_user_repository().find_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found")
    return {"status": "success", "data": user_to_dict(user)}


@router.put("/{user_id}")
async def update_user(user_id: str, body: UserUpdate):
    """Update name, email, password and/or role."""
    user = await get_user_repository().update(user_id, body.model_dump(exclude_none=True))
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found")
    return {"status": "success", "data": user_to_dict(user)}


@router.delete("/{user_id}")
async def delete_user(user_id: str):
    """Remove an identity that no task or project references any more."""
    await get_consistency_coordinator().delete_user_account(user_id)
    return {"status": "success", "message": "User deleted successfully"}
