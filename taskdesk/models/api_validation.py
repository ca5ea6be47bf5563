"""
Pydantic models for API endpoint input validation.

Field names on the wire are camelCase (``projectId``, ``assignedTo``);
Python attributes are snake_case via aliases.
"""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..database.models import TaskPriorityEnum, TaskStatusEnum, UserRoleEnum
from ..utils.datetime_utils import to_naive_utc, utc_now

SECRET_SPECIALS = "!@#$%^&*"
ID_MAX_LENGTH = 36
SORTABLE_TASK_FIELDS = ("deadline", "priority", "createdAt")


class RequestModel(BaseModel):
    """Base for request bodies: unknown fields are rejected."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


def check_secret_strength(value: str) -> str:
    if not re.search(r"[A-Z]", value):
        raise ValueError("password must contain an uppercase letter")
    if not re.search(r"[0-9]", value):
        raise ValueError("password must contain a digit")
    if not any(ch in SECRET_SPECIALS for ch in value):
        raise ValueError(f"password must contain one of {SECRET_SPECIALS}")
    if len(value.encode("utf-8")) > 72:
        raise ValueError("password must be at most 72 bytes")
    return value


def check_future(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    value = to_naive_utc(value)
    if value <= utc_now():
        raise ValueError("Deadline must be in the future")
    return value


def strip_required(value: str, field: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field} cannot be empty")
    return stripped


# ============================================
# AUTH / USERS
# ============================================

class SignupRequest(RequestModel):
    """Self-service account creation."""
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=12)
    role: Optional[UserRoleEnum] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return strip_required(v, "name")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_secret_strength(v)


class LoginRequest(RequestModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class UserCreate(SignupRequest):
    """Administrator-created account; role defaults to User."""
    role: UserRoleEnum = UserRoleEnum.USER


class UserUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=12)
    role: Optional[UserRoleEnum] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower() if v else v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_secret_strength(v) if v is not None else v


class Pagination(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# ============================================
# PROJECTS
# ============================================

class ProjectWrite(RequestModel):
    """Create or fully overwrite a project."""
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    members: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return strip_required(v, "name")

    @field_validator("members")
    @classmethod
    def validate_members(cls, v):
        if any(not member or len(member) > ID_MAX_LENGTH for member in v):
            raise ValueError("members must be identity ids")
        # Set semantics, first occurrence order
        return list(dict.fromkeys(v))


class ProjectFilter(Pagination):
    search: Optional[str] = Field(None, max_length=100)
    limit: int = Field(10, ge=1, le=100)


# ============================================
# TASKS
# ============================================

class TaskCreate(RequestModel):
    project_id: str = Field(..., alias="projectId", min_length=1, max_length=ID_MAX_LENGTH)
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    priority: TaskPriorityEnum
    status: TaskStatusEnum = TaskStatusEnum.PENDING
    deadline: datetime
    assigned_to: str = Field(..., alias="assignedTo", min_length=1, max_length=ID_MAX_LENGTH)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return strip_required(v, "title")

    @field_validator("deadline")
    @classmethod
    def validate_deadline(cls, v):
        return check_future(v)


class TaskUpdate(RequestModel):
    """Administrator update: any subset of task fields, each a full overwrite."""
    project_id: Optional[str] = Field(None, alias="projectId", min_length=1, max_length=ID_MAX_LENGTH)
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    priority: Optional[TaskPriorityEnum] = None
    status: Optional[TaskStatusEnum] = None
    deadline: Optional[datetime] = None
    assigned_to: Optional[str] = Field(None, alias="assignedTo", min_length=1, max_length=ID_MAX_LENGTH)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return strip_required(v, "title") if v is not None else v

    @field_validator("deadline")
    @classmethod
    def validate_deadline(cls, v):
        return check_future(v)


class TaskStatusUpdate(RequestModel):
    """Assignee update: the status field and nothing else."""
    status: TaskStatusEnum


class TaskFilter(Pagination):
    status: Optional[TaskStatusEnum] = None
    priority: Optional[TaskPriorityEnum] = None
    sort_by: Optional[str] = Field(None, alias="sortBy", max_length=200)
    limit: int = Field(10, ge=1, le=100)

    model_config = ConfigDict(populate_by_name=True)

    def sort_fields(self) -> List[tuple]:
        """
        Parse ``sortBy`` ("deadline:desc,priority") into (field, descending) pairs.

        Unknown fields are ignored; an empty result means newest first.
        """
        if not self.sort_by:
            return []

        fields = []
        for item in self.sort_by.split(","):
            field, _, direction = item.strip().partition(":")
            if field in SORTABLE_TASK_FIELDS:
                fields.append((field, direction.lower() == "desc"))
        return fields
