"""
SQLAlchemy models for PostgreSQL database.

Schema includes:
- Users (identities with role and secret hash)
- Projects with a member set
- Tasks belonging to exactly one project and one assignee

Tasks reference their project with a plain foreign key (no ON DELETE
action): a project row cannot be removed while any task still points at
it, so project deletion has to go through the cascade coordinator.
"""

import enum
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def new_id() -> str:
    return str(uuid.uuid4())


# ==================== ENUMS ====================

class UserRoleEnum(str, enum.Enum):
    ADMIN = "Admin"
    USER = "User"


class TaskPriorityEnum(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class TaskStatusEnum(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


# ==================== USERS ====================

class UserDB(Base):
    """Authenticated principals. Email is stored lower-cased."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    secret_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=UserRoleEnum.USER.value, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<UserDB id={self.id} email={self.email} role={self.role}>"


# ==================== PROJECTS ====================

project_members = Table(
    "project_members",
    Base.metadata,
    Column("project_id", String(36), ForeignKey("projects.id"), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id"), primary_key=True),
)


class ProjectDB(Base):
    """Projects grouping tasks, with a set of member identities."""
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    creator: Mapped["UserDB"] = relationship("UserDB", foreign_keys=[created_by])
    members: Mapped[List["UserDB"]] = relationship("UserDB", secondary=project_members)
    tasks: Mapped[List["TaskDB"]] = relationship("TaskDB", back_populates="project")

    __table_args__ = (
        Index("idx_projects_name", "name"),
        Index("idx_projects_created_at", "created_at"),
    )


# ==================== TASKS ====================

class TaskDB(Base):
    """Tasks owned by a project and assigned to a single identity."""
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), nullable=False)

    # Core fields
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Classification
    priority: Mapped[str] = mapped_column(String(20), default=TaskPriorityEnum.LOW.value)
    status: Mapped[str] = mapped_column(String(20), default=TaskStatusEnum.PENDING.value)

    # Timing
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    # Assignment
    assigned_to: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    created_by: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    # Relationships
    project: Mapped["ProjectDB"] = relationship("ProjectDB", back_populates="tasks")
    assignee: Mapped["UserDB"] = relationship("UserDB", foreign_keys=[assigned_to])
    creator: Mapped["UserDB"] = relationship("UserDB", foreign_keys=[created_by])

    __table_args__ = (
        Index("idx_tasks_project", "project_id"),
        Index("idx_tasks_status", "status"),
        Index("idx_tasks_assigned_to", "assigned_to"),
        Index("idx_tasks_deadline", "deadline"),
    )
