"""
Project repository.

Projects group tasks and carry a member set. Member ids are resolved
against the user table inside the same session as the write, so a
project can never reference an identity that does not exist.

Deletion is not offered here: removing a project together with its
tasks is the job of ``taskdesk.services.consistency``.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ...exceptions import NotFoundError, ValidationFailedError
from ..connection import get_database
from ..exceptions import DatabaseConstraintError, DatabaseOperationError
from ..models import ProjectDB, UserDB

logger = logging.getLogger(__name__)

MEMBERS_MISSING = "Some members do not exist"


async def resolve_members(session: AsyncSession, member_ids: Sequence[str]) -> List[UserDB]:
    """Load member identities, failing if any id is unknown."""
    if not member_ids:
        return []

    result = await session.execute(select(UserDB).where(UserDB.id.in_(set(member_ids))))
    users = {user.id: user for user in result.scalars().all()}
    if len(users) != len(set(member_ids)):
        raise ValidationFailedError(MEMBERS_MISSING)
    return [users[member_id] for member_id in dict.fromkeys(member_ids)]


class ProjectRepository:
    """Repository for project operations."""

    def __init__(self):
        self.db = get_database()

    def _detail_query(self):
        return select(ProjectDB).options(
            selectinload(ProjectDB.members),
            selectinload(ProjectDB.creator),
        )

    async def create(
        self,
        name: str,
        description: str,
        created_by: str,
        members: Optional[Sequence[str]] = None,
    ) -> ProjectDB:
        """Create a new project."""
        async with self.db.session() as session:
            member_rows = await resolve_members(session, members or [])

            try:
                project = ProjectDB(
                    name=name,
                    description=description,
                    created_by=created_by,
                    members=member_rows,
                )
                session.add(project)
                await session.flush()

                logger.info(f"Created project {project.id}: {name}")

            except IntegrityError as e:
                logger.error(f"Constraint violation creating project {name}: {e}")
                raise DatabaseConstraintError(f"Cannot create project {name}: constraint violation")

            except Exception as e:
                logger.error(f"CRITICAL: Project creation failed for {name}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to create project {name}")

            result = await session.execute(self._detail_query().where(ProjectDB.id == project.id))
            return result.scalar_one()

    async def get_by_id(self, project_id: str) -> Optional[ProjectDB]:
        """Get project by ID with members and creator."""
        async with self.db.session() as session:
            result = await session.execute(
                self._detail_query().where(ProjectDB.id == project_id)
            )
            return result.scalar_one_or_none()

    async def get_page(
        self,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[ProjectDB], int]:
        """Projects newest first, optionally filtered by name/description."""
        async with self.db.session() as session:
            query = self._detail_query()
            count_query = select(func.count(ProjectDB.id))

            if search:
                condition = or_(
                    ProjectDB.name.icontains(search, autoescape=True),
                    ProjectDB.description.icontains(search, autoescape=True),
                )
                query = query.where(condition)
                count_query = count_query.where(condition)

            total = (await session.execute(count_query)).scalar() or 0
            result = await session.execute(
                query.order_by(ProjectDB.created_at.desc()).offset(offset).limit(limit)
            )
            return list(result.scalars().all()), total

    async def get_all_with_tasks(self) -> List[ProjectDB]:
        """Every project with its tasks loaded."""
        async with self.db.session() as session:
            result = await session.execute(
                self._detail_query()
                .options(selectinload(ProjectDB.tasks))
                .order_by(ProjectDB.created_at.desc())
            )
            return list(result.scalars().all())

    async def update(
        self,
        project_id: str,
        name: str,
        description: str,
        members: Sequence[str],
    ) -> ProjectDB:
        """Overwrite name, description and member set of a project."""
        async with self.db.session() as session:
            result = await session.execute(
                self._detail_query().where(ProjectDB.id == project_id).with_for_update()
            )
            project = result.scalar_one_or_none()
            if project is None:
                raise NotFoundError("Project not found")

            project.members = await resolve_members(session, members)
            project.name = name
            project.description = description

            try:
                await session.flush()
            except IntegrityError as e:
                logger.error(f"Constraint violation updating project {project_id}: {e}")
                raise DatabaseConstraintError("Cannot update project: constraint violation")

            await session.refresh(project, attribute_names=["updated_at"])
            logger.info(f"Updated project {project_id}")
            return project


# Singleton
_project_repository: Optional[ProjectRepository] = None


def get_project_repository() -> ProjectRepository:
    """Get the project repository singleton."""
    global _project_repository
    if _project_repository is None:
        _project_repository = ProjectRepository()
    return _project_repository
