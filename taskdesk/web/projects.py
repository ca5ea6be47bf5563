"""
Project routes.

Everything except reading a single project requires the Admin role.
Deleting a project removes its tasks in the same transaction.
"""

import logging
import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..auth import AuthContext, authenticate, require_admin
from ..database.repositories import get_project_repository
from ..exceptions import NotFoundError
from ..models.api_validation import ProjectFilter, ProjectWrite
from ..models.responses import project_to_dict
from ..services.consistency import get_consistency_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


@router.post("", status_code=201)
async def create_project(body: ProjectWrite, context: AuthContext = Depends(require_admin)):
    project = await get_project_repository().create(
        name=body.name,
        description=body.description,
        created_by=context.identity_id,
        members=body.members,
    )
    return {
        "status": "success",
        "message": "Project created successfully",
        "data": project_to_dict(project),
    }


@router.get("", dependencies=[Depends(require_admin)])
async def list_projects(filters: Annotated[ProjectFilter, Query()]):
    """Projects newest first, optionally searched by name or description."""
    projects, total = await get_project_repository().get_page(
        search=filters.search,
        offset=filters.offset,
        limit=filters.limit,
    )
    return {
        "status": "success",
        "page": filters.page,
        "limit": filters.limit,
        "total": total,
        "totalPages": math.ceil(total / filters.limit),
        "data": [project_to_dict(project) for project in projects],
    }


@router.get("/with-tasks", dependencies=[Depends(require_admin)])
async def list_projects_with_tasks():
    projects = await get_project_repository().get_all_with_tasks()
    return {
        "status": "success",
        "data": [project_to_dict(project) for project in projects],
    }


@router.get("/{project_id}", dependencies=[Depends(authenticate)])
async def get_project(project_id: str):
    project = await get_project_repository().get_by_id(project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return {"status": "success", "data": project_to_dict(project)}


@router.put("/{project_id}", dependencies=[Depends(require_admin)])
async def update_project(project_id: str, body: ProjectWrite):
    """Overwrite name, description and the whole member set."""
    project = await get_project_repository().update(
        project_id,
        name=body.name,
        description=body.description,
        members=body.members,
    )
    return {
        "status": "success",
        "message": "Project updated successfully",
        "data": project_to_dict(project),
    }


@router.delete("/{project_id}", dependencies=[Depends(require_admin)])
async def delete_project(project_id: str):
    result = await get_consistency_coordinator().delete_project_cascade(project_id)
    return {
        "status": "success",
        "message": "Project and its tasks deleted successfully",
        "data": {"projectId": result.project_id, "tasksDeleted": result.tasks_deleted},
    }
