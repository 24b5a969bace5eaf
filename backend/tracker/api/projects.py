"""
Project API endpoints.

WHAT: List, read and create the projects that group tickets.

WHY: Tickets are always created inside a project, so the UI needs to
show and create projects of the caller's organization.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.deps import get_current_principal
from tracker.core.exceptions import (
    OrganizationRequiredError,
    ProjectNotFoundError,
    ValidationError,
)
from tracker.core.permissions import Action, Principal, assert_in_scope, require
from tracker.dao.project import ProjectDAO
from tracker.db.session import get_db
from tracker.models.project import ProjectStatus
from tracker.schemas.project import ProjectCreate, ProjectListResponse, ProjectResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List projects",
)
async def list_projects(
    status_filter: Optional[ProjectStatus] = Query(default=None, alias="status"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> ProjectListResponse:
    """
    List projects of the caller's organization.

    WHY: A caller without an organization gets an empty list.
    """
    if not principal.has_organization:
        return ProjectListResponse(items=[], total=0, skip=skip, limit=limit)

    projects, total = await ProjectDAO(db).list_for_org(
        principal.org_id, status=status_filter, skip=skip, limit=limit
    )
    return ProjectListResponse(
        items=[ProjectResponse.model_validate(project) for project in projects],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Get project",
)
async def get_project(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    project = await ProjectDAO(db).get_by_id(project_id)
    assert_in_scope(principal, project, not_found=ProjectNotFoundError, project_id=project_id)
    return ProjectResponse.model_validate(project)


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create project",
    description="Create a project in the caller's organization (ADMIN, MANAGER)",
)
async def create_project(
    data: ProjectCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """
    Create a new project.

    Raises:
        AuthorizationError (403): Caller is a designer
        OrganizationRequiredError (403): Caller has no organization
    """
    require(principal, Action.CREATE_PROJECT)
    if not principal.has_organization:
        raise OrganizationRequiredError()

    name = data.name.strip()
    if not name:
        raise ValidationError(message="Project name is required", field="name")

    project = await ProjectDAO(db).create(
        org_id=principal.org_id,
        created_by_user_id=principal.id,
        name=name,
        description=data.description,
        status=ProjectStatus.ACTIVE,
    )

    logger.info(f"Project {project.id} created by user {principal.id}")
    return ProjectResponse.model_validate(project)
