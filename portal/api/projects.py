"""Projects API router — permission-gated CRUD, approval and team membership."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.schemas.schemas import (
    ProjectCreate, ProjectUpdate, ProjectOut, ProjectApproval,
    ProjectMemberAdd, ProjectMemberOut,
)
from portal.services.project_service import project_service
from portal.services.notification_router import (
    NotificationRouter, NotificationEvent, DeliveryChannel, get_notification_router,
)
from portal.models.user import User
from portal.core.config import settings
from portal.core.exceptions import forbidden
from portal.core.permissions import Module, Operation
from portal.core.roles import EXECUTIVE_LEVEL, level_of
from portal.core.security import RequirePermission

logger = logging.getLogger("barangay_portal.api.projects")

router = APIRouter(prefix="/projects", tags=["projects"])

PM = Module.PROJECT_MANAGEMENT


@router.post("", response_model=ProjectOut, status_code=201)
async def create_project(
    body: ProjectCreate,
    db: Session = Depends(get_db),
    notifier: NotificationRouter = Depends(get_notification_router),
    actor: User = Depends(RequirePermission(PM, Operation.CREATE)),
):
    """Create a project; ``notify`` announces it on push and real-time."""
    project = project_service.create(
        db, actor,
        name=body.name,
        description=body.description,
        priority=body.priority,
        location=body.location,
        is_public=body.is_public,
        manager_id=body.manager_id,
        team_ids=body.team_ids,
    )
    if body.notify:
        event = NotificationEvent.build(
            "project-created",
            {
                "projectId": project.id,
                "projectTitle": project.name,
                "url": f"{settings.DASHBOARD_URL}/projects/{project.id}",
            },
            [DeliveryChannel.PUSH, DeliveryChannel.REALTIME],
        )
        result = await notifier.dispatch(event, actor)
        logger.info("Project %s announcement: %s", project.id, result.to_dict())
    return ProjectOut.model_validate(project)


@router.get("")
async def list_projects(
    include_archived: bool = Query(False),
    db: Session = Depends(get_db),
    user: User = Depends(RequirePermission(PM, Operation.VIEW)),
):
    """Projects visible to the caller."""
    projects = project_service.list_for(db, user, include_archived)
    return {
        "projects": [ProjectOut.model_validate(p) for p in projects],
        "total": len(projects),
    }


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(RequirePermission(PM, Operation.VIEW)),
):
    project = project_service.get(db, project_id)
    if not (
        project.is_public
        or level_of(user.role) >= EXECUTIVE_LEVEL
        or project_service.is_related(db, project.id, user.id)
    ):
        raise forbidden("Project access denied")
    return ProjectOut.model_validate(project)


@router.patch("/{project_id}", response_model=ProjectOut)
async def update_project(
    project_id: int,
    body: ProjectUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(RequirePermission(PM, Operation.EDIT)),
):
    project = project_service.update(db, actor, project_id, **body.model_dump(exclude_unset=True))
    return ProjectOut.model_validate(project)


@router.delete("/{project_id}", response_model=ProjectOut)
async def archive_project(
    project_id: int,
    db: Session = Depends(get_db),
    actor: User = Depends(RequirePermission(PM, Operation.DELETE)),
):
    """Archive (soft-delete) a project."""
    project = project_service.archive(db, actor, project_id)
    return ProjectOut.model_validate(project)


@router.post("/{project_id}/approve", response_model=ProjectOut)
async def approve_project(
    project_id: int,
    body: ProjectApproval,
    db: Session = Depends(get_db),
    actor: User = Depends(RequirePermission(PM, Operation.APPROVE)),
):
    """Approve or reject a project."""
    project = project_service.set_approval(db, actor, project_id, body.approved)
    return ProjectOut.model_validate(project)


@router.post("/{project_id}/members", response_model=ProjectMemberOut, status_code=201)
async def add_project_member(
    project_id: int,
    body: ProjectMemberAdd,
    db: Session = Depends(get_db),
    actor: User = Depends(RequirePermission(PM, Operation.EDIT)),
):
    member = project_service.add_member(db, actor, project_id, body.user_id)
    return ProjectMemberOut.model_validate(member)
