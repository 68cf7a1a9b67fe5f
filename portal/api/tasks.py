"""Tasks API router."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.schemas.schemas import TaskCreate, TaskUpdate, TaskOut, MessageResponse
from portal.services.project_service import project_service
from portal.services.task_service import task_service
from portal.services.notification_router import (
    NotificationRouter, NotificationEvent, DeliveryChannel, Recipients, get_notification_router,
)
from portal.models.task import Task, TaskStatus
from portal.models.user import User
from portal.core.config import settings
from portal.core.exceptions import AuthorizationError
from portal.core.permissions import Module, Operation, PermissionMatrix, get_permission_matrix
from portal.core.security import RequirePermission

logger = logging.getLogger("barangay_portal.api.tasks")

router = APIRouter(prefix="/tasks", tags=["tasks"])

TM = Module.TASK_MANAGEMENT


async def _notify_assignees(notifier: NotificationRouter, task: Task, actor: User) -> None:
    targets = [u.external_id for u in task.assignees if u.id != actor.id]
    if not targets:
        return
    event = NotificationEvent.build(
        "task-assigned",
        {
            "taskId": task.id,
            "taskTitle": task.title,
            "projectId": task.project_id,
            "url": f"{settings.DASHBOARD_URL}/tasks/{task.id}",
        },
        [DeliveryChannel.PUSH, DeliveryChannel.REALTIME],
        Recipients(user_ids=targets),
    )
    result = await notifier.dispatch(event, actor)
    logger.info("Task %s assignment notice: %s", task.id, result.to_dict())


def _assigns_others(actor: User, assignee_ids) -> bool:
    return any(uid != actor.id for uid in assignee_ids or [])


@router.get("")
async def list_tasks(
    status: Optional[TaskStatus] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(RequirePermission(TM, Operation.VIEW)),
):
    """Tasks created by or assigned to the caller."""
    tasks = task_service.list_for(db, user, status)
    return {"tasks": [TaskOut.model_validate(t) for t in tasks], "total": len(tasks)}


@router.post("", response_model=TaskOut, status_code=201)
async def create_task(
    body: TaskCreate,
    db: Session = Depends(get_db),
    matrix: PermissionMatrix = Depends(get_permission_matrix),
    notifier: NotificationRouter = Depends(get_notification_router),
    actor: User = Depends(RequirePermission(TM, Operation.CREATE)),
):
    """Create a task; assigning anyone but yourself needs ASSIGN."""
    project_service.get(db, body.project_id)
    if not task_service.can_create_in(db, body.project_id, actor):
        raise AuthorizationError("You do not have access to this project")
    if _assigns_others(actor, body.assignee_ids):
        matrix.authorize(actor, TM, Operation.ASSIGN)

    task = task_service.create(
        db, actor,
        project_id=body.project_id,
        title=body.title,
        description=body.description,
        priority=body.priority,
        due_date=body.due_date,
        assignee_ids=body.assignee_ids,
    )
    await _notify_assignees(notifier, task, actor)
    return TaskOut.model_validate(task)


@router.patch("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: int,
    body: TaskUpdate,
    db: Session = Depends(get_db),
    matrix: PermissionMatrix = Depends(get_permission_matrix),
    notifier: NotificationRouter = Depends(get_notification_router),
    actor: User = Depends(RequirePermission(TM, Operation.EDIT)),
):
    """Edit a task the caller is related to."""
    task = task_service.get(db, task_id)
    if not task_service.can_modify(task, actor):
        raise AuthorizationError("You do not have permission to modify this task")

    changes = body.model_dump(exclude_unset=True)
    assignee_ids = changes.pop("assignee_ids", None)
    previous = {u.id for u in task.assignees}
    if assignee_ids is not None and _assigns_others(actor, set(assignee_ids) - previous):
        matrix.authorize(actor, TM, Operation.ASSIGN)

    task = task_service.update(db, actor, task_id, assignee_ids=assignee_ids, **changes)
    if assignee_ids is not None and set(assignee_ids) - previous:
        await _notify_assignees(notifier, task, actor)
    return TaskOut.model_validate(task)


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    actor: User = Depends(RequirePermission(TM, Operation.DELETE)),
):
    """Delete a task; only its creator, the project manager or an executive may."""
    task = task_service.get(db, task_id)
    if not task_service.can_delete(task, actor):
        raise AuthorizationError("You do not have permission to delete this task")
    task_service.delete(db, actor, task_id)
    return MessageResponse(message=f"Task {task_id} deleted")
