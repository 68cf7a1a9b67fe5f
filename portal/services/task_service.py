"""Task service — CRUD, assignment and task-scope access lookups."""

from datetime import datetime
from typing import Optional, List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from portal.core.exceptions import ResourceNotFoundError, ValidationError
from portal.core.roles import EXECUTIVE_LEVEL, level_of
from portal.models.audit_log import ActivityAction
from portal.models.project import Project, ProjectMember, Priority
from portal.models.task import Task, TaskStatus
from portal.models.user import User
from portal.services.audit_service import audit_service
from portal.services.project_service import project_service

EDITABLE_FIELDS = ("title", "description", "status", "priority", "due_date")


class TaskService:
    """Manages tasks and answers task-scope access questions."""

    @staticmethod
    def _load_users(db: Session, user_ids: List[int]) -> List[User]:
        ids = sorted(set(user_ids))
        users = db.query(User).filter(User.id.in_(ids)).all() if ids else []
        missing = set(ids) - {u.id for u in users}
        if missing:
            raise ResourceNotFoundError(f"Users not found: {sorted(missing)}")
        return users

    @staticmethod
    def create(
        db: Session,
        actor: User,
        project_id: int,
        title: str,
        description: Optional[str] = None,
        priority: Priority = Priority.MEDIUM,
        due_date: Optional[datetime] = None,
        assignee_ids: Optional[List[int]] = None,
    ) -> Task:
        """Create a task inside an existing project and audit it."""
        project = project_service.get(db, project_id)
        task = Task(
            title=title,
            description=description,
            priority=priority,
            due_date=due_date,
            project_id=project.id,
            created_by_id=actor.id,
        )
        task.assignees = TaskService._load_users(db, assignee_ids or [])
        db.add(task)
        db.commit()
        db.refresh(task)

        audit_service.record(
            db,
            actor_id=actor.id,
            action=ActivityAction.CREATED,
            description=f'Task "{task.title}" created in project "{project.name}"',
            entity_type="Task",
            entity_id=task.id,
            after=task.snapshot(),
        )
        return task

    @staticmethod
    def get(db: Session, task_id: int) -> Task:
        """Get a task by id."""
        task = db.query(Task).filter(Task.id == task_id).first()
        if not task:
            raise ResourceNotFoundError(f"Task {task_id} not found")
        return task

    @staticmethod
    def can_modify(task: Task, user: User) -> bool:
        """Relation check applied on top of the matrix for task edits."""
        project = task.project
        return (
            any(a.id == user.id for a in task.assignees)
            or task.created_by_id == user.id
            or project.manager_id == user.id
            or any(m.user_id == user.id for m in project.members)
            or level_of(user.role) >= EXECUTIVE_LEVEL
        )

    @staticmethod
    def can_create_in(db: Session, project_id: int, user: User) -> bool:
        """Creating a task needs a relation to its project, or executive level."""
        return (
            level_of(user.role) >= EXECUTIVE_LEVEL
            or project_service.is_related(db, project_id, user.id)
        )

    @staticmethod
    def can_delete(task: Task, user: User) -> bool:
        return (
            task.created_by_id == user.id
            or task.project.manager_id == user.id
            or level_of(user.role) >= EXECUTIVE_LEVEL
        )

    @staticmethod
    def update(
        db: Session,
        actor: User,
        task_id: int,
        assignee_ids: Optional[List[int]] = None,
        **changes,
    ) -> Task:
        """Update fields and/or replace assignees, auditing before/after state."""
        task = TaskService.get(db, task_id)
        before = task.snapshot()
        for field, value in changes.items():
            if field not in EDITABLE_FIELDS:
                raise ValidationError(f"Field '{field}' cannot be edited")
            if value is not None:
                setattr(task, field, value)
        if assignee_ids is not None:
            task.assignees = TaskService._load_users(db, assignee_ids)
        db.commit()
        db.refresh(task)

        after = task.snapshot()
        action = ActivityAction.UPDATED
        if before["assignee_ids"] != after["assignee_ids"]:
            action = ActivityAction.ASSIGNED
        audit_service.record(
            db,
            actor_id=actor.id,
            action=action,
            description=f'Task "{task.title}" updated',
            entity_type="Task",
            entity_id=task.id,
            before=before,
            after=after,
        )
        return task

    @staticmethod
    def delete(db: Session, actor: User, task_id: int) -> None:
        """Delete a task; the audit record keeps its last state."""
        task = TaskService.get(db, task_id)
        before = task.snapshot()
        title = task.title
        db.delete(task)
        db.commit()

        audit_service.record(
            db,
            actor_id=actor.id,
            action=ActivityAction.DELETED,
            description=f'Task "{title}" deleted',
            entity_type="Task",
            entity_id=task_id,
            before=before,
        )

    @staticmethod
    def is_related(db: Session, task_id: int, user_id: int) -> bool:
        """True if the user created the task, is assigned, or is related to its project."""
        return db.query(Task.id).join(Project, Task.project_id == Project.id).filter(
            Task.id == task_id,
            or_(
                Task.created_by_id == user_id,
                Task.assignees.any(User.id == user_id),
                Project.created_by_id == user_id,
                Project.manager_id == user_id,
                Project.members.any(ProjectMember.user_id == user_id),
            ),
        ).first() is not None

    @staticmethod
    def list_for(db: Session, user: User, status: Optional[TaskStatus] = None) -> List[Task]:
        """Tasks assigned to or created by ``user``."""
        query = db.query(Task).filter(
            or_(Task.created_by_id == user.id, Task.assignees.any(User.id == user.id))
        )
        if status:
            query = query.filter(Task.status == status)
        return query.order_by(Task.id.desc()).all()


task_service = TaskService()
