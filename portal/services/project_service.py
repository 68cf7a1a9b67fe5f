"""Project service — CRUD, approval, team membership and access lookups."""

from typing import Optional, List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from portal.core.exceptions import ResourceNotFoundError, ResourceConflictError, ValidationError
from portal.core.roles import Role, EXECUTIVE_LEVEL, level_of
from portal.models.audit_log import ActivityAction
from portal.models.project import Project, ProjectMember, ProjectStatus, Priority
from portal.models.task import Task
from portal.models.user import User
from portal.services.audit_service import audit_service

EDITABLE_FIELDS = ("name", "description", "status", "priority", "location", "is_public", "manager_id")


def _relation_filter(user_id: int):
    """Created, managed, or team-member relation to a project."""
    return or_(
        Project.created_by_id == user_id,
        Project.manager_id == user_id,
        Project.members.any(ProjectMember.user_id == user_id),
    )


class ProjectService:
    """Manages projects and answers project-scope access questions."""

    @staticmethod
    def create(
        db: Session,
        actor: User,
        name: str,
        description: Optional[str] = None,
        priority: Priority = Priority.MEDIUM,
        location: Optional[str] = None,
        is_public: bool = True,
        manager_id: Optional[int] = None,
        team_ids: Optional[List[int]] = None,
    ) -> Project:
        """Create a project (creator manages it by default) and audit it."""
        project = Project(
            name=name,
            description=description,
            priority=priority,
            location=location,
            is_public=is_public,
            created_by_id=actor.id,
            manager_id=manager_id or actor.id,
        )
        db.add(project)
        db.flush()
        for user_id in sorted(set(team_ids or [])):
            db.add(ProjectMember(project_id=project.id, user_id=user_id, added_by=actor.id))
        db.commit()
        db.refresh(project)

        audit_service.record(
            db,
            actor_id=actor.id,
            action=ActivityAction.CREATED,
            description=f'Project "{project.name}" created',
            entity_type="Project",
            entity_id=project.id,
            after=project.snapshot(),
        )
        return project

    @staticmethod
    def get(db: Session, project_id: int) -> Project:
        """Get a project by id."""
        project = db.query(Project).filter(Project.id == project_id).first()
        if not project:
            raise ResourceNotFoundError(f"Project {project_id} not found")
        return project

    @staticmethod
    def list_for(db: Session, user: User, include_archived: bool = False) -> List[Project]:
        """Projects visible to ``user`` according to the role hierarchy."""
        query = db.query(Project)
        if not include_archived:
            query = query.filter(Project.is_archived == False)

        if level_of(user.role) >= EXECUTIVE_LEVEL:
            pass
        elif user.role == Role.STAFF:
            query = query.filter(
                or_(
                    Project.is_public == True,
                    Project.members.any(ProjectMember.user_id == user.id),
                    Project.tasks.any(Task.assignees.any(User.id == user.id)),
                )
            )
        else:
            query = query.filter(or_(Project.is_public == True, _relation_filter(user.id)))
        return query.order_by(Project.created_at.desc(), Project.id.desc()).all()

    @staticmethod
    def update(db: Session, actor: User, project_id: int, **changes) -> Project:
        """Update editable fields and audit before/after state."""
        project = ProjectService.get(db, project_id)
        before = project.snapshot()
        for field, value in changes.items():
            if field not in EDITABLE_FIELDS:
                raise ValidationError(f"Field '{field}' cannot be edited")
            if value is not None:
                setattr(project, field, value)
        db.commit()
        db.refresh(project)

        audit_service.record(
            db,
            actor_id=actor.id,
            action=ActivityAction.UPDATED,
            description=f'Project "{project.name}" updated',
            entity_type="Project",
            entity_id=project.id,
            before=before,
            after=project.snapshot(),
        )
        return project

    @staticmethod
    def archive(db: Session, actor: User, project_id: int) -> Project:
        """Soft-delete a project."""
        project = ProjectService.get(db, project_id)
        before = project.snapshot()
        project.is_archived = True
        db.commit()
        db.refresh(project)

        audit_service.record(
            db,
            actor_id=actor.id,
            action=ActivityAction.DELETED,
            description=f'Project "{project.name}" archived',
            entity_type="Project",
            entity_id=project.id,
            before=before,
            after=project.snapshot(),
        )
        return project

    @staticmethod
    def set_approval(db: Session, actor: User, project_id: int, approved: bool) -> Project:
        """Approve or reject a project."""
        project = ProjectService.get(db, project_id)
        before = {"status": project.status.value}
        project.status = ProjectStatus.APPROVED if approved else ProjectStatus.CANCELLED
        db.commit()
        db.refresh(project)

        audit_service.record(
            db,
            actor_id=actor.id,
            action=ActivityAction.PROJECT_APPROVED if approved else ActivityAction.PROJECT_CANCELLED,
            description=f'Project "{project.name}" was {"approved" if approved else "rejected"} by {actor.name}',
            entity_type="Project",
            entity_id=project.id,
            before=before,
            after={"status": project.status.value},
            metadata={"approved": approved, "approved_by": actor.name},
        )
        return project

    @staticmethod
    def add_member(db: Session, actor: User, project_id: int, user_id: int) -> ProjectMember:
        """Add a principal to the project team."""
        project = ProjectService.get(db, project_id)
        if not db.query(User).filter(User.id == user_id).first():
            raise ResourceNotFoundError(f"User {user_id} not found")
        existing = db.query(ProjectMember).filter(
            ProjectMember.project_id == project.id,
            ProjectMember.user_id == user_id,
        ).first()
        if existing:
            raise ResourceConflictError(f"User {user_id} is already on project {project.id}")

        member = ProjectMember(project_id=project.id, user_id=user_id, added_by=actor.id)
        db.add(member)
        db.commit()
        db.refresh(member)

        audit_service.record(
            db,
            actor_id=actor.id,
            action=ActivityAction.MEMBER_ADDED,
            description=f'User {user_id} added to project "{project.name}"',
            entity_type="Project",
            entity_id=project.id,
            metadata={"user_id": user_id},
        )
        return member

    @staticmethod
    def is_related(db: Session, project_id: int, user_id: int) -> bool:
        """True if the user created, manages, or is on the team of the project."""
        return db.query(Project.id).filter(
            Project.id == project_id,
            _relation_filter(user_id),
        ).first() is not None


project_service = ProjectService()
