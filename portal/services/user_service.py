"""User service — identity-provider sync and principal management."""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.exceptions import ResourceConflictError, ResourceNotFoundError
from portal.core.roles import Role, DEFAULT_ROLE, OFFICIAL_ROLES
from portal.models.audit_log import ActivityAction
from portal.models.user import User
from portal.services.audit_service import audit_service

logger = logging.getLogger("barangay_portal.users")


def _user_snapshot(user: User) -> Dict[str, Any]:
    return {
        "name": user.name,
        "email": user.email,
        "position": user.position,
        "role": user.role.value if user.role else None,
        "is_active": user.is_active,
    }


class UserService:
    """Handles principal provisioning and administration."""

    @staticmethod
    def get_by_external_id(db: Session, external_id: str) -> Optional[User]:
        return db.query(User).filter(User.external_id == external_id).first()

    @staticmethod
    def _commit_identity(db: Session, email: str) -> None:
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ResourceConflictError(f"Email {email} is already linked to another account")

    @staticmethod
    def sync_principal(
        db: Session,
        external_id: str,
        email: str,
        name: str,
        position: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User:
        """Create the local principal on first sight, refresh it afterwards.

        New principals get the default low-privilege role and stay inactive
        (pending approval) unless ``AUTO_APPROVE_NEW_USERS`` is set.
        """
        now = datetime.now(timezone.utc)
        user = UserService.get_by_external_id(db, external_id)
        if user:
            user.name = name
            user.email = email
            if avatar_url:
                user.avatar_url = avatar_url
            user.last_active_at = now
            UserService._commit_identity(db, email)
            db.refresh(user)
            return user

        user = User(
            external_id=external_id,
            email=email,
            name=name,
            position=position or "New User",
            role=DEFAULT_ROLE,
            avatar_url=avatar_url,
            is_active=settings.AUTO_APPROVE_NEW_USERS,
            last_active_at=now,
        )
        db.add(user)
        UserService._commit_identity(db, email)
        db.refresh(user)
        logger.info("Provisioned principal %s (%s), active=%s", user.id, email, user.is_active)

        audit_service.record(
            db,
            actor_id=user.id,
            action=ActivityAction.USER_PROVISIONED,
            description=f"User {user.name} provisioned with role {user.role.value}",
            entity_type="User",
            entity_id=user.id,
            after=_user_snapshot(user),
        )
        return user

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        """Get a user by id."""
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def list_users(
        db: Session,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """List users with filters, pagination and headline stats."""
        query = db.query(User)
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(User.name.ilike(pattern), User.email.ilike(pattern), User.position.ilike(pattern))
            )

        total = query.count()
        users = (
            query.order_by(User.role, User.name)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        stats = {
            "total": db.query(User).count(),
            "active": db.query(User).filter(User.is_active == True).count(),
            "pending": db.query(User).filter(User.is_active == False).count(),
            "officials": db.query(User).filter(User.role.in_(list(OFFICIAL_ROLES))).count(),
        }
        return {"users": users, "total": total, "page": page, "stats": stats}

    @staticmethod
    def update_user(
        db: Session,
        actor: User,
        user_id: int,
        name: Optional[str] = None,
        position: Optional[str] = None,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
    ) -> User:
        """Apply an administrator's change and audit it with before/after state."""
        user = UserService.get_user(db, user_id)
        before = _user_snapshot(user)

        if name:
            user.name = name
        if position:
            user.position = position
        if role is not None:
            user.role = role
        if is_active is not None:
            user.is_active = is_active
        db.commit()
        db.refresh(user)
        after = _user_snapshot(user)

        if before["is_active"] != after["is_active"]:
            action = ActivityAction.USER_ACTIVATED if user.is_active else ActivityAction.USER_DEACTIVATED
            description = f"User {user.name} {'activated' if user.is_active else 'deactivated'} by {actor.name}"
        elif before["role"] != after["role"]:
            action = ActivityAction.ROLE_CHANGED
            description = f"User {user.name} role changed from {before['role']} to {after['role']}"
        else:
            action = ActivityAction.UPDATED
            description = f"User {user.name} updated by {actor.name}"

        audit_service.record(
            db,
            actor_id=actor.id,
            action=action,
            description=description,
            entity_type="User",
            entity_id=user.id,
            before=before,
            after=after,
        )
        return user

    @staticmethod
    def active_principals(db: Session, officials_only: bool = False):
        """Active principals, optionally restricted to official roles."""
        query = db.query(User).filter(User.is_active == True)
        if officials_only:
            query = query.filter(User.role.in_(list(OFFICIAL_ROLES)))
        return query.order_by(User.id).all()


user_service = UserService()
