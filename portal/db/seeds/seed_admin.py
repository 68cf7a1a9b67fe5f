"""Seed the bootstrap administrator principal from env vars."""

from typing import Tuple

from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.roles import Role
from portal.models.audit_log import ActivityAction
from portal.models.user import User
from portal.services.audit_service import audit_service


def seed_admin(db: Session) -> Tuple[User, bool]:
    """Create the active ADMIN principal if not already present.

    Returns the principal and whether it was created.
    """
    existing = db.query(User).filter(
        (User.external_id == settings.SEED_ADMIN_EXTERNAL_ID) | (User.email == settings.SEED_ADMIN_EMAIL)
    ).first()
    if existing:
        return existing, False

    admin = User(
        external_id=settings.SEED_ADMIN_EXTERNAL_ID,
        email=settings.SEED_ADMIN_EMAIL,
        name=settings.SEED_ADMIN_NAME,
        position="Administrator",
        role=Role.ADMIN,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)

    audit_service.record(
        db,
        actor_id=None,
        action=ActivityAction.USER_PROVISIONED,
        description=f"Bootstrap administrator {admin.email} seeded",
        entity_type="User",
        entity_id=admin.id,
        after={"email": admin.email, "role": admin.role.value, "is_active": True},
    )
    return admin, True
