"""User model — the authenticated principal."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, func
from sqlalchemy.orm import relationship
from portal.db.base import Base
from portal.core.roles import Role, DEFAULT_ROLE


class User(Base):
    """Portal principal, lazily synchronized from the identity provider.

    Principals are never hard-deleted; ``is_active`` doubles as the
    pending-approval gate for newly provisioned accounts.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    position = Column(String(255), nullable=True)
    role = Column(Enum(Role), default=DEFAULT_ROLE, nullable=False, index=True)
    avatar_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=False, nullable=False)
    last_active_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    project_memberships = relationship(
        "ProjectMember",
        back_populates="user",
        lazy="selectin",
        foreign_keys="[ProjectMember.user_id]",
    )

    def public_profile(self) -> dict:
        """Small profile attached to real-time presence grants."""
        return {
            "name": self.name,
            "role": self.role.value if self.role else None,
            "avatar_url": self.avatar_url,
        }
