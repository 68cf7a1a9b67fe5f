"""Activity log model — append-only."""

import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, func
from portal.db.base import Base


class ActivityAction(str, enum.Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    ASSIGNED = "ASSIGNED"
    MEMBER_ADDED = "MEMBER_ADDED"
    PROJECT_APPROVED = "PROJECT_APPROVED"
    PROJECT_CANCELLED = "PROJECT_CANCELLED"
    USER_PROVISIONED = "USER_PROVISIONED"
    USER_ACTIVATED = "USER_ACTIVATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    ROLE_CHANGED = "ROLE_CHANGED"
    NOTIFICATION_SENT = "NOTIFICATION_SENT"
    EMAIL_SENT = "EMAIL_SENT"


class ActivityLog(Base):
    """Immutable audit trail for all state-changing actions.

    This table is APPEND-ONLY: no UPDATE or DELETE operations should ever
    be performed on it (enforced at application level). Row id order is the
    insertion order used to reconstruct history.
    """
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    action = Column(Enum(ActivityAction), nullable=False, index=True)
    description = Column(String(1000), nullable=False)
    entity_type = Column(String(50), nullable=False, index=True)  # Project, Task, User, NOTIFICATION
    entity_id = Column(String(100), nullable=False)
    old_value_json = Column(Text, nullable=True)
    new_value_json = Column(Text, nullable=True)
    metadata_json = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
