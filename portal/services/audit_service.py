"""Audit service — best-effort, append-only activity trail for all mutations."""

import json
import logging
from typing import Optional, Any

from sqlalchemy.orm import Session
from fastapi import Request

from portal.models.audit_log import ActivityLog, ActivityAction

logger = logging.getLogger("barangay_portal.audit")


def _dump(value: Optional[Any]) -> Optional[str]:
    return json.dumps(value, default=str) if value is not None else None


class AuditService:
    """Records immutable activity entries for state-changing actions."""

    @staticmethod
    def record(
        db: Session,
        actor_id: Optional[int],
        action: ActivityAction,
        description: str,
        entity_type: str,
        entity_id: Any,
        before: Optional[Any] = None,
        after: Optional[Any] = None,
        metadata: Optional[Any] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[ActivityLog]:
        """Append a single activity record and commit it.

        Args:
            action: e.g. ``ActivityAction.CREATED``, ``ActivityAction.NOTIFICATION_SENT``
            entity_type: Project, Task, User, NOTIFICATION, EMAIL

        A failed write is rolled back and logged; it never propagates, so the
        mutation that triggered it keeps its own outcome. Returns None on failure.
        """
        try:
            entry = ActivityLog(
                actor_id=actor_id,
                action=action,
                description=description[:1000],
                entity_type=entity_type,
                entity_id=str(entity_id),
                old_value_json=_dump(before),
                new_value_json=_dump(after),
                metadata_json=_dump(metadata),
                ip_address=ip_address,
                user_agent=user_agent,
            )
            db.add(entry)
            db.commit()
            return entry
        except Exception:
            logger.exception(
                "Failed to write activity log (%s %s:%s by %s)",
                getattr(action, "value", action), entity_type, entity_id, actor_id,
            )
            try:
                db.rollback()
            except Exception:
                logger.exception("Rollback after failed activity write also failed")
            return None

    @staticmethod
    def record_from_request(
        db: Session,
        request: Request,
        actor_id: Optional[int],
        action: ActivityAction,
        description: str,
        entity_type: str,
        entity_id: Any,
        before: Optional[Any] = None,
        after: Optional[Any] = None,
        metadata: Optional[Any] = None,
    ) -> Optional[ActivityLog]:
        """Write an activity record extracting IP and user-agent from the request."""
        ip = request.client.host if request.client else None
        ua = request.headers.get("user-agent", "")[:500]
        return AuditService.record(
            db,
            actor_id=actor_id,
            action=action,
            description=description,
            entity_type=entity_type,
            entity_id=entity_id,
            before=before,
            after=after,
            metadata=metadata,
            ip_address=ip,
            user_agent=ua,
        )

    @staticmethod
    def query_logs(
        db: Session,
        actor_id: Optional[int] = None,
        action: Optional[ActivityAction] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ):
        """Query activity logs with filters and pagination, newest first."""
        query = db.query(ActivityLog)

        if actor_id:
            query = query.filter(ActivityLog.actor_id == actor_id)
        if action:
            query = query.filter(ActivityLog.action == action)
        if entity_type:
            query = query.filter(ActivityLog.entity_type == entity_type)
        if entity_id:
            query = query.filter(ActivityLog.entity_id == str(entity_id))

        total = query.count()
        logs = (
            query.order_by(ActivityLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        return {
            "logs": logs,
            "total": total,
            "page": page,
            "page_size": page_size,
        }


audit_service = AuditService()
