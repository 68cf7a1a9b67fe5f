"""Admin API router — principal management and activity trail."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.schemas.schemas import ActivityLogOut, UserOut, UserUpdateRequest
from portal.services.audit_service import audit_service
from portal.services.user_service import user_service
from portal.models.audit_log import ActivityAction
from portal.models.user import User
from portal.core.permissions import Module, Operation
from portal.core.roles import Role
from portal.core.security import RequirePermission

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
async def admin_list_users(
    role: Optional[Role] = Query(None),
    status: Optional[str] = Query(None, pattern="^(active|pending)$"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: User = Depends(RequirePermission(Module.USER_MANAGEMENT, Operation.VIEW)),
):
    """List principals with role/status/search filters."""
    is_active = None if status is None else status == "active"
    result = user_service.list_users(db, role, is_active, search, page, page_size)
    return {
        "users": [UserOut.model_validate(u) for u in result["users"]],
        "total": result["total"],
        "page": result["page"],
        "stats": result["stats"],
    }


@router.patch("/users/{user_id}", response_model=UserOut)
async def admin_update_user(
    user_id: int,
    body: UserUpdateRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(RequirePermission(Module.USER_MANAGEMENT, Operation.EDIT)),
):
    """Change a principal's name, role or activation."""
    user = user_service.update_user(
        db, actor, user_id,
        name=body.name,
        position=body.position,
        role=body.role,
        is_active=body.is_active,
    )
    return UserOut.model_validate(user)


@router.get("/activity")
async def get_activity_logs(
    action: Optional[ActivityAction] = Query(None),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    actor_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: User = Depends(RequirePermission(Module.DASHBOARD, Operation.AUDIT_LOG)),
):
    """Query the activity trail, newest first."""
    result = audit_service.query_logs(
        db, actor_id, action, entity_type, entity_id, page, page_size,
    )
    return {
        "logs": [ActivityLogOut.model_validate(log) for log in result["logs"]],
        "total": result["total"],
        "page": result["page"],
    }
