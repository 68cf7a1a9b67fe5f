"""Auth API router — principal sync and profile."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.schemas.schemas import SyncRequest, UserOut, MeOut
from portal.services.user_service import user_service
from portal.core.roles import access_level_label, level_of
from portal.core.security import get_identity, get_current_principal
from portal.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])


def _me(user: User) -> MeOut:
    return MeOut(
        user=UserOut.model_validate(user),
        status="active" if user.is_active else "pending_approval",
        access_level=access_level_label(user.role),
        level=level_of(user.role),
    )


@router.post("/sync", response_model=MeOut)
async def sync(
    body: SyncRequest,
    identity: dict = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Provision or refresh the local principal for the verified identity."""
    user = user_service.sync_principal(
        db,
        external_id=str(identity["sub"]),
        email=body.email,
        name=body.name,
        position=body.position,
        avatar_url=body.avatar_url,
    )
    return _me(user)


@router.get("/me", response_model=MeOut)
async def get_me(user: User = Depends(get_current_principal)):
    """Current principal profile; available while approval is pending."""
    return _me(user)
