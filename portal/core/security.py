"""Identity-provider token verification and permission dependencies."""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.permissions import PermissionMatrix, get_permission_matrix
from portal.db.session import get_db
from portal.models.user import User

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def decode_identity_token(token: str) -> dict:
    """Decode and validate a token issued by the identity provider."""
    options = {"verify_aud": settings.IDP_JWT_AUDIENCE is not None}
    try:
        return jwt.decode(
            token,
            settings.IDP_JWT_SECRET,
            algorithms=[settings.IDP_JWT_ALGORITHM],
            audience=settings.IDP_JWT_AUDIENCE,
            options=options,
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> dict:
    """Verified identity claims; ``sub`` is the provider's user id."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_identity_token(credentials.credentials)
    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return payload


async def get_current_principal(
    identity: dict = Depends(get_identity),
    db: Session = Depends(get_db),
) -> User:
    """Load the synced principal for the verified identity (404 if never synced)."""
    user = db.query(User).filter(User.external_id == str(identity["sub"])).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


class RequirePermission:
    """Dependency that checks the caller against a permission-matrix entry."""

    def __init__(self, module, operation):
        self.module = module
        self.operation = operation

    async def __call__(
        self,
        principal: User = Depends(get_current_principal),
        matrix: PermissionMatrix = Depends(get_permission_matrix),
    ) -> User:
        matrix.authorize(principal, self.module, self.operation)
        return principal
