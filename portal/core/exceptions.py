"""Custom exception classes for the barangay portal."""

from typing import Optional

from fastapi import HTTPException, status


class PortalError(Exception):
    """Base exception for the portal.

    ``status_code`` is the HTTP status the API layer renders it as.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    code: Optional[str] = None

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(PortalError):
    """Raised when no verified principal is present."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(PortalError):
    """Raised when a principal's level or relation is insufficient."""
    status_code = status.HTTP_403_FORBIDDEN


class PendingApprovalError(AuthorizationError):
    """Raised when an inactive principal attempts a protected operation."""
    code = "pending_approval"

    def __init__(self, message: str = "Account is pending administrator approval"):
        super().__init__(message)


class ResourceNotFoundError(PortalError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(PortalError):
    """Raised when a resource already exists."""
    status_code = status.HTTP_409_CONFLICT


class ValidationError(PortalError):
    """Raised when input validation fails."""
    pass


class ConfigurationError(PortalError):
    """Raised for role or permission-matrix configuration defects."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ChannelDeliveryError(PortalError):
    """Raised by a delivery provider when a send or publish fails."""
    status_code = status.HTTP_502_BAD_GATEWAY


# HTTP exception shortcuts
def forbidden(detail: str = "Insufficient permissions") -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def bad_request(detail: str = "Bad request") -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
