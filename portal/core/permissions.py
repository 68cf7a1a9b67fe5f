"""Per-module, per-operation minimum role levels.

The matrix is plain configuration data wrapped in a ``PermissionMatrix`` value.
Handlers receive it through the ``get_permission_matrix`` dependency, so tests
can override it with their own table without touching module state.
"""

import enum
import logging
from typing import Any, Dict, Mapping, Optional, Union

from portal.core.exceptions import (
    AuthorizationError,
    ConfigurationError,
    PendingApprovalError,
)
from portal.core.roles import known_levels, level_of

logger = logging.getLogger("barangay_portal.permissions")


class Module(str, enum.Enum):
    DASHBOARD = "DASHBOARD"
    PROJECT_MANAGEMENT = "PROJECT_MANAGEMENT"
    TASK_MANAGEMENT = "TASK_MANAGEMENT"
    EVENT_MANAGEMENT = "EVENT_MANAGEMENT"
    DOCUMENT_SYSTEM = "DOCUMENT_SYSTEM"
    FINANCIAL_SYSTEM = "FINANCIAL_SYSTEM"
    REPORTS_ANALYTICS = "REPORTS_ANALYTICS"
    USER_MANAGEMENT = "USER_MANAGEMENT"
    SYSTEM_SETTINGS = "SYSTEM_SETTINGS"
    ANNOUNCEMENTS = "ANNOUNCEMENTS"
    LANDING_PAGE = "LANDING_PAGE"
    NOTIFICATIONS = "NOTIFICATIONS"


class Operation(str, enum.Enum):
    VIEW = "VIEW"
    CREATE = "CREATE"
    EDIT = "EDIT"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    ASSIGN = "ASSIGN"
    CLOSE = "CLOSE"
    PUBLISH = "PUBLISH"
    ADMIN = "ADMIN"
    AUDIT_LOG = "AUDIT_LOG"
    MANAGE_BUDGET = "MANAGE_BUDGET"
    MANAGE_REGISTRATION = "MANAGE_REGISTRATION"
    MANAGE_ACCESS = "MANAGE_ACCESS"
    OFFICIAL_DOCUMENTS = "OFFICIAL_DOCUMENTS"
    VIEW_BUDGET = "VIEW_BUDGET"
    MANAGE_EXPENSES = "MANAGE_EXPENSES"
    APPROVE_BUDGET = "APPROVE_BUDGET"
    VIEW_REPORTS = "VIEW_REPORTS"
    AUDIT = "AUDIT"
    EXPORT = "EXPORT"
    ADVANCED = "ADVANCED"
    MANAGE_ROLES = "MANAGE_ROLES"
    EDIT_CONTENT = "EDIT_CONTENT"
    MANAGE_FEATURED = "MANAGE_FEATURED"
    SEND = "SEND"
    SEND_EMAIL = "SEND_EMAIL"


M, O = Module, Operation

DEFAULT_PERMISSIONS: Dict[Module, Dict[Operation, int]] = {
    M.DASHBOARD: {O.VIEW: 1, O.AUDIT_LOG: 5, O.ADMIN: 6},
    M.PROJECT_MANAGEMENT: {
        O.VIEW: 1, O.CREATE: 3, O.EDIT: 3, O.DELETE: 5, O.APPROVE: 5, O.MANAGE_BUDGET: 4,
    },
    M.TASK_MANAGEMENT: {
        O.VIEW: 1, O.CREATE: 1, O.ASSIGN: 3, O.EDIT: 1, O.DELETE: 3, O.CLOSE: 1,
    },
    M.EVENT_MANAGEMENT: {
        O.VIEW: 1, O.CREATE: 3, O.EDIT: 3, O.DELETE: 5, O.PUBLISH: 4, O.MANAGE_REGISTRATION: 3,
    },
    M.DOCUMENT_SYSTEM: {
        O.VIEW: 1, O.CREATE: 1, O.EDIT: 3, O.DELETE: 4, O.MANAGE_ACCESS: 4,
        O.OFFICIAL_DOCUMENTS: 3,
    },
    M.FINANCIAL_SYSTEM: {
        O.VIEW_BUDGET: 3, O.MANAGE_EXPENSES: 4, O.APPROVE_BUDGET: 5, O.VIEW_REPORTS: 4,
        O.AUDIT: 6,
    },
    M.REPORTS_ANALYTICS: {O.VIEW: 3, O.EXPORT: 4, O.ADVANCED: 5},
    M.USER_MANAGEMENT: {O.VIEW: 5, O.CREATE: 6, O.EDIT: 6, O.DELETE: 6, O.MANAGE_ROLES: 6},
    M.SYSTEM_SETTINGS: {O.VIEW: 5, O.EDIT: 6, O.ADVANCED: 6},
    M.ANNOUNCEMENTS: {O.VIEW: 1, O.CREATE: 3, O.EDIT: 4, O.DELETE: 5, O.PUBLISH: 4},
    M.LANDING_PAGE: {O.VIEW: 1, O.EDIT_CONTENT: 4, O.MANAGE_FEATURED: 5},
    M.NOTIFICATIONS: {O.SEND: 1, O.SEND_EMAIL: 4},
}

# Conventional risk tiers; levels must not decrease from one tier to the next.
RISK_TIERS = {
    O.VIEW: 0,
    O.CREATE: 1,
    O.EDIT: 2,
    O.DELETE: 3,
    O.APPROVE: 3,
}


def _key(value: Union[str, enum.Enum]) -> str:
    return value.value if isinstance(value, enum.Enum) else str(value)


class PermissionMatrix:
    """Minimum role level per (module, operation), validated on construction."""

    def __init__(self, requirements: Mapping[Any, Mapping[Any, int]]):
        self._levels: Dict[str, Dict[str, int]] = {
            _key(module): {_key(op): int(level) for op, level in ops.items()}
            for module, ops in requirements.items()
        }
        self.validate()

    def validate(self) -> None:
        """Check level values and risk-tier monotonicity.

        Raises:
            ConfigurationError: On an unknown level or a non-monotonic module.
        """
        levels = known_levels()
        tiers = {_key(op): tier for op, tier in RISK_TIERS.items()}
        for module, ops in self._levels.items():
            for op, level in ops.items():
                if level not in levels:
                    raise ConfigurationError(
                        f"{module}.{op} requires level {level}, which no role has"
                    )
            ranked = [(tiers[op], level, op) for op, level in ops.items() if op in tiers]
            for tier_a, level_a, op_a in ranked:
                for tier_b, level_b, op_b in ranked:
                    if tier_a < tier_b and level_a > level_b:
                        raise ConfigurationError(
                            f"{module}.{op_a} (level {level_a}) is stricter than "
                            f"{module}.{op_b} (level {level_b})"
                        )

    def required_level(self, module, operation) -> Optional[int]:
        """Minimum level for the pair, or None when the pair is not defined."""
        return self._levels.get(_key(module), {}).get(_key(operation))

    def has_permission(self, principal, module, operation) -> bool:
        """True iff the principal is active and its level meets the requirement.

        Undefined pairs and unknown roles are denied.
        """
        if not getattr(principal, "is_active", False):
            return False
        required = self.required_level(module, operation)
        if required is None:
            return False
        try:
            return level_of(principal.role) >= required
        except ConfigurationError:
            logger.error("Principal %s has unknown role %r", getattr(principal, "id", None), principal.role)
            return False

    def authorize(self, principal, module, operation) -> None:
        """Raising form of ``has_permission`` used by route handlers.

        Raises:
            PendingApprovalError: Principal is not yet active.
            AuthorizationError: Level insufficient or pair not defined.
        """
        if not getattr(principal, "is_active", False):
            logger.warning(
                "Denied %s.%s to pending principal %s",
                _key(module), _key(operation), getattr(principal, "id", None),
            )
            raise PendingApprovalError()
        if self.has_permission(principal, module, operation):
            return
        required = self.required_level(module, operation)
        logger.warning(
            "Denied %s.%s to principal %s (role=%s, required=%s)",
            _key(module), _key(operation), getattr(principal, "id", None),
            _key(principal.role), required,
        )
        if required is None:
            raise AuthorizationError(f"Operation {_key(module)}.{_key(operation)} is not permitted")
        raise AuthorizationError(
            f"Role '{_key(principal.role)}' insufficient. Requires level {required}+."
        )


default_matrix = PermissionMatrix(DEFAULT_PERMISSIONS)


def get_permission_matrix() -> PermissionMatrix:
    """FastAPI dependency returning the active permission matrix."""
    return default_matrix
