"""Barangay role hierarchy."""

import enum
from typing import Union

from portal.core.exceptions import ConfigurationError, ValidationError


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    BARANGAY_CAPTAIN = "BARANGAY_CAPTAIN"
    SECRETARY = "SECRETARY"
    TREASURER = "TREASURER"
    COUNCILOR = "COUNCILOR"
    STAFF = "STAFF"


# SECRETARY and TREASURER are peers: same power, different responsibilities.
ROLE_LEVELS = {
    Role.ADMIN: 6,
    Role.BARANGAY_CAPTAIN: 5,
    Role.SECRETARY: 4,
    Role.TREASURER: 4,
    Role.COUNCILOR: 3,
    Role.STAFF: 1,
}

OFFICIAL_ROLES = frozenset(
    {Role.ADMIN, Role.BARANGAY_CAPTAIN, Role.SECRETARY, Role.TREASURER, Role.COUNCILOR}
)

DEFAULT_ROLE = Role.STAFF

# Level at or above which a principal sees every project and task.
EXECUTIVE_LEVEL = 5

_ACCESS_LABELS = {
    Role.ADMIN: "full",
    Role.BARANGAY_CAPTAIN: "executive",
    Role.SECRETARY: "departmental",
    Role.TREASURER: "departmental",
    Role.COUNCILOR: "committee",
    Role.STAFF: "assigned",
}


def level_of(role: Union[Role, str]) -> int:
    """Return the integer level of a role.

    Raises:
        ConfigurationError: If ``role`` is not part of the hierarchy.
    """
    try:
        return ROLE_LEVELS[Role(role)]
    except (ValueError, KeyError):
        raise ConfigurationError(f"Role '{role}' is not part of the role hierarchy")


def parse_role(value: str) -> Role:
    """Validate a role name coming from a request body."""
    try:
        return Role(value)
    except ValueError:
        raise ValidationError(f"Unknown role '{value}'")


def access_level_label(role: Union[Role, str]) -> str:
    """Descriptive access scope for list endpoints."""
    try:
        return _ACCESS_LABELS[Role(role)]
    except ValueError:
        return "public"


def known_levels() -> set:
    return set(ROLE_LEVELS.values())
