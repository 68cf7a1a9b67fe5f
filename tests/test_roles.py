"""Unit tests for the role hierarchy."""

import pytest

from portal.core.exceptions import ConfigurationError, ValidationError
from portal.core.roles import (
    DEFAULT_ROLE, OFFICIAL_ROLES, ROLE_LEVELS, Role, access_level_label, level_of, parse_role,
)


def test_levels_match_hierarchy():
    assert level_of(Role.ADMIN) == 6
    assert level_of(Role.BARANGAY_CAPTAIN) == 5
    assert level_of(Role.SECRETARY) == 4
    assert level_of(Role.TREASURER) == 4
    assert level_of(Role.COUNCILOR) == 3
    assert level_of(Role.STAFF) == 1


def test_secretary_and_treasurer_are_peers():
    assert level_of(Role.SECRETARY) == level_of(Role.TREASURER)


def test_level_of_is_total_and_stable():
    for role in Role:
        assert level_of(role) == level_of(role) == ROLE_LEVELS[role]


def test_level_of_accepts_role_names():
    assert level_of("COUNCILOR") == 3


def test_unknown_role_is_a_configuration_defect():
    with pytest.raises(ConfigurationError):
        level_of("MAYOR")


def test_parse_role_rejects_unknown_names():
    assert parse_role("TREASURER") is Role.TREASURER
    with pytest.raises(ValidationError):
        parse_role("treasurer-ish")


def test_default_role_is_lowest_and_not_official():
    assert DEFAULT_ROLE is Role.STAFF
    assert level_of(DEFAULT_ROLE) == min(ROLE_LEVELS.values())
    assert DEFAULT_ROLE not in OFFICIAL_ROLES
    assert OFFICIAL_ROLES == set(Role) - {Role.STAFF}


def test_access_level_labels():
    assert access_level_label(Role.ADMIN) == "full"
    assert access_level_label(Role.STAFF) == "assigned"
    assert access_level_label("NOBODY") == "public"
