"""Unit tests for the permission matrix."""

from types import SimpleNamespace

import pytest

from portal.core.exceptions import AuthorizationError, ConfigurationError, PendingApprovalError
from portal.core.permissions import (
    DEFAULT_PERMISSIONS, Module, Operation, PermissionMatrix, default_matrix,
)
from portal.core.roles import Role


def principal(role: Role, is_active: bool = True, id: int = 1):
    return SimpleNamespace(id=id, role=role, is_active=is_active)


def test_default_matrix_is_valid():
    PermissionMatrix(DEFAULT_PERMISSIONS).validate()


@pytest.mark.parametrize(
    "role, allowed",
    [
        (Role.STAFF, False),
        (Role.COUNCILOR, True),
        (Role.SECRETARY, True),
        (Role.ADMIN, True),
    ],
)
def test_project_create_requires_councilor(role, allowed):
    assert default_matrix.has_permission(
        principal(role), Module.PROJECT_MANAGEMENT, Operation.CREATE
    ) is allowed


def test_approval_needs_executive_level():
    assert not default_matrix.has_permission(
        principal(Role.SECRETARY), Module.PROJECT_MANAGEMENT, Operation.APPROVE
    )
    assert default_matrix.has_permission(
        principal(Role.BARANGAY_CAPTAIN), Module.PROJECT_MANAGEMENT, Operation.APPROVE
    )


def test_missing_entry_is_denied_even_for_admin():
    assert default_matrix.required_level(Module.FINANCIAL_SYSTEM, Operation.DELETE) is None
    assert not default_matrix.has_permission(
        principal(Role.ADMIN), Module.FINANCIAL_SYSTEM, Operation.DELETE
    )
    with pytest.raises(AuthorizationError):
        default_matrix.authorize(principal(Role.ADMIN), Module.FINANCIAL_SYSTEM, Operation.DELETE)


def test_inactive_principal_is_denied_everything():
    pending = principal(Role.ADMIN, is_active=False)
    for module, ops in DEFAULT_PERMISSIONS.items():
        for op in ops:
            assert not default_matrix.has_permission(pending, module, op)


def test_inactive_principal_surfaces_as_pending_approval():
    with pytest.raises(PendingApprovalError) as excinfo:
        default_matrix.authorize(principal(Role.ADMIN, is_active=False), Module.DASHBOARD, Operation.VIEW)
    assert excinfo.value.code == "pending_approval"
    assert excinfo.value.status_code == 403


def test_unknown_role_is_denied_not_raised():
    odd = SimpleNamespace(id=9, role="MAYOR", is_active=True)
    assert not default_matrix.has_permission(odd, Module.DASHBOARD, Operation.VIEW)


def test_authorize_explains_required_level():
    with pytest.raises(AuthorizationError) as excinfo:
        default_matrix.authorize(principal(Role.STAFF), Module.PROJECT_MANAGEMENT, Operation.CREATE)
    assert "Requires level 3+" in excinfo.value.message


def test_matrix_accepts_string_keys():
    matrix = PermissionMatrix({"DASHBOARD": {"VIEW": 1}})
    assert matrix.has_permission(principal(Role.STAFF), Module.DASHBOARD, Operation.VIEW)


def test_level_no_role_has_is_rejected():
    with pytest.raises(ConfigurationError):
        PermissionMatrix({Module.DASHBOARD: {Operation.VIEW: 2}})


def test_delete_looser_than_edit_is_rejected():
    with pytest.raises(ConfigurationError):
        PermissionMatrix({Module.ANNOUNCEMENTS: {Operation.EDIT: 5, Operation.DELETE: 3}})
