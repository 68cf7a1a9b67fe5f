"""Tests for the portalctl CLI."""

from unittest.mock import patch

from typer.testing import CliRunner

from portal.cli import app
from portal.core.exceptions import ConfigurationError

runner = CliRunner()


def test_check_permissions_ok():
    result = runner.invoke(app, ["check-permissions"])
    assert result.exit_code == 0
    assert "Permission matrix OK" in result.stdout


def test_check_permissions_reports_defects():
    with patch(
        "portal.core.permissions.default_matrix.validate",
        side_effect=ConfigurationError("DASHBOARD.VIEW requires level 2, which no role has"),
    ):
        result = runner.invoke(app, ["check-permissions"])
    assert result.exit_code == 1


def test_seed_admin_is_idempotent(db):
    from portal.core.roles import Role
    from portal.db.seeds.seed_admin import seed_admin

    admin, created = seed_admin(db)
    again, created_again = seed_admin(db)

    assert created is True
    assert created_again is False
    assert again.id == admin.id
    assert admin.role is Role.ADMIN
    assert admin.is_active is True
