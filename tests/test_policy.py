"""
Tests for the authorization policy engine.

Pure function: no database, no fixtures.
"""
import pytest

from licensing.domain.entities import AccessDenied
from licensing.domain.policy import (
    APPLICATION_INTAKE_COLUMNS,
    APPLICATION_REVIEW_COLUMNS,
    LICENSE_COLUMNS,
    LICENSE_PUBLIC_COLUMNS,
    PROFILE_EDITABLE_COLUMNS,
    Operation,
    Table,
    authorize,
    enforce,
    project,
    visible_columns,
)
from licensing.domain.principal import Principal
from licensing.domain.value_objects import AppRole

OWNER = Principal.user("owner-1", [AppRole.USER])
OTHER = Principal.user("other-2", [AppRole.USER])
ADMIN = Principal.user("admin-3", [AppRole.ADMIN, AppRole.USER])
ANONYMOUS = Principal.anonymous()
SYSTEM = Principal.system()

APPLICATION_ROW = {"id": "app-1", "user_id": "owner-1", "status": "pending"}
LICENSE_ROW = {
    "id": "lic-1",
    "application_id": "app-1",
    "user_id": "owner-1",
    "license_number": "LIC-2024-12345",
}


# ============================================
# license_applications
# ============================================

def test_anonymous_cannot_read_applications():
    decision = authorize(ANONYMOUS, Table.LICENSE_APPLICATIONS, Operation.SELECT, APPLICATION_ROW)

    assert not decision.allowed
    assert decision.columns == frozenset()


def test_owner_reads_own_application_but_not_others():
    assert authorize(OWNER, Table.LICENSE_APPLICATIONS, Operation.SELECT, APPLICATION_ROW)
    assert not authorize(OTHER, Table.LICENSE_APPLICATIONS, Operation.SELECT, APPLICATION_ROW)


def test_admin_reads_every_application():
    assert authorize(ADMIN, Table.LICENSE_APPLICATIONS, Operation.SELECT, APPLICATION_ROW)


def test_owner_inserts_intake_columns_only():
    row = {"user_id": "owner-1"}

    assert authorize(OWNER, Table.LICENSE_APPLICATIONS, Operation.INSERT, row, APPLICATION_INTAKE_COLUMNS)

    with_status = APPLICATION_INTAKE_COLUMNS | {"status"}
    decision = authorize(OWNER, Table.LICENSE_APPLICATIONS, Operation.INSERT, row, with_status)
    assert not decision.allowed
    assert "status" in decision.reason


def test_nobody_inserts_on_another_users_behalf():
    row = {"user_id": "owner-1"}

    assert not authorize(OTHER, Table.LICENSE_APPLICATIONS, Operation.INSERT, row, {"user_id"})
    assert not authorize(ADMIN, Table.LICENSE_APPLICATIONS, Operation.INSERT, row, {"user_id"})
    assert not authorize(ANONYMOUS, Table.LICENSE_APPLICATIONS, Operation.INSERT, row, {"user_id"})


def test_only_admin_updates_and_only_review_columns():
    assert not authorize(OWNER, Table.LICENSE_APPLICATIONS, Operation.UPDATE, APPLICATION_ROW, {"status"})
    assert authorize(ADMIN, Table.LICENSE_APPLICATIONS, Operation.UPDATE, APPLICATION_ROW, APPLICATION_REVIEW_COLUMNS)
    assert not authorize(ADMIN, Table.LICENSE_APPLICATIONS, Operation.UPDATE, APPLICATION_ROW, {"business_name"})


@pytest.mark.parametrize("principal", [OWNER, ADMIN, ANONYMOUS])
def test_nobody_deletes_applications(principal):
    assert not authorize(principal, Table.LICENSE_APPLICATIONS, Operation.DELETE, APPLICATION_ROW)


# ============================================
# licenses
# ============================================

def test_anonymous_gets_public_license_columns_only():
    columns = visible_columns(ANONYMOUS, Table.LICENSES, LICENSE_ROW)

    assert columns == LICENSE_PUBLIC_COLUMNS
    assert not {"id", "user_id", "application_id", "created_at", "updated_at"} & columns


@pytest.mark.parametrize("column", ["id", "user_id", "application_id", "created_at"])
def test_anonymous_asking_for_private_license_column_is_denied(column):
    decision = authorize(ANONYMOUS, Table.LICENSES, Operation.SELECT, LICENSE_ROW, {"license_number", column})

    assert not decision.allowed
    assert column in decision.reason


def test_non_owner_user_also_limited_to_public_view():
    assert visible_columns(OTHER, Table.LICENSES, LICENSE_ROW) == LICENSE_PUBLIC_COLUMNS


def test_owner_and_admin_read_full_license():
    assert visible_columns(OWNER, Table.LICENSES, LICENSE_ROW) == LICENSE_COLUMNS
    assert visible_columns(ADMIN, Table.LICENSES, LICENSE_ROW) == LICENSE_COLUMNS


def test_only_admin_writes_licenses():
    assert not authorize(OWNER, Table.LICENSES, Operation.INSERT, LICENSE_ROW, {"license_number"})
    assert not authorize(OWNER, Table.LICENSES, Operation.UPDATE, LICENSE_ROW, {"status"})
    assert authorize(ADMIN, Table.LICENSES, Operation.UPDATE, LICENSE_ROW, {"status"})


# ============================================
# profiles and roles
# ============================================

def test_profile_self_update_limited_to_editable_columns():
    row = {"id": "owner-1"}

    assert authorize(OWNER, Table.PROFILES, Operation.UPDATE, row, PROFILE_EDITABLE_COLUMNS)
    assert not authorize(OWNER, Table.PROFILES, Operation.UPDATE, row, {"email"})
    assert not authorize(OTHER, Table.PROFILES, Operation.UPDATE, row, {"first_name"})
    # Admins read all profiles but do not edit them
    assert authorize(ADMIN, Table.PROFILES, Operation.SELECT, row)
    assert not authorize(ADMIN, Table.PROFILES, Operation.UPDATE, row, {"first_name"})


def test_profiles_are_only_inserted_by_system():
    row = {"id": "owner-1"}

    assert not authorize(OWNER, Table.PROFILES, Operation.INSERT, row, {"id", "email"})
    assert authorize(SYSTEM, Table.PROFILES, Operation.INSERT, row, {"id", "email"})


def test_role_management_requires_admin():
    row = {"user_id": "owner-1", "role": "admin"}

    assert authorize(OWNER, Table.USER_ROLES, Operation.SELECT, row)
    assert not authorize(OTHER, Table.USER_ROLES, Operation.SELECT, row)
    assert not authorize(OWNER, Table.USER_ROLES, Operation.INSERT, row, {"user_id", "role"})
    assert authorize(ADMIN, Table.USER_ROLES, Operation.INSERT, row, {"user_id", "role"})
    assert authorize(ADMIN, Table.USER_ROLES, Operation.DELETE, row)


# ============================================
# engine behaviour
# ============================================

def test_unknown_column_is_denied():
    decision = authorize(ADMIN, Table.LICENSES, Operation.SELECT, LICENSE_ROW, {"password_hash"})

    assert not decision.allowed
    assert "unknown" in decision.reason


def test_decision_depends_only_on_inputs():
    first = authorize(OWNER, Table.LICENSES, Operation.SELECT, LICENSE_ROW)
    second = authorize(OWNER, Table.LICENSES, Operation.SELECT, dict(LICENSE_ROW))

    assert first == second


def test_enforce_raises_access_denied():
    with pytest.raises(AccessDenied) as exc_info:
        enforce(ANONYMOUS, Table.LICENSE_APPLICATIONS, Operation.SELECT, APPLICATION_ROW)

    assert exc_info.value.table == "license_applications"
    assert exc_info.value.operation == "SELECT"


def test_enforce_returns_granted_columns():
    granted = enforce(ANONYMOUS, Table.LICENSES, Operation.SELECT, {}, LICENSE_PUBLIC_COLUMNS)

    assert granted == LICENSE_PUBLIC_COLUMNS


def test_project_drops_ungranted_columns():
    row = dict(LICENSE_ROW, status="active", business_name="Acme")

    projected = project(row, LICENSE_PUBLIC_COLUMNS)

    assert projected == {"license_number": "LIC-2024-12345", "status": "active", "business_name": "Acme"}
