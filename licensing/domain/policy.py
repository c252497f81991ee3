"""
Authorization policy engine - row and column level access rules.

Every repository calls ``authorize`` (or ``enforce``) before touching a row.
Evaluation is pure: the decision depends only on the principal, the table,
the operation, the target row and the requested columns. No I/O, no state.

Rules:

    profiles              SELECT  self / admin           all columns
                          UPDATE  self                   first_name, last_name, business_name
    user_roles            SELECT  self / admin           all columns
                          INSERT/UPDATE/DELETE admin     all columns
    license_applications  SELECT  owner / admin          all columns
                          INSERT  owner (user_id=self)   intake columns only
                          UPDATE  admin                  review columns only
                          DELETE  nobody
    licenses              SELECT  owner / admin          all columns
                          SELECT  anyone else            public columns only
                          INSERT/UPDATE/DELETE admin     all columns

The system principal (identity provisioning hook) is granted everything.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from .entities import AccessDenied
from .principal import Principal


class Table(str, enum.Enum):
    PROFILES = "profiles"
    USER_ROLES = "user_roles"
    LICENSE_APPLICATIONS = "license_applications"
    LICENSES = "licenses"


class Operation(str, enum.Enum):
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


PROFILE_COLUMNS = frozenset({
    "id", "email", "first_name", "last_name", "business_name", "created_at", "updated_at",
})
PROFILE_EDITABLE_COLUMNS = frozenset({"first_name", "last_name", "business_name"})

ROLE_COLUMNS = frozenset({"id", "user_id", "role", "created_at"})

APPLICATION_INTAKE_COLUMNS = frozenset({
    "user_id",
    "license_type",
    "business_name",
    "registration_number",
    "business_address",
    "contact_person",
    "contact_email",
    "phone_number",
    "business_type",
    "business_description",
})
APPLICATION_REVIEW_COLUMNS = frozenset({"status", "reviewed_at", "reviewed_by", "rejection_reason"})
APPLICATION_COLUMNS = APPLICATION_INTAKE_COLUMNS | APPLICATION_REVIEW_COLUMNS | frozenset({
    "id", "submitted_at", "created_at", "updated_at",
})

LICENSE_PUBLIC_COLUMNS = frozenset({
    "license_number",
    "license_type",
    "status",
    "business_name",
    "issue_date",
    "expiry_date",
    "integrity_hash",
})
LICENSE_COLUMNS = LICENSE_PUBLIC_COLUMNS | frozenset({
    "id", "application_id", "user_id", "created_at", "updated_at",
})

TABLE_COLUMNS: Dict[Table, FrozenSet[str]] = {
    Table.PROFILES: PROFILE_COLUMNS,
    Table.USER_ROLES: ROLE_COLUMNS,
    Table.LICENSE_APPLICATIONS: APPLICATION_COLUMNS,
    Table.LICENSES: LICENSE_COLUMNS,
}

_NONE: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Decision:
    """Outcome of a policy evaluation"""

    allowed: bool
    columns: FrozenSet[str]
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def _grant_profiles(principal: Principal, operation: Operation, row: Mapping[str, Any]):
    is_self = principal.owns(row.get("id"))
    if operation == Operation.SELECT:
        if is_self:
            return PROFILE_COLUMNS, "own profile"
        if principal.is_admin:
            return PROFILE_COLUMNS, "admin reads all profiles"
        return _NONE, "not your profile"
    if operation == Operation.UPDATE:
        if is_self:
            return PROFILE_EDITABLE_COLUMNS, "own profile"
        return _NONE, "only the owner may update a profile"
    return _NONE, "profiles are provisioned by the identity service"


def _grant_user_roles(principal: Principal, operation: Operation, row: Mapping[str, Any]):
    if principal.is_admin:
        return ROLE_COLUMNS, "admin manages roles"
    if operation == Operation.SELECT and principal.owns(row.get("user_id")):
        return ROLE_COLUMNS, "own roles"
    return _NONE, "role management requires admin"


def _grant_applications(principal: Principal, operation: Operation, row: Mapping[str, Any]):
    is_owner = principal.owns(row.get("user_id"))
    if operation == Operation.SELECT:
        if is_owner:
            return APPLICATION_COLUMNS, "own application"
        if principal.is_admin:
            return APPLICATION_COLUMNS, "admin reads all applications"
        return _NONE, "not your application"
    if operation == Operation.INSERT:
        if is_owner:
            return APPLICATION_INTAKE_COLUMNS, "owner submits"
        if principal.is_anonymous:
            return _NONE, "authentication required"
        return _NONE, "cannot submit on another user's behalf"
    if operation == Operation.UPDATE:
        if principal.is_admin:
            return APPLICATION_REVIEW_COLUMNS, "admin reviews"
        return _NONE, "only admins update applications"
    return _NONE, "applications cannot be deleted"


def _grant_licenses(principal: Principal, operation: Operation, row: Mapping[str, Any]):
    if principal.is_admin:
        return LICENSE_COLUMNS, "admin manages licenses"
    if operation == Operation.SELECT:
        if principal.owns(row.get("user_id")):
            return LICENSE_COLUMNS, "own license"
        return LICENSE_PUBLIC_COLUMNS, "public verification view"
    return _NONE, "only admins modify licenses"


_RULES = {
    Table.PROFILES: _grant_profiles,
    Table.USER_ROLES: _grant_user_roles,
    Table.LICENSE_APPLICATIONS: _grant_applications,
    Table.LICENSES: _grant_licenses,
}


def authorize(
    principal: Principal,
    table: Table,
    operation: Operation,
    row: Optional[Mapping[str, Any]] = None,
    columns: Optional[Iterable[str]] = None,
) -> Decision:
    """
    Evaluate one access request.

    Args:
        principal: Who is asking
        table: Target table
        operation: SELECT / INSERT / UPDATE / DELETE
        row: Target row (existing row for SELECT/UPDATE/DELETE, new row for INSERT).
             Only ownership columns are consulted.
        columns: Columns read (SELECT) or written (INSERT/UPDATE). None means
                 "whatever is granted" for SELECT and nothing for writes.

    Returns:
        Decision with the granted column set. ``allowed`` is False when the
        row is not visible/writable or any requested column is outside the grant.
    """
    table = Table(table)
    operation = Operation(operation)
    row = row or {}

    if principal.is_system:
        granted, reason = TABLE_COLUMNS[table], "system"
    else:
        granted, reason = _RULES[table](principal, operation, row)

    if not granted:
        return Decision(False, _NONE, reason)

    if columns is not None:
        requested = frozenset(columns)
        unknown = requested - TABLE_COLUMNS[table]
        if unknown:
            return Decision(False, granted, f"unknown column(s): {', '.join(sorted(unknown))}")
        outside = requested - granted
        if outside:
            return Decision(False, granted, f"column(s) not permitted: {', '.join(sorted(outside))}")

    return Decision(True, granted, reason)


def enforce(
    principal: Principal,
    table: Table,
    operation: Operation,
    row: Optional[Mapping[str, Any]] = None,
    columns: Optional[Iterable[str]] = None,
) -> FrozenSet[str]:
    """
    Like ``authorize`` but raises.

    Returns:
        Granted columns

    Raises:
        AccessDenied: When the decision is negative
    """
    decision = authorize(principal, table, operation, row, columns)
    if not decision.allowed:
        raise AccessDenied(Table(table).value, Operation(operation).value, decision.reason)
    return decision.columns


def project(row: Mapping[str, Any], columns: Iterable[str]) -> Dict[str, Any]:
    """Keep only the given columns of a row"""
    allowed = frozenset(columns)
    return {key: value for key, value in row.items() if key in allowed}


def visible_columns(principal: Principal, table: Table, row: Mapping[str, Any]) -> FrozenSet[str]:
    """Columns of ``row`` the principal may read (empty when the row is invisible)"""
    return authorize(principal, table, Operation.SELECT, row).columns
