"""
Shared plumbing for policy-enforcing repositories.
"""
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from licensing.domain.entities import AccessDenied, StoreOperationFailed
from licensing.domain.policy import Operation, Table, authorize, enforce
from licensing.domain.principal import Principal

logger = logging.getLogger(__name__)

MAX_STORE_MESSAGE_LENGTH = 200


def row_dict(model) -> Dict[str, Any]:
    """ORM instance -> {column: value}"""
    return {column.name: getattr(model, column.name) for column in model.__table__.columns}


def store_failure(error: SQLAlchemyError, fallback: str) -> StoreOperationFailed:
    """
    StoreOperationFailed carrying the store's own message.

    Only the driver message is used (first line, capped), never the SQL
    statement or its parameters. Falls back to ``fallback`` when the
    driver gave nothing.
    """
    original = getattr(error, "orig", None)
    lines = str(original).strip().splitlines() if original is not None else []
    message = lines[0].strip()[:MAX_STORE_MESSAGE_LENGTH] if lines else ""
    return StoreOperationFailed(message or fallback)


class PolicyRepository:
    """
    Base for repositories bound to a session context.

    The principal is read from the context on every call, so a sign-out or
    role change seen mid-request applies to the very next store access.
    """

    table: Table

    def __init__(self, session: AsyncSession, context):
        self._db = session
        self._context = context

    @property
    def _principal(self) -> Principal:
        return self._context.principal

    def _readable(
        self,
        row: Mapping[str, Any],
        columns: Optional[Iterable[str]] = None,
    ) -> Optional[FrozenSet[str]]:
        """
        Columns of ``row`` the caller may read.

        Returns None for rows the caller cannot see at all (they behave as
        if absent). Raises AccessDenied when the row is visible but the
        requested columns exceed the grant.
        """
        decision = authorize(self._principal, self.table, Operation.SELECT, row, columns)
        if decision.allowed:
            return decision.columns
        if not decision.columns:
            return None
        raise AccessDenied(self.table.value, Operation.SELECT.value, decision.reason)

    def _enforce(
        self,
        operation: Operation,
        row: Optional[Mapping[str, Any]] = None,
        columns: Optional[Iterable[str]] = None,
    ) -> FrozenSet[str]:
        granted = enforce(self._principal, self.table, operation, row, columns)
        logger.debug(f"{operation.value} on {self.table.value} allowed for {self._principal!r}")
        return granted
