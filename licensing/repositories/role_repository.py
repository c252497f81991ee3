"""
Role repository - user_roles table.
"""
from typing import List, Set
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from licensing.core.interfaces import IRoleRepository
from licensing.db.models import UserRoleModel
from licensing.domain.entities import RoleAssignment
from licensing.domain.policy import Operation, ROLE_COLUMNS, Table
from licensing.domain.value_objects import AppRole
from licensing.repositories.base import PolicyRepository, row_dict, store_failure

logger = logging.getLogger(__name__)


class RoleRepository(PolicyRepository, IRoleRepository):
    """SQLAlchemy implementation of IRoleRepository"""

    table = Table.USER_ROLES

    async def roles_for(self, user_id: str) -> Set[AppRole]:
        return {assignment.role for assignment in await self.list_for(user_id)}

    async def list_for(self, user_id: str) -> List[RoleAssignment]:
        rows = await self._select(user_id)
        return [self._from_orm(r) for r in rows if self._readable(row_dict(r)) is not None]

    async def grant(self, user_id: str, role: AppRole) -> RoleAssignment:
        role = AppRole(role)
        self._enforce(Operation.INSERT, {"user_id": user_id, "role": role}, ROLE_COLUMNS - {"id", "created_at"})

        existing = await self._select(user_id, role)
        if existing:
            return self._from_orm(existing[0])

        db_role = UserRoleModel(user_id=user_id, role=role)
        self._db.add(db_role)
        try:
            await self._db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to grant {role.value} to {user_id}: {e}")
            raise store_failure(e, f"Failed to grant role '{role.value}'.") from e

        logger.info(f"✅ Granted role {role.value} to user {user_id}")
        return self._from_orm(db_role)

    async def revoke(self, user_id: str, role: AppRole) -> bool:
        role = AppRole(role)
        rows = await self._select(user_id, role)
        if not rows:
            return False

        self._enforce(Operation.DELETE, row_dict(rows[0]))
        try:
            await self._db.delete(rows[0])
            await self._db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to revoke {role.value} from {user_id}: {e}")
            raise store_failure(e, f"Failed to revoke role '{role.value}'.") from e

        logger.info(f"Revoked role {role.value} from user {user_id}")
        return True

    async def _select(self, user_id: str, role: AppRole = None) -> List[UserRoleModel]:
        stmt = select(UserRoleModel).where(UserRoleModel.user_id == user_id)
        if role is not None:
            stmt = stmt.where(UserRoleModel.role == role)
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load roles for {user_id}: {e}")
            raise store_failure(e, "Failed to load roles.") from e
        return list(result.scalars().all())

    @staticmethod
    def _from_orm(db_role: UserRoleModel) -> RoleAssignment:
        return RoleAssignment(
            id=db_role.id,
            user_id=db_role.user_id,
            role=AppRole(db_role.role),
            created_at=db_role.created_at,
        )
