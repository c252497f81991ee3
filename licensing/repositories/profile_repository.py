"""
Profile repository.

Profiles are inserted only by the identity creation hook; this repository
reads and updates them on behalf of the current principal.
"""
from typing import Any, List, Mapping, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from licensing.core.interfaces import IProfileRepository
from licensing.db.models import ProfileModel
from licensing.domain.entities import Profile, UserNotFoundError
from licensing.domain.policy import Operation, Table
from licensing.repositories.base import PolicyRepository, row_dict, store_failure

logger = logging.getLogger(__name__)


class ProfileRepository(PolicyRepository, IProfileRepository):
    """SQLAlchemy implementation of IProfileRepository"""

    table = Table.PROFILES

    async def get(self, user_id: str) -> Optional[Profile]:
        db_profile = await self._load(user_id)
        if db_profile is None or self._readable(row_dict(db_profile)) is None:
            return None
        return self._from_orm(db_profile)

    async def list_visible(self) -> List[Profile]:
        stmt = select(ProfileModel).order_by(ProfileModel.created_at)
        if not (self._principal.is_admin or self._principal.is_system):
            if not self._principal.is_authenticated:
                return []
            stmt = stmt.where(ProfileModel.id == self._principal.user_id)

        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list profiles: {e}")
            raise store_failure(e, "Failed to load profiles.") from e

        return [
            self._from_orm(p) for p in result.scalars().all()
            if self._readable(row_dict(p)) is not None
        ]

    async def update(self, user_id: str, changes: Mapping[str, Any]) -> Profile:
        db_profile = await self._load(user_id)
        if db_profile is None:
            raise UserNotFoundError(user_id)

        self._enforce(Operation.UPDATE, row_dict(db_profile), changes.keys())

        for column, value in changes.items():
            setattr(db_profile, column, value)

        try:
            await self._db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update profile {user_id}: {e}")
            raise store_failure(e, "Failed to update profile.") from e

        logger.info(f"Updated profile {user_id}: {', '.join(sorted(changes))}")
        return self._from_orm(db_profile)

    async def _load(self, user_id: str) -> Optional[ProfileModel]:
        try:
            result = await self._db.execute(
                select(ProfileModel).where(ProfileModel.id == user_id)
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load profile {user_id}: {e}")
            raise store_failure(e, "Failed to load profile.") from e
        return result.scalar_one_or_none()

    @staticmethod
    def _from_orm(db_profile: ProfileModel) -> Profile:
        return Profile(
            id=db_profile.id,
            email=db_profile.email,
            first_name=db_profile.first_name,
            last_name=db_profile.last_name,
            business_name=db_profile.business_name,
            created_at=db_profile.created_at,
            updated_at=db_profile.updated_at,
        )
