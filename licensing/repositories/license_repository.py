"""
License repository.

The public lookup path (``find_public_by_number``) never selects private
columns from the store, whoever the caller is. Full rows are only returned
to the owner, an admin or the system principal.
"""
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from licensing.core.interfaces import ILicenseRepository
from licensing.db.models import LicenseModel
from licensing.domain.entities import (
    DuplicateLicenseNumber,
    License,
    LicenseAlreadyIssued,
    LicenseNotFoundError,
    StoreOperationFailed,
)
from licensing.domain.policy import LICENSE_COLUMNS, LICENSE_PUBLIC_COLUMNS, Operation, Table
from licensing.domain.value_objects import LicenseStatus
from licensing.repositories.base import PolicyRepository, row_dict, store_failure

logger = logging.getLogger(__name__)

_PUBLIC_SELECT = [LicenseModel.__table__.c[name] for name in sorted(LICENSE_PUBLIC_COLUMNS)]


class LicenseRepository(PolicyRepository, ILicenseRepository):
    """SQLAlchemy implementation of ILicenseRepository"""

    table = Table.LICENSES

    async def find_public_by_number(self, license_number: str) -> Optional[Dict[str, Any]]:
        # Public grant does not depend on the row, so authorize before querying
        self._enforce(Operation.SELECT, {}, LICENSE_PUBLIC_COLUMNS)

        try:
            result = await self._db.execute(
                select(*_PUBLIC_SELECT).where(LicenseModel.license_number == license_number)
            )
        except SQLAlchemyError as e:
            logger.error(f"License lookup failed: {e}")
            raise StoreOperationFailed("Failed to verify license. Please try again.") from e

        row = result.mappings().first()
        return dict(row) if row is not None else None

    async def number_exists(self, license_number: str) -> bool:
        return await self.find_public_by_number(license_number) is not None

    async def get(self, license_id: str) -> Optional[License]:
        db_license = await self._load(LicenseModel.id == license_id)
        return self._full(db_license)

    async def get_by_application(self, application_id: str) -> Optional[License]:
        db_license = await self._load(LicenseModel.application_id == application_id)
        return self._full(db_license)

    async def list_for_owner(self, owner_id: str) -> List[License]:
        try:
            result = await self._db.execute(
                select(LicenseModel)
                .where(LicenseModel.user_id == owner_id)
                .order_by(LicenseModel.issue_date.desc())
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to list licenses for {owner_id}: {e}")
            raise store_failure(e, "Failed to load licenses.") from e

        return [self._full(db_license) for db_license in result.scalars().all()]

    async def add(self, license: License) -> License:
        values = {
            "application_id": license.application_id,
            "user_id": license.user_id,
            "license_number": license.license_number,
            "license_type": license.license_type,
            "business_name": license.business_name,
            "issue_date": license.issue_date,
            "expiry_date": license.expiry_date,
            "status": LicenseStatus(license.status).value,
            "integrity_hash": license.integrity_hash,
        }
        self._enforce(Operation.INSERT, values, values.keys())

        db_license = LicenseModel(**values)
        self._db.add(db_license)
        try:
            await self._db.flush()
        except IntegrityError as e:
            message = str(e.orig)
            if "license_number" in message:
                logger.error(f"License number {license.license_number} already exists")
                raise DuplicateLicenseNumber(license.license_number) from e
            if "application_id" in message:
                logger.error(f"Application {license.application_id} already has a license")
                raise LicenseAlreadyIssued(license.application_id) from e
            logger.error(f"Failed to issue license {license.license_number}: {e}")
            raise store_failure(e, "Failed to issue license.") from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to issue license {license.license_number}: {e}")
            raise store_failure(e, "Failed to issue license.") from e

        logger.info(f"💾 Issued license {license.license_number} for application {license.application_id}")
        return self._from_orm(db_license)

    async def save_status(self, license: License) -> License:
        db_license = await self._load(LicenseModel.id == license.id)
        if db_license is None:
            raise LicenseNotFoundError(license.id)

        self._enforce(Operation.UPDATE, row_dict(db_license), {"status"})
        db_license.status = LicenseStatus(license.status).value

        try:
            await self._db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update license {license.id}: {e}")
            raise store_failure(e, "Failed to update license.") from e

        logger.info(f"License {db_license.license_number} is now {db_license.status}")
        return self._from_orm(db_license)

    def _full(self, db_license: Optional[LicenseModel]) -> Optional[License]:
        """Full entity, or AccessDenied for callers limited to the public view"""
        if db_license is None:
            return None
        if self._readable(row_dict(db_license), LICENSE_COLUMNS) is None:
            return None
        return self._from_orm(db_license)

    async def _load(self, criterion) -> Optional[LicenseModel]:
        try:
            result = await self._db.execute(select(LicenseModel).where(criterion))
        except SQLAlchemyError as e:
            logger.error(f"Failed to load license: {e}")
            raise store_failure(e, "Failed to load license.") from e
        return result.scalar_one_or_none()

    @staticmethod
    def _from_orm(db_license: LicenseModel) -> License:
        return License(
            id=db_license.id,
            application_id=db_license.application_id,
            user_id=db_license.user_id,
            license_number=db_license.license_number,
            license_type=db_license.license_type,
            business_name=db_license.business_name,
            issue_date=db_license.issue_date,
            expiry_date=db_license.expiry_date,
            status=LicenseStatus(db_license.status),
            integrity_hash=db_license.integrity_hash,
            created_at=db_license.created_at,
            updated_at=db_license.updated_at,
        )
