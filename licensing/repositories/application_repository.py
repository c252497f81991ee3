"""
License application repository.

Converts between LicenseApplication entities and LicenseApplicationModel rows.
Inserts carry the intake columns only: status, submitted_at and the review
columns always come from the store defaults.
"""
from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from licensing.core.interfaces import IApplicationRepository
from licensing.db.models import LicenseApplicationModel
from licensing.domain.entities import (
    ApplicationNotFoundError,
    LicenseApplication,
)
from licensing.domain.policy import APPLICATION_INTAKE_COLUMNS, Operation, Table
from licensing.domain.value_objects import ApplicationStatus
from licensing.repositories.base import PolicyRepository, row_dict, store_failure

logger = logging.getLogger(__name__)


class ApplicationRepository(PolicyRepository, IApplicationRepository):
    """SQLAlchemy implementation of IApplicationRepository"""

    table = Table.LICENSE_APPLICATIONS

    async def add(self, application: LicenseApplication) -> LicenseApplication:
        values = {column: getattr(application, column) for column in APPLICATION_INTAKE_COLUMNS}
        self._enforce(Operation.INSERT, values, values.keys())

        db_application = LicenseApplicationModel(**values)
        self._db.add(db_application)
        try:
            await self._db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save application for user {application.user_id}: {e}")
            raise store_failure(e, "Failed to submit application. Please try again.") from e

        saved = self._from_orm(db_application)
        logger.info(f"💾 Saved application {saved.id} ({saved.license_type}) for user {saved.user_id}")
        return saved

    async def get(self, application_id: str) -> Optional[LicenseApplication]:
        db_application = await self._load(application_id)
        if db_application is None or self._readable(row_dict(db_application)) is None:
            return None
        return self._from_orm(db_application)

    async def list_visible(
        self,
        status: Optional[ApplicationStatus] = None,
        owner_id: Optional[str] = None,
    ) -> List[LicenseApplication]:
        principal = self._principal
        stmt = select(LicenseApplicationModel).order_by(LicenseApplicationModel.submitted_at.desc())

        if not (principal.is_admin or principal.is_system):
            if not principal.is_authenticated:
                return []
            # Non-admins only ever see their own rows
            owner_id = principal.user_id

        if owner_id is not None:
            stmt = stmt.where(LicenseApplicationModel.user_id == owner_id)
        if status is not None:
            stmt = stmt.where(LicenseApplicationModel.status == ApplicationStatus(status).value)

        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list applications: {e}")
            raise store_failure(e, "Failed to load applications.") from e

        return [
            self._from_orm(a) for a in result.scalars().all()
            if self._readable(row_dict(a)) is not None
        ]

    async def save_review(self, application: LicenseApplication) -> LicenseApplication:
        db_application = await self._load(application.id)
        if db_application is None:
            raise ApplicationNotFoundError(application.id)

        changes = application.review_fields
        self._enforce(Operation.UPDATE, row_dict(db_application), changes.keys())

        for column, value in changes.items():
            setattr(db_application, column, value)

        try:
            await self._db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update application {application.id}: {e}")
            raise store_failure(e, "Failed to update application.") from e

        logger.info(f"Application {application.id} is now {application.status.value}")
        return self._from_orm(db_application)

    async def _load(self, application_id: str) -> Optional[LicenseApplicationModel]:
        try:
            result = await self._db.execute(
                select(LicenseApplicationModel).where(LicenseApplicationModel.id == application_id)
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load application {application_id}: {e}")
            raise store_failure(e, "Failed to load application.") from e
        return result.scalar_one_or_none()

    @staticmethod
    def _from_orm(db_application: LicenseApplicationModel) -> LicenseApplication:
        return LicenseApplication(
            id=db_application.id,
            user_id=db_application.user_id,
            license_type=db_application.license_type,
            business_name=db_application.business_name,
            registration_number=db_application.registration_number,
            business_address=db_application.business_address,
            contact_person=db_application.contact_person,
            contact_email=db_application.contact_email,
            phone_number=db_application.phone_number,
            business_type=db_application.business_type,
            business_description=db_application.business_description,
            status=ApplicationStatus(db_application.status),
            submitted_at=db_application.submitted_at,
            reviewed_at=db_application.reviewed_at,
            reviewed_by=db_application.reviewed_by,
            rejection_reason=db_application.rejection_reason,
            created_at=db_application.created_at,
            updated_at=db_application.updated_at,
        )
