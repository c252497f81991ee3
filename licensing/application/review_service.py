"""
Review Service - admin workflow over applications, licenses and roles.

- Move applications through review (in_review, approved, rejected)
- Issue exactly one license per approved application
- Change license status (revoked is terminal)
- Grant / revoke roles, notifying the affected user's sessions after commit
"""

from datetime import datetime, timedelta
from typing import List, Optional, Tuple
import hashlib
import logging
import secrets

from licensing.config import settings
from licensing.domain.entities import (
    ApplicationNotFoundError,
    FieldError,
    License,
    LicenseAlreadyIssued,
    LicenseApplication,
    LicenseNotFoundError,
    RoleAssignment,
    StoreOperationFailed,
    UserNotFoundError,
    ValidationFailed,
    utcnow,
)
from licensing.domain.unit_of_work import AbstractUnitOfWork
from licensing.domain.value_objects import (
    AppRole,
    ApplicationStatus,
    LicenseNumber,
    LicenseStatus,
)
from licensing.services.session_channel import (
    SessionChannel,
    SessionEvent,
    SessionEventType,
    session_channel,
)

logger = logging.getLogger(__name__)

MAX_NUMBER_ATTEMPTS = 10


def integrity_hash(
    license_number: str,
    application_id: str,
    user_id: str,
    license_type: str,
    business_name: str,
    issue_date: datetime,
    expiry_date: datetime,
) -> str:
    """SHA-256 over the canonical license fields (hex)"""
    canonical = "|".join([
        license_number,
        application_id,
        user_id,
        license_type,
        business_name,
        issue_date.isoformat(),
        expiry_date.isoformat(),
    ])
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def draw_license_number(year: int, prefix: Optional[str] = None) -> LicenseNumber:
    return LicenseNumber.build(prefix or settings.license_number_prefix, year, secrets.randbelow(100000))


class ReviewService:
    """Admin-only use cases; every method requires the admin role"""

    def __init__(self, channel: SessionChannel = session_channel):
        self._channel = channel

    async def list_applications(
        self,
        uow: AbstractUnitOfWork,
        status: Optional[ApplicationStatus] = None,
    ) -> List[LicenseApplication]:
        uow.context.require_admin()
        return await uow.applications.list_visible(status=status)

    async def start_review(self, uow: AbstractUnitOfWork, application_id: str) -> LicenseApplication:
        return await self._transition(uow, application_id, ApplicationStatus.IN_REVIEW)

    async def reject(
        self,
        uow: AbstractUnitOfWork,
        application_id: str,
        reason: Optional[str],
    ) -> LicenseApplication:
        """
        Raises:
            ValidationFailed: Empty reason
            InvalidStatusTransition: Application already approved/rejected
        """
        if not reason or not reason.strip():
            raise ValidationFailed([FieldError("rejection_reason", "A rejection reason is required")])
        return await self._transition(uow, application_id, ApplicationStatus.REJECTED, reason)

    async def approve(
        self,
        uow: AbstractUnitOfWork,
        application_id: str,
        now: Optional[datetime] = None,
    ) -> Tuple[LicenseApplication, License]:
        """
        Approve an application and issue its license in the same transaction.

        Returns:
            (approved application, issued license)

        Raises:
            InvalidStatusTransition: Already approved or rejected
            LicenseAlreadyIssued: The application already has a license
            StoreOperationFailed: No free license number after several draws
        """
        now = now or utcnow()
        application = await self._transition(uow, application_id, ApplicationStatus.APPROVED, now=now)

        if await uow.licenses.get_by_application(application.id) is not None:
            raise LicenseAlreadyIssued(application.id)

        license_number = await self._allocate_number(uow, now.year)
        expiry_date = now + timedelta(days=settings.license_validity_days)

        license = License(
            id=None,
            application_id=application.id,
            user_id=application.user_id,
            license_number=license_number.value,
            license_type=application.license_type,
            business_name=application.business_name,
            issue_date=now,
            expiry_date=expiry_date,
            status=LicenseStatus.ACTIVE,
            integrity_hash=integrity_hash(
                license_number.value,
                application.id,
                application.user_id,
                application.license_type,
                application.business_name,
                now,
                expiry_date,
            ),
        )
        issued = await uow.licenses.add(license)

        logger.info(f"✅ Application {application.id} approved, issued {issued.license_number}")
        return application, issued

    async def set_license_status(
        self,
        uow: AbstractUnitOfWork,
        license_id: str,
        status: LicenseStatus,
    ) -> License:
        """
        Raises:
            LicenseNotFoundError: Unknown license
            InvalidStatusTransition: License is revoked
        """
        uow.context.require_admin()
        license = await uow.licenses.get(license_id)
        if license is None:
            raise LicenseNotFoundError(license_id)

        license.change_status(status)
        return await uow.licenses.save_status(license)

    async def grant_role(self, uow: AbstractUnitOfWork, user_id: str, role: AppRole) -> RoleAssignment:
        uow.context.require_admin()
        await self._require_user(uow, user_id)

        assignment = await uow.roles.grant(user_id, role)
        self._notify_roles_changed(uow, user_id)
        return assignment

    async def revoke_role(self, uow: AbstractUnitOfWork, user_id: str, role: AppRole) -> bool:
        uow.context.require_admin()
        await self._require_user(uow, user_id)

        removed = await uow.roles.revoke(user_id, role)
        if removed:
            self._notify_roles_changed(uow, user_id)
        return removed

    async def _transition(
        self,
        uow: AbstractUnitOfWork,
        application_id: str,
        new_status: ApplicationStatus,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LicenseApplication:
        reviewer = uow.context.require_admin()
        application = await uow.applications.get(application_id)
        if application is None:
            raise ApplicationNotFoundError(application_id)

        previous = application.status
        application.transition_to(new_status, reviewer.user_id, now=now, reason=reason)
        saved = await uow.applications.save_review(application)

        logger.info(
            f"Application {application_id}: {previous.value} -> {new_status.value} "
            f"(reviewer {reviewer.user_id})"
        )
        return saved

    async def _allocate_number(self, uow: AbstractUnitOfWork, year: int) -> LicenseNumber:
        for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
            candidate = draw_license_number(year)
            if not await uow.licenses.number_exists(candidate.value):
                return candidate
            logger.warning(f"License number collision on {candidate} (attempt {attempt})")
        raise StoreOperationFailed("Could not allocate a unique license number. Please try again.")

    async def _require_user(self, uow: AbstractUnitOfWork, user_id: str) -> None:
        if await uow.profiles.get(user_id) is None:
            raise UserNotFoundError(user_id)

    def _notify_roles_changed(self, uow: AbstractUnitOfWork, user_id: str) -> None:
        event = SessionEvent(SessionEventType.ROLES_CHANGED, user_id)
        uow.add_post_commit_hook(lambda: self._channel.publish(event))
