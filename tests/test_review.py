"""
Tests for the admin review workflow: approval, rejection, license status, roles
"""
from datetime import datetime, timedelta, timezone
import re

import pytest

from licensing.application.review_service import ReviewService, integrity_hash
from licensing.application.verification_service import VerificationService
from licensing.config import settings
from licensing.domain.entities import (
    AccessDenied,
    ApplicationNotFoundError,
    InvalidStatusTransition,
    UserNotFoundError,
    ValidationFailed,
)
from licensing.domain.unit_of_work import get_unit_of_work
from licensing.domain.value_objects import AppRole, ApplicationStatus, LicenseStatus
from licensing.services.session_channel import SessionChannel, SessionEventType
from licensing.services.session_context import SessionContext

from tests.helpers import approve_application, context_for, create_user, submit_application

NOW = datetime(2025, 2, 10, 8, 0, tzinfo=timezone.utc)


async def setup_application(db, application_payload):
    """(owner id, admin id, application id) for one pending application"""
    owner_id = await create_user(db, "owner@example.com")
    admin_id = await create_user(db, "admin@example.com", admin=True)
    application_id = await submit_application(db, owner_id, application_payload)
    return owner_id, admin_id, application_id


async def run_as(db, user_id, action, channel=None):
    """Run ``action(service, uow)`` in one committed unit of work as ``user_id``"""
    service = ReviewService(channel) if channel is not None else ReviewService()
    async with db() as session:
        context = await context_for(session, user_id)
        async with get_unit_of_work(session, context) as uow:
            return await action(service, uow)


# ============================================
# Approval
# ============================================

@pytest.mark.asyncio
async def test_approve_issues_exactly_one_license(db, application_payload):
    owner_id, admin_id, application_id = await setup_application(db, application_payload)

    license = await approve_application(db, admin_id, application_id, now=NOW)

    assert re.fullmatch(r"LIC-2025-\d{5}", license.license_number)
    assert license.user_id == owner_id
    assert license.application_id == application_id
    assert license.status == LicenseStatus.ACTIVE
    assert license.license_type == application_payload["license_type"]
    assert license.business_name == application_payload["business_name"]
    assert license.issue_date == NOW
    assert license.expiry_date == NOW + timedelta(days=settings.license_validity_days)
    assert license.integrity_hash == integrity_hash(
        license.license_number,
        application_id,
        owner_id,
        license.license_type,
        license.business_name,
        NOW,
        license.expiry_date,
    )

    async with db() as session:
        context = await context_for(session, owner_id)
        async with get_unit_of_work(session, context) as uow:
            application = await uow.applications.get(application_id)
            licenses = await uow.licenses.list_for_owner(owner_id)

    assert application.status == ApplicationStatus.APPROVED
    assert application.reviewed_by == admin_id
    assert [lic.id for lic in licenses] == [license.id]


@pytest.mark.asyncio
async def test_approve_twice_fails_without_second_license(db, application_payload):
    owner_id, admin_id, application_id = await setup_application(db, application_payload)
    await approve_application(db, admin_id, application_id)

    with pytest.raises(InvalidStatusTransition):
        await approve_application(db, admin_id, application_id)

    async with db() as session:
        context = await context_for(session, owner_id)
        async with get_unit_of_work(session, context) as uow:
            assert len(await uow.licenses.list_for_owner(owner_id)) == 1


@pytest.mark.asyncio
async def test_approved_license_verifies_as_valid(db, application_payload):
    _, admin_id, application_id = await setup_application(db, application_payload)
    license = await approve_application(db, admin_id, application_id)

    async with db() as session:
        async with get_unit_of_work(session, SessionContext.anonymous()) as uow:
            result = await VerificationService().verify(uow, license.license_number)

    assert result.is_valid
    assert result.details.business_name == application_payload["business_name"]
    assert result.details.integrity_hash == license.integrity_hash


@pytest.mark.asyncio
async def test_review_then_approve(db, application_payload):
    _, admin_id, application_id = await setup_application(db, application_payload)

    reviewed = await run_as(db, admin_id, lambda s, uow: s.start_review(uow, application_id))
    assert reviewed.status == ApplicationStatus.IN_REVIEW

    license = await approve_application(db, admin_id, application_id)
    assert license.application_id == application_id


@pytest.mark.asyncio
async def test_non_admin_cannot_review(db, application_payload):
    owner_id, _, application_id = await setup_application(db, application_payload)

    with pytest.raises(AccessDenied):
        await approve_application(db, owner_id, application_id)
    with pytest.raises(AccessDenied):
        await run_as(db, owner_id, lambda s, uow: s.list_applications(uow))


@pytest.mark.asyncio
async def test_unknown_application(db):
    admin_id = await create_user(db, "admin@example.com", admin=True)

    with pytest.raises(ApplicationNotFoundError):
        await approve_application(db, admin_id, "does-not-exist")


# ============================================
# Rejection
# ============================================

@pytest.mark.asyncio
async def test_reject_records_reason_and_is_terminal(db, application_payload):
    _, admin_id, application_id = await setup_application(db, application_payload)

    rejected = await run_as(db, admin_id, lambda s, uow: s.reject(uow, application_id, "Missing permit"))

    assert rejected.status == ApplicationStatus.REJECTED
    assert rejected.rejection_reason == "Missing permit"
    assert rejected.reviewed_by == admin_id

    with pytest.raises(InvalidStatusTransition):
        await approve_application(db, admin_id, application_id)


@pytest.mark.asyncio
async def test_reject_requires_reason(db, application_payload):
    _, admin_id, application_id = await setup_application(db, application_payload)

    with pytest.raises(ValidationFailed) as exc_info:
        await run_as(db, admin_id, lambda s, uow: s.reject(uow, application_id, "  "))

    assert "rejection_reason" in exc_info.value.by_field()


@pytest.mark.asyncio
async def test_list_applications_filters_by_status(db, application_payload):
    owner_id, admin_id, first = await setup_application(db, application_payload)
    await submit_application(db, owner_id, application_payload)
    await approve_application(db, admin_id, first)

    pending = await run_as(
        db, admin_id, lambda s, uow: s.list_applications(uow, status=ApplicationStatus.PENDING)
    )
    everything = await run_as(db, admin_id, lambda s, uow: s.list_applications(uow))

    assert len(pending) == 1
    assert first not in {a.id for a in pending}
    assert len(everything) == 2


# ============================================
# License status
# ============================================

@pytest.mark.asyncio
async def test_suspended_license_stops_verifying(db, application_payload):
    _, admin_id, application_id = await setup_application(db, application_payload)
    license = await approve_application(db, admin_id, application_id)

    updated = await run_as(
        db, admin_id, lambda s, uow: s.set_license_status(uow, license.id, LicenseStatus.SUSPENDED)
    )
    assert updated.status == LicenseStatus.SUSPENDED

    async with db() as session:
        async with get_unit_of_work(session, SessionContext.anonymous()) as uow:
            result = await VerificationService().verify(uow, license.license_number)

    assert not result.is_valid
    assert result.details.status == "suspended"


@pytest.mark.asyncio
async def test_revoked_license_cannot_be_reactivated(db, application_payload):
    _, admin_id, application_id = await setup_application(db, application_payload)
    license = await approve_application(db, admin_id, application_id)

    await run_as(db, admin_id, lambda s, uow: s.set_license_status(uow, license.id, LicenseStatus.REVOKED))

    with pytest.raises(InvalidStatusTransition):
        await run_as(db, admin_id, lambda s, uow: s.set_license_status(uow, license.id, LicenseStatus.ACTIVE))


@pytest.mark.asyncio
async def test_owner_cannot_change_license_status(db, application_payload):
    owner_id, admin_id, application_id = await setup_application(db, application_payload)
    license = await approve_application(db, admin_id, application_id)

    with pytest.raises(AccessDenied):
        await run_as(db, owner_id, lambda s, uow: s.set_license_status(uow, license.id, LicenseStatus.ACTIVE))


# ============================================
# Roles
# ============================================

@pytest.mark.asyncio
async def test_role_change_is_published_after_commit(db):
    """ROLES_CHANGED reaches live sessions of the user once the grant is committed"""
    channel = SessionChannel()
    admin_id = await create_user(db, "admin@example.com", admin=True)
    user_id = await create_user(db, "user@example.com")

    events = []
    channel.subscribe(events.append)

    async with db() as session:
        context = await context_for(session, admin_id)
        async with get_unit_of_work(session, context) as uow:
            await ReviewService(channel).grant_role(uow, user_id, AppRole.ADMIN)
            assert events == []

    assert [(e.type, e.user_id) for e in events] == [(SessionEventType.ROLES_CHANGED, user_id)]


@pytest.mark.asyncio
async def test_rolled_back_grant_publishes_nothing(db):
    channel = SessionChannel()
    admin_id = await create_user(db, "admin@example.com", admin=True)
    user_id = await create_user(db, "user@example.com")

    events = []
    channel.subscribe(events.append)

    async with db() as session:
        context = await context_for(session, admin_id)
        with pytest.raises(RuntimeError):
            async with get_unit_of_work(session, context) as uow:
                await ReviewService(channel).grant_role(uow, user_id, AppRole.ADMIN)
                raise RuntimeError("abort")

    assert events == []

    async with db() as session:
        context = await context_for(session, user_id)
        assert not context.principal.is_admin


@pytest.mark.asyncio
async def test_revoke_role_and_unknown_user(db):
    channel = SessionChannel()
    admin_id = await create_user(db, "admin@example.com", admin=True)
    other_admin = await create_user(db, "second@example.com", admin=True)

    removed = await run_as(db, admin_id, lambda s, uow: s.revoke_role(uow, other_admin, AppRole.ADMIN), channel)
    again = await run_as(db, admin_id, lambda s, uow: s.revoke_role(uow, other_admin, AppRole.ADMIN), channel)

    assert removed is True
    assert again is False

    with pytest.raises(UserNotFoundError):
        await run_as(db, admin_id, lambda s, uow: s.grant_role(uow, "missing-user", AppRole.ADMIN), channel)
