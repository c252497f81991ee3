"""
Admin API - application review, license issuance and status, role management.

All endpoints require the admin role (401 without a session, 403 without the role).
"""
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from licensing.api.auth import get_uow
from licensing.api.schemas import (
    ApplicationResponse,
    LicenseResponse,
    ProfileResponse,
    RoleAssignmentResponse,
)
from licensing.application.profile_service import ProfileService
from licensing.application.review_service import ReviewService
from licensing.domain.unit_of_work import AbstractUnitOfWork
from licensing.domain.value_objects import AppRole, ApplicationStatus, LicenseStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")

review_service = ReviewService()
profile_service = ProfileService()


class RejectRequest(BaseModel):
    reason: Optional[str] = None


class LicenseStatusRequest(BaseModel):
    status: LicenseStatus


class ApprovalResponse(BaseModel):
    application: ApplicationResponse
    license: LicenseResponse


@router.get("/applications", response_model=List[ApplicationResponse])
async def list_applications(
    status: Optional[ApplicationStatus] = None,
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    return await review_service.list_applications(uow, status=status)


@router.post("/applications/{application_id}/review", response_model=ApplicationResponse)
async def start_review(application_id: str, uow: AbstractUnitOfWork = Depends(get_uow)):
    async with uow:
        application = await review_service.start_review(uow, application_id)
    return application


@router.post("/applications/{application_id}/approve", response_model=ApprovalResponse)
async def approve_application(application_id: str, uow: AbstractUnitOfWork = Depends(get_uow)):
    """Approve and issue the license in one transaction"""
    async with uow:
        application, license = await review_service.approve(uow, application_id)
    return ApprovalResponse(
        application=ApplicationResponse.model_validate(application),
        license=LicenseResponse.model_validate(license),
    )


@router.post("/applications/{application_id}/reject", response_model=ApplicationResponse)
async def reject_application(
    application_id: str,
    request: RejectRequest,
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    async with uow:
        application = await review_service.reject(uow, application_id, request.reason)
    return application


@router.post("/licenses/{license_id}/status", response_model=LicenseResponse)
async def set_license_status(
    license_id: str,
    request: LicenseStatusRequest,
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    async with uow:
        license = await review_service.set_license_status(uow, license_id, request.status)
    return license


@router.post(
    "/users/{user_id}/roles/{role}",
    response_model=RoleAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def grant_role(user_id: str, role: AppRole, uow: AbstractUnitOfWork = Depends(get_uow)):
    async with uow:
        assignment = await review_service.grant_role(uow, user_id, role)
    return assignment


@router.delete("/users/{user_id}/roles/{role}")
async def revoke_role(user_id: str, role: AppRole, uow: AbstractUnitOfWork = Depends(get_uow)):
    async with uow:
        removed = await review_service.revoke_role(uow, user_id, role)
    return {"user_id": user_id, "role": role.value, "removed": removed}


@router.get("/profiles", response_model=List[ProfileResponse])
async def list_profiles(uow: AbstractUnitOfWork = Depends(get_uow)):
    return await profile_service.list_all(uow)
