"""
License API - public verification and the owner's own licenses.
"""
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query

from licensing.api.auth import get_uow
from licensing.api.schemas import LicenseResponse
from licensing.application.verification_service import VerificationService
from licensing.domain.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter()

verification_service = VerificationService()


@router.get("/licenses/verify")
async def verify_license(
    license_number: Optional[str] = Query(None),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    """
    Verify a license by number. No session needed.

    Returns:
        {"isValid", "licenseNumber"} for unknown numbers; the public license
        view (licenseType, status, businessName, issueDate, expiryDate,
        integrityHash) when found
    """
    result = await verification_service.verify(uow, license_number)
    return result.to_dict()


@router.get("/licenses/me", response_model=List[LicenseResponse])
async def list_my_licenses(uow: AbstractUnitOfWork = Depends(get_uow)):
    principal = uow.context.require()
    return await uow.licenses.list_for_owner(principal.user_id)
