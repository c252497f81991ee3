"""
Profile API - the signed-in user's own profile.
"""
from typing import Any, Dict
import logging

from fastapi import APIRouter, Body, Depends

from licensing.api.auth import get_uow
from licensing.api.schemas import ProfileResponse
from licensing.application.profile_service import ProfileService
from licensing.domain.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter()

profile_service = ProfileService()


@router.get("/profiles/me", response_model=ProfileResponse)
async def get_my_profile(uow: AbstractUnitOfWork = Depends(get_uow)):
    return await profile_service.get_mine(uow)


@router.patch("/profiles/me", response_model=ProfileResponse)
async def update_my_profile(
    payload: Dict[str, Any] = Body(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    """Update first_name, last_name and/or business_name (403 for any other column)"""
    async with uow:
        profile = await profile_service.update_mine(uow, payload)
    return profile
