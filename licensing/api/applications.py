"""
Application Intake API - submit and read license applications.
"""
from typing import Any, Dict, List
import logging

from fastapi import APIRouter, Body, Depends, status

from licensing.api.auth import get_uow
from licensing.api.schemas import ApplicationResponse
from licensing.application.intake_service import IntakeService
from licensing.domain.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter()

intake_service = IntakeService()


@router.post("/applications", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def submit_application(
    payload: Dict[str, Any] = Body(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    """
    Submit a license application for the signed-in user.

    The body is taken as a plain mapping so the session check runs before
    field validation. status, user_id and review fields in the body are ignored.
    """
    async with uow:
        application = await intake_service.submit(uow, payload)
    return application


@router.get("/applications/me", response_model=List[ApplicationResponse])
async def list_my_applications(uow: AbstractUnitOfWork = Depends(get_uow)):
    return await intake_service.list_mine(uow)


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
async def get_application(application_id: str, uow: AbstractUnitOfWork = Depends(get_uow)):
    """Read one application (owner or admin; 404 otherwise)"""
    return await intake_service.get(uow, application_id)
