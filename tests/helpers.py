"""
Shared test helpers (users, contexts, stored licenses).
"""
from datetime import datetime
from typing import Optional

from licensing.application.review_service import ReviewService
from licensing.domain.principal import Principal
from licensing.domain.unit_of_work import get_unit_of_work
from licensing.domain.value_objects import AppRole
from licensing.repositories.role_repository import RoleRepository
from licensing.services.identity_service import IdentityService
from licensing.services.session_context import SessionContext

DEFAULT_PASSWORD = "correct-horse-battery"


async def create_user(session_maker, email: str, password: str = DEFAULT_PASSWORD, admin: bool = False, **meta) -> str:
    """Sign up a user (optionally admin) and commit; returns the user id"""
    async with session_maker() as session:
        user = await IdentityService.sign_up(session, email, password, **meta)
        async with get_unit_of_work(session, SessionContext.system()) as uow:
            if admin:
                await ReviewService().grant_role(uow, user.id, AppRole.ADMIN)
        return user.id


async def context_for(session, user_id: str) -> SessionContext:
    """SessionContext for a user with roles loaded from the store (not subscribed to any channel)"""
    roles = await RoleRepository(session, SessionContext.system()).roles_for(user_id)
    return SessionContext(principal=Principal.user(user_id, roles))


async def submit_application(session_maker, user_id: str, payload: dict) -> str:
    """Submit an application as ``user_id``; returns its id"""
    from licensing.application.intake_service import IntakeService

    async with session_maker() as session:
        context = await context_for(session, user_id)
        async with get_unit_of_work(session, context) as uow:
            application = await IntakeService().submit(uow, payload)
        return application.id


async def approve_application(session_maker, admin_id: str, application_id: str, now: Optional[datetime] = None):
    """Approve as ``admin_id``; returns the issued License"""
    async with session_maker() as session:
        context = await context_for(session, admin_id)
        async with get_unit_of_work(session, context) as uow:
            _, license = await ReviewService().approve(uow, application_id, now=now)
        return license
