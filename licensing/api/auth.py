"""
Authentication - session dependencies and identity endpoints.

Every request gets a SessionContext built from the optional
``Authorization: Bearer <token>`` header. A missing or bad token yields an
anonymous context rather than a 401, so public endpoints (verification)
work without a session and protected ones fail with AuthenticationRequired
when they actually need one.
"""
from typing import AsyncIterator, List, Optional
import logging

from fastapi import APIRouter, Depends, Header, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from licensing.db.connection import get_db_session
from licensing.domain.unit_of_work import AbstractUnitOfWork, get_unit_of_work
from licensing.services.identity_service import IdentityService
from licensing.services.session_context import SessionContext

logger = logging.getLogger(__name__)

router = APIRouter()


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an Authorization header value"""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[7:].strip()  # Remove "Bearer " prefix
    return token or None


async def get_session_context(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db_session),
) -> AsyncIterator[SessionContext]:
    """
    Per-request SessionContext.

    The context is subscribed to the session channel for the lifetime of
    the request and unsubscribed afterwards.
    """
    context = await IdentityService.load_context(db, bearer_token(authorization))
    try:
        yield context
    finally:
        context.close()


async def get_uow(
    db: AsyncSession = Depends(get_db_session),
    context: SessionContext = Depends(get_session_context),
) -> AbstractUnitOfWork:
    return get_unit_of_work(db, context)


# ============================================
# Pydantic Models
# ============================================

class SignUpRequest(BaseModel):
    email: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    business_name: Optional[str] = None


class SignUpResponse(BaseModel):
    user_id: str
    email: str


class SignInRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user_id: str
    email: str


class SessionResponse(BaseModel):
    user_id: str
    email: Optional[str]
    roles: List[str]


# ============================================
# Endpoints
# ============================================

@router.post("/auth/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(request: SignUpRequest, db: AsyncSession = Depends(get_db_session)):
    """Create an identity; its profile and 'user' role are provisioned with it"""
    user = await IdentityService.sign_up(
        db,
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        business_name=request.business_name,
    )
    await db.commit()
    return SignUpResponse(user_id=user.id, email=user.email)


@router.post("/auth/token", response_model=TokenResponse)
async def sign_in(request: SignInRequest, db: AsyncSession = Depends(get_db_session)):
    result = await IdentityService.sign_in(db, request.email, request.password)
    return TokenResponse(
        access_token=result.access_token,
        expires_in=result.expires_in,
        user_id=result.user_id,
        email=result.email,
    )


@router.post("/auth/logout")
async def sign_out(context: SessionContext = Depends(get_session_context)):
    """Revoke the current session token"""
    await IdentityService.sign_out(context)
    return {"status": "signed_out"}


@router.get("/auth/session", response_model=SessionResponse)
async def current_session(
    db: AsyncSession = Depends(get_db_session),
    context: SessionContext = Depends(get_session_context),
):
    """Identity of the current session with roles read fresh from the store"""
    return await IdentityService.current_session(db, context)
