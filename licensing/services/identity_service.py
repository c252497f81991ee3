"""
Identity Service - sign-up, sign-in, sign-out and session tokens.

Stands in for the hosted authentication provider: identities live in
auth_users with bcrypt password hashes, sessions are HS256 JWTs carrying a
unique token id (jti) so a single session can be revoked.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional
import logging
import uuid

import jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from licensing.config import settings
from licensing.db.models import AuthUser
from licensing.domain.entities import (
    EmailAlreadyRegistered,
    FieldError,
    InvalidCredentials,
    StoreOperationFailed,
    UserNotFoundError,
    ValidationFailed,
)
from licensing.domain.principal import Principal
from licensing.infrastructure.cache_service import CacheFullError, RevokedSessionRegistry, revoked_sessions
from licensing.repositories.role_repository import RoleRepository
from licensing.services.session_channel import (
    SessionChannel,
    SessionEvent,
    SessionEventType,
    session_channel,
)
from licensing.services.session_context import SessionContext
from licensing.domain.value_objects import PROFILE_FIELD_LIMITS, is_valid_email
from licensing.utils.password_hash import hash_password, verify_password

logger = logging.getLogger(__name__)

TOKEN_TYPE = "session"
MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class IssuedToken:
    token: str
    token_id: str
    expires_at: datetime
    expires_in: int  # seconds


@dataclass(frozen=True)
class SignInResult:
    user_id: str
    email: str
    access_token: str
    expires_in: int


class IdentityService:
    """Service for identities and session tokens"""

    @staticmethod
    def normalize_email(email: str) -> str:
        return (email or "").strip().lower()

    @staticmethod
    def validate_credentials(email: str, password: str) -> None:
        """
        Raises:
            ValidationFailed: On malformed email or short password
        """
        errors = []
        if not is_valid_email(email) or len(email) > 255:
            errors.append(FieldError("email", "Please enter a valid email address"))
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            errors.append(FieldError("password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters"))
        if errors:
            raise ValidationFailed(errors)

    @staticmethod
    def validate_metadata(metadata: dict) -> None:
        """
        Raises:
            ValidationFailed: If a profile value is longer than its column allows
        """
        errors = [
            FieldError(field, f"Must be at most {PROFILE_FIELD_LIMITS[field]} characters")
            for field, value in metadata.items()
            if len(value) > PROFILE_FIELD_LIMITS[field]
        ]
        if errors:
            raise ValidationFailed(errors)

    @staticmethod
    async def sign_up(
        db: AsyncSession,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        business_name: Optional[str] = None,
    ) -> AuthUser:
        """
        Create a new identity.

        The AuthUser insert fires the provisioning hook, so the profile and the
        default 'user' role are written in the same flush.

        Raises:
            ValidationFailed: On malformed email, short password or over-long profile values
            EmailAlreadyRegistered: If the email already has an identity
        """
        email = IdentityService.normalize_email(email)
        IdentityService.validate_credentials(email, password)

        metadata = {
            key: value.strip()
            for key, value in (
                ("first_name", first_name),
                ("last_name", last_name),
                ("business_name", business_name),
            )
            if value and value.strip()
        }
        IdentityService.validate_metadata(metadata)

        if await IdentityService.get_user_by_email(db, email):
            raise EmailAlreadyRegistered(email)

        user = AuthUser(
            email=email,
            password_hash=hash_password(password),
            raw_user_meta_data=metadata,
            is_active=True,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            raise EmailAlreadyRegistered(email) from e

        logger.info(f"Created user: {user.id} (email: {email})")
        return user

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> Optional[AuthUser]:
        result = await db.execute(
            select(AuthUser).where(AuthUser.email == IdentityService.normalize_email(email))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user(db: AsyncSession, user_id: str) -> Optional[AuthUser]:
        result = await db.execute(select(AuthUser).where(AuthUser.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_users(db: AsyncSession) -> List[AuthUser]:
        result = await db.execute(select(AuthUser).order_by(AuthUser.created_at))
        return list(result.scalars().all())

    @staticmethod
    async def set_active(db: AsyncSession, user_id: str, is_active: bool) -> AuthUser:
        user = await IdentityService.get_user(db, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        user.is_active = is_active
        await db.flush()
        logger.info(f"{'Activated' if is_active else 'Deactivated'} user: {user_id}")
        return user

    @staticmethod
    async def authenticate(db: AsyncSession, email: str, password: str) -> AuthUser:
        """
        Check credentials.

        Raises:
            InvalidCredentials: Unknown email, wrong password or inactive user
        """
        user = await IdentityService.get_user_by_email(db, email)

        if not user:
            logger.warning(f"Sign-in failed: no identity for '{email}'")
            raise InvalidCredentials()
        if not user.is_active:
            logger.warning(f"Sign-in failed: user {user.id} is deactivated")
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            logger.warning(f"Sign-in failed: invalid password for user {user.id}")
            raise InvalidCredentials()

        return user

    @staticmethod
    def issue_token(user_id: str, email: str, now: Optional[datetime] = None) -> IssuedToken:
        now = now or datetime.now(timezone.utc)
        expires_at = now + timedelta(hours=settings.jwt_expiration_hours)
        token_id = str(uuid.uuid4())
        payload = {
            "sub": user_id,
            "email": email,
            "jti": token_id,
            "type": TOKEN_TYPE,
            "iat": now,
            "exp": expires_at,
        }
        token = jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)
        return IssuedToken(
            token=token,
            token_id=token_id,
            expires_at=expires_at,
            expires_in=int((expires_at - now).total_seconds()),
        )

    @staticmethod
    def decode_token(token: str) -> Optional[dict]:
        """
        Decode and validate a session token.

        Returns:
            Payload if signature, expiry and type check out, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                settings.session_secret,
                algorithms=[settings.jwt_algorithm],
                options={"require": ["exp", "sub", "jti"]},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Session token rejected: expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Session token rejected: {e}")
            return None

        if payload.get("type") != TOKEN_TYPE:
            logger.warning(f"Session token rejected: invalid type '{payload.get('type')}'")
            return None
        return payload

    @staticmethod
    async def sign_in(
        db: AsyncSession,
        email: str,
        password: str,
        channel: SessionChannel = session_channel,
    ) -> SignInResult:
        user = await IdentityService.authenticate(db, email, password)
        issued = IdentityService.issue_token(user.id, user.email)
        channel.publish(SessionEvent(SessionEventType.SIGNED_IN, user.id, issued.token_id))

        logger.info(f"User signed in: {user.id}")
        return SignInResult(
            user_id=user.id,
            email=user.email,
            access_token=issued.token,
            expires_in=issued.expires_in,
        )

    @staticmethod
    async def sign_out(
        context: SessionContext,
        registry: RevokedSessionRegistry = revoked_sessions,
        channel: SessionChannel = session_channel,
    ) -> None:
        """
        Revoke the context's token and tell every listener.

        Raises:
            AuthenticationRequired: If the context has no session
            StoreOperationFailed: If the revocation could not be recorded
        """
        principal = context.require()
        token_id = context.token_id
        try:
            await registry.revoke(token_id, principal.user_id, context.expires_at)
        except CacheFullError as e:
            raise StoreOperationFailed("Could not sign out right now. Please try again.") from e
        channel.publish(SessionEvent(SessionEventType.SIGNED_OUT, principal.user_id, token_id))

    @staticmethod
    async def load_context(
        db: AsyncSession,
        token: Optional[str],
        registry: RevokedSessionRegistry = revoked_sessions,
        channel: SessionChannel = session_channel,
    ) -> SessionContext:
        """
        Build the SessionContext for one request.

        Missing, invalid, expired or revoked tokens and inactive users all
        yield an anonymous context; operations that need a session raise
        AuthenticationRequired later. Roles are read from the store, never
        from the token.
        """
        if not token:
            return SessionContext.anonymous()

        payload = IdentityService.decode_token(token)
        if payload is None:
            return SessionContext.anonymous()

        token_id = payload["jti"]
        if await registry.is_revoked(token_id):
            logger.warning(f"Session token rejected: session {token_id[:8]}... was signed out")
            return SessionContext.anonymous()

        user = await IdentityService.get_user(db, payload["sub"])
        if user is None or not user.is_active:
            logger.warning(f"Session token rejected: user {payload['sub']} missing or inactive")
            return SessionContext.anonymous()

        roles = await RoleRepository(db, SessionContext.system()).roles_for(user.id)
        context = SessionContext(
            principal=Principal.user(user.id, roles),
            token_id=token_id,
            email=user.email,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            channel=channel,
        )
        return context

    @staticmethod
    async def current_session(db: AsyncSession, context: SessionContext) -> dict:
        """Identity plus roles read fresh from the store"""
        principal = context.require()
        roles = await RoleRepository(db, context).roles_for(principal.user_id)
        return {
            "user_id": principal.user_id,
            "email": context.email,
            "roles": sorted(role.value for role in roles),
        }

