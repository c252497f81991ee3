"""
SQLAlchemy ORM models for database tables.

Five tables: auth_users (owned by the identity service) plus the four
licensing tables profiles, user_roles, license_applications and licenses.
"""
from datetime import datetime, timezone
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import declarative_base

from licensing.domain.policy import Operation, Table, enforce
from licensing.domain.principal import Principal
from licensing.domain.value_objects import AppRole

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================
# Identity (authentication provider)
# ============================================

class AuthUser(Base):
    """
    Authenticated identities.

    Stores email and bcrypt-hashed password. raw_user_meta_data carries the
    sign-up extras (first_name, last_name, business_name) that the creation
    hook copies into the profile.
    """
    __tablename__ = "auth_users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)  # bcrypt hash
    raw_user_meta_data = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index('idx_auth_users_email', 'email'),
    )


# ============================================
# Licensing tables
# ============================================

class ProfileModel(Base):
    """User profile - one row per identity, same id"""
    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey('auth_users.id', ondelete='CASCADE'), primary_key=True)
    email = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    business_name = Column(String(200), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class UserRoleModel(Base):
    """Role assignments; a user holds each role at most once"""
    __tablename__ = "user_roles"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False)
    role = Column(
        Enum(AppRole, name="app_role", values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', 'role', name='uq_user_roles_user_role'),
        Index('idx_user_roles_user_id', 'user_id'),
    )


class LicenseApplicationModel(Base):
    """License applications submitted by users and reviewed by admins"""
    __tablename__ = "license_applications"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False)
    license_type = Column(Text, nullable=False)
    business_name = Column(Text, nullable=False)
    registration_number = Column(Text, nullable=False)
    business_address = Column(Text, nullable=False)
    contact_person = Column(Text, nullable=False)
    contact_email = Column(Text, nullable=False)
    phone_number = Column(Text, nullable=False)
    business_type = Column(Text, nullable=False)
    business_description = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default='pending', server_default='pending')
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(String(36), ForeignKey('auth_users.id'), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'in_review', 'approved', 'rejected')",
            name='ck_license_applications_status',
        ),
        Index('idx_license_applications_user_id', 'user_id'),
        Index('idx_license_applications_status', 'status'),
    )


class LicenseModel(Base):
    """
    Issued licenses.

    license_number is the only public lookup key. application_id is unique:
    an application yields at most one license.
    """
    __tablename__ = "licenses"

    id = Column(String(36), primary_key=True, default=_uuid)
    application_id = Column(
        String(36),
        ForeignKey('license_applications.id', ondelete='CASCADE'),
        nullable=False,
        unique=True,
    )
    user_id = Column(String(36), ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False)
    license_number = Column(String(50), nullable=False, unique=True)
    license_type = Column(Text, nullable=False)
    business_name = Column(Text, nullable=False)
    issue_date = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    expiry_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default='active', server_default='active')
    integrity_hash = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'expired', 'suspended', 'revoked')",
            name='ck_licenses_status',
        ),
        Index('idx_licenses_user_id', 'user_id'),
    )


# ============================================
# Creation hook
# ============================================

@event.listens_for(AuthUser, "after_insert")
def provision_new_user(mapper, connection, target: AuthUser) -> None:
    """
    Provision profile + default role for every new identity.

    Runs inside the INSERT's transaction, so a user never exists without
    a profile and a 'user' role. Both writes are checked by the policy
    engine as the system principal.
    """
    metadata = target.raw_user_meta_data or {}
    system = Principal.system()

    profile = {
        "id": target.id,
        "email": target.email,
        "first_name": metadata.get("first_name"),
        "last_name": metadata.get("last_name"),
        "business_name": metadata.get("business_name"),
    }
    enforce(system, Table.PROFILES, Operation.INSERT, profile, profile.keys())
    connection.execute(ProfileModel.__table__.insert().values(**profile))

    role = {"user_id": target.id, "role": AppRole.USER}
    enforce(system, Table.USER_ROLES, Operation.INSERT, role, role.keys())
    connection.execute(UserRoleModel.__table__.insert().values(**role))
