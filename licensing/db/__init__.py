"""Database package - all database-related code."""
from licensing.db.connection import init_db, get_db_session, get_session_maker, close_db
from licensing.db.models import (
    Base,
    AuthUser,
    ProfileModel,
    UserRoleModel,
    LicenseApplicationModel,
    LicenseModel,
)

__all__ = [
    "init_db",
    "get_db_session",
    "get_session_maker",
    "close_db",
    "Base",
    "AuthUser",
    "ProfileModel",
    "UserRoleModel",
    "LicenseApplicationModel",
    "LicenseModel",
]
