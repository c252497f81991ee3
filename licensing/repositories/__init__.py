"""
Repositories - policy-enforcing data access.

Each repository is bound to an AsyncSession and a SessionContext and
authorizes the context's principal on every call.
"""
from licensing.repositories.profile_repository import ProfileRepository
from licensing.repositories.role_repository import RoleRepository
from licensing.repositories.application_repository import ApplicationRepository
from licensing.repositories.license_repository import LicenseRepository

__all__ = [
    "ProfileRepository",
    "RoleRepository",
    "ApplicationRepository",
    "LicenseRepository",
]
