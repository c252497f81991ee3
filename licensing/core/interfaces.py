"""
Core interfaces for the licensing service.

Repositories are bound to a session context: every method authorizes the
current principal against the policy engine before touching a row.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Set

from licensing.domain.entities import License, LicenseApplication, Profile, RoleAssignment
from licensing.domain.value_objects import AppRole, ApplicationStatus


class IProfileRepository(ABC):
    """Interface for profile storage"""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[Profile]:
        """
        Get a profile by user id.

        Returns:
            Profile if it exists and is visible to the caller, None otherwise
        """
        pass

    @abstractmethod
    async def list_visible(self) -> List[Profile]:
        """All profiles the caller can read (own profile, or every profile for admins)"""
        pass

    @abstractmethod
    async def update(self, user_id: str, changes: Mapping[str, Any]) -> Profile:
        """
        Update editable profile columns.

        Raises:
            AccessDenied: If the caller is not the owner or touches a locked column
            UserNotFoundError: If the profile does not exist
        """
        pass


class IRoleRepository(ABC):
    """Interface for role assignments"""

    @abstractmethod
    async def roles_for(self, user_id: str) -> Set[AppRole]:
        pass

    @abstractmethod
    async def list_for(self, user_id: str) -> List[RoleAssignment]:
        pass

    @abstractmethod
    async def grant(self, user_id: str, role: AppRole) -> RoleAssignment:
        """
        Assign a role. Granting a role the user already has returns the
        existing assignment.

        Raises:
            AccessDenied: If the caller is not an admin
        """
        pass

    @abstractmethod
    async def revoke(self, user_id: str, role: AppRole) -> bool:
        """
        Remove a role.

        Returns:
            True if a row was deleted, False if the user did not hold the role
        """
        pass


class IApplicationRepository(ABC):
    """Interface for license applications"""

    @abstractmethod
    async def add(self, application: LicenseApplication) -> LicenseApplication:
        """
        Insert a new application (intake columns only; status comes from the store default).

        Raises:
            AccessDenied: If the caller is not the owner
            StoreOperationFailed: If the store rejects the insert
        """
        pass

    @abstractmethod
    async def get(self, application_id: str) -> Optional[LicenseApplication]:
        pass

    @abstractmethod
    async def list_visible(
        self,
        status: Optional[ApplicationStatus] = None,
        owner_id: Optional[str] = None,
    ) -> List[LicenseApplication]:
        pass

    @abstractmethod
    async def save_review(self, application: LicenseApplication) -> LicenseApplication:
        """
        Persist status/review columns of an existing application.

        Raises:
            AccessDenied: If the caller is not an admin
        """
        pass


class ILicenseRepository(ABC):
    """Interface for issued licenses"""

    @abstractmethod
    async def find_public_by_number(self, license_number: str) -> Optional[Dict[str, Any]]:
        """
        Exact-match lookup returning only the public columns.

        Returns:
            Public row as a dict, or None when nothing matches
        """
        pass

    @abstractmethod
    async def number_exists(self, license_number: str) -> bool:
        pass

    @abstractmethod
    async def get(self, license_id: str) -> Optional[License]:
        """
        Full license row.

        Raises:
            AccessDenied: If the caller may only see the public view
        """
        pass

    @abstractmethod
    async def get_by_application(self, application_id: str) -> Optional[License]:
        pass

    @abstractmethod
    async def list_for_owner(self, owner_id: str) -> List[License]:
        pass

    @abstractmethod
    async def add(self, license: License) -> License:
        """
        Raises:
            DuplicateLicenseNumber: If the number is already taken
            LicenseAlreadyIssued: If the application already has a license
        """
        pass

    @abstractmethod
    async def save_status(self, license: License) -> License:
        pass
