"""
Profile Service - read and update the caller's profile; admin listing.
"""

from typing import Any, List, Mapping, Optional
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from licensing.domain.entities import FieldError, Profile, UserNotFoundError, ValidationFailed
from licensing.domain.unit_of_work import AbstractUnitOfWork
from licensing.domain.value_objects import PROFILE_FIELD_LIMITS

logger = logging.getLogger(__name__)


class ProfileUpdate(BaseModel):
    """Editable profile columns; anything else in the payload is refused by the policy"""

    model_config = ConfigDict(extra="allow")

    first_name: Optional[str] = Field(default=None, max_length=PROFILE_FIELD_LIMITS["first_name"])
    last_name: Optional[str] = Field(default=None, max_length=PROFILE_FIELD_LIMITS["last_name"])
    business_name: Optional[str] = Field(default=None, max_length=PROFILE_FIELD_LIMITS["business_name"])


class ProfileService:

    async def get_mine(self, uow: AbstractUnitOfWork) -> Profile:
        principal = uow.context.require()
        profile = await uow.profiles.get(principal.user_id)
        if profile is None:
            raise UserNotFoundError(principal.user_id)
        return profile

    async def update_mine(self, uow: AbstractUnitOfWork, payload: Mapping[str, Any]) -> Profile:
        """
        Apply a partial update to the caller's profile.

        Raises:
            ValidationFailed: Over-long values
            AccessDenied: Payload touches a column the owner may not edit (e.g. email)
        """
        principal = uow.context.require()
        try:
            update = ProfileUpdate.model_validate(dict(payload))
        except ValidationError as e:
            raise ValidationFailed([
                FieldError(str(error["loc"][0]), error["msg"]) for error in e.errors()
            ]) from e

        changes = update.model_dump(exclude_unset=True)
        if not changes:
            return await self.get_mine(uow)

        profile = await uow.profiles.update(principal.user_id, changes)
        logger.info(f"Profile {principal.user_id} updated")
        return profile

    async def list_all(self, uow: AbstractUnitOfWork) -> List[Profile]:
        uow.context.require_admin()
        return await uow.profiles.list_visible()
