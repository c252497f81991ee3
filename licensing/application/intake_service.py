"""
Application Intake - submit a license application.

Order of checks:
1. A signed-in session (AuthenticationRequired otherwise)
2. Field constraints (ValidationFailed with per-field messages)
3. Insert through the policy-enforcing repository; status is always 'pending'
"""

from typing import Any, Dict, List, Mapping, Tuple
import logging

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from licensing.domain.entities import (
    ApplicationNotFoundError,
    AuthenticationRequired,
    FieldError,
    LicenseApplication,
    ValidationFailed,
)
from licensing.domain.unit_of_work import AbstractUnitOfWork
from licensing.domain.value_objects import BUSINESS_TYPES, LICENSE_TYPES, is_valid_email

logger = logging.getLogger(__name__)

SIGN_IN_TO_APPLY = "Please log in to submit an application."

# field -> (min length, max length, too-short message, too-long message)
_LENGTH_RULES: Dict[str, Tuple[int, int, str, str]] = {
    "business_name": (2, 200, "Business name must be at least 2 characters", "Business name is too long"),
    "registration_number": (3, 50, "Registration number is required", "Registration number is too long"),
    "business_address": (10, 500, "Please provide a complete address", "Address is too long"),
    "contact_person": (2, 100, "Contact person name is required", "Name is too long"),
    "phone_number": (10, 20, "Please provide a valid phone number", "Phone number is too long"),
    "business_description": (
        20,
        1000,
        "Please provide a detailed description (at least 20 characters)",
        "Description is too long",
    ),
}


def _fail(message: str):
    return PydanticCustomError("invalid_field", message)


class ApplicationForm(BaseModel):
    """
    Intake fields of a license application.

    Unknown keys (status, user_id, review columns) are dropped.
    """

    model_config = ConfigDict(extra="ignore", validate_default=True)

    license_type: str = ""
    business_name: str = ""
    registration_number: str = ""
    business_address: str = ""
    contact_person: str = ""
    contact_email: str = ""
    phone_number: str = ""
    business_type: str = ""
    business_description: str = ""

    @field_validator("license_type")
    @classmethod
    def check_license_type(cls, value: str) -> str:
        if not value:
            raise _fail("Please select a license type")
        if value not in LICENSE_TYPES:
            raise _fail("Please select a valid license type")
        return value

    @field_validator("business_type")
    @classmethod
    def check_business_type(cls, value: str) -> str:
        if not value:
            raise _fail("Please select a business type")
        if value not in BUSINESS_TYPES:
            raise _fail("Please select a valid business type")
        return value

    @field_validator("contact_email")
    @classmethod
    def check_contact_email(cls, value: str) -> str:
        if not is_valid_email(value):
            raise _fail("Please provide a valid email address")
        if len(value) > 255:
            raise _fail("Email is too long")
        return value

    @field_validator(*_LENGTH_RULES)
    @classmethod
    def check_length(cls, value: str, info) -> str:
        minimum, maximum, too_short, too_long = _LENGTH_RULES[info.field_name]
        if len(value) < minimum:
            raise _fail(too_short)
        if len(value) > maximum:
            raise _fail(too_long)
        return value


def parse_application_form(payload: Mapping[str, Any]) -> ApplicationForm:
    """
    Validate raw input.

    Raises:
        ValidationFailed: With one entry per failing field
    """
    try:
        return ApplicationForm.model_validate(dict(payload))
    except ValidationError as e:
        errors: List[FieldError] = []
        for error in e.errors():
            field = str(error["loc"][0]) if error["loc"] else "__root__"
            errors.append(FieldError(field, error["msg"]))
        raise ValidationFailed(errors) from e


class IntakeService:
    """Submits and reads applications on behalf of the session's user"""

    async def submit(self, uow: AbstractUnitOfWork, payload: Mapping[str, Any]) -> LicenseApplication:
        """
        Submit an application for the signed-in user.

        Args:
            uow: Unit of Work bound to the request's session context
            payload: Raw form fields; status/owner/review keys are ignored

        Returns:
            Stored application (status pending)

        Raises:
            AuthenticationRequired: No valid session (checked before validation)
            ValidationFailed: Field constraints violated (nothing is stored)
            StoreOperationFailed: The store rejected the insert
        """
        principal = uow.context.principal
        if not principal.is_authenticated:
            raise AuthenticationRequired(SIGN_IN_TO_APPLY)

        form = parse_application_form(payload)
        application = LicenseApplication.submit(principal.user_id, form.model_dump())
        saved = await uow.applications.add(application)

        logger.info(f"✅ Application {saved.id} submitted by user {principal.user_id}")
        return saved

    async def list_mine(self, uow: AbstractUnitOfWork) -> List[LicenseApplication]:
        principal = uow.context.require()
        return await uow.applications.list_visible(owner_id=principal.user_id)

    async def get(self, uow: AbstractUnitOfWork, application_id: str) -> LicenseApplication:
        """
        Raises:
            ApplicationNotFoundError: Missing, or not visible to the caller
        """
        uow.context.require()
        application = await uow.applications.get(application_id)
        if application is None:
            raise ApplicationNotFoundError(application_id)
        return application
