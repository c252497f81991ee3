"""
Domain Entities - Rich business objects with identity and lifecycle.

Entities differ from value objects in that they have:
- Identity (tracked by ID, not by value)
- Mutable state (can change over time)
- Business logic (methods that enforce invariants)

LicenseApplication and License are the two aggregates of the licensing
domain. A License is derived from exactly one approved application.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .value_objects import (
    APPLICATION_TRANSITIONS,
    AppRole,
    ApplicationStatus,
    LicenseStatus,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Profile:
    """Public-facing user data, provisioned when an identity is created"""

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    business_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class RoleAssignment:
    """One (user, role) row of user_roles"""

    id: str
    user_id: str
    role: AppRole
    created_at: Optional[datetime] = None


@dataclass
class LicenseApplication:
    """
    License application aggregate.

    Invariants (business rules enforced by domain model):
    1. Belongs to exactly one owner (user_id)
    2. Status is one of pending/in_review/approved/rejected
    3. A rejected application always carries a rejection reason
    4. Review fields are only set by a review transition
    """

    # Identity
    id: Optional[str]
    user_id: str

    # Intake fields
    license_type: str
    business_name: str
    registration_number: str
    business_address: str
    contact_person: str
    contact_email: str
    phone_number: str
    business_type: str
    business_description: str

    # Review state
    status: ApplicationStatus = ApplicationStatus.PENDING
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    rejection_reason: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.status = ApplicationStatus(self.status)
        if not self.user_id:
            raise ValueError("Application must have an owner")
        if self.status == ApplicationStatus.REJECTED and not self.rejection_reason:
            raise ValueError("Rejected application must carry a rejection_reason")

    @classmethod
    def submit(cls, owner_id: str, fields: Dict[str, str], now: Optional[datetime] = None) -> "LicenseApplication":
        """
        Create a freshly submitted application.

        Status and review metadata are fixed here; whatever the caller put
        in ``fields`` for them is ignored.
        """
        return cls(
            id=None,
            user_id=owner_id,
            license_type=fields["license_type"],
            business_name=fields["business_name"],
            registration_number=fields["registration_number"],
            business_address=fields["business_address"],
            contact_person=fields["contact_person"],
            contact_email=fields["contact_email"],
            phone_number=fields["phone_number"],
            business_type=fields["business_type"],
            business_description=fields["business_description"],
            status=ApplicationStatus.PENDING,
            submitted_at=now or utcnow(),
        )

    def can_transition_to(self, new_status: ApplicationStatus) -> bool:
        return new_status in APPLICATION_TRANSITIONS[self.status]

    def transition_to(
        self,
        new_status: ApplicationStatus,
        reviewer_id: str,
        now: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> None:
        """
        Move the application through review.

        Raises:
            InvalidStatusTransition: If the move is not allowed from the current status
            ValueError: If rejecting without a reason
        """
        new_status = ApplicationStatus(new_status)
        if not self.can_transition_to(new_status):
            raise InvalidStatusTransition("application", self.status.value, new_status.value)

        if new_status == ApplicationStatus.REJECTED:
            if not reason or not reason.strip():
                raise ValueError("A rejection reason is required")
            self.rejection_reason = reason.strip()

        self.status = new_status
        self.reviewed_at = now or utcnow()
        self.reviewed_by = reviewer_id

    @property
    def review_fields(self) -> Dict[str, object]:
        return {
            "status": self.status.value,
            "reviewed_at": self.reviewed_at,
            "reviewed_by": self.reviewed_by,
            "rejection_reason": self.rejection_reason,
        }

    def __repr__(self) -> str:
        return (
            f"LicenseApplication(id={self.id}, owner={self.user_id}, "
            f"type={self.license_type!r}, status={self.status.value})"
        )


@dataclass
class License:
    """
    Issued license aggregate.

    Invariants:
    1. References exactly one application (application_id)
    2. expiry_date is after issue_date
    3. revoked is terminal
    """

    id: Optional[str]
    application_id: str
    user_id: str
    license_number: str
    license_type: str
    business_name: str
    issue_date: datetime
    expiry_date: datetime
    status: LicenseStatus = LicenseStatus.ACTIVE
    integrity_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.status = LicenseStatus(self.status)
        self.issue_date = as_utc(self.issue_date)
        self.expiry_date = as_utc(self.expiry_date)
        if self.expiry_date <= self.issue_date:
            raise ValueError("expiry_date must be after issue_date")

    def is_expired_at(self, now: datetime) -> bool:
        return as_utc(now) >= self.expiry_date

    def is_valid_at(self, now: datetime) -> bool:
        return self.status == LicenseStatus.ACTIVE and not self.is_expired_at(now)

    def change_status(self, new_status: LicenseStatus) -> None:
        new_status = LicenseStatus(new_status)
        if self.status == LicenseStatus.REVOKED and new_status != LicenseStatus.REVOKED:
            raise InvalidStatusTransition("license", self.status.value, new_status.value)
        self.status = new_status

    def __repr__(self) -> str:
        return f"License(number={self.license_number}, status={self.status.value})"


# Domain exceptions

class DomainError(Exception):
    """Base exception for domain layer errors"""
    pass


class AuthenticationRequired(DomainError):
    """Raised when an operation needs a session and there is none"""

    def __init__(self, message: str = "Please log in to continue."):
        super().__init__(message)


class InvalidCredentials(DomainError):
    """Raised when sign-in fails (unknown email, wrong password or inactive user)"""

    def __init__(self):
        super().__init__("Invalid email or password.")


class EmailAlreadyRegistered(DomainError):
    """Raised when signing up with an email that already has an identity"""

    def __init__(self, email: str):
        self.email = email
        super().__init__("An account with this email already exists.")


@dataclass
class FieldError:
    field: str
    message: str


class ValidationFailed(DomainError):
    """Raised when input violates field constraints (before reaching the store)"""

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        fields = ", ".join(e.field for e in errors)
        super().__init__(f"Validation failed for: {fields}")

    def by_field(self) -> Dict[str, List[str]]:
        result: Dict[str, List[str]] = {}
        for error in self.errors:
            result.setdefault(error.field, []).append(error.message)
        return result


class AccessDenied(DomainError):
    """Raised when the policy engine refuses an operation"""

    def __init__(self, table: str, operation: str, reason: str):
        self.table = table
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} on {table} denied: {reason}")


class StoreOperationFailed(DomainError):
    """Raised when the relational store rejects an operation; message is shown to the user"""
    pass


class DuplicateLicenseNumber(StoreOperationFailed):
    """Raised when a license number is already taken"""

    def __init__(self, license_number: str):
        self.license_number = license_number
        super().__init__(f"License number {license_number} already exists")


class LicenseAlreadyIssued(StoreOperationFailed):
    """Raised when an application already yielded a license"""

    def __init__(self, application_id: str):
        self.application_id = application_id
        super().__init__(f"Application {application_id} already has a license")


class InvalidStatusTransition(DomainError):
    """Raised when a status change is not allowed from the current status"""

    def __init__(self, subject: str, current: str, requested: str):
        self.subject = subject
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move {subject} from '{current}' to '{requested}'")


class NotFoundError(DomainError):
    """Base for missing (or invisible) rows"""
    pass


class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application_id: str):
        self.application_id = application_id
        super().__init__(f"Application {application_id} not found")


class LicenseNotFoundError(NotFoundError):
    def __init__(self, license_id: str):
        self.license_id = license_id
        super().__init__(f"License {license_id} not found")


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")
