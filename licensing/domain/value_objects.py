"""
Value Objects and enumerations for the licensing domain.

Value objects are immutable and self-validating. The string enums double as
the stored column values, so ``ApplicationStatus.PENDING == "pending"``.
"""

import enum
import re
from dataclasses import dataclass
from typing import Optional


class AppRole(str, enum.Enum):
    """Roles a user can hold (``app_role`` in the schema)"""
    ADMIN = "admin"
    USER = "user"


class ApplicationStatus(str, enum.Enum):
    """Lifecycle of a license application"""
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (ApplicationStatus.APPROVED, ApplicationStatus.REJECTED)


class LicenseStatus(str, enum.Enum):
    """Stored status of an issued license"""
    ACTIVE = "active"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    REVOKED = "revoked"


# Allowed review transitions. approved/rejected are terminal.
APPLICATION_TRANSITIONS = {
    ApplicationStatus.PENDING: frozenset({
        ApplicationStatus.IN_REVIEW,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
    }),
    ApplicationStatus.IN_REVIEW: frozenset({
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
    }),
    ApplicationStatus.APPROVED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
}

LICENSE_TYPES = (
    "Business License",
    "Trade License",
    "Professional License",
    "Food & Beverage License",
)

BUSINESS_TYPES = (
    "Retail",
    "Wholesale",
    "Service",
    "Manufacturing",
)


# Editable profile columns and their maximum lengths
PROFILE_FIELD_LIMITS = {
    "first_name": 100,
    "last_name": 100,
    "business_name": 200,
}


_LICENSE_NUMBER_RE = re.compile(r"^[A-Z]{2,10}-\d{4}-\d{5}$")


@dataclass(frozen=True)
class LicenseNumber:
    """
    Issued license number.

    Format: {PREFIX}-{YEAR}-{5 digits}
    Example: LIC-2024-12345

    Only numbers produced by issuance go through this type. Verification
    queries are untrusted free text and are never parsed into a
    LicenseNumber (see ``parse_lookup_number``).
    """

    value: str

    def __post_init__(self):
        if not _LICENSE_NUMBER_RE.match(self.value or ""):
            raise ValueError(
                f"Invalid LicenseNumber format: {self.value}. "
                f"Expected PREFIX-YYYY-NNNNN."
            )

    @classmethod
    def build(cls, prefix: str, year: int, serial: int) -> "LicenseNumber":
        return cls(f"{prefix}-{year:04d}-{serial:05d}")

    def __str__(self) -> str:
        return self.value


# Upper bound on what the lookup will send to the store
MAX_LOOKUP_LENGTH = 100


def parse_lookup_number(raw: Optional[str]) -> Optional[str]:
    """
    Accept an untrusted verification query.

    Returns the exact string to match, or None when the query cannot match
    anything (blank or over-long). Callers must answer both cases with the
    same "not verified" response.
    """
    if raw is None or not raw.strip():
        return None
    if len(raw) > MAX_LOOKUP_LENGTH:
        return None
    return raw


# Pragmatic address check (local@domain.tld), same rule for sign-up and intake
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value) is not None
