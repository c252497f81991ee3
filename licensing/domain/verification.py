"""
License verification - pure function over a public license row.

``verify(number, now, row)`` is deterministic given the stored row and the
current time. It never sees private columns: the row it receives is the
public projection produced by the license repository.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from .entities import as_utc
from .value_objects import LicenseStatus

EXPIRED_DISPLAY_STATUS = "Expired"
MISSING_HASH_SENTINEL = "N/A"


@dataclass(frozen=True)
class LicenseDetails:
    """Public view of a matched license"""

    license_number: str
    license_type: str
    status: str
    business_name: str
    issue_date: datetime
    expiry_date: datetime
    integrity_hash: str


@dataclass(frozen=True)
class VerificationResult:
    """
    Outcome of a lookup.

    For a miss, ``details`` is None and only the queried number is echoed back,
    whatever the reason (blank, malformed, unknown).
    """

    is_valid: bool
    license_number: str
    details: Optional[LicenseDetails] = None

    @property
    def found(self) -> bool:
        return self.details is not None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "isValid": self.is_valid,
            "licenseNumber": self.license_number,
        }
        if self.details is not None:
            result.update({
                "licenseType": self.details.license_type,
                "status": self.details.status,
                "businessName": self.details.business_name,
                "issueDate": self.details.issue_date.isoformat(),
                "expiryDate": self.details.expiry_date.isoformat(),
                "integrityHash": self.details.integrity_hash,
            })
        return result


def not_verified(queried_number: str) -> VerificationResult:
    return VerificationResult(is_valid=False, license_number=queried_number)


def display_status(stored_status: str, expiry_date: datetime, now: datetime) -> str:
    """Stored status, unless the license has run past its expiry date"""
    if as_utc(now) >= as_utc(expiry_date):
        return EXPIRED_DISPLAY_STATUS
    return stored_status


def verify(
    queried_number: str,
    now: datetime,
    row: Optional[Mapping[str, Any]],
) -> VerificationResult:
    """
    Compute the verification result for a lookup.

    Args:
        queried_number: What the caller asked for (echoed back on a miss)
        now: Current time (timezone-aware or UTC-naive)
        row: Public license row, or None when nothing matched

    Returns:
        VerificationResult; valid iff status == active and now < expiry_date
    """
    if row is None:
        return not_verified(queried_number)

    expiry_date = as_utc(row["expiry_date"])
    stored_status = LicenseStatus(row["status"]).value
    is_valid = stored_status == LicenseStatus.ACTIVE.value and as_utc(now) < expiry_date

    details = LicenseDetails(
        license_number=row["license_number"],
        license_type=row["license_type"],
        status=display_status(stored_status, expiry_date, now),
        business_name=row["business_name"],
        issue_date=as_utc(row["issue_date"]),
        expiry_date=expiry_date,
        integrity_hash=row.get("integrity_hash") or MISSING_HASH_SENTINEL,
    )
    return VerificationResult(
        is_valid=is_valid,
        license_number=row["license_number"],
        details=details,
    )
