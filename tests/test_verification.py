"""
Tests for license verification (pure function) and lookup parsing.
"""
from datetime import datetime, timedelta, timezone

import pytest

from licensing.domain.value_objects import (
    MAX_LOOKUP_LENGTH,
    LicenseNumber,
    parse_lookup_number,
)
from licensing.domain.verification import (
    EXPIRED_DISPLAY_STATUS,
    MISSING_HASH_SENTINEL,
    display_status,
    verify,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_row(**overrides):
    row = {
        "license_number": "LIC-2024-12345",
        "license_type": "Trade License",
        "status": "active",
        "business_name": "Acme Hardware",
        "issue_date": NOW - timedelta(days=30),
        "expiry_date": NOW + timedelta(days=335),
        "integrity_hash": "ab" * 32,
    }
    row.update(overrides)
    return row


def test_unknown_number_returns_only_the_queried_number():
    result = verify("LIC-2024-12345", NOW, None)

    assert result.to_dict() == {"isValid": False, "licenseNumber": "LIC-2024-12345"}
    assert not result.found


def test_active_license_before_expiry_is_valid():
    result = verify("LIC-2024-12345", NOW, make_row())

    assert result.is_valid is True
    assert result.details.status == "active"


def test_active_license_past_expiry_is_invalid_and_shown_as_expired():
    result = verify("LIC-2024-12345", NOW, make_row(expiry_date=NOW - timedelta(days=1)))

    assert result.is_valid is False
    assert result.details.status == EXPIRED_DISPLAY_STATUS


def test_expiry_instant_itself_is_already_expired():
    result = verify("LIC-2024-12345", NOW, make_row(expiry_date=NOW))

    assert result.is_valid is False
    assert result.details.status == "Expired"


@pytest.mark.parametrize("status", ["suspended", "revoked", "expired"])
def test_non_active_status_is_invalid_regardless_of_expiry(status):
    result = verify("LIC-2024-12345", NOW, make_row(status=status))

    assert result.is_valid is False
    assert result.details.status == status


def test_missing_integrity_hash_uses_sentinel():
    result = verify("LIC-2024-12345", NOW, make_row(integrity_hash=None))

    assert result.details.integrity_hash == MISSING_HASH_SENTINEL


def test_naive_store_datetimes_are_treated_as_utc():
    naive_expiry = (NOW + timedelta(hours=1)).replace(tzinfo=None)

    result = verify("LIC-2024-12345", NOW, make_row(expiry_date=naive_expiry))

    assert result.is_valid is True
    assert result.details.expiry_date.tzinfo is not None


def test_found_result_exposes_public_view_only():
    payload = verify("LIC-2024-12345", NOW, make_row()).to_dict()

    assert set(payload) == {
        "isValid",
        "licenseNumber",
        "licenseType",
        "status",
        "businessName",
        "issueDate",
        "expiryDate",
        "integrityHash",
    }
    assert payload["expiryDate"] == (NOW + timedelta(days=335)).isoformat()


def test_display_status_keeps_stored_value_before_expiry():
    assert display_status("suspended", NOW + timedelta(days=1), NOW) == "suspended"
    assert display_status("suspended", NOW - timedelta(days=1), NOW) == "Expired"


# ============================================
# lookup parsing
# ============================================

@pytest.mark.parametrize("raw", [None, "", "   "])
def test_blank_lookup_is_rejected(raw):
    assert parse_lookup_number(raw) is None


def test_over_long_lookup_is_rejected():
    assert parse_lookup_number("L" * (MAX_LOOKUP_LENGTH + 1)) is None


def test_lookup_is_matched_exactly():
    # No trimming or case folding: what was typed is what gets matched
    assert parse_lookup_number(" lic-2024-12345") == " lic-2024-12345"


def test_license_number_format():
    assert LicenseNumber.build("LIC", 2024, 7).value == "LIC-2024-00007"

    with pytest.raises(ValueError):
        LicenseNumber("LIC-24-12345")
