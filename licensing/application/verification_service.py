"""
License Verification - public lookup by license number.

Anyone (signed in or not) can verify a license. The lookup always goes
through the public projection, so the result is the same redacted view
for anonymous callers, owners and admins.
"""

from datetime import datetime
from typing import Optional
import logging

from licensing.domain.entities import utcnow
from licensing.domain.unit_of_work import AbstractUnitOfWork
from licensing.domain.value_objects import parse_lookup_number
from licensing.domain.verification import VerificationResult, not_verified, verify

logger = logging.getLogger(__name__)


class VerificationService:

    async def verify(
        self,
        uow: AbstractUnitOfWork,
        license_number: Optional[str],
        now: Optional[datetime] = None,
    ) -> VerificationResult:
        """
        Look up a license number and compute its validity.

        Blank or over-long input gets the same answer as an unknown number.

        Raises:
            StoreOperationFailed: The lookup itself failed
        """
        queried = license_number or ""
        lookup = parse_lookup_number(license_number)
        if lookup is None:
            logger.info("Verification query rejected before lookup (blank or too long)")
            return not_verified(queried)

        row = await uow.licenses.find_public_by_number(lookup)
        result = verify(queried, now or utcnow(), row)

        logger.info(
            f"Verification for {queried[:20]!r}: "
            f"{'found' if result.found else 'not found'}, valid={result.is_valid}"
        )
        return result
