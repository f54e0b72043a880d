"""
Booking reference and check-in code generation.

References look like BRL-2025-12345. Standard bookings draw the numeric
suffix from 10000-79999, VIP bookings from 80000-99999. The generator only
proposes candidates; the unique indexes on bookings.reference and
check_in_codes.code are what make them unique, so callers retry on a
write-time violation.
"""

import hashlib
import hmac
import json
import logging
import re
import secrets
from datetime import datetime, timezone
from typing import Callable, Optional

from ...config import (
    CHECKIN_CODE_ALPHABET,
    CHECKIN_CODE_LENGTH,
    CHECKIN_SIGNING_SECRET,
    REFERENCE_MAX_ATTEMPTS,
    REFERENCE_MIN_YEAR,
    REFERENCE_PREFIX,
)
from ...exceptions import GenerationExhausted

logger = logging.getLogger(__name__)

STANDARD_RANGE = (10000, 79999)
VIP_RANGE = (80000, 99999)

REFERENCE_PATTERN = re.compile(rf"^{REFERENCE_PREFIX}-(\d{{4}})-(\d{{5}})$")
CHECKIN_CODE_PATTERN = re.compile(rf"^[{CHECKIN_CODE_ALPHABET}]{{{CHECKIN_CODE_LENGTH}}}$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReferenceGenerator:
    """Draws candidate references and codes, checking them against persisted state"""

    def __init__(
        self,
        rng=None,
        reference_exists: Optional[Callable[[str], bool]] = None,
        code_exists: Optional[Callable[[str], bool]] = None,
        issued_count: Optional[Callable[[int, int, int], int]] = None,
        clock: Callable[[], datetime] = _utcnow,
        max_attempts: int = REFERENCE_MAX_ATTEMPTS,
    ):
        self.rng = rng or secrets.SystemRandom()
        self.reference_exists = reference_exists or (lambda _ref: False)
        self.code_exists = code_exists or (lambda _code: False)
        # (year, low, high) -> references already issued in that sub-range
        self.issued_count = issued_count
        self.clock = clock
        self.max_attempts = max_attempts

    def generate_booking_reference(self) -> str:
        return self._generate_reference(*STANDARD_RANGE)

    def generate_vip_booking_reference(self) -> str:
        return self._generate_reference(*VIP_RANGE)

    def _generate_reference(self, low: int, high: int) -> str:
        year = self.clock().year

        if self.issued_count is not None:
            issued = self.issued_count(year, low, high)
            if issued >= high - low + 1:
                logger.error(
                    f"🚨 Reference range {low}-{high} for {year} is saturated ({issued} issued)"
                )
                raise GenerationExhausted(
                    f"Booking reference range {low}-{high} for {year} is exhausted"
                )

        for attempt in range(1, self.max_attempts + 1):
            number = self.rng.randint(low, high)
            reference = f"{REFERENCE_PREFIX}-{year}-{number:05d}"
            if not self.reference_exists(reference):
                if attempt > 1:
                    logger.info(f"Generated reference {reference} after {attempt} attempts")
                return reference

        logger.error(
            f"🚨 Could not generate a unique booking reference in {self.max_attempts} attempts"
        )
        raise GenerationExhausted("Failed to generate unique booking reference")

    def generate_check_in_code(self) -> str:
        for _ in range(self.max_attempts):
            code = "".join(
                self.rng.choice(CHECKIN_CODE_ALPHABET) for _ in range(CHECKIN_CODE_LENGTH)
            )
            if not self.code_exists(code):
                return code

        logger.error(f"🚨 Could not generate a unique check-in code in {self.max_attempts} attempts")
        raise GenerationExhausted("Failed to generate unique check-in code")

    def validate_booking_reference(self, reference: Optional[str]) -> dict:
        """Format and year check only - no database round trip"""
        if not reference:
            return {"valid": False, "reason": "Booking reference is required"}

        match = REFERENCE_PATTERN.match(reference.strip().upper())
        if not match:
            return {"valid": False, "reason": "Invalid booking reference format"}

        year = int(match.group(1))
        number = int(match.group(2))
        max_year = self.clock().year + 1
        if year < REFERENCE_MIN_YEAR or year > max_year:
            return {"valid": False, "reason": f"Reference year {year} out of range"}
        if number < STANDARD_RANGE[0]:
            return {"valid": False, "reason": "Reference number out of range"}

        return {"valid": True, "is_vip": number >= VIP_RANGE[0]}


def is_valid_check_in_code(code: Optional[str]) -> bool:
    return bool(code) and bool(CHECKIN_CODE_PATTERN.match(code.upper()))


def sign_check_in_payload(payload: dict, secret: str = CHECKIN_SIGNING_SECRET) -> str:
    """Short HMAC-SHA256 signature embedded in the QR code handed to door staff"""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    digest = hmac.new(secret.encode("utf-8"), canonical.encode("utf-8"), hashlib.sha256)
    # Truncated to keep the QR code small
    return digest.hexdigest()[:16]


def verify_check_in_signature(
    payload: dict, signature: str, secret: str = CHECKIN_SIGNING_SECRET
) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(sign_check_in_payload(payload, secret), signature)
