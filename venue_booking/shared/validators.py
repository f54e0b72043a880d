"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Optional

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


def validate_uk_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a UK phone number to E.164 format.

    Accepts national (07700 900123) and international (+44 7700 900123)
    forms.

    Returns:
        Normalized phone number in E.164 format (+44XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    if digits.startswith("44"):
        digits = digits[2:]
    elif digits.startswith("0"):
        digits = digits[1:]

    # UK subscriber numbers are 10 digits once the trunk prefix is gone
    if len(digits) != 10:
        raise ValueError("Phone number must be a valid UK number")

    return f"+44{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    if not re.match(EMAIL_PATTERN, email):
        raise ValueError("Invalid email format")

    return email


def parse_booking_date(value) -> date:
    """Accept a date, datetime or YYYY-MM-DD string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and re.match(r"^\d{4}-\d{2}-\d{2}$", value):
        return date.fromisoformat(value)
    raise ValueError("Booking date must be in YYYY-MM-DD format")


def normalize_name(name: Optional[str]) -> str:
    """Lowercase, collapse whitespace - used for fuzzy identity matching"""
    if not name:
        return ""
    return re.sub(r"\s+", " ", name.strip().lower())
