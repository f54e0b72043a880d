"""Limit domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...config import MAX_OVERRIDE_TABLES, MAX_TABLES_PER_REQUEST
from ...shared.validators import validate_email, validate_uk_phone


class ContactDetails(BaseModel):
    """How a customer identified themselves on this request"""

    email: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        if v:
            return validate_email(v)
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_uk_phone(v)
        return v


class LimitValidationRequest(BaseModel):
    contact: ContactDetails
    bookingDate: date
    requestedTables: int = Field(1, ge=1, le=MAX_TABLES_PER_REQUEST)


class LimitValidationResponse(BaseModel):
    identified: bool
    platforms: list[str]
    allowed: bool
    remainingTables: int
    quota: int
    riskScore: int
    reason: Optional[str] = None


class OverrideRequest(BaseModel):
    contact: ContactDetails
    reason: str = Field(..., min_length=1, max_length=500)
    additionalTables: int = Field(..., ge=1, le=MAX_OVERRIDE_TABLES)
    authorizedBy: str = Field(..., min_length=1)
    bookingDate: Optional[date] = None

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Override reason is required")
        return v.strip()


class OverrideResponse(BaseModel):
    approved: bool
    modifiedLimit: int
    overrideId: int
