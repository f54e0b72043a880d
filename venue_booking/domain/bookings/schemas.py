"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...config import MAX_OVERRIDE_TABLES, MAX_PARTY_SIZE, MAX_TABLES_PER_REQUEST
from ...shared.validators import validate_email, validate_uk_phone


class OverrideGrant(BaseModel):
    """Staff override attached to a single admission"""

    reason: str = Field(..., min_length=1, max_length=500)
    additionalTables: int = Field(..., ge=1, le=MAX_OVERRIDE_TABLES)
    authorizedBy: str = Field(..., min_length=1)


class BookingCreate(BaseModel):
    """Schema for a new table booking request"""

    customerName: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    bookingDate: date
    arrivalTime: time
    partySize: int = Field(..., ge=1, le=MAX_PARTY_SIZE)
    tableNumbers: Optional[list[int]] = Field(None, max_length=MAX_TABLES_PER_REQUEST)
    depositAmount: float = Field(0.0, ge=0)
    specialRequests: Optional[str] = Field(None, max_length=1000)
    override: Optional[OverrideGrant] = None

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

    @field_validator("tableNumbers")
    @classmethod
    def unique_tables(cls, v):
        if v is not None and len(set(v)) != len(v):
            raise ValueError("Table numbers must not repeat")
        return v or None

    @model_validator(mode="after")
    def require_contact(self):
        if not self.email and not self.phone:
            raise ValueError("An email address or phone number is required")
        return self


class BookingConfirm(BaseModel):
    paymentReference: Optional[str] = Field(None, max_length=255)


class CancelRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    cancelledBy: Optional[str] = None


class CheckInRequest(BaseModel):
    code: str = Field(..., min_length=6, max_length=6)
    staffMember: str = Field(..., min_length=1)


class QrCheckInRequest(BaseModel):
    """Fields decoded from the QR code, plus the signature issued at confirmation"""

    bookingRef: str = Field(..., min_length=1)
    checkInCode: str = Field(..., min_length=6, max_length=6)
    partySize: int
    bookingDate: date
    signature: str = Field(..., min_length=1)
    staffMember: str = Field(..., min_length=1)

    def signed_payload(self) -> dict:
        return {
            "bookingRef": self.bookingRef,
            "checkInCode": self.checkInCode,
            "partySize": self.partySize,
            "bookingDate": self.bookingDate.isoformat(),
        }


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: int
    reference: Optional[str]
    status: str
    bookingDate: date
    arrivalTime: time
    partySize: int
    tableNumbers: list[int]
    combinationId: Optional[str] = None
    depositAmount: float
    isVip: bool
    refundEligible: Optional[bool] = None
    refundAmount: Optional[float] = None
    checkedInAt: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            reference=booking.reference,
            status=booking.status,
            bookingDate=booking.booking_date,
            arrivalTime=booking.arrival_time,
            partySize=booking.party_size,
            tableNumbers=list(booking.table_numbers or []),
            combinationId=booking.combination_id,
            depositAmount=booking.deposit_amount,
            isVip=booking.is_vip,
            refundEligible=booking.refund_eligible,
            refundAmount=booking.refund_amount,
            checkedInAt=booking.checked_in_at,
            created_at=booking.created_at,
        )


class ConfirmationResponse(BaseModel):
    booking: BookingResponse
    checkInCode: str
    qrSignature: str


class RefundSummary(BaseModel):
    eligible: bool
    amount: float
    processed: bool
    refundId: Optional[str] = None


class CancellationResponse(BaseModel):
    booking: BookingResponse
    cancellationRef: str
    refund: RefundSummary
    message: str
