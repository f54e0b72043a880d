"""Booking router - FastAPI endpoints for admission, confirmation and door check-in"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import (
    BookingConfirm,
    BookingCreate,
    BookingResponse,
    CheckInRequest,
    ConfirmationResponse,
    QrCheckInRequest,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])
door_router = APIRouter(prefix="/door-staff", tags=["Door Staff"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


# ============================================================================
# BOOKINGS
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    service: BookingService = Depends(get_booking_service),
):
    """Admit a booking: quota check, table assignment, reference"""
    booking = service.create_booking(data)
    return BookingResponse.from_booking(booking)


@router.get("/{reference}", response_model=BookingResponse)
async def get_booking(
    reference: str,
    service: BookingService = Depends(get_booking_service),
):
    return BookingResponse.from_booking(service.get_booking(reference))


@router.post("/{reference}/confirm", response_model=ConfirmationResponse)
async def confirm_booking(
    reference: str,
    data: BookingConfirm,
    service: BookingService = Depends(get_booking_service),
):
    """Confirm after the deposit is taken and issue the check-in code"""
    result = service.confirm_booking(reference, data.paymentReference)
    return ConfirmationResponse(
        booking=BookingResponse.from_booking(result["booking"]),
        checkInCode=result["check_in_code"],
        qrSignature=result["qr_signature"],
    )


@router.post("/{reference}/no-show", response_model=BookingResponse)
async def mark_no_show(
    reference: str,
    service: BookingService = Depends(get_booking_service),
):
    return BookingResponse.from_booking(service.mark_no_show(reference))


# ============================================================================
# DOOR STAFF
# ============================================================================


@door_router.post("/check-in", response_model=BookingResponse)
async def check_in(
    data: CheckInRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Scan or type a check-in code at the door"""
    return BookingResponse.from_booking(service.check_in(data.code, data.staffMember))


@door_router.get("/tonight", response_model=list[BookingResponse])
async def list_tonight(
    status: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """Tonight's bookings in arrival order"""
    return [BookingResponse.from_booking(b) for b in service.list_tonight(status)]


@door_router.post("/qr-verify", response_model=BookingResponse)
async def qr_check_in(
    data: QrCheckInRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Check in from a scanned QR code; rejects payloads that fail the signature check"""
    booking = service.check_in_by_qr(data.signed_payload(), data.signature, data.staffMember)
    return BookingResponse.from_booking(booking)


@door_router.get("/search", response_model=list[BookingResponse])
async def search_tonight(
    query: str = Query(..., min_length=1),
    service: BookingService = Depends(get_booking_service),
):
    return [BookingResponse.from_booking(b) for b in service.search_tonight(query)]
