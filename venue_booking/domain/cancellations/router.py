"""Cancellation router - FastAPI endpoint for cancelling a booking"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ..bookings.schemas import (
    BookingResponse,
    CancellationResponse,
    CancelRequest,
    RefundSummary,
)
from .service import CancellationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Cancellations"])


def get_cancellation_service(db: Session = Depends(get_db)) -> CancellationService:
    """Dependency injection for CancellationService"""
    return CancellationService(db)


@router.post("/{reference}/cancel", response_model=CancellationResponse)
async def cancel_booking(
    reference: str,
    data: CancelRequest,
    service: CancellationService = Depends(get_cancellation_service),
):
    """Cancel a booking and refund whatever the schedule allows"""
    result = await service.cancel_booking(reference, data.reason, data.cancelledBy)
    refund = result["refund"]

    if refund["processed"]:
        message = f"Booking cancelled. £{refund['amount']} refunded to the original payment method."
    elif refund["eligible"] and refund["amount"] > 0:
        message = f"Booking cancelled. A refund of £{refund['amount']} will be processed shortly."
    else:
        message = "Booking cancelled. No refund is due for cancellations within 24 hours of the event."

    return CancellationResponse(
        booking=BookingResponse.from_booking(result["booking"]),
        cancellationRef=result["cancellation_ref"],
        refund=RefundSummary(
            eligible=refund["eligible"],
            amount=refund["amount"],
            processed=refund["processed"],
            refundId=refund["refund_id"],
        ),
        message=message,
    )
