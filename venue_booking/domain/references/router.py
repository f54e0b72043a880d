"""Reference router - format checks for booking references"""

from fastapi import APIRouter, Query

from .generator import ReferenceGenerator

router = APIRouter(prefix="/booking/references", tags=["Booking References"])


@router.get("/validate")
async def validate_reference(ref: str = Query(..., min_length=1)):
    """Whether a string is a well-formed booking reference. Format only, no lookup."""
    result = ReferenceGenerator().validate_booking_reference(ref)
    return {"reference": ref, **result}
