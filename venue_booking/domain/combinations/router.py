"""Combination router - FastAPI endpoints for large-party table combinations"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...config import COMBINATION_THRESHOLD
from ...database import get_db
from .schemas import CombinationCheckRequest, CombinationCheckResponse, CombinationPricing
from .service import CombinationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/booking/combinations", tags=["Table Combinations"])


def get_combination_service(db: Session = Depends(get_db)) -> CombinationService:
    """Dependency injection for CombinationService"""
    return CombinationService(db)


@router.get("")
async def list_combinations(service: CombinationService = Depends(get_combination_service)):
    """Configured combinations"""
    return {
        "combinations": [
            {
                "id": c.id,
                "name": c.name,
                "description": c.description,
                "tables": list(c.tables),
                "capacity": {"min": c.min_capacity, "max": c.max_capacity},
                "features": list(c.features),
                "setupTimeMinutes": c.setup_time_minutes,
                "combinationFee": c.combination_fee,
            }
            for c in service.combinations
        ],
        "threshold": COMBINATION_THRESHOLD,
        "totalAvailable": len(service.combinations),
    }


@router.get("/layout")
async def get_layout(
    booking_date: date = Query(..., alias="date"),
    service: CombinationService = Depends(get_combination_service),
):
    """Combination state for the floor plan"""
    return {"date": booking_date.isoformat(), "combinations": service.get_table_layout_state(booking_date)}


@router.post("/check", response_model=CombinationCheckResponse)
async def check_combination(
    data: CombinationCheckRequest,
    service: CombinationService = Depends(get_combination_service),
):
    """Whether a party should be seated on a combination, and whether one is free"""
    eligibility = service.check_combination_eligibility(data.partySize)
    if not eligibility["is_eligible"]:
        return CombinationCheckResponse(
            shouldCombine=False,
            notes=f"Party size of {data.partySize} doesn't require table combination. "
            "Individual tables recommended.",
        )

    availability = service.check_combined_tables_availability(data.bookingDate, data.partySize)
    if availability["available"]:
        costs = service.calculate_combination_costs(data.partySize)
        return CombinationCheckResponse(
            shouldCombine=True,
            combinationId=availability["combination_id"],
            tables=availability["tables"],
            totalCapacity=availability["total_capacity"],
            pricing=CombinationPricing(
                basePrice=costs["base_price"],
                combinationFee=costs["base_combination_fee"],
                totalPrice=costs["total_cost"],
            ),
            setupTimeMinutes=costs["setup_time"],
            notes=f"Combination available for {data.partySize} guests.",
        )

    partial = service.check_partial_combination_availability(data.bookingDate)
    return CombinationCheckResponse(
        shouldCombine=False,
        partiallyAvailable=partial["partially_available"],
        almostAvailableTables=partial["available_tables"],
        notes=f"No suitable table combinations available for {data.partySize} guests on "
        f"{data.bookingDate}. Consider alternative dates or individual table booking.",
    )
