"""Limit router - FastAPI endpoints for quota checks and staff overrides"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...config import MAX_OVERRIDE_TABLES, MAX_PARTY_SIZE, TIER_TABLE_QUOTAS
from ...database import get_db
from ...exceptions import NotFoundError
from .identity import ContactInfo
from .schemas import (
    LimitValidationRequest,
    LimitValidationResponse,
    OverrideRequest,
    OverrideResponse,
)
from .service import LimitService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/booking/limits", tags=["Booking Limits"])


def get_limit_service(db: Session = Depends(get_db)) -> LimitService:
    """Dependency injection for LimitService"""
    return LimitService(db)


@router.get("")
async def get_limit_information():
    """Published quota rules"""
    return {
        "tierQuotas": TIER_TABLE_QUOTAS,
        "maxPartySize": MAX_PARTY_SIZE,
        "maxOverrideTables": MAX_OVERRIDE_TABLES,
        "riskThresholds": {"low": 25, "medium": 50, "high": 75},
    }


@router.post("/validate", response_model=LimitValidationResponse)
async def validate_limits(
    data: LimitValidationRequest,
    service: LimitService = Depends(get_limit_service),
):
    """Check whether a customer may book more tables on a night"""
    contact = ContactInfo(**data.contact.model_dump())
    identity = service.identify_customer_across_platforms(contact)
    customer = service.find_customer(contact)

    if customer is None:
        # First-time customers start with an empty night
        quota = TIER_TABLE_QUOTAS["standard"]
        allowed = data.requestedTables <= quota
        return LimitValidationResponse(
            identified=False,
            platforms=[],
            allowed=allowed,
            remainingTables=quota,
            quota=quota,
            riskScore=0,
            reason=None if allowed else "Maximum tables reached",
        )

    result = service.validate_booking_limit(customer, data.bookingDate, data.requestedTables)
    return LimitValidationResponse(
        identified=identity["identified"],
        platforms=identity["platforms"],
        allowed=result["allowed"],
        remainingTables=result["remaining_tables"],
        quota=result["quota"],
        riskScore=service.calculate_risk_score(customer),
        reason=result.get("reason"),
    )


@router.post("/override", response_model=OverrideResponse)
async def override_limit(
    data: OverrideRequest,
    service: LimitService = Depends(get_limit_service),
):
    """Staff override raising a customer's quota for one booking"""
    customer = service.find_customer(ContactInfo(**data.contact.model_dump()))
    if customer is None:
        raise NotFoundError("Customer not found")

    result = service.admin_booking_override(
        customer,
        reason=data.reason,
        additional_tables=data.additionalTables,
        authorized_by=data.authorizedBy,
        booking_date=data.bookingDate,
    )
    return OverrideResponse(
        approved=result["approved"],
        modifiedLimit=result["modified_limit"],
        overrideId=result["override_id"],
    )
