"""Combination domain schemas - Pydantic models for validation"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, Field

from ...config import MAX_PARTY_SIZE


class CombinationCheckRequest(BaseModel):
    partySize: int = Field(..., ge=1, le=MAX_PARTY_SIZE)
    bookingDate: date
    arrivalTime: Optional[time] = None


class CombinationPricing(BaseModel):
    basePrice: float
    combinationFee: float
    totalPrice: float


class CombinationCheckResponse(BaseModel):
    shouldCombine: bool
    combinationId: Optional[str] = None
    tables: list[int] = []
    totalCapacity: int = 0
    partiallyAvailable: bool = False
    almostAvailableTables: list[int] = []
    pricing: Optional[CombinationPricing] = None
    setupTimeMinutes: Optional[int] = None
    notes: str
