"""Swap domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class SwapOfferCreate(BaseModel):
    """Schema for proposing a swap: offer one of your slots for someone else's"""

    proposerSlotId: int = Field(..., gt=0)
    targetSlotId: int = Field(..., gt=0)


class SwapOfferResolve(BaseModel):
    """Schema for the target owner's answer to an offer"""

    decision: Literal["accept", "decline"]


class SwapOfferResponse(BaseModel):
    """Schema for swap offer response"""

    id: int
    proposerSlotId: int
    proposerOwnerId: int
    targetSlotId: int
    targetOwnerId: int
    status: str
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SwapOfferTotals(BaseModel):
    incoming: Optional[int] = None
    outgoing: Optional[int] = None
    all: Optional[int] = None


class SwapOfferListResponse(BaseModel):
    """Offers involving the current user, split by direction"""

    incoming: Optional[list[SwapOfferResponse]] = None
    outgoing: Optional[list[SwapOfferResponse]] = None
    total: SwapOfferTotals
