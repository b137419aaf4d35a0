"""Marketplace router - browse slots other users are willing to trade"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .service import MarketplaceService

router = APIRouter(prefix="/marketplace", tags=["Marketplace"])


class MarketplaceSlotResponse(BaseModel):
    id: int
    ownerId: int
    ownerName: Optional[str] = None
    title: str
    startTime: datetime
    endTime: datetime
    status: str


def get_marketplace_service(db: Session = Depends(get_db)) -> MarketplaceService:
    """Dependency injection for MarketplaceService"""
    return MarketplaceService(db)


@router.get("/slots", response_model=list[MarketplaceSlotResponse])
def get_tradable_slots(
    current_user: User = Depends(get_current_user),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    """Get tradable slots from other users (the caller's own slots are excluded)"""
    return [
        MarketplaceSlotResponse(
            id=s.id,
            ownerId=s.owner_id,
            ownerName=s.owner.name if s.owner else None,
            title=s.title,
            startTime=s.start_time,
            endTime=s.end_time,
            status=s.status,
        )
        for s in service.get_tradable_slots(current_user)
    ]
