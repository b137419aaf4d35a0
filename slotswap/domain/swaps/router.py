"""Swap router - FastAPI endpoints for swap offers"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import SwapOffer, User
from .coordinator import SwapCoordinator
from .schemas import (
    SwapOfferCreate,
    SwapOfferListResponse,
    SwapOfferResolve,
    SwapOfferResponse,
    SwapOfferTotals,
)
from .service import SwapOfferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/swaps", tags=["Swaps"])


def get_swap_coordinator(db: Session = Depends(get_db)) -> SwapCoordinator:
    """Dependency injection for SwapCoordinator"""
    return SwapCoordinator(db)


def get_swap_offer_service(db: Session = Depends(get_db)) -> SwapOfferService:
    """Dependency injection for SwapOfferService"""
    return SwapOfferService(db)


def to_offer_response(offer: SwapOffer) -> SwapOfferResponse:
    return SwapOfferResponse(
        id=offer.id,
        proposerSlotId=offer.proposer_slot_id,
        proposerOwnerId=offer.proposer_owner_id,
        targetSlotId=offer.target_slot_id,
        targetOwnerId=offer.target_owner_id,
        status=offer.status,
        created_at=offer.created_at,
        resolved_at=offer.resolved_at,
    )


@router.post("/offers", response_model=SwapOfferResponse, status_code=201)
def create_offer(
    data: SwapOfferCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    coordinator: SwapCoordinator = Depends(get_swap_coordinator),
):
    """
    Offer one of your tradable slots for another user's tradable slot.
    Both slots are locked until the target owner responds.
    Repeating the request returns the already open offer with status 200.
    """
    offer, created = coordinator.create_offer(data.proposerSlotId, current_user.id, data.targetSlotId)
    if not created:
        response.status_code = 200
    return to_offer_response(offer)


@router.get("/offers", response_model=SwapOfferListResponse, response_model_exclude_none=True)
def get_offers(
    direction: Literal["all", "incoming", "outgoing"] = Query("all"),
    status: Optional[Literal["open", "accepted", "declined"]] = Query(None),
    current_user: User = Depends(get_current_user),
    service: SwapOfferService = Depends(get_swap_offer_service),
):
    """Get incoming and/or outgoing offers for the current user, newest first"""
    offers = service.get_offers(current_user, direction, status)

    incoming = offers.get("incoming")
    outgoing = offers.get("outgoing")
    totals = SwapOfferTotals(
        incoming=len(incoming) if incoming is not None else None,
        outgoing=len(outgoing) if outgoing is not None else None,
    )
    if direction == "all":
        totals.all = totals.incoming + totals.outgoing

    return SwapOfferListResponse(
        incoming=[to_offer_response(o) for o in incoming] if incoming is not None else None,
        outgoing=[to_offer_response(o) for o in outgoing] if outgoing is not None else None,
        total=totals,
    )


@router.get("/offers/{offer_id}", response_model=SwapOfferResponse)
def get_offer(
    offer_id: int,
    current_user: User = Depends(get_current_user),
    service: SwapOfferService = Depends(get_swap_offer_service),
):
    """Get an offer the current user proposed or received"""
    return to_offer_response(service.get_offer(offer_id, current_user))


@router.post("/offers/{offer_id}/resolve", response_model=SwapOfferResponse)
def resolve_offer(
    offer_id: int,
    data: SwapOfferResolve,
    current_user: User = Depends(get_current_user),
    coordinator: SwapCoordinator = Depends(get_swap_coordinator),
):
    """Accept or decline an offer made for one of your slots"""
    offer = coordinator.resolve_offer(offer_id, current_user.id, data.decision)
    return to_offer_response(offer)
