"""Slot router - FastAPI endpoints for slot operations"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Slot, User
from .schemas import SlotCreate, SlotDeleteResponse, SlotResponse, SlotUpdate
from .service import SlotService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slots", tags=["Slots"])


def get_slot_service(db: Session = Depends(get_db)) -> SlotService:
    """Dependency injection for SlotService"""
    return SlotService(db)


def to_slot_response(slot: Slot) -> SlotResponse:
    return SlotResponse(
        id=slot.id,
        ownerId=slot.owner_id,
        title=slot.title,
        startTime=slot.start_time,
        endTime=slot.end_time,
        status=slot.status,
        created_at=slot.created_at,
        updated_at=slot.updated_at,
    )


@router.get("", response_model=list[SlotResponse])
def get_slots(
    current_user: User = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service),
):
    """Get all slots for the current user, earliest first"""
    return [to_slot_response(s) for s in service.get_slots(current_user)]


@router.post("", response_model=SlotResponse, status_code=201)
def create_slot(
    data: SlotCreate,
    current_user: User = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service),
):
    """Create a new slot (free unless created as tradable)"""
    slot = service.create_slot(data, current_user)
    return to_slot_response(slot)


@router.get("/{slot_id}", response_model=SlotResponse)
def get_slot(
    slot_id: int,
    current_user: User = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service),
):
    """Get one of the current user's slots"""
    return to_slot_response(service.get_slot(slot_id, current_user))


@router.patch("/{slot_id}", response_model=SlotResponse)
def update_slot(
    slot_id: int,
    data: SlotUpdate,
    current_user: User = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service),
):
    """Edit title, times or free/tradable status. Locked slots cannot be edited."""
    slot = service.update_slot(slot_id, data, current_user)
    return to_slot_response(slot)


@router.delete("/{slot_id}", response_model=SlotDeleteResponse)
def delete_slot(
    slot_id: int,
    force: bool = Query(False, description="Decline the slot's open swap offer before deleting"),
    current_user: User = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service),
):
    """Delete a slot; a locked slot needs force=true"""
    declined_offer_id = service.delete_slot(slot_id, current_user, force=force)
    return SlotDeleteResponse(message="Slot deleted successfully", declinedOfferId=declined_offer_id)
