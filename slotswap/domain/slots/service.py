"""Slot service - Business logic for slot operations"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...database import begin_write_transaction
from ...models import Slot, User
from ...shared.errors import Forbidden, InvalidTimeRange, NotFound, SlotLocked
from ..swaps.coordinator import SwapCoordinator
from .repository import SlotRepository
from .schemas import SlotCreate, SlotUpdate
from .status import is_editable, validate_initial_status, validate_owner_transition

logger = logging.getLogger(__name__)


class SlotService:
    """Service layer for slot business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SlotRepository()

    def get_slots(self, user: User) -> list[Slot]:
        """Get all slots for a user"""
        return self.repo.get_slots(self.db, user.id)

    def get_slot(self, slot_id: int, user: User) -> Slot:
        """Get a slot the user owns"""
        slot = self.repo.get_slot_by_id(self.db, slot_id)
        if not slot:
            raise NotFound("Slot not found")
        if slot.owner_id != user.id:
            raise Forbidden("You can only manage your own slots")
        return slot

    def create_slot(self, data: SlotCreate, user: User) -> Slot:
        """Create a new slot"""
        validate_initial_status(data.status)
        begin_write_transaction(self.db)

        slot_data = {
            "title": data.title,
            "start_time": data.startTime,
            "end_time": data.endTime,
            "status": data.status,
        }
        slot = self.repo.create_slot(self.db, user.id, **slot_data)
        logger.info(f"📅 Slot {slot.id} created for user {user.id} ({slot.status})")
        return slot

    def update_slot(self, slot_id: int, data: SlotUpdate, user: User) -> Slot:
        """
        Update title, time range and/or status.

        Any edit of a locked slot fails with SlotLocked; status changes go through
        the slot status machine.
        """
        begin_write_transaction(self.db)
        slot = self.get_slot(slot_id, user)
        current_status = slot.status

        if data.status is not None:
            validate_owner_transition(current_status, data.status)
        elif not is_editable(current_status):
            raise SlotLocked("Slot is committed to an open swap offer and cannot be edited")

        updates = {}
        if data.title is not None:
            updates["title"] = data.title

        if data.startTime is not None or data.endTime is not None:
            new_start = data.startTime or slot.start_time
            new_end = data.endTime or slot.end_time
            if new_start >= new_end:
                raise InvalidTimeRange("Start time must be before end time")
            if data.startTime is not None:
                updates["start_time"] = new_start
            if data.endTime is not None:
                updates["end_time"] = new_end

        if data.status is not None and data.status != current_status:
            updates["status"] = data.status

        if not self.repo.update_slot(self.db, slot, current_status, **updates):
            logger.warning(f"⚠️ Slot {slot_id} changed status while user {user.id} was editing it")
            raise SlotLocked("Slot was committed to a swap offer while you were editing it")

        if "status" in updates:
            logger.info(f"🔄 Slot {slot.id} transitioned: {current_status} → {slot.status}")
        return slot

    def delete_slot(self, slot_id: int, user: User, force: bool = False) -> Optional[int]:
        """
        Delete a slot.

        A locked slot is only deleted with ``force``: its open offer is declined and
        the counterpart slot returned to tradable in the same transaction.

        Returns:
            The id of the offer declined on the way, if any.
        """
        begin_write_transaction(self.db)
        slot = self.get_slot(slot_id, user)

        if not is_editable(slot.status):
            if not force:
                raise SlotLocked(
                    "Slot is committed to an open swap offer; withdraw it with force=true"
                )
            offer = SwapCoordinator(self.db).withdraw_slot(slot.id, user.id)
            return offer.id

        if not self.repo.delete_slot(self.db, slot):
            raise SlotLocked("Slot was committed to a swap offer while you were deleting it")

        logger.info(f"🗑️ Slot {slot_id} deleted by user {user.id}")
        return None
