"""Slot repository - Database operations for slots"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Slot, SlotStatus


class SlotRepository:
    """Repository for slot database operations"""

    @staticmethod
    def get_slots(db: Session, owner_id: int) -> list[Slot]:
        """Get all slots for an owner"""
        return (
            db.query(Slot)
            .filter(Slot.owner_id == owner_id)
            .order_by(Slot.start_time.asc(), Slot.id.asc())
            .all()
        )

    @staticmethod
    def get_slot_by_id(db: Session, slot_id: int) -> Optional[Slot]:
        """Get a slot regardless of owner"""
        return db.query(Slot).filter(Slot.id == slot_id).first()

    @staticmethod
    def get_slots_by_ids(db: Session, slot_ids: list[int]) -> dict[int, Slot]:
        """Get several slots keyed by id; missing ids are simply absent"""
        if not slot_ids:
            return {}
        # Refresh rows already in the session; callers decide on the current status
        slots = db.query(Slot).filter(Slot.id.in_(slot_ids)).populate_existing().all()
        return {slot.id: slot for slot in slots}

    @staticmethod
    def create_slot(db: Session, owner_id: int, **slot_data) -> Slot:
        """Create a new slot"""
        slot = Slot(owner_id=owner_id, **slot_data)
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    @staticmethod
    def update_slot(db: Session, slot: Slot, expected_status: str, **updates) -> bool:
        """
        Apply owner edits only if the slot still has the status they were validated against.

        Returns False when a concurrent swap changed the status first.
        """
        if not updates:
            return True
        updated = (
            db.query(Slot)
            .filter(
                Slot.id == slot.id,
                Slot.owner_id == slot.owner_id,
                Slot.status == expected_status,
            )
            .update(updates, synchronize_session=False)
        )
        if updated != 1:
            db.rollback()
            return False
        db.commit()
        db.refresh(slot)
        return True

    @staticmethod
    def delete_slot(db: Session, slot: Slot) -> bool:
        """Delete an unlocked slot. Returns False if it was locked in the meantime."""
        deleted = (
            db.query(Slot)
            .filter(
                Slot.id == slot.id,
                Slot.owner_id == slot.owner_id,
                Slot.status != SlotStatus.LOCKED,
            )
            .delete(synchronize_session=False)
        )
        if deleted != 1:
            db.rollback()
            return False
        db.commit()
        return True

    # Marketplace Methods
    @staticmethod
    def get_tradable_slots(db: Session, exclude_owner_id: int) -> list[Slot]:
        """Get tradable slots owned by anyone except ``exclude_owner_id``"""
        return (
            db.query(Slot)
            .options(joinedload(Slot.owner))
            .filter(Slot.status == SlotStatus.TRADABLE, Slot.owner_id != exclude_owner_id)
            .order_by(Slot.start_time.asc(), Slot.id.asc())
            .all()
        )
