"""Swap repository - Conditional writes and queries for swap offers

Every mutating method is a single conditional UPDATE whose row count tells the
caller whether the expected state still held. None of them commit: the swap
coordinator groups them into one transaction and commits or rolls back as a unit.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import OfferStatus, Slot, SlotStatus, SwapOffer, slot_pair


class SwapRepository:
    """Repository for swap offer database operations"""

    @staticmethod
    def get_offer(db: Session, offer_id: int) -> Optional[SwapOffer]:
        return db.query(SwapOffer).filter(SwapOffer.id == offer_id).first()

    @staticmethod
    def find_open_offer_for_pair(db: Session, slot_a_id: int, slot_b_id: int) -> Optional[SwapOffer]:
        """Find the open offer pairing two slots, in either direction"""
        low, high = slot_pair(slot_a_id, slot_b_id)
        return (
            db.query(SwapOffer)
            .filter(
                SwapOffer.slot_low_id == low,
                SwapOffer.slot_high_id == high,
                SwapOffer.status == OfferStatus.OPEN,
            )
            .first()
        )

    @staticmethod
    def find_open_offer_for_slot(db: Session, slot_id: int) -> Optional[SwapOffer]:
        return (
            db.query(SwapOffer)
            .filter(
                or_(SwapOffer.proposer_slot_id == slot_id, SwapOffer.target_slot_id == slot_id),
                SwapOffer.status == OfferStatus.OPEN,
            )
            .first()
        )

    @staticmethod
    def insert_offer(
        db: Session,
        proposer_slot_id: int,
        proposer_owner_id: int,
        target_slot_id: int,
        target_owner_id: int,
    ) -> SwapOffer:
        """Insert an open offer and flush so the open-pair unique index is checked now"""
        low, high = slot_pair(proposer_slot_id, target_slot_id)
        offer = SwapOffer(
            proposer_slot_id=proposer_slot_id,
            proposer_owner_id=proposer_owner_id,
            target_slot_id=target_slot_id,
            target_owner_id=target_owner_id,
            slot_low_id=low,
            slot_high_id=high,
            status=OfferStatus.OPEN,
        )
        db.add(offer)
        db.flush()
        return offer

    @staticmethod
    def close_offer(db: Session, offer_id: int, new_status: str) -> bool:
        """open → accepted/declined, only if the offer is still open"""
        updated = (
            db.query(SwapOffer)
            .filter(SwapOffer.id == offer_id, SwapOffer.status == OfferStatus.OPEN)
            .update(
                {"status": new_status, "resolved_at": datetime.utcnow()},
                synchronize_session=False,
            )
        )
        return updated == 1

    @staticmethod
    def lock_slot(db: Session, slot_id: int, owner_id: int) -> bool:
        """tradable → locked, only if the slot is still tradable and owned by ``owner_id``"""
        updated = (
            db.query(Slot)
            .filter(
                Slot.id == slot_id,
                Slot.owner_id == owner_id,
                Slot.status == SlotStatus.TRADABLE,
            )
            .update({"status": SlotStatus.LOCKED}, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def release_slot(db: Session, slot_id: int, owner_id: int, new_status: str) -> bool:
        """locked → ``new_status`` with ownership unchanged"""
        updated = (
            db.query(Slot)
            .filter(
                Slot.id == slot_id,
                Slot.owner_id == owner_id,
                Slot.status == SlotStatus.LOCKED,
            )
            .update({"status": new_status}, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def transfer_slot(db: Session, slot_id: int, from_owner_id: int, to_owner_id: int) -> bool:
        """locked → free while handing the slot from one owner to the other"""
        updated = (
            db.query(Slot)
            .filter(
                Slot.id == slot_id,
                Slot.owner_id == from_owner_id,
                Slot.status == SlotStatus.LOCKED,
            )
            .update(
                {"owner_id": to_owner_id, "status": SlotStatus.FREE},
                synchronize_session=False,
            )
        )
        return updated == 1

    @staticmethod
    def delete_locked_slot(db: Session, slot_id: int, owner_id: int) -> bool:
        deleted = (
            db.query(Slot)
            .filter(
                Slot.id == slot_id,
                Slot.owner_id == owner_id,
                Slot.status == SlotStatus.LOCKED,
            )
            .delete(synchronize_session=False)
        )
        return deleted == 1

    # Read accessors for notification polling
    @staticmethod
    def get_incoming_offers(db: Session, user_id: int, status: Optional[str] = None) -> list[SwapOffer]:
        """Offers where the user owns the target slot"""
        query = db.query(SwapOffer).filter(SwapOffer.target_owner_id == user_id)
        if status:
            query = query.filter(SwapOffer.status == status)
        return query.order_by(SwapOffer.created_at.desc(), SwapOffer.id.desc()).all()

    @staticmethod
    def get_outgoing_offers(db: Session, user_id: int, status: Optional[str] = None) -> list[SwapOffer]:
        """Offers the user proposed"""
        query = db.query(SwapOffer).filter(SwapOffer.proposer_owner_id == user_id)
        if status:
            query = query.filter(SwapOffer.status == status)
        return query.order_by(SwapOffer.created_at.desc(), SwapOffer.id.desc()).all()
