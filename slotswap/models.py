from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class SlotStatus:
    """Tradability of a slot. Only the swap coordinator moves slots in or out of LOCKED."""

    FREE = "free"  # default, not up for trade
    TRADABLE = "tradable"  # listed on the marketplace, can receive offers
    LOCKED = "locked"  # committed to exactly one open offer

    ALL = (FREE, TRADABLE, LOCKED)


class OfferStatus:
    OPEN = "open"
    ACCEPTED = "accepted"
    DECLINED = "declined"

    ALL = (OPEN, ACCEPTED, DECLINED)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    slots = relationship("Slot", back_populates="owner")


class Slot(Base):
    __tablename__ = "slots"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_slots_time_range"),
        CheckConstraint(
            "status IN ('free', 'tradable', 'locked')", name="ck_slots_status"
        ),
        Index("ix_slots_owner_status", "owner_id", "status"),
        Index("ix_slots_status_start", "status", "start_time"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    # Status workflow: free ↔ tradable (owner), tradable → locked → tradable/free (coordinator)
    status = Column(String(20), default=SlotStatus.FREE, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="slots")


class SwapOffer(Base):
    """
    A proposal to exchange ownership of two slots.

    Offers are never deleted. Slot ids are plain columns rather than foreign keys
    so the audit trail survives a slot being withdrawn.
    """

    __tablename__ = "swap_offers"
    __table_args__ = (
        CheckConstraint("proposer_owner_id <> target_owner_id", name="ck_swap_offers_owners"),
        CheckConstraint("proposer_slot_id <> target_slot_id", name="ck_swap_offers_slots"),
        CheckConstraint("slot_low_id < slot_high_id", name="ck_swap_offers_pair_order"),
        CheckConstraint(
            "status IN ('open', 'accepted', 'declined')", name="ck_swap_offers_status"
        ),
        # At most one open offer per unordered pair of slots
        Index(
            "uq_swap_offers_open_pair",
            "slot_low_id",
            "slot_high_id",
            unique=True,
            sqlite_where=text("status = 'open'"),
            postgresql_where=text("status = 'open'"),
        ),
        Index("ix_swap_offers_proposer_status", "proposer_owner_id", "status"),
        Index("ix_swap_offers_target_status", "target_owner_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)

    proposer_slot_id = Column(Integer, nullable=False, index=True)
    proposer_owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    target_slot_id = Column(Integer, nullable=False, index=True)
    target_owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Unordered pair, normalised as (min, max)
    slot_low_id = Column(Integer, nullable=False)
    slot_high_id = Column(Integer, nullable=False)

    status = Column(String(20), default=OfferStatus.OPEN, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    resolved_at = Column(DateTime, nullable=True)

    proposer = relationship("User", foreign_keys=[proposer_owner_id])
    target_owner = relationship("User", foreign_keys=[target_owner_id])


def slot_pair(slot_a_id: int, slot_b_id: int) -> tuple[int, int]:
    """Normalise two slot ids into the (low, high) key used by the open-pair index"""
    return (slot_a_id, slot_b_id) if slot_a_id < slot_b_id else (slot_b_id, slot_a_id)
