"""
Swap coordinator

Creates and resolves swap offers. Each operation writes one offer and two slots
as a single transaction made of conditional updates:

- create: lock both slots (tradable → locked), then insert the open offer
- decline: close the offer (open → declined), release both slots to tradable
- accept: close the offer (open → accepted), exchange owners, both slots free
- withdraw: close the offer (open → declined), release the counterpart slot,
  delete the withdrawn slot

Slot rows are always written in ascending id order. If any conditional update
matches no row, the whole transaction is rolled back before an error is raised,
so a partially applied swap is never committed. Each operation opens a write
transaction before its first read (BEGIN IMMEDIATE on SQLite). The coordinator
keeps no state of its own; all coordination happens in the database.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...database import begin_write_transaction
from ...models import OfferStatus, Slot, SlotStatus, SwapOffer
from ...shared.errors import (
    AlreadyResolved,
    Forbidden,
    InconsistentState,
    InvalidOffer,
    NotFound,
    SlotSwapError,
    SlotUnavailable,
)
from ..slots.repository import SlotRepository
from ..slots.status import assert_coordinator_transition
from .repository import SwapRepository

logger = logging.getLogger(__name__)

ACCEPT = "accept"
DECLINE = "decline"
RESOLUTION_DECISIONS = (ACCEPT, DECLINE)


class SwapCoordinator:
    """Owns the joint invariant across one swap offer and its two slots"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SwapRepository()
        self.slot_repo = SlotRepository()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_offer(
        self, proposer_slot_id: int, proposer_owner_id: int, target_slot_id: int
    ) -> tuple[SwapOffer, bool]:
        """
        Offer ``proposer_slot_id`` in exchange for ``target_slot_id``.

        Repeating the call while the offer for this pair is still open returns
        the existing offer instead of failing, so client retries are harmless.

        Returns:
            (offer, created) where ``created`` is False for an idempotent replay

        Raises:
            NotFound: either slot does not exist
            Forbidden: the proposer does not own ``proposer_slot_id``
            InvalidOffer: same slot twice, or the proposer already owns the target
            SlotUnavailable: a slot is not tradable, or another offer locked it first
        """
        if proposer_slot_id == target_slot_id:
            raise InvalidOffer("Cannot swap a slot with itself")

        try:
            begin_write_transaction(self.db)
            slots = self.slot_repo.get_slots_by_ids(self.db, [proposer_slot_id, target_slot_id])
            proposer_slot = slots.get(proposer_slot_id)
            target_slot = slots.get(target_slot_id)

            if not proposer_slot or not target_slot:
                raise NotFound("One or both slots not found")

            if proposer_slot.owner_id != proposer_owner_id:
                raise Forbidden("You can only offer your own slots for swap")

            if target_slot.owner_id == proposer_owner_id:
                raise InvalidOffer("Cannot create a swap offer for your own slot")

            existing = self.repo.find_open_offer_for_pair(self.db, proposer_slot_id, target_slot_id)
            if existing:
                logger.info(
                    f"🔁 Offer {existing.id} already open for slots {proposer_slot_id} ↔ {target_slot_id}, returning it"
                )
                return existing, False

            for slot in (proposer_slot, target_slot):
                if slot.status != SlotStatus.TRADABLE:
                    raise SlotUnavailable(f"Slot {slot.id} is not available for swapping")

            target_owner_id = target_slot.owner_id
            expected_owners = {
                proposer_slot_id: proposer_owner_id,
                target_slot_id: target_owner_id,
            }

            for slot_id in sorted(expected_owners):
                if not self.repo.lock_slot(self.db, slot_id, expected_owners[slot_id]):
                    return self._recover_lost_race(proposer_slot_id, target_slot_id)

            try:
                offer = self.repo.insert_offer(
                    self.db,
                    proposer_slot_id=proposer_slot_id,
                    proposer_owner_id=proposer_owner_id,
                    target_slot_id=target_slot_id,
                    target_owner_id=target_owner_id,
                )
            except IntegrityError:
                return self._recover_lost_race(proposer_slot_id, target_slot_id)

            self.db.commit()
            self.db.refresh(offer)

        except SlotSwapError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create swap offer {proposer_slot_id} → {target_slot_id}: {e}")
            raise

        logger.info(
            f"✅ Offer {offer.id} opened: user {proposer_owner_id} slot {proposer_slot_id} → "
            f"user {target_owner_id} slot {target_slot_id} (both locked)"
        )
        return offer, True

    def _recover_lost_race(self, proposer_slot_id: int, target_slot_id: int) -> tuple[SwapOffer, bool]:
        """
        A lock or the insert was rejected. Undo everything, then check whether the
        winner opened the very same pairing (a duplicate request) before giving up.
        """
        self.db.rollback()

        existing = self.repo.find_open_offer_for_pair(self.db, proposer_slot_id, target_slot_id)
        if existing:
            logger.info(
                f"🔁 Concurrent duplicate for slots {proposer_slot_id} ↔ {target_slot_id}, returning offer {existing.id}"
            )
            return existing, False

        logger.warning(
            f"⚠️ Lost the race to lock slots {proposer_slot_id} ↔ {target_slot_id}, rolled back"
        )
        raise SlotUnavailable("Slot was taken by another swap offer. Refresh the marketplace and try again")

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_offer(self, offer_id: int, resolving_owner_id: int, decision: str) -> SwapOffer:
        """
        Accept or decline an open offer. Only the target owner may resolve it.

        A second resolution of the same offer is rejected with AlreadyResolved,
        never absorbed, so two racing resolutions cannot both report success.

        Raises:
            NotFound: the offer does not exist
            Forbidden: the caller is not the target owner
            AlreadyResolved: the offer is no longer open
            InconsistentState: the offer is open but its slots are not locked as recorded
        """
        if decision not in RESOLUTION_DECISIONS:
            raise ValueError(f"decision must be one of {RESOLUTION_DECISIONS}, got {decision!r}")

        accept = decision == ACCEPT
        new_offer_status = OfferStatus.ACCEPTED if accept else OfferStatus.DECLINED
        new_slot_status = SlotStatus.FREE if accept else SlotStatus.TRADABLE

        try:
            begin_write_transaction(self.db)
            offer = self.repo.get_offer(self.db, offer_id)
            if not offer:
                raise NotFound("Swap offer not found")

            if offer.target_owner_id != resolving_owner_id:
                if offer.proposer_owner_id == resolving_owner_id:
                    raise Forbidden("You cannot resolve your own swap offer")
                raise Forbidden("You can only respond to swap offers for your own slots")

            if offer.status != OfferStatus.OPEN:
                raise AlreadyResolved(f"Swap offer was already {offer.status}")

            proposer_slot_id = offer.proposer_slot_id
            target_slot_id = offer.target_slot_id
            owners = {
                proposer_slot_id: offer.proposer_owner_id,
                target_slot_id: offer.target_owner_id,
            }

            # Closing the offer first serialises racing resolutions on the offer row
            if not self.repo.close_offer(self.db, offer_id, new_offer_status):
                logger.warning(f"⚠️ Offer {offer_id} was resolved by a concurrent request")
                raise AlreadyResolved("Swap offer was resolved by a concurrent request")

            slots = self.slot_repo.get_slots_by_ids(self.db, list(owners))
            for slot_id, owner_id in owners.items():
                self._check_locked(offer_id, slots.get(slot_id), slot_id, owner_id, new_slot_status)

            for slot_id in sorted(owners):
                if accept:
                    other_owner_id = owners[target_slot_id if slot_id == proposer_slot_id else proposer_slot_id]
                    written = self.repo.transfer_slot(self.db, slot_id, owners[slot_id], other_owner_id)
                else:
                    written = self.repo.release_slot(self.db, slot_id, owners[slot_id], SlotStatus.TRADABLE)
                if not written:
                    self._inconsistent(f"Slot {slot_id} changed while resolving offer {offer_id}")

            self.db.commit()
            self.db.refresh(offer)

        except SlotSwapError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to resolve swap offer {offer_id}: {e}")
            raise

        if accept:
            logger.info(
                f"✅ Offer {offer_id} accepted: slot {proposer_slot_id} → user {owners[target_slot_id]}, "
                f"slot {target_slot_id} → user {owners[proposer_slot_id]}"
            )
        else:
            logger.info(f"↩️ Offer {offer_id} declined: slots {proposer_slot_id}, {target_slot_id} tradable again")
        return offer

    # ------------------------------------------------------------------
    # Withdrawal (owner deletes a locked slot)
    # ------------------------------------------------------------------

    def withdraw_slot(self, slot_id: int, owner_id: int) -> SwapOffer:
        """
        Delete a locked slot after declining the open offer that holds it.

        The counterpart slot goes back to tradable; the declined offer stays as
        an audit record. Returns the declined offer.
        """
        try:
            begin_write_transaction(self.db)
            offer = self.repo.find_open_offer_for_slot(self.db, slot_id)
            if not offer:
                self._inconsistent(f"Slot {slot_id} is locked but no open offer references it")

            owners = {
                offer.proposer_slot_id: offer.proposer_owner_id,
                offer.target_slot_id: offer.target_owner_id,
            }
            if owners.get(slot_id) != owner_id:
                raise Forbidden("You can only withdraw your own slots")

            if not self.repo.close_offer(self.db, offer.id, OfferStatus.DECLINED):
                logger.warning(f"⚠️ Offer {offer.id} was resolved while slot {slot_id} was being withdrawn")
                raise AlreadyResolved("The slot's swap offer was just resolved. Refresh and try again")

            slots = self.slot_repo.get_slots_by_ids(self.db, list(owners))
            for sid, expected_owner in owners.items():
                self._check_locked(offer.id, slots.get(sid), sid, expected_owner, SlotStatus.TRADABLE)

            for sid in sorted(owners):
                if sid == slot_id:
                    written = self.repo.delete_locked_slot(self.db, sid, owners[sid])
                else:
                    written = self.repo.release_slot(self.db, sid, owners[sid], SlotStatus.TRADABLE)
                if not written:
                    self._inconsistent(f"Slot {sid} changed while withdrawing slot {slot_id}")

            self.db.commit()
            self.db.refresh(offer)

        except SlotSwapError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to withdraw slot {slot_id}: {e}")
            raise

        logger.info(f"🗑️ Slot {slot_id} withdrawn by user {owner_id}; offer {offer.id} declined")
        return offer

    # ------------------------------------------------------------------
    # Invariant checks
    # ------------------------------------------------------------------

    def _check_locked(
        self,
        offer_id: int,
        slot: Optional[Slot],
        slot_id: int,
        expected_owner_id: int,
        next_status: str,
    ) -> None:
        if slot is None:
            self._inconsistent(f"Open offer {offer_id} references missing slot {slot_id}")
        if slot.owner_id != expected_owner_id:
            self._inconsistent(
                f"Open offer {offer_id} expects slot {slot_id} owned by {expected_owner_id}, found {slot.owner_id}"
            )
        assert_coordinator_transition(slot_id, slot.status, next_status)

    @staticmethod
    def _inconsistent(message: str) -> None:
        logger.critical(f"🚨 Inconsistent swap state: {message}")
        raise InconsistentState(message)
