"""Swap offer service - Read accessors polled by the notifications view"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import OfferStatus, SwapOffer, User
from ...shared.errors import NotFound
from .repository import SwapRepository

logger = logging.getLogger(__name__)

OFFER_DIRECTIONS = ("all", "incoming", "outgoing")


class SwapOfferService:
    """Service layer for reading swap offers"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SwapRepository()

    def get_offers(
        self, user: User, direction: str = "all", status: Optional[str] = None
    ) -> dict[str, list[SwapOffer]]:
        """
        Get offers where the user is the proposer (outgoing) and/or the target (incoming).

        Returns:
            dict with an ``incoming`` and/or ``outgoing`` list depending on ``direction``
        """
        if direction not in OFFER_DIRECTIONS:
            raise ValueError(f"direction must be one of {OFFER_DIRECTIONS}")
        if status is not None and status not in OfferStatus.ALL:
            raise ValueError(f"status must be one of {OfferStatus.ALL}")

        offers = {}
        if direction in ("all", "incoming"):
            offers["incoming"] = self.repo.get_incoming_offers(self.db, user.id, status)
        if direction in ("all", "outgoing"):
            offers["outgoing"] = self.repo.get_outgoing_offers(self.db, user.id, status)
        return offers

    def get_offer(self, offer_id: int, user: User) -> SwapOffer:
        """Get an offer the user takes part in; other users' offers look missing"""
        offer = self.repo.get_offer(self.db, offer_id)
        if not offer or user.id not in (offer.proposer_owner_id, offer.target_owner_id):
            raise NotFound("Swap offer not found")
        return offer
