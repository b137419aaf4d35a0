"""Marketplace service - Read-only listing of slots up for trade"""

from sqlalchemy.orm import Session

from ...models import Slot, User
from ..slots.repository import SlotRepository


class MarketplaceService:
    """Produces no transitions; only reads slot state"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SlotRepository()

    def get_tradable_slots(self, user: User) -> list[Slot]:
        """Tradable slots of every other user, earliest first"""
        return self.repo.get_tradable_slots(self.db, exclude_owner_id=user.id)
