"""
Slot status machine

Slot statuses: free ↔ tradable (owner), tradable → locked → tradable/free (swap coordinator)

Owners toggle a slot between free and tradable as long as it is not locked.
Locked is reachable only through the swap coordinator, which locks both slots
of a new offer and releases them when the offer is resolved or withdrawn.
"""

import logging

from ...models import SlotStatus
from ...shared.errors import Forbidden, InconsistentState, InvalidTransition, SlotLocked

logger = logging.getLogger(__name__)

# Transitions an owner may request directly
OWNER_TRANSITIONS = {
    SlotStatus.FREE: [SlotStatus.TRADABLE],
    SlotStatus.TRADABLE: [SlotStatus.FREE],
    SlotStatus.LOCKED: [],  # Only the coordinator releases a lock
}

# Transitions performed by the swap coordinator
COORDINATOR_TRANSITIONS = {
    SlotStatus.FREE: [],
    SlotStatus.TRADABLE: [SlotStatus.LOCKED],  # offer created
    SlotStatus.LOCKED: [
        SlotStatus.TRADABLE,  # offer declined or withdrawn
        SlotStatus.FREE,  # offer accepted, ownership exchanged
    ],
}


def validate_owner_transition(current_status: str, new_status: str) -> None:
    """
    Check a status change requested by the slot's owner.

    Raises:
        InvalidTransition: unknown status, or a change the machine does not allow
        SlotLocked: the slot is currently locked by an open offer
        Forbidden: the owner asked for LOCKED directly
    """
    if new_status not in SlotStatus.ALL:
        raise InvalidTransition(f"Unknown slot status: {new_status}")

    if new_status == SlotStatus.LOCKED and current_status != SlotStatus.LOCKED:
        raise Forbidden("Slots can only be locked by creating a swap offer")

    if current_status == SlotStatus.LOCKED:
        raise SlotLocked("Slot is committed to an open swap offer and cannot be changed")

    # Allow same status (no-op)
    if current_status == new_status:
        return

    if new_status not in OWNER_TRANSITIONS.get(current_status, []):
        raise InvalidTransition(f"Cannot change slot status from {current_status} to {new_status}")


def validate_initial_status(status: str) -> None:
    """New slots start free or tradable; nobody creates a slot already locked"""
    if status == SlotStatus.LOCKED:
        raise Forbidden("Slots can only be locked by creating a swap offer")
    if status not in SlotStatus.ALL:
        raise InvalidTransition(f"Unknown slot status: {status}")


def can_coordinator_transition(current_status: str, new_status: str) -> bool:
    return new_status in COORDINATOR_TRANSITIONS.get(current_status, [])


def assert_coordinator_transition(slot_id: int, current_status: str, new_status: str) -> None:
    """Guard used by the coordinator before it writes; a failure means stored state is corrupt"""
    if not can_coordinator_transition(current_status, new_status):
        logger.critical(
            f"🚨 Slot {slot_id} cannot move {current_status} → {new_status} during a swap"
        )
        raise InconsistentState(
            f"Slot {slot_id} is {current_status}, expected a state that allows {new_status}"
        )


def is_editable(status: str) -> bool:
    """Plain CRUD edits (title, times, delete) are only allowed while not locked"""
    return status != SlotStatus.LOCKED
