"""Domain errors raised by the slot and swap services.

The HTTP layer turns these into responses (see ``main.py``); services never
raise ``HTTPException`` themselves.
"""


class SlotSwapError(Exception):
    """Base class for every domain error"""

    status_code = 400
    code = "SlotSwapError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(SlotSwapError):
    status_code = 404
    code = "NotFound"


class Forbidden(SlotSwapError):
    """Caller does not own the slot, or is not the offer's target owner"""

    status_code = 403
    code = "Forbidden"


class InvalidTransition(SlotSwapError):
    """Owner asked for a status change the slot status machine does not allow"""

    status_code = 400
    code = "InvalidTransition"


class SlotLocked(InvalidTransition):
    """Direct edit or delete of a slot committed to an open offer"""

    status_code = 409
    code = "Locked"


class SlotUnavailable(SlotSwapError):
    """Lost the race to lock a slot. Retry after re-fetching the marketplace."""

    status_code = 409
    code = "SlotUnavailable"


class AlreadyResolved(SlotSwapError):
    """Offer is no longer open. Not retryable."""

    status_code = 409
    code = "AlreadyResolved"


class InvalidOffer(SlotSwapError):
    status_code = 400
    code = "InvalidOffer"


class InvalidTimeRange(SlotSwapError):
    status_code = 400
    code = "InvalidTimeRange"


class InconsistentState(SlotSwapError):
    """
    A stored invariant does not hold (e.g. an open offer whose slots are not locked).

    Signals corruption: log for operators, never show the message to end users.
    """

    status_code = 500
    code = "InconsistentState"
