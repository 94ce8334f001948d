"""Order status state machine enforced by the order store."""

from tailorhub.common.errors import InvalidTransition

PENDING_PAYMENT = "PendingPayment"
PENDING = "Pending"
IN_PROGRESS = "InProgress"
COMPLETED = "Completed"
CANCELLED = "Cancelled"

ORDER_STATUSES = (PENDING_PAYMENT, PENDING, IN_PROGRESS, COMPLETED, CANCELLED)
INITIAL_STATUSES = frozenset({PENDING_PAYMENT, PENDING})
TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    PENDING_PAYMENT: {PENDING, CANCELLED},
    PENDING: {IN_PROGRESS, CANCELLED},
    IN_PROGRESS: {COMPLETED, CANCELLED},
    COMPLETED: set(),
    CANCELLED: set(),
}


def validate_transition(current: str, new: str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        detail = "terminal state" if current in TERMINAL_STATUSES else None
        raise InvalidTransition(current, new, detail)
