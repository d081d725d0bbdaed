"""Status enums and the order state machine."""

from enum import Enum

from ticketing.domain.errors import InvalidTransitionError


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    CANCELED = "canceled"
    EXPIRED = "expired"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING_PAYMENT


class HoldStatus(str, Enum):
    ACTIVE = "active"
    ATTACHED_TO_ORDER = "attached_to_order"
    RELEASED = "released"
    SOLD = "sold"


class TicketStatus(str, Enum):
    ISSUED = "issued"
    CHECKED_IN = "checked_in"
    VOID = "void"


# Holds in these states still belong to their order and may be settled.
OPEN_HOLD_STATUSES = (HoldStatus.ACTIVE, HoldStatus.ATTACHED_TO_ORDER)

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING_PAYMENT: frozenset(
        {
            OrderStatus.PAID,
            OrderStatus.EXPIRED,
            OrderStatus.FAILED,
            OrderStatus.CANCELED,
        }
    ),
    OrderStatus.PAID: frozenset(),
    OrderStatus.CANCELED: frozenset(),
    OrderStatus.EXPIRED: frozenset(),
    OrderStatus.FAILED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[current]


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)
