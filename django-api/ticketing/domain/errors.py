"""Domain error codes for the ticketing module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    INVALID_EVENT_ID = "INVALID_EVENT_ID"
    INVALID_CART = "INVALID_CART"
    SEAT_CONFLICT = "SEAT_CONFLICT"
    CHECKOUT_FAILED = "CHECKOUT_FAILED"
    SETTLEMENT_REJECTED = "SETTLEMENT_REJECTED"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class InvalidEventIdError(DomainError):
    """Raised when an event ID is invalid."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_EVENT_ID,
            message="Invalid event ID format",
        )


class InvalidCartError(DomainError):
    """Raised when the cart is empty or malformed."""

    def __init__(self, detail: str = "eventId and items are required") -> None:
        super().__init__(code=ErrorCode.INVALID_CART, message=detail)


class SeatConflictError(DomainError):
    """Raised when one or more seats are already held or sold."""

    def __init__(self, seat_ids: list[str]) -> None:
        super().__init__(
            code=ErrorCode.SEAT_CONFLICT,
            message="Some seats are no longer available",
        )
        self.seat_ids = list(seat_ids)


class CheckoutFailedError(DomainError):
    """Raised when checkout fails after the order was persisted.

    ``detail`` carries the underlying message for operators; ``message``
    stays safe to show to buyers.
    """

    def __init__(self, detail: str, order_id: str | None = None) -> None:
        super().__init__(
            code=ErrorCode.CHECKOUT_FAILED,
            message="Checkout could not be completed, please try again",
        )
        self.detail = detail
        self.order_id = order_id


class SettlementRejectedError(DomainError):
    """Raised when a payment webhook fails signature verification."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            code=ErrorCode.SETTLEMENT_REJECTED,
            message="Webhook signature verification failed",
        )
        self.detail = detail


class OrderNotFoundError(DomainError):
    def __init__(self, order_id: str) -> None:
        super().__init__(code=ErrorCode.ORDER_NOT_FOUND, message="Order not found")
        self.order_id = order_id


class TicketNotFoundError(DomainError):
    def __init__(self, ticket_id: str) -> None:
        super().__init__(code=ErrorCode.TICKET_NOT_FOUND, message="Ticket not found")
        self.ticket_id = ticket_id


class InvalidTransitionError(DomainError):
    """Raised when an order status change is not allowed by the state machine."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot move order from {current} to {target}",
        )
        self.current = current
        self.target = target
