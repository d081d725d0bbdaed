from ticketing.domain.config import CheckoutConfig
from ticketing.domain.models import (
    CartItem,
    CatalogEvent,
    CheckoutResult,
    HoldOutcome,
    HoldResult,
    LineItem,
    Order,
    PaymentSession,
    PreflightResult,
    SeatAssignment,
    SeatHold,
    SettlementEvent,
    StatusEntry,
    Ticket,
)
from ticketing.domain.status import HoldStatus, OrderStatus, TicketStatus
from ticketing.domain.value_objects import EventId, OrderId, PricingBreakdown

__all__ = [
    "CheckoutConfig",
    "CartItem",
    "CatalogEvent",
    "CheckoutResult",
    "HoldOutcome",
    "HoldResult",
    "LineItem",
    "Order",
    "PaymentSession",
    "PreflightResult",
    "SeatAssignment",
    "SeatHold",
    "SettlementEvent",
    "StatusEntry",
    "Ticket",
    "HoldStatus",
    "OrderStatus",
    "TicketStatus",
    "EventId",
    "OrderId",
    "PricingBreakdown",
]
