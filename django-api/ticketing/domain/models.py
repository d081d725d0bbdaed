"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in ticketing/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ticketing.domain.status import HoldStatus, OrderStatus, TicketStatus
from ticketing.domain.value_objects import EventId, OrderId, PricingBreakdown


@dataclass(frozen=True)
class CatalogEvent:
    """Read-only view of a catalog event, as far as pricing is concerned.

    ``pricing`` holds major-unit prices and ``pricing_cents`` minor-unit
    prices, both keyed by lower-cased zone id.
    """

    id: EventId
    title: str
    pricing: dict[str, Decimal] = field(default_factory=dict)
    pricing_cents: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class CartItem:
    """One cart line: a set of seats at a table within a zone."""

    zone_id: str
    table_id: str | None
    seat_ids: tuple[str, ...]
    unit_price: Decimal | None = None

    @property
    def quantity(self) -> int:
        return len(self.seat_ids)


@dataclass(frozen=True)
class SeatAssignment:
    """A single seat requested in a checkout."""

    seat_id: str
    table_id: str | None
    zone_id: str


class HoldOutcome(str, Enum):
    CREATED = "created"
    CONFLICT = "conflict"
    ERROR = "error"


@dataclass(frozen=True)
class HoldResult:
    """Per-seat result of a hold batch insert."""

    seat: SeatAssignment
    outcome: HoldOutcome
    hold_id: UUID | None = None
    detail: str = ""


@dataclass(frozen=True)
class SeatHold:
    """Temporary or final claim on a seat."""

    id: UUID
    event_id: EventId
    table_id: str | None
    seat_id: str | None
    zone_id: str
    user_id: str
    order_id: OrderId | None
    status: HoldStatus
    expires_at: datetime | None
    created_at: datetime


@dataclass(frozen=True)
class StatusEntry:
    """One entry of an order's append-only status timeline."""

    status: OrderStatus
    at: datetime
    note: str = ""


@dataclass(frozen=True)
class Ticket:
    ticket_id: str
    order_id: OrderId
    seat_id: str
    table_id: str | None
    zone_id: str
    status: TicketStatus
    issued_at: datetime
    checked_in_at: datetime | None = None


@dataclass(frozen=True)
class Order:
    """Domain representation of a purchase attempt."""

    id: OrderId
    user_id: str
    event_id: EventId
    session_date: datetime | None
    items: tuple[CartItem, ...]
    totals: PricingBreakdown
    status: OrderStatus
    timeline: tuple[StatusEntry, ...]
    created_at: datetime
    expires_at: datetime | None = None
    paid_at: datetime | None = None
    canceled_at: datetime | None = None
    checkout_session_id: str | None = None
    payment_intent_id: str | None = None
    tickets: tuple[Ticket, ...] = ()

    @property
    def currency(self) -> str:
        return self.totals.currency

    def seat_assignments(self) -> list[SeatAssignment]:
        return [
            SeatAssignment(seat_id=seat_id, table_id=item.table_id, zone_id=item.zone_id)
            for item in self.items
            for seat_id in item.seat_ids
        ]


@dataclass(frozen=True)
class LineItem:
    """Line shown to the buyer on the payment provider's page."""

    name: str
    quantity: int
    unit_amount_cents: int
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentSession:
    """External payment session opened for an order."""

    id: str
    url: str | None


@dataclass(frozen=True)
class SettlementEvent:
    """Verified payment-provider lifecycle event."""

    type: str
    order_id: str | None
    payment_reference: str | None = None
    provider_event_id: str | None = None


@dataclass(frozen=True)
class PreflightResult:
    pricing: PricingBreakdown
    hold_group_id: str
    expires_at: datetime


@dataclass(frozen=True)
class CheckoutResult:
    order_id: OrderId
    checkout_url: str
