"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime, timedelta

from ticketing.domain import (
    CartItem,
    CatalogEvent,
    EventId,
    HoldResult,
    Order,
    OrderId,
    OrderStatus,
    PricingBreakdown,
    SeatAssignment,
    SeatHold,
    Ticket,
)


class EventCatalog(ABC):
    """Read-only pricing and metadata source keyed by event id."""

    @abstractmethod
    def get_event(self, event_id: EventId) -> CatalogEvent | None:
        """Return an event by ID, or None if not found."""
        ...


class SeatHoldStore(ABC):
    """Interface for seat hold persistence operations."""

    @abstractmethod
    def create_holds(
        self,
        event_id: EventId,
        order_id: OrderId,
        user_id: str,
        seats: Sequence[SeatAssignment],
        ttl: timedelta,
    ) -> list[HoldResult]:
        """Insert one active hold per seat.

        Every seat is attempted even if a sibling fails; the result list has
        one entry per seat, in input order.
        """
        ...

    @abstractmethod
    def mark_sold(self, order_id: OrderId) -> int:
        """Move the order's open holds to sold and clear their expiry."""
        ...

    @abstractmethod
    def release(self, order_id: OrderId) -> int:
        """Move the order's open holds to released. Sold holds are untouched."""
        ...

    @abstractmethod
    def list_blocked_seats(self, event_id: EventId) -> list[tuple[str | None, str]]:
        """Return (table_id, seat_id) pairs that are sold or actively held."""
        ...

    @abstractmethod
    def find_conflicts(self, event_id: EventId, seat_ids: Sequence[str]) -> list[str]:
        """Return the subset of seat_ids currently sold or actively held."""
        ...

    @abstractmethod
    def holds_for_order(self, order_id: OrderId) -> list[SeatHold]:
        """Return all holds referencing the order."""
        ...

    @abstractmethod
    def reap_expired(self, now: datetime) -> int:
        """Release active holds whose expiry has passed."""
        ...


class OrderStore(ABC):
    """Interface for order persistence operations."""

    @abstractmethod
    def create(
        self,
        user_id: str,
        event_id: EventId,
        items: Sequence[CartItem],
        pricing: PricingBreakdown,
        session_date: datetime | None,
        expires_at: datetime,
    ) -> Order:
        """Persist a pending_payment order with its first timeline entry."""
        ...

    @abstractmethod
    def get(self, order_id: OrderId) -> Order | None:
        ...

    @abstractmethod
    def attach_payment_session(self, order_id: OrderId, session_id: str) -> None:
        ...

    @abstractmethod
    def apply_status(
        self,
        order_id: OrderId,
        new_status: OrderStatus,
        note: str = "",
        payment_reference: str | None = None,
    ) -> bool:
        """Move a pending order to new_status.

        Returns False without writing anything when the order is missing or
        no longer pending.
        """
        ...

    @abstractmethod
    def issue_tickets(self, order_id: OrderId, holds: Sequence[SeatHold]) -> list[Ticket]:
        """Create one ticket per held seat, skipping seats already ticketed."""
        ...

    @abstractmethod
    def get_ticket(self, ticket_id: str) -> Ticket | None:
        ...

    @abstractmethod
    def stale_pending_orders(self, now: datetime) -> list[OrderId]:
        """Return pending orders whose expiry has passed."""
        ...
