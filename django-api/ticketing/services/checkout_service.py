"""Checkout service - preflight quotes, checkout and seat availability.

Services:
- Depend only on interfaces (stores, gateways)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import logging
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime

from django.utils import timezone

from ticketing.domain import (
    CartItem,
    CatalogEvent,
    CheckoutResult,
    EventId,
    HoldOutcome,
    LineItem,
    PreflightResult,
    PricingBreakdown,
    SeatAssignment,
)
from ticketing.domain.errors import (
    CheckoutFailedError,
    EventNotFoundError,
    InvalidCartError,
    InvalidEventIdError,
    SeatConflictError,
)
from ticketing.gateways.interfaces import PaymentGateway, PaymentProviderError
from ticketing.services.pricing import PricingEngine
from ticketing.stores.interfaces import EventCatalog, OrderStore, SeatHoldStore

logger = logging.getLogger(__name__)


class CheckoutService:
    """Service for the two-phase checkout flow."""

    def __init__(
        self,
        catalog: EventCatalog,
        orders: OrderStore,
        holds: SeatHoldStore,
        gateway: PaymentGateway,
        pricing: PricingEngine,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._catalog = catalog
        self._orders = orders
        self._holds = holds
        self._gateway = gateway
        self._pricing = pricing
        self._config = pricing.config
        self._clock = clock

    def preflight(self, event_id: str, items: Sequence[CartItem]) -> PreflightResult:
        """Quote a cart without reserving anything.

        Raises:
            InvalidCartError: If the cart is empty or malformed.
            InvalidEventIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
        """
        validate_cart(items)
        event = self._load_event(event_id)
        return PreflightResult(
            pricing=self._pricing.quote(event, items),
            hold_group_id=f"hg_{uuid.uuid4().hex[:16]}",
            expires_at=self._clock() + self._config.hold_ttl,
        )

    def checkout(
        self,
        user_id: str,
        event_id: str,
        items: Sequence[CartItem],
        session_date: datetime | None = None,
        confirmed_pricing: PricingBreakdown | None = None,
    ) -> CheckoutResult:
        """Create a pending order, open a payment session and hold the seats.

        ``confirmed_pricing`` is the quote the client got from preflight. Prices
        are always recomputed here and a stale quote is only logged.

        Raises:
            InvalidCartError: If the cart is empty or malformed.
            InvalidEventIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
            SeatConflictError: If a seat is already held or sold.
            CheckoutFailedError: If anything fails once the order exists.
        """
        validate_cart(items)
        event = self._load_event(event_id)

        pricing = self._pricing.quote(event, items)
        if confirmed_pricing is not None and confirmed_pricing != pricing:
            logger.warning(
                "Client quote %s for event %s differs from current pricing %s; using current",
                confirmed_pricing.as_totals(), event.id, pricing.as_totals(),
            )

        seats = [
            SeatAssignment(seat_id=seat_id, table_id=item.table_id, zone_id=item.zone_id)
            for item in items
            for seat_id in item.seat_ids
        ]
        taken = self._holds.find_conflicts(event.id, [seat.seat_id for seat in seats])
        if taken:
            raise SeatConflictError(taken)

        now = self._clock()
        order = None
        try:
            order = self._orders.create(
                user_id=user_id,
                event_id=event.id,
                items=items,
                pricing=pricing,
                session_date=session_date,
                expires_at=now + self._config.order_ttl,
            )
            logger.info(
                "Created order %s for event %s (%s seats, total %s)",
                order.id, event.id, len(seats), pricing.total_cents,
            )
            base = self._config.public_url
            session = self._gateway.create_checkout_session(
                line_items=self.build_line_items(event, items, pricing),
                currency=pricing.currency,
                metadata={"orderId": str(order.id), "eventId": str(event.id)},
                success_url=f"{base}/checkout/success?orderId={order.id}",
                cancel_url=f"{base}/checkout/cancel?order={order.id}",
            )
            self._orders.attach_payment_session(order.id, session.id)
            results = self._holds.create_holds(
                event.id, order.id, user_id, seats, self._config.hold_ttl
            )
        except Exception as exc:
            order_ref = str(order.id) if order else None
            logger.exception("Checkout failed for event %s (order %s)", event.id, order_ref)
            raise CheckoutFailedError(str(exc), order_id=order_ref) from exc

        for result in results:
            if result.outcome is HoldOutcome.ERROR:
                logger.error(
                    "Could not hold seat %s for order %s: %s",
                    result.seat.seat_id, order.id, result.detail,
                )
        lost = [r.seat.seat_id for r in results if r.outcome is HoldOutcome.CONFLICT]
        if lost:
            # Another buyer won the race. The order is left pending; expiring
            # the session settles it as expired through the webhook.
            logger.warning("Order %s lost seats %s to another checkout", order.id, lost)
            self._abandon_session(session.id, str(order.id))
            raise SeatConflictError(lost)

        return CheckoutResult(order_id=order.id, checkout_url=session.url or str(order.id))

    def list_blocked_seats(self, event_id: str) -> list[tuple[str | None, str]]:
        """Return (table_id, seat_id) pairs unavailable for the event.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
        """
        event = self._load_event(event_id)
        return self._holds.list_blocked_seats(event.id)

    def build_line_items(
        self,
        event: CatalogEvent,
        items: Sequence[CartItem],
        pricing: PricingBreakdown,
    ) -> list[LineItem]:
        """Group seats by zone and price into provider line items."""
        groups: dict[tuple[str, int], dict] = {}
        for item in items:
            if not item.quantity:
                continue
            zone = item.zone_id.upper()
            price = self._pricing.unit_price_cents(event, item)
            group = groups.setdefault((zone, price), {"quantity": 0, "tables": []})
            group["quantity"] += item.quantity
            if item.table_id and item.table_id not in group["tables"]:
                group["tables"].append(item.table_id)

        line_items = []
        for (zone, price), group in groups.items():
            tables = ", ".join(group["tables"])
            name = f"Tickets • {zone} ({tables})" if tables else f"Tickets • {zone}"
            line_items.append(
                LineItem(
                    name=name,
                    quantity=group["quantity"],
                    unit_amount_cents=price,
                    metadata={"eventId": str(event.id), "zoneId": zone},
                )
            )
        if pricing.fees_cents > 0:
            line_items.append(
                LineItem(
                    name=f"Service fee ({pricing.service_fee_pct}%)",
                    quantity=1,
                    unit_amount_cents=pricing.fees_cents,
                    metadata={"kind": "service_fee", "eventId": str(event.id)},
                )
            )
        return line_items

    def _load_event(self, event_id: str) -> CatalogEvent:
        try:
            parsed = EventId.from_string(event_id)
        except (TypeError, ValueError):
            raise InvalidEventIdError()
        event = self._catalog.get_event(parsed)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def _abandon_session(self, session_id: str, order_id: str) -> None:
        try:
            self._gateway.expire_checkout_session(session_id)
        except PaymentProviderError:
            logger.warning(
                "Could not expire session %s for order %s; the order sweep will expire it",
                session_id, order_id, exc_info=True,
            )


def validate_cart(items: Sequence[CartItem]) -> None:
    """Raise InvalidCartError unless the cart names at least one distinct seat."""
    if not items:
        raise InvalidCartError()
    seen = set()
    for item in items:
        if not item.zone_id:
            raise InvalidCartError("Every item needs a zoneId")
        for seat_id in item.seat_ids:
            if not seat_id:
                raise InvalidCartError("Seat ids cannot be empty")
            if seat_id in seen:
                raise InvalidCartError(f"Seat {seat_id} appears more than once")
            seen.add(seat_id)
    if not seen:
        raise InvalidCartError("The cart has no seats")
