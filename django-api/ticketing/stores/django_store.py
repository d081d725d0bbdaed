"""Django ORM implementations of the ticketing stores."""

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from ticketing import models
from ticketing.domain import (
    CartItem,
    CatalogEvent,
    EventId,
    HoldOutcome,
    HoldResult,
    HoldStatus,
    Order,
    OrderId,
    OrderStatus,
    PricingBreakdown,
    SeatAssignment,
    SeatHold,
    StatusEntry,
    Ticket,
    TicketStatus,
)
from ticketing.domain.status import OPEN_HOLD_STATUSES, can_transition
from ticketing.stores.interfaces import EventCatalog, OrderStore, SeatHoldStore

logger = logging.getLogger(__name__)

OPEN = [s.value for s in OPEN_HOLD_STATUSES]


def event_cache_key(event_id: EventId | str) -> str:
    return f"events:{event_id}"


def _blocking_filter(now: datetime) -> Q:
    # an active hold past its expiry no longer blocks, even before it is reaped
    return Q(status=HoldStatus.SOLD.value) | (
        Q(status=HoldStatus.ACTIVE.value)
        & (Q(expires_at__isnull=True) | Q(expires_at__gt=now))
    )


class DjangoEventCatalog(EventCatalog):
    """Catalog reads backed by the Event table and the Django cache."""

    def __init__(self, timeout: int | None = None) -> None:
        self._timeout = timeout if timeout is not None else settings.CATALOG_CACHE_TIMEOUT

    def get_event(self, event_id: EventId) -> CatalogEvent | None:
        key = event_cache_key(event_id)
        cached = cache.get(key)
        if cached is not None:
            return cached

        row = models.Event.objects.filter(pk=event_id.value).first()
        if row is None:
            return None
        event = CatalogEvent(
            id=EventId(row.id),
            title=row.title,
            pricing=_major_prices(row.pricing),
            pricing_cents=_minor_prices(row.pricing_cents),
        )
        cache.set(key, event, self._timeout)
        return event


def _major_prices(raw: dict | None) -> dict[str, Decimal]:
    prices = {}
    for zone, value in (raw or {}).items():
        if isinstance(value, bool):
            continue
        try:
            prices[str(zone).lower()] = Decimal(str(value))
        except InvalidOperation:
            logger.warning("Ignoring non-numeric price %r for zone %s", value, zone)
    return prices


def _minor_prices(raw: dict | None) -> dict[str, int]:
    return {
        str(zone).lower(): value
        for zone, value in (raw or {}).items()
        if isinstance(value, int) and not isinstance(value, bool)
    }


class DjangoSeatHoldStore(SeatHoldStore):
    """Seat holds in a relational table.

    Exclusivity comes from the conditional unique constraints on
    ``models.SeatHold``; nothing here takes a lock.
    """

    def create_holds(
        self,
        event_id: EventId,
        order_id: OrderId,
        user_id: str,
        seats: Sequence[SeatAssignment],
        ttl: timedelta,
    ) -> list[HoldResult]:
        now = timezone.now()
        seat_ids = [seat.seat_id for seat in seats if seat.seat_id]
        if seat_ids:
            models.SeatHold.objects.filter(
                event_id=event_id.value,
                seat_id__in=seat_ids,
                status=HoldStatus.ACTIVE.value,
                expires_at__lte=now,
            ).update(status=HoldStatus.RELEASED.value, expires_at=None, updated_at=now)

        results = []
        for seat in seats:
            try:
                with transaction.atomic():
                    # sold rows fall outside the active-hold constraint
                    if seat.seat_id and models.SeatHold.objects.filter(
                        event_id=event_id.value,
                        seat_id=seat.seat_id,
                        status=HoldStatus.SOLD.value,
                    ).exists():
                        results.append(
                            HoldResult(seat=seat, outcome=HoldOutcome.CONFLICT, detail="seat already sold")
                        )
                        continue
                    row = models.SeatHold.objects.create(
                        event_id=event_id.value,
                        table_id=seat.table_id,
                        seat_id=seat.seat_id,
                        zone_id=seat.zone_id,
                        user_id=user_id,
                        order_id=order_id.value,
                        status=HoldStatus.ACTIVE.value,
                        expires_at=now + ttl,
                    )
            except IntegrityError:
                results.append(
                    HoldResult(seat=seat, outcome=HoldOutcome.CONFLICT, detail="seat already held or sold")
                )
            except DatabaseError as exc:
                results.append(HoldResult(seat=seat, outcome=HoldOutcome.ERROR, detail=str(exc)))
            else:
                results.append(HoldResult(seat=seat, outcome=HoldOutcome.CREATED, hold_id=row.id))
        return results

    def mark_sold(self, order_id: OrderId) -> int:
        now = timezone.now()
        sold = 0
        for hold_id, seat_id in models.SeatHold.objects.filter(
            order_id=order_id.value, status__in=OPEN
        ).values_list("id", "seat_id"):
            try:
                with transaction.atomic():
                    sold += models.SeatHold.objects.filter(pk=hold_id, status__in=OPEN).update(
                        status=HoldStatus.SOLD.value, expires_at=None, updated_at=now
                    )
            except IntegrityError:
                logger.error(
                    "Seat %s of order %s was already sold to another order; releasing hold %s",
                    seat_id, order_id, hold_id,
                )
                models.SeatHold.objects.filter(pk=hold_id).update(
                    status=HoldStatus.RELEASED.value, expires_at=None, updated_at=now
                )
        return sold

    def release(self, order_id: OrderId) -> int:
        return models.SeatHold.objects.filter(order_id=order_id.value, status__in=OPEN).update(
            status=HoldStatus.RELEASED.value, expires_at=None, updated_at=timezone.now()
        )

    def list_blocked_seats(self, event_id: EventId) -> list[tuple[str | None, str]]:
        rows = (
            models.SeatHold.objects.filter(event_id=event_id.value, seat_id__isnull=False)
            .filter(_blocking_filter(timezone.now()))
            .values_list("table_id", "seat_id")
            .distinct()
        )
        return sorted(rows, key=lambda pair: (pair[0] or "", pair[1]))

    def find_conflicts(self, event_id: EventId, seat_ids: Sequence[str]) -> list[str]:
        if not seat_ids:
            return []
        rows = (
            models.SeatHold.objects.filter(event_id=event_id.value, seat_id__in=list(seat_ids))
            .filter(_blocking_filter(timezone.now()))
            .values_list("seat_id", flat=True)
            .distinct()
        )
        return sorted(rows)

    def holds_for_order(self, order_id: OrderId) -> list[SeatHold]:
        rows = models.SeatHold.objects.filter(order_id=order_id.value).order_by("created_at", "id")
        return [_hold_to_domain(row) for row in rows]

    def reap_expired(self, now: datetime) -> int:
        return models.SeatHold.objects.filter(
            status=HoldStatus.ACTIVE.value, expires_at__lte=now
        ).update(status=HoldStatus.RELEASED.value, expires_at=None, updated_at=now)


def _hold_to_domain(row: models.SeatHold) -> SeatHold:
    return SeatHold(
        id=row.id,
        event_id=EventId(row.event_id),
        table_id=row.table_id,
        seat_id=row.seat_id,
        zone_id=row.zone_id,
        user_id=row.user_id,
        order_id=OrderId(row.order_id) if row.order_id else None,
        status=HoldStatus(row.status),
        expires_at=row.expires_at,
        created_at=row.created_at,
    )


class DjangoOrderStore(OrderStore):
    """Orders, their status timeline and issued tickets."""

    def create(
        self,
        user_id: str,
        event_id: EventId,
        items: Sequence[CartItem],
        pricing: PricingBreakdown,
        session_date: datetime | None,
        expires_at: datetime,
    ) -> Order:
        with transaction.atomic():
            row = models.Order.objects.create(
                user_id=user_id,
                event_id=event_id.value,
                session_date=session_date,
                items=[_item_to_json(item) for item in items],
                currency=pricing.currency,
                service_fee_pct=pricing.service_fee_pct,
                subtotal_cents=pricing.subtotal_cents,
                fees_cents=pricing.fees_cents,
                tax_cents=pricing.tax_cents,
                discount_cents=pricing.discount_cents,
                total_cents=pricing.total_cents,
                status=OrderStatus.PENDING_PAYMENT.value,
                expires_at=expires_at,
            )
            models.OrderStatusEntry.objects.create(
                order=row, status=OrderStatus.PENDING_PAYMENT.value, at=row.created_at
            )
        return self.get(OrderId(row.id))

    def get(self, order_id: OrderId) -> Order | None:
        row = (
            models.Order.objects.filter(pk=order_id.value)
            .prefetch_related("timeline", "tickets")
            .first()
        )
        if row is None:
            return None
        return _order_to_domain(row)

    def attach_payment_session(self, order_id: OrderId, session_id: str) -> None:
        models.Order.objects.filter(pk=order_id.value).update(
            checkout_session_id=session_id, updated_at=timezone.now()
        )

    def apply_status(
        self,
        order_id: OrderId,
        new_status: OrderStatus,
        note: str = "",
        payment_reference: str | None = None,
    ) -> bool:
        now = timezone.now()
        with transaction.atomic():
            current = (
                models.Order.objects.filter(pk=order_id.value)
                .values_list("status", flat=True)
                .first()
            )
            if current is None:
                return False
            current_status = OrderStatus(current)
            if not can_transition(current_status, new_status):
                return False

            fields = {"status": new_status.value, "updated_at": now}
            if new_status is OrderStatus.PAID:
                fields["paid_at"] = now
                fields["payment_intent_id"] = payment_reference or ""
            elif new_status is OrderStatus.CANCELED:
                fields["canceled_at"] = now

            # guarded on the status read above so concurrent deliveries cannot both win
            updated = models.Order.objects.filter(
                pk=order_id.value, status=current_status.value
            ).update(**fields)
            if not updated:
                return False
            models.OrderStatusEntry.objects.create(
                order_id=order_id.value, status=new_status.value, note=note[:255], at=now
            )
        return True

    def issue_tickets(self, order_id: OrderId, holds: Sequence[SeatHold]) -> list[Ticket]:
        issued = []
        for hold in holds:
            if not hold.seat_id:
                continue
            row, created = models.Ticket.objects.get_or_create(
                order_id=order_id.value,
                seat_id=hold.seat_id,
                defaults={
                    "ticket_id": uuid.uuid4().hex,
                    "table_id": hold.table_id,
                    "zone_id": hold.zone_id,
                },
            )
            if created:
                issued.append(_ticket_to_domain(row))
        return issued

    def get_ticket(self, ticket_id: str) -> Ticket | None:
        row = models.Ticket.objects.filter(ticket_id=ticket_id).first()
        return _ticket_to_domain(row) if row else None

    def stale_pending_orders(self, now: datetime) -> list[OrderId]:
        ids = models.Order.objects.filter(
            status=OrderStatus.PENDING_PAYMENT.value, expires_at__lte=now
        ).values_list("id", flat=True)
        return [OrderId(value) for value in ids]


def _item_to_json(item: CartItem) -> dict:
    return {
        "zoneId": item.zone_id,
        "tableId": item.table_id,
        "seatIds": list(item.seat_ids),
        "unitPrice": str(item.unit_price) if item.unit_price is not None else None,
    }


def _item_from_json(raw: dict) -> CartItem:
    unit_price = raw.get("unitPrice")
    return CartItem(
        zone_id=raw.get("zoneId", ""),
        table_id=raw.get("tableId"),
        seat_ids=tuple(raw.get("seatIds") or ()),
        unit_price=Decimal(unit_price) if unit_price is not None else None,
    )


def _ticket_to_domain(row: models.Ticket) -> Ticket:
    return Ticket(
        ticket_id=row.ticket_id,
        order_id=OrderId(row.order_id),
        seat_id=row.seat_id,
        table_id=row.table_id,
        zone_id=row.zone_id,
        status=TicketStatus(row.status),
        issued_at=row.issued_at,
        checked_in_at=row.checked_in_at,
    )


def _order_to_domain(row: models.Order) -> Order:
    return Order(
        id=OrderId(row.id),
        user_id=row.user_id,
        event_id=EventId(row.event_id),
        session_date=row.session_date,
        items=tuple(_item_from_json(raw) for raw in row.items),
        totals=PricingBreakdown(
            subtotal_cents=row.subtotal_cents,
            fees_cents=row.fees_cents,
            tax_cents=row.tax_cents,
            discount_cents=row.discount_cents,
            total_cents=row.total_cents,
            currency=row.currency,
            service_fee_pct=row.service_fee_pct,
        ),
        status=OrderStatus(row.status),
        timeline=tuple(
            StatusEntry(status=OrderStatus(entry.status), at=entry.at, note=entry.note)
            for entry in row.timeline.all()
        ),
        created_at=row.created_at,
        expires_at=row.expires_at,
        paid_at=row.paid_at,
        canceled_at=row.canceled_at,
        checkout_session_id=row.checkout_session_id or None,
        payment_intent_id=row.payment_intent_id or None,
        tickets=tuple(_ticket_to_domain(ticket) for ticket in row.tickets.all()),
    )
