"""Settlement service - moves orders and holds to terminal states.

Payment webhooks arrive at least once and in any order. Every transition is a
conditional write out of ``pending_payment``; once an order is terminal,
later events for it are logged and dropped.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from django.db import transaction
from django.utils import timezone

from ticketing.domain import HoldStatus, OrderId, OrderStatus, SettlementEvent
from ticketing.domain.errors import OrderNotFoundError
from ticketing.domain.status import ensure_transition
from ticketing.gateways.interfaces import PaymentGateway, PaymentProviderError
from ticketing.signals import order_paid
from ticketing.stores.interfaces import OrderStore, SeatHoldStore

logger = logging.getLogger(__name__)

SESSION_COMPLETED = "checkout.session.completed"
SESSION_EXPIRED = "checkout.session.expired"
ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"

EVENT_TARGETS = {
    SESSION_COMPLETED: OrderStatus.PAID,
    SESSION_EXPIRED: OrderStatus.EXPIRED,
    ASYNC_PAYMENT_FAILED: OrderStatus.FAILED,
}


class SettlementOutcome(str, Enum):
    APPLIED = "applied"
    IGNORED = "ignored"
    STALE = "stale"


@dataclass(frozen=True)
class SweepResult:
    expired_orders: int
    released_holds: int


class SettlementService:
    """Applies payment outcomes to orders and their seat holds."""

    def __init__(
        self,
        orders: OrderStore,
        holds: SeatHoldStore,
        gateway: PaymentGateway,
    ) -> None:
        self._orders = orders
        self._holds = holds
        self._gateway = gateway

    def handle_webhook(self, payload: bytes, signature: str) -> SettlementOutcome:
        """Verify a raw webhook delivery and apply it.

        Raises:
            SettlementRejectedError: If the signature check fails. Nothing is
                written in that case.
        """
        event = self._gateway.parse_webhook(payload, signature)
        logger.info(
            "Received %s (%s) for order %s", event.type, event.provider_event_id, event.order_id
        )
        return self.apply(event)

    def apply(self, event: SettlementEvent) -> SettlementOutcome:
        target = EVENT_TARGETS.get(event.type)
        if target is None:
            logger.debug("Ignoring unhandled event type %s", event.type)
            return SettlementOutcome.IGNORED
        if not event.order_id:
            logger.info("Ignoring %s without an order id", event.type)
            return SettlementOutcome.IGNORED
        try:
            order_id = OrderId.from_string(event.order_id)
        except ValueError:
            logger.warning("Ignoring %s with malformed order id %r", event.type, event.order_id)
            return SettlementOutcome.IGNORED

        ticket_ids: list[str] = []
        with transaction.atomic():
            changed = self._orders.apply_status(
                order_id, target, note=event.type, payment_reference=event.payment_reference
            )
            if not changed:
                return self._report_stale(order_id, target, event)

            if target is OrderStatus.PAID:
                sold = self._holds.mark_sold(order_id)
                holds = [
                    hold
                    for hold in self._holds.holds_for_order(order_id)
                    if hold.status is HoldStatus.SOLD
                ]
                tickets = self._orders.issue_tickets(order_id, holds)
                ticket_ids = [ticket.ticket_id for ticket in tickets]
                order = self._orders.get(order_id)
                seat_count = len(order.seat_assignments()) if order else 0
                if len(holds) < seat_count:
                    logger.warning(
                        "Order %s paid for %s seats but only %s holds were sold",
                        order_id, seat_count, len(holds),
                    )
                logger.info("Order %s paid: %s holds sold, %s tickets issued", order_id, sold, len(ticket_ids))
                transaction.on_commit(
                    lambda: order_paid.send(
                        sender=SettlementService, order_id=str(order_id), ticket_ids=ticket_ids
                    )
                )
            else:
                released = self._holds.release(order_id)
                logger.info("Order %s %s: %s holds released", order_id, target.value, released)
        return SettlementOutcome.APPLIED

    def cancel_order(self, order_id: OrderId, note: str = "canceled by operator") -> bool:
        """Administratively cancel a pending order and release its seats.

        Raises:
            OrderNotFoundError: If the order does not exist.
            InvalidTransitionError: If the order is already terminal.
        """
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        ensure_transition(order.status, OrderStatus.CANCELED)

        with transaction.atomic():
            changed = self._orders.apply_status(order_id, OrderStatus.CANCELED, note=note)
            if changed:
                self._holds.release(order_id)
        if changed and order.checkout_session_id:
            self._close_session(order.checkout_session_id, order_id)
        return changed

    def expire_stale_orders(self, now: datetime | None = None) -> SweepResult:
        """Expire pending orders past their deadline and release lapsed holds."""
        now = now or timezone.now()
        expired = 0
        for order_id in self._orders.stale_pending_orders(now):
            with transaction.atomic():
                changed = self._orders.apply_status(
                    order_id, OrderStatus.EXPIRED, note="expired by sweep"
                )
                if changed:
                    self._holds.release(order_id)
            if not changed:
                continue
            expired += 1
            order = self._orders.get(order_id)
            if order and order.checkout_session_id:
                self._close_session(order.checkout_session_id, order_id)

        released = self._holds.reap_expired(now)
        if expired or released:
            logger.info("Sweep expired %s orders and released %s lapsed holds", expired, released)
        return SweepResult(expired_orders=expired, released_holds=released)

    def _report_stale(
        self, order_id: OrderId, target: OrderStatus, event: SettlementEvent
    ) -> SettlementOutcome:
        order = self._orders.get(order_id)
        if order is None:
            logger.warning("Ignoring %s for unknown order %s", event.type, order_id)
            return SettlementOutcome.IGNORED
        late_payment = order.status.is_terminal and order.status is not OrderStatus.PAID
        if target is OrderStatus.PAID and late_payment:
            logger.error(
                "Payment %s completed for order %s which is already %s; refund needed",
                event.payment_reference, order_id, order.status.value,
            )
        else:
            logger.info(
                "Ignoring %s for order %s, already %s", event.type, order_id, order.status.value
            )
        return SettlementOutcome.STALE

    def _close_session(self, session_id: str, order_id: OrderId) -> None:
        try:
            self._gateway.expire_checkout_session(session_id)
        except PaymentProviderError:
            logger.warning(
                "Could not expire payment session %s for order %s", session_id, order_id,
                exc_info=True,
            )
