"""Integration tests for settlement of payment outcomes.

Run with: pytest tests/test_settlement.py -v
"""

import logging
import uuid
from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from ticketing import wiring
from ticketing.domain import HoldStatus, OrderId, OrderStatus, SettlementEvent
from ticketing.domain.errors import InvalidTransitionError, OrderNotFoundError
from ticketing.models import Order, SeatHold, Ticket
from ticketing.services.settlement_service import (
    ASYNC_PAYMENT_FAILED,
    SESSION_COMPLETED,
    SESSION_EXPIRED,
    SettlementOutcome,
)
from ticketing.signals import order_paid


@pytest.fixture
def pending_order(event, oro_cart) -> OrderId:
    return wiring.checkout_service().checkout("buyer", str(event.id), oro_cart).order_id


def settle(event_type: str, order_id, payment_reference: str | None = "pi_test_123"):
    return wiring.settlement_service().apply(
        SettlementEvent(
            type=event_type,
            order_id=str(order_id) if order_id else None,
            payment_reference=payment_reference,
        )
    )


@pytest.mark.django_db
class TestPaidSettlement:
    """Tests for checkout.session.completed"""

    def test_completed_marks_order_paid_and_holds_sold(self, pending_order):
        outcome = settle(SESSION_COMPLETED, pending_order)

        assert outcome is SettlementOutcome.APPLIED
        order = Order.objects.get(pk=pending_order.value)
        assert order.status == OrderStatus.PAID.value
        assert order.paid_at is not None
        assert order.payment_intent_id == "pi_test_123"
        for hold in SeatHold.objects.filter(order=order):
            assert hold.status == HoldStatus.SOLD.value
            assert hold.expires_at is None
        assert list(order.timeline.values_list("status", flat=True)) == ["pending_payment", "paid"]

    def test_completed_issues_one_ticket_per_seat(self, pending_order):
        settle(SESSION_COMPLETED, pending_order)

        tickets = Ticket.objects.filter(order_id=pending_order.value)
        assert sorted(t.seat_id for t in tickets) == ["S1", "S2"]
        assert len({t.ticket_id for t in tickets}) == 2

    def test_duplicate_completed_is_a_no_op(self, pending_order):
        settle(SESSION_COMPLETED, pending_order)

        outcome = settle(SESSION_COMPLETED, pending_order)

        assert outcome is SettlementOutcome.STALE
        order = Order.objects.get(pk=pending_order.value)
        assert order.timeline.count() == 2
        assert Ticket.objects.filter(order=order).count() == 2

    def test_order_paid_signal_fires_after_commit(
        self, pending_order, django_capture_on_commit_callbacks
    ):
        received = []

        def listener(sender, order_id, ticket_ids, **kwargs):
            received.append((order_id, sorted(ticket_ids)))

        order_paid.connect(listener)
        try:
            with django_capture_on_commit_callbacks(execute=True) as callbacks:
                settle(SESSION_COMPLETED, pending_order)
        finally:
            order_paid.disconnect(listener)

        assert len(callbacks) == 1
        issued = sorted(Ticket.objects.values_list("ticket_id", flat=True))
        assert received == [(str(pending_order), issued)]

    def test_paid_sold_seats_stay_blocked(self, event, pending_order):
        settle(SESSION_COMPLETED, pending_order)

        blocked = wiring.checkout_service().list_blocked_seats(str(event.id))

        assert blocked == [("ORO-04", "S1"), ("ORO-04", "S2")]


@pytest.mark.django_db
class TestStaleAndIgnoredEvents:
    """Tests for out-of-order, duplicate and irrelevant deliveries."""

    def test_expired_after_paid_leaves_order_paid(self, pending_order):
        """A stale session.expired after payment changes nothing."""
        settle(SESSION_COMPLETED, pending_order)

        outcome = settle(SESSION_EXPIRED, pending_order)

        assert outcome is SettlementOutcome.STALE
        assert Order.objects.get(pk=pending_order.value).status == OrderStatus.PAID.value
        statuses = set(SeatHold.objects.filter(order_id=pending_order.value).values_list("status", flat=True))
        assert statuses == {HoldStatus.SOLD.value}

    def test_completed_after_expired_keeps_order_expired(self, pending_order, caplog, monkeypatch):
        monkeypatch.setattr(logging.getLogger("ticketing"), "propagate", True)
        settle(SESSION_EXPIRED, pending_order)

        outcome = settle(SESSION_COMPLETED, pending_order)

        assert outcome is SettlementOutcome.STALE
        assert Order.objects.get(pk=pending_order.value).status == OrderStatus.EXPIRED.value
        assert not Ticket.objects.exists()
        assert "refund needed" in caplog.text

    def test_unknown_event_type_is_ignored(self, pending_order):
        assert settle("payment_intent.created", pending_order) is SettlementOutcome.IGNORED

    def test_event_without_order_id_is_ignored(self, db):
        assert settle(SESSION_COMPLETED, None) is SettlementOutcome.IGNORED

    def test_malformed_order_id_is_ignored(self, db):
        assert settle(SESSION_COMPLETED, "order-42") is SettlementOutcome.IGNORED

    def test_unknown_order_is_ignored(self, db):
        assert settle(SESSION_COMPLETED, uuid.uuid4()) is SettlementOutcome.IGNORED


@pytest.mark.django_db
class TestReleasingSettlement:
    """Tests for expired and failed payments."""

    @pytest.mark.parametrize(
        "event_type, status",
        [(SESSION_EXPIRED, OrderStatus.EXPIRED), (ASYNC_PAYMENT_FAILED, OrderStatus.FAILED)],
    )
    def test_releases_holds(self, event, pending_order, event_type, status):
        outcome = settle(event_type, pending_order, payment_reference=None)

        assert outcome is SettlementOutcome.APPLIED
        assert Order.objects.get(pk=pending_order.value).status == status.value
        statuses = set(SeatHold.objects.filter(order_id=pending_order.value).values_list("status", flat=True))
        assert statuses == {HoldStatus.RELEASED.value}
        assert wiring.checkout_service().list_blocked_seats(str(event.id)) == []

    def test_released_seats_can_be_bought_again(self, event, oro_cart, pending_order):
        settle(SESSION_EXPIRED, pending_order)

        result = wiring.checkout_service().checkout("another", str(event.id), oro_cart)

        assert SeatHold.objects.filter(order_id=result.order_id.value, status="active").count() == 2


@pytest.mark.django_db
class TestCancelOrder:
    """Tests for administrative cancellation."""

    def test_cancel_releases_holds_and_closes_session(self, pending_order, gateway):
        assert wiring.settlement_service().cancel_order(pending_order) is True

        order = Order.objects.get(pk=pending_order.value)
        assert order.status == OrderStatus.CANCELED.value
        assert order.canceled_at is not None
        assert gateway.expired == [order.checkout_session_id]
        statuses = set(SeatHold.objects.filter(order=order).values_list("status", flat=True))
        assert statuses == {HoldStatus.RELEASED.value}

    def test_cancel_paid_order_is_rejected(self, pending_order):
        settle(SESSION_COMPLETED, pending_order)

        with pytest.raises(InvalidTransitionError):
            wiring.settlement_service().cancel_order(pending_order)

    def test_admin_action_cancels_selected_orders(self, admin_client, pending_order):
        response = admin_client.post(
            "/admin/ticketing/order/",
            {"action": "cancel_orders", "_selected_action": [str(pending_order)]},
        )

        assert response.status_code == 302
        assert Order.objects.get(pk=pending_order.value).status == OrderStatus.CANCELED.value

    def test_cancel_unknown_order(self, db):
        with pytest.raises(OrderNotFoundError):
            wiring.settlement_service().cancel_order(OrderId(uuid.uuid4()))


@pytest.mark.django_db
class TestSweep:
    """Tests for expiring abandoned checkouts."""

    def test_expires_overdue_pending_orders(self, pending_order, gateway):
        later = timezone.now() + timedelta(hours=1)

        result = wiring.settlement_service().expire_stale_orders(now=later)

        assert result.expired_orders == 1
        order = Order.objects.get(pk=pending_order.value)
        assert order.status == OrderStatus.EXPIRED.value
        assert gateway.expired == [order.checkout_session_id]
        statuses = set(SeatHold.objects.filter(order=order).values_list("status", flat=True))
        assert statuses == {HoldStatus.RELEASED.value}

    def test_leaves_orders_within_ttl(self, pending_order):
        result = wiring.settlement_service().expire_stale_orders()

        assert result.expired_orders == 0
        assert Order.objects.get(pk=pending_order.value).status == OrderStatus.PENDING_PAYMENT.value

    def test_reaps_lapsed_holds_of_live_orders(self, pending_order):
        # holds lapse after 15 minutes, orders after 30
        later = timezone.now() + timedelta(minutes=20)

        result = wiring.settlement_service().expire_stale_orders(now=later)

        assert result.expired_orders == 0
        assert result.released_holds == 2

    def test_command_reports_counts(self, pending_order):
        Order.objects.filter(pk=pending_order.value).update(
            expires_at=timezone.now() - timedelta(minutes=1)
        )

        out = StringIO()
        call_command("sweep_checkouts", stdout=out)

        assert "Expired 1 order(s)" in out.getvalue()


@pytest.mark.django_db
class TestSeatSoldTwice:
    """Tests for paying an order whose seat was sold to someone else."""

    def test_payment_still_settles_and_skips_the_lost_seat(self, event, pending_order):
        winner = Order.objects.create(user_id="winner", event=event)
        SeatHold.objects.create(
            event=event, seat_id="S1", table_id="ORO-04", zone_id="oro", user_id="winner",
            order=winner, status=HoldStatus.SOLD.value,
        )

        outcome = settle(SESSION_COMPLETED, pending_order)

        assert outcome is SettlementOutcome.APPLIED
        assert Order.objects.get(pk=pending_order.value).status == OrderStatus.PAID.value
        tickets = Ticket.objects.filter(order_id=pending_order.value)
        assert [t.seat_id for t in tickets] == ["S2"]
        lost = SeatHold.objects.get(order_id=pending_order.value, seat_id="S1")
        assert lost.status == HoldStatus.RELEASED.value
