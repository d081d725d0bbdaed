"""Integration tests for the payment webhook endpoint.

Run with: pytest tests/test_webhooks.py -v
"""

import time

import pytest
from django.db import DatabaseError
from rest_framework.test import APIClient

from ticketing import wiring
from ticketing.domain import HoldStatus, OrderStatus
from ticketing.models import Order, SeatHold, Ticket
from ticketing.services.settlement_service import SettlementService

URL = "/api/webhooks/stripe"


@pytest.fixture
def pending_order(event, oro_cart):
    return wiring.checkout_service().checkout("buyer", str(event.id), oro_cart).order_id


def deliver(client: APIClient, payload: bytes, signature: str | None):
    headers = {"HTTP_STRIPE_SIGNATURE": signature} if signature is not None else {}
    return client.post(URL, data=payload, content_type="application/json", **headers)


@pytest.mark.django_db
class TestStripeWebhook:
    """Tests for POST /api/webhooks/stripe"""

    def test_signed_completed_event_settles_order(
        self, api_client: APIClient, pending_order, webhook_payload, sign
    ):
        """Given a valid signature, the order is paid and tickets are issued."""
        payload = webhook_payload("checkout.session.completed", str(pending_order))

        response = deliver(api_client, payload, sign(payload))

        assert response.status_code == 200
        assert response.json() == {"received": True, "outcome": "applied"}
        order = Order.objects.get(pk=pending_order.value)
        assert order.status == OrderStatus.PAID.value
        assert order.payment_intent_id == "pi_test_123"
        assert Ticket.objects.filter(order=order).count() == 2

    def test_redelivery_is_acknowledged_without_changes(
        self, api_client: APIClient, pending_order, webhook_payload, sign
    ):
        payload = webhook_payload("checkout.session.completed", str(pending_order))
        deliver(api_client, payload, sign(payload))

        response = deliver(api_client, payload, sign(payload))

        assert response.status_code == 200
        assert response.json()["outcome"] == "stale"
        assert Ticket.objects.count() == 2

    def test_expired_event_releases_seats(
        self, api_client: APIClient, pending_order, webhook_payload, sign
    ):
        payload = webhook_payload("checkout.session.expired", str(pending_order), payment_intent=None)

        response = deliver(api_client, payload, sign(payload))

        assert response.status_code == 200
        statuses = set(SeatHold.objects.values_list("status", flat=True))
        assert statuses == {HoldStatus.RELEASED.value}

    def test_bad_signature_is_rejected(
        self, api_client: APIClient, pending_order, webhook_payload, sign
    ):
        """Given a signature from another secret, returns 400 and writes nothing."""
        payload = webhook_payload("checkout.session.completed", str(pending_order))

        response = deliver(api_client, payload, sign(payload, secret="whsec_other"))

        assert response.status_code == 400
        assert response.json()["error"] == "SETTLEMENT_REJECTED"
        assert Order.objects.get(pk=pending_order.value).status == OrderStatus.PENDING_PAYMENT.value

    def test_missing_signature_is_rejected(self, api_client: APIClient, pending_order, webhook_payload):
        payload = webhook_payload("checkout.session.completed", str(pending_order))

        response = deliver(api_client, payload, None)

        assert response.status_code == 400

    def test_old_timestamp_is_rejected(
        self, api_client: APIClient, pending_order, webhook_payload, sign
    ):
        payload = webhook_payload("checkout.session.completed", str(pending_order))

        response = deliver(api_client, payload, sign(payload, timestamp=int(time.time()) - 3600))

        assert response.status_code == 400

    def test_tampered_payload_is_rejected(
        self, api_client: APIClient, pending_order, webhook_payload, sign
    ):
        original = webhook_payload("checkout.session.expired", str(pending_order))
        tampered = webhook_payload("checkout.session.completed", str(pending_order))

        response = deliver(api_client, tampered, sign(original))

        assert response.status_code == 400
        assert not Ticket.objects.exists()

    def test_unhandled_event_type_is_acknowledged(
        self, api_client: APIClient, db, webhook_payload, sign
    ):
        payload = webhook_payload("customer.created", None)

        response = deliver(api_client, payload, sign(payload))

        assert response.status_code == 200
        assert response.json()["outcome"] == "ignored"

    def test_unknown_order_is_acknowledged(
        self, api_client: APIClient, db, webhook_payload, sign
    ):
        payload = webhook_payload(
            "checkout.session.completed", "7c9e6679-7425-40de-944b-e07fc1f90ae7"
        )

        response = deliver(api_client, payload, sign(payload))

        assert response.status_code == 200
        assert response.json()["outcome"] == "ignored"

    def test_storage_failure_asks_for_redelivery(
        self, api_client: APIClient, pending_order, webhook_payload, sign, monkeypatch
    ):
        def broken(self, event):
            raise DatabaseError("database is locked")

        monkeypatch.setattr(SettlementService, "apply", broken)
        payload = webhook_payload("checkout.session.completed", str(pending_order))

        response = deliver(api_client, payload, sign(payload))

        assert response.status_code == 500
        assert response.json() == {"received": False}

    def test_unconfigured_secret_rejects_everything(
        self, api_client: APIClient, pending_order, webhook_payload, sign, gateway
    ):
        gateway._webhook_secret = ""
        payload = webhook_payload("checkout.session.completed", str(pending_order))

        response = deliver(api_client, payload, sign(payload))

        assert response.status_code == 400
