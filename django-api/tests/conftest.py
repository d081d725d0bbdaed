"""Pytest configuration and shared fixtures."""

import hashlib
import hmac
import json
import time
import uuid

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from ticketing import wiring
from ticketing.domain import CartItem, PaymentSession
from ticketing.gateways.interfaces import PaymentProviderError
from ticketing.gateways.stripe_gateway import StripePaymentGateway
from ticketing.models import Event

WEBHOOK_SECRET = "whsec_test_secret"


class FakePaymentGateway(StripePaymentGateway):
    """Stripe gateway that never leaves the process.

    Sessions are recorded instead of created; webhook verification is the
    real signature check against ``WEBHOOK_SECRET``.
    """

    def __init__(self) -> None:
        super().__init__(api_key="sk_test_fake", webhook_secret=WEBHOOK_SECRET)
        self.sessions: list[dict] = []
        self.expired: list[str] = []
        self.fail_create = False

    def create_checkout_session(self, line_items, currency, metadata, success_url, cancel_url):
        if self.fail_create:
            raise PaymentProviderError("card network unavailable")
        session_id = f"cs_test_{uuid.uuid4().hex[:12]}"
        self.sessions.append(
            {
                "id": session_id,
                "line_items": list(line_items),
                "currency": currency,
                "metadata": dict(metadata),
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        return PaymentSession(id=session_id, url=f"https://checkout.test/{session_id}")

    def expire_checkout_session(self, session_id):
        self.expired.append(session_id)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def gateway(monkeypatch, settings) -> FakePaymentGateway:
    settings.STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    fake = FakePaymentGateway()
    monkeypatch.setattr(wiring, "payment_gateway", lambda: fake)
    return fake


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username="buyer", password="not-used")


@pytest.fixture
def auth_client(api_client: APIClient, user) -> APIClient:
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def event(db) -> Event:
    return Event.objects.create(
        title="Noche de Gala",
        venue="Salon Imperial",
        city="Monterrey",
        pricing={"VIP": 500, "ORO": "300.00"},
        pricing_cents={"oro": 30000},
    )


@pytest.fixture
def oro_cart() -> list[CartItem]:
    return [CartItem(zone_id="oro", table_id="ORO-04", seat_ids=("S1", "S2"))]


@pytest.fixture
def webhook_payload():
    """Build a Stripe checkout session event body."""

    def build(event_type: str, order_id: str | None, payment_intent: str = "pi_test_123") -> bytes:
        metadata = {"orderId": order_id} if order_id else {}
        body = {
            "id": f"evt_{uuid.uuid4().hex[:12]}",
            "type": event_type,
            "data": {
                "object": {
                    "id": "cs_test_abc",
                    "object": "checkout.session",
                    "payment_intent": payment_intent,
                    "metadata": metadata,
                }
            },
        }
        return json.dumps(body).encode("utf-8")

    return build


@pytest.fixture
def sign():
    """Return a Stripe-Signature header for a payload."""

    def build(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
        timestamp = timestamp if timestamp is not None else int(time.time())
        signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
        digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    return build
