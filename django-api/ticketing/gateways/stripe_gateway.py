"""Stripe Checkout implementation of the payment gateway."""

import json
import logging
from collections.abc import Sequence
from typing import Self

import stripe
from django.conf import settings

from ticketing.domain import LineItem, PaymentSession, SettlementEvent
from ticketing.domain.errors import SettlementRejectedError
from ticketing.gateways.interfaces import PaymentGateway, PaymentProviderError

logger = logging.getLogger(__name__)


class StripePaymentGateway(PaymentGateway):
    """Hosted Stripe Checkout sessions and signed webhook parsing."""

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ) -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._tolerance = tolerance

    @classmethod
    def from_settings(cls) -> Self:
        return cls(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        )

    def create_checkout_session(
        self,
        line_items: Sequence[LineItem],
        currency: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> PaymentSession:
        try:
            session = stripe.checkout.Session.create(
                api_key=self._api_key,
                mode="payment",
                line_items=[_line_item_params(item, currency) for item in line_items],
                metadata=metadata,
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as exc:
            raise PaymentProviderError(str(exc)) from exc
        logger.info("Opened Stripe checkout session %s for order %s", session.id, metadata.get("orderId"))
        return PaymentSession(id=session.id, url=session.url)

    def expire_checkout_session(self, session_id: str) -> None:
        try:
            stripe.checkout.Session.expire(session_id, api_key=self._api_key)
        except stripe.StripeError as exc:
            raise PaymentProviderError(str(exc)) from exc

    def parse_webhook(self, payload: bytes, signature: str) -> SettlementEvent:
        if not self._webhook_secret:
            raise SettlementRejectedError("webhook secret is not configured")
        try:
            text = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                text, signature, self._webhook_secret, self._tolerance
            )
            event = json.loads(text)
        except (UnicodeDecodeError, ValueError, stripe.SignatureVerificationError) as exc:
            raise SettlementRejectedError(str(exc)) from exc

        data_obj = (event.get("data") or {}).get("object") or {}
        metadata = data_obj.get("metadata") or {}
        payment_intent = data_obj.get("payment_intent")
        if isinstance(payment_intent, dict):
            payment_intent = payment_intent.get("id")
        return SettlementEvent(
            type=event.get("type", ""),
            order_id=metadata.get("orderId") or None,
            payment_reference=payment_intent or None,
            provider_event_id=event.get("id"),
        )


def _line_item_params(item: LineItem, currency: str) -> dict:
    return {
        "quantity": item.quantity,
        "price_data": {
            "currency": currency.lower(),
            "unit_amount": item.unit_amount_cents,
            "product_data": {
                "name": item.name,
                "metadata": dict(item.metadata),
            },
        },
    }
