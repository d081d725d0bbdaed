"""Builds services from the Django-backed stores and the configured gateway."""

from ticketing.domain import CheckoutConfig
from ticketing.gateways.interfaces import PaymentGateway
from ticketing.gateways.stripe_gateway import StripePaymentGateway
from ticketing.services.checkout_service import CheckoutService
from ticketing.services.order_service import OrderService
from ticketing.services.pricing import PricingEngine
from ticketing.services.settlement_service import SettlementService
from ticketing.stores.django_store import DjangoEventCatalog, DjangoOrderStore, DjangoSeatHoldStore


def payment_gateway() -> PaymentGateway:
    return StripePaymentGateway.from_settings()


def checkout_service() -> CheckoutService:
    return CheckoutService(
        catalog=DjangoEventCatalog(),
        orders=DjangoOrderStore(),
        holds=DjangoSeatHoldStore(),
        gateway=payment_gateway(),
        pricing=PricingEngine(CheckoutConfig.from_settings()),
    )


def settlement_service() -> SettlementService:
    return SettlementService(
        orders=DjangoOrderStore(),
        holds=DjangoSeatHoldStore(),
        gateway=payment_gateway(),
    )


def order_service() -> OrderService:
    return OrderService(orders=DjangoOrderStore())
