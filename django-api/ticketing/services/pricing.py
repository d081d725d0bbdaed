"""Pricing engine.

Turns catalog prices and a cart into an integer minor-unit breakdown. Pure:
no I/O, no clock, same input gives the same output regardless of item order.
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from ticketing.domain import CartItem, CatalogEvent, CheckoutConfig, PricingBreakdown
from ticketing.domain.value_objects import to_cents


def unit_price_cents(event: CatalogEvent, item: CartItem) -> int:
    """Resolve the per-seat price of a cart line.

    Precedence: catalog minor-unit price, catalog major-unit price, the
    client's ``unit_price`` (major units), then zero. Only positive values
    are taken at each step.
    """
    zone = item.zone_id.lower()

    cents = event.pricing_cents.get(zone)
    if cents is not None and cents > 0:
        return cents

    major = event.pricing.get(zone)
    if major is not None and major.is_finite() and major > 0:
        return to_cents(major)

    unit = item.unit_price
    if unit is not None and unit.is_finite() and unit > 0:
        return to_cents(unit)

    return 0


def service_fee_cents(subtotal_cents: int, fee_pct: int) -> int:
    fee = Decimal(subtotal_cents) * Decimal(fee_pct) / Decimal(100)
    return int(fee.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_pricing(
    event: CatalogEvent, items: Sequence[CartItem], config: CheckoutConfig
) -> PricingBreakdown:
    subtotal = sum(unit_price_cents(event, item) * item.quantity for item in items)
    fees = service_fee_cents(subtotal, config.service_fee_pct)
    # tax and discount are kept in the shape for policies layered on later
    tax = 0
    discount = 0
    return PricingBreakdown(
        subtotal_cents=subtotal,
        fees_cents=fees,
        tax_cents=tax,
        discount_cents=discount,
        total_cents=subtotal + fees + tax - discount,
        currency=config.currency,
        service_fee_pct=config.service_fee_pct,
    )


class PricingEngine:
    """Pricing bound to a fee policy."""

    def __init__(self, config: CheckoutConfig) -> None:
        self._config = config

    @property
    def config(self) -> CheckoutConfig:
        return self._config

    def quote(self, event: CatalogEvent, items: Sequence[CartItem]) -> PricingBreakdown:
        return compute_pricing(event, items, self._config)

    def unit_price_cents(self, event: CatalogEvent, item: CartItem) -> int:
        return unit_price_cents(event, item)
