"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Self
from uuid import UUID


@dataclass(frozen=True)
class EventId:
    """Unique identifier for a catalog Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class OrderId:
    """Unique identifier for an Order."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


def to_cents(amount: Decimal | int | float | str) -> int:
    """Convert a major-unit amount to integer minor units, rounding half up."""
    cents = Decimal(str(amount)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PricingBreakdown:
    """Monetary breakdown of a cart in integer minor units."""

    subtotal_cents: int
    fees_cents: int
    tax_cents: int
    discount_cents: int
    total_cents: int
    currency: str
    service_fee_pct: int

    def __post_init__(self) -> None:
        amounts = (
            self.subtotal_cents,
            self.fees_cents,
            self.tax_cents,
            self.discount_cents,
            self.total_cents,
        )
        for amount in amounts:
            if not isinstance(amount, int) or isinstance(amount, bool):
                raise ValueError("Pricing amounts must be integers")
            if amount < 0:
                raise ValueError("Pricing amounts cannot be negative")
        expected = (
            self.subtotal_cents + self.fees_cents + self.tax_cents - self.discount_cents
        )
        if self.total_cents != expected:
            raise ValueError("Pricing total does not match its components")

    def as_totals(self) -> dict[str, int]:
        return {
            "subtotal": self.subtotal_cents,
            "fees": self.fees_cents,
            "tax": self.tax_cents,
            "discount": self.discount_cents,
            "total": self.total_cents,
        }
