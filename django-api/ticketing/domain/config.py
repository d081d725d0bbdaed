"""Checkout policy configuration."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Self

from django.conf import settings


@dataclass(frozen=True)
class CheckoutConfig:
    """Fee and TTL policy passed to the pricing engine and services."""

    service_fee_pct: int = 5
    hold_ttl: timedelta = timedelta(minutes=15)
    order_ttl: timedelta = timedelta(minutes=30)
    currency: str = "MXN"
    public_url: str = "http://localhost:5173"

    def __post_init__(self) -> None:
        if self.service_fee_pct < 0:
            raise ValueError("Service fee percentage cannot be negative")
        if self.hold_ttl <= timedelta(0):
            raise ValueError("Hold TTL must be positive")

    @classmethod
    def from_settings(cls) -> Self:
        conf = getattr(settings, "TICKETING", {})
        return cls(
            service_fee_pct=int(conf.get("SERVICE_FEE_PCT", 5)),
            hold_ttl=timedelta(minutes=int(conf.get("HOLD_TTL_MINUTES", 15))),
            order_ttl=timedelta(minutes=int(conf.get("ORDER_TTL_MINUTES", 30))),
            currency=conf.get("CURRENCY", "MXN"),
            public_url=conf.get("PUBLIC_URL", "http://localhost:5173").rstrip("/"),
        )
