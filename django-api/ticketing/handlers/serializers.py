"""Serializers for parsing checkout requests and rendering domain models.

Field names are camelCase to match the seat-map client.
"""

from rest_framework import serializers

from ticketing.domain import CartItem, CheckoutConfig, PricingBreakdown


class CartItemSerializer(serializers.Serializer):
    zoneId = serializers.CharField(max_length=64)
    tableId = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)
    seatIds = serializers.ListField(
        child=serializers.CharField(max_length=64), allow_empty=True
    )
    unitPrice = serializers.DecimalField(
        max_digits=14, decimal_places=4, required=False, allow_null=True
    )


def cart_item_from(data: dict) -> CartItem:
    return CartItem(
        zone_id=data["zoneId"],
        table_id=data.get("tableId") or None,
        seat_ids=tuple(data["seatIds"]),
        unit_price=data.get("unitPrice"),
    )


class PreflightRequestSerializer(serializers.Serializer):
    eventId = serializers.CharField(max_length=64)
    items = CartItemSerializer(many=True, allow_empty=False)

    def cart_items(self) -> list[CartItem]:
        return [cart_item_from(item) for item in self.validated_data["items"]]


class CheckoutRequestSerializer(PreflightRequestSerializer):
    sessionDate = serializers.DateTimeField(required=False, allow_null=True)
    # validated separately: a malformed quote falls back to recomputation
    pricing = serializers.JSONField(required=False, allow_null=True)


class ConfirmedPricingSerializer(serializers.Serializer):
    """A preflight quote echoed back by the client."""

    subtotalCents = serializers.IntegerField(min_value=0)
    feesCents = serializers.IntegerField(min_value=0)
    taxCents = serializers.IntegerField(min_value=0, required=False, default=0)
    discountCents = serializers.IntegerField(min_value=0, required=False, default=0)
    totalCents = serializers.IntegerField(min_value=0)
    servicePct = serializers.IntegerField(min_value=0, required=False)


def confirmed_pricing(raw, config: CheckoutConfig) -> PricingBreakdown | None:
    """Return the client's quote if it is internally consistent, else None."""
    if not isinstance(raw, dict):
        return None
    serializer = ConfirmedPricingSerializer(data=raw)
    if not serializer.is_valid():
        return None
    data = serializer.validated_data
    try:
        return PricingBreakdown(
            subtotal_cents=data["subtotalCents"],
            fees_cents=data["feesCents"],
            tax_cents=data["taxCents"],
            discount_cents=data["discountCents"],
            total_cents=data["totalCents"],
            currency=config.currency,
            service_fee_pct=data.get("servicePct", config.service_fee_pct),
        )
    except ValueError:
        return None


class PricingSerializer(serializers.Serializer):
    """Serializer for PricingBreakdown."""

    subtotalCents = serializers.IntegerField(source="subtotal_cents")
    feesCents = serializers.IntegerField(source="fees_cents")
    taxCents = serializers.IntegerField(source="tax_cents")
    discountCents = serializers.IntegerField(source="discount_cents")
    totalCents = serializers.IntegerField(source="total_cents")
    currency = serializers.CharField()
    servicePct = serializers.IntegerField(source="service_fee_pct")


class TotalsSerializer(serializers.Serializer):
    subtotal = serializers.IntegerField(source="subtotal_cents")
    fees = serializers.IntegerField(source="fees_cents")
    tax = serializers.IntegerField(source="tax_cents")
    discount = serializers.IntegerField(source="discount_cents")
    total = serializers.IntegerField(source="total_cents")


class OrderItemSerializer(serializers.Serializer):
    zoneId = serializers.CharField(source="zone_id")
    tableId = serializers.CharField(source="table_id", allow_null=True)
    seatIds = serializers.ListField(source="seat_ids", child=serializers.CharField())
    unitPrice = serializers.DecimalField(
        source="unit_price", max_digits=14, decimal_places=2, allow_null=True
    )


class StatusEntrySerializer(serializers.Serializer):
    status = serializers.CharField(source="status.value")
    at = serializers.DateTimeField()
    note = serializers.CharField()


class TicketSerializer(serializers.Serializer):
    """Serializer for Ticket domain model."""

    ticketId = serializers.CharField(source="ticket_id")
    orderId = serializers.CharField(source="order_id")
    seatId = serializers.CharField(source="seat_id")
    tableId = serializers.CharField(source="table_id", allow_null=True)
    zoneId = serializers.CharField(source="zone_id")
    status = serializers.CharField(source="status.value")
    issuedAt = serializers.DateTimeField(source="issued_at")
    checkedInAt = serializers.DateTimeField(source="checked_in_at", allow_null=True)


class OrderSerializer(serializers.Serializer):
    """Serializer for Order domain model."""

    id = serializers.CharField()
    userId = serializers.CharField(source="user_id")
    eventId = serializers.CharField(source="event_id")
    sessionDate = serializers.DateTimeField(source="session_date", allow_null=True)
    status = serializers.CharField(source="status.value")
    currency = serializers.CharField()
    items = OrderItemSerializer(many=True)
    totalsCents = TotalsSerializer(source="totals")
    statusTimeline = StatusEntrySerializer(source="timeline", many=True)
    expiresAt = serializers.DateTimeField(source="expires_at", allow_null=True)
    paidAt = serializers.DateTimeField(source="paid_at", allow_null=True)
    canceledAt = serializers.DateTimeField(source="canceled_at", allow_null=True)
    tickets = TicketSerializer(many=True)
