"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models
from django.db.models import Q
from django.utils import timezone

from ticketing.domain.status import HoldStatus, OrderStatus, TicketStatus


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.value.replace("_", " ").title()) for member in enum_cls]


class Event(models.Model):
    """Catalog event, read by checkout for pricing and metadata only."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    venue = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=255, blank=True)
    pricing = models.JSONField(
        default=dict, blank=True, help_text="Zone id -> price in major units"
    )
    pricing_cents = models.JSONField(
        default=dict, blank=True, help_text="Zone id -> price in minor units"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.title


class Order(models.Model):
    """Persistence model for a purchase attempt."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=255, db_index=True)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="orders")
    session_date = models.DateTimeField(null=True, blank=True)
    items = models.JSONField(default=list)
    currency = models.CharField(max_length=8, default="MXN")
    service_fee_pct = models.PositiveSmallIntegerField(default=0)
    subtotal_cents = models.PositiveIntegerField(default=0)
    fees_cents = models.PositiveIntegerField(default=0)
    tax_cents = models.PositiveIntegerField(default=0)
    discount_cents = models.PositiveIntegerField(default=0)
    total_cents = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20,
        choices=_choices(OrderStatus),
        default=OrderStatus.PENDING_PAYMENT.value,
        db_index=True,
    )
    checkout_session_id = models.CharField(max_length=255, blank=True, db_index=True)
    payment_intent_id = models.CharField(max_length=255, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "expires_at"], name="order_status_expiry_idx"),
            models.Index(fields=["event", "status"], name="order_event_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Order {self.id} ({self.status})"


class OrderStatusEntry(models.Model):
    """Append-only audit row of an order's status history."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="timeline")
    status = models.CharField(max_length=20, choices=_choices(OrderStatus))
    note = models.CharField(max_length=255, blank=True)
    at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.order_id} -> {self.status}"


class Ticket(models.Model):
    """A ticket issued for one sold seat of a paid order."""

    ticket_id = models.CharField(max_length=64, unique=True)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="tickets")
    seat_id = models.CharField(max_length=64)
    table_id = models.CharField(max_length=64, null=True, blank=True)
    zone_id = models.CharField(max_length=64, blank=True)
    status = models.CharField(
        max_length=20,
        choices=_choices(TicketStatus),
        default=TicketStatus.ISSUED.value,
    )
    issued_at = models.DateTimeField(default=timezone.now)
    checked_in_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "seat_id"], name="uniq_ticket_per_order_seat"
            ),
        ]

    def __str__(self) -> str:
        return self.ticket_id


class SeatHold(models.Model):
    """Temporary exclusive claim on a seat, or the final record of its sale."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="seat_holds")
    table_id = models.CharField(max_length=64, null=True, blank=True)
    seat_id = models.CharField(max_length=64, null=True, blank=True)
    zone_id = models.CharField(max_length=64, blank=True)
    user_id = models.CharField(max_length=255)
    order = models.ForeignKey(
        Order,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="holds",
    )
    status = models.CharField(
        max_length=20,
        choices=_choices(HoldStatus),
        default=HoldStatus.ACTIVE.value,
    )
    expires_at = models.DateTimeField(null=True, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            # a seat may have many released rows but one live claim and one sale
            models.UniqueConstraint(
                fields=["event", "seat_id"],
                condition=Q(status="active"),
                name="uniq_active_hold_per_seat",
            ),
            models.UniqueConstraint(
                fields=["event", "seat_id"],
                condition=Q(status="sold"),
                name="uniq_sold_hold_per_seat",
            ),
        ]
        indexes = [
            models.Index(fields=["order", "status"], name="hold_order_status_idx"),
            models.Index(fields=["event", "status"], name="hold_event_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.event_id}:{self.table_id}:{self.seat_id} ({self.status})"
