from django.contrib import admin, messages

from ticketing import wiring
from ticketing.domain import OrderId
from ticketing.domain.errors import DomainError
from ticketing.models import Event, Order, OrderStatusEntry, SeatHold, Ticket


class OrderStatusEntryInline(admin.TabularInline):
    model = OrderStatusEntry
    extra = 0
    can_delete = False
    readonly_fields = ["status", "note", "at"]

    def has_add_permission(self, request, obj=None):
        return False


class TicketInline(admin.TabularInline):
    model = Ticket
    extra = 0
    readonly_fields = ["ticket_id", "seat_id", "table_id", "zone_id", "issued_at"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["title", "venue", "city", "created_at"]
    search_fields = ["title", "venue", "city"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["id", "event", "user_id", "status", "total_cents", "currency", "created_at"]
    list_filter = ["status", "event"]
    search_fields = ["id", "user_id", "checkout_session_id"]
    readonly_fields = [
        "status",
        "subtotal_cents",
        "fees_cents",
        "tax_cents",
        "discount_cents",
        "total_cents",
        "paid_at",
        "canceled_at",
        "checkout_session_id",
        "payment_intent_id",
    ]
    inlines = [OrderStatusEntryInline, TicketInline]
    actions = ["cancel_orders"]

    @admin.action(description="Cancel selected pending orders")
    def cancel_orders(self, request, queryset):
        service = wiring.settlement_service()
        canceled = 0
        for order in queryset:
            try:
                if service.cancel_order(OrderId(order.pk), note=f"canceled by {request.user}"):
                    canceled += 1
            except DomainError as exc:
                self.message_user(request, f"{order.pk}: {exc.message}", messages.WARNING)
        self.message_user(request, f"Canceled {canceled} order(s).")


@admin.register(SeatHold)
class SeatHoldAdmin(admin.ModelAdmin):
    list_display = ["event", "table_id", "seat_id", "status", "order", "expires_at"]
    list_filter = ["status", "event"]
    search_fields = ["seat_id", "table_id", "order__id"]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ["ticket_id", "order", "seat_id", "table_id", "zone_id", "status"]
    list_filter = ["status"]
    search_fields = ["ticket_id", "seat_id"]
