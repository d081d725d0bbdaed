from django.urls import path

from ticketing.handlers import (
    BlockedSeatsView,
    CheckoutView,
    OrderDetailView,
    PreflightView,
    StripeWebhookView,
    TicketDetailView,
)

urlpatterns = [
    path("checkout/preflight", PreflightView.as_view(), name="checkout-preflight"),
    path("checkout", CheckoutView.as_view(), name="checkout"),
    path("webhooks/stripe", StripeWebhookView.as_view(), name="stripe-webhook"),
    path(
        "events/<str:event_id>/blocked",
        BlockedSeatsView.as_view(),
        name="event-blocked-seats",
    ),
    path("orders/<str:order_id>", OrderDetailView.as_view(), name="order-detail"),
    path("tickets/<str:ticket_id>", TicketDetailView.as_view(), name="ticket-detail"),
]
