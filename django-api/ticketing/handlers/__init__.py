from ticketing.handlers.views import (
    BlockedSeatsView,
    CheckoutView,
    OrderDetailView,
    PreflightView,
    StripeWebhookView,
    TicketDetailView,
)

__all__ = [
    "BlockedSeatsView",
    "CheckoutView",
    "OrderDetailView",
    "PreflightView",
    "StripeWebhookView",
    "TicketDetailView",
]
