import stripe
from django.apps import AppConfig
from django.conf import settings


class TicketingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ticketing"

    def ready(self) -> None:
        from ticketing import signals  # noqa: F401

        # bounded timeout for every outbound Stripe call
        stripe.default_http_client = stripe.RequestsClient(
            timeout=settings.STRIPE_TIMEOUT_SECONDS
        )
        stripe.max_network_retries = 1
