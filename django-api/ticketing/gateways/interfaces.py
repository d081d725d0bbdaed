"""Payment provider interface.

Gateways must be swappable; services never import a provider SDK directly.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ticketing.domain import LineItem, PaymentSession, SettlementEvent


class PaymentProviderError(Exception):
    """Raised when the payment provider rejects or fails a request."""


class PaymentGateway(ABC):
    @abstractmethod
    def create_checkout_session(
        self,
        line_items: Sequence[LineItem],
        currency: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> PaymentSession:
        """Open a hosted payment session.

        ``metadata`` is echoed back on every webhook for the session and is
        how settlement finds the order again.

        Raises:
            PaymentProviderError: If the provider refuses the session.
        """
        ...

    @abstractmethod
    def expire_checkout_session(self, session_id: str) -> None:
        """Close an open session so it can no longer be paid.

        Raises:
            PaymentProviderError: If the provider call fails.
        """
        ...

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str) -> SettlementEvent:
        """Verify a webhook delivery and extract the settlement event.

        Raises:
            SettlementRejectedError: If the signature or payload is invalid.
        """
        ...
