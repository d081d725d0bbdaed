"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import logging

from django.db import DatabaseError
from rest_framework import permissions, status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from ticketing import wiring
from ticketing.domain import CheckoutConfig
from ticketing.domain.errors import (
    CheckoutFailedError,
    DomainError,
    ErrorCode,
    SeatConflictError,
    SettlementRejectedError,
)
from ticketing.handlers.serializers import (
    CheckoutRequestSerializer,
    OrderSerializer,
    PreflightRequestSerializer,
    PricingSerializer,
    TicketSerializer,
    confirmed_pricing,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorCode.INVALID_CART: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_EVENT_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TICKET_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.SEAT_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.CHECKOUT_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.SETTLEMENT_REJECTED: status.HTTP_400_BAD_REQUEST,
}


def error_response(error: DomainError) -> Response:
    body = {"error": error.code.value, "message": error.message}
    if isinstance(error, SeatConflictError):
        body["seats"] = error.seat_ids
    return Response(
        body, status=ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST)
    )


def invalid_request(errors) -> Response:
    return Response(
        {
            "error": ErrorCode.INVALID_CART.value,
            "message": "eventId and items are required",
            "fields": errors,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


class PreflightView(APIView):
    """Handler for POST /api/checkout/preflight"""

    permission_classes = [permissions.AllowAny]

    def post(self, request: Request) -> Response:
        serializer = PreflightRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)
        try:
            result = wiring.checkout_service().preflight(
                serializer.validated_data["eventId"], serializer.cart_items()
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(
            {
                "ok": True,
                "pricing": PricingSerializer(result.pricing).data,
                "hold": {
                    "holdGroupId": result.hold_group_id,
                    "expiresAt": result.expires_at.isoformat(),
                },
            }
        )


class CheckoutView(APIView):
    """Handler for POST /api/checkout"""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request: Request) -> Response:
        serializer = CheckoutRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)
        data = serializer.validated_data
        try:
            result = wiring.checkout_service().checkout(
                user_id=str(request.user.pk),
                event_id=data["eventId"],
                items=serializer.cart_items(),
                session_date=data.get("sessionDate"),
                confirmed_pricing=confirmed_pricing(
                    data.get("pricing"), CheckoutConfig.from_settings()
                ),
            )
        except CheckoutFailedError as exc:
            logger.error("Checkout failed for order %s: %s", exc.order_id, exc.detail)
            return error_response(exc)
        except DomainError as exc:
            return error_response(exc)
        return Response({"checkoutUrl": result.checkout_url, "orderId": str(result.order_id)})


class StripeWebhookView(APIView):
    """Handler for POST /api/webhooks/stripe

    Authenticated only by the provider's signature; the raw body is needed
    for verification, so ``request.data`` is never touched here.
    """

    authentication_classes = []
    permission_classes = []

    def post(self, request: Request) -> Response:
        signature = request.META.get("HTTP_STRIPE_SIGNATURE", "")
        try:
            outcome = wiring.settlement_service().handle_webhook(request.body, signature)
        except SettlementRejectedError as exc:
            logger.warning("Rejected webhook delivery: %s", exc.detail)
            return error_response(exc)
        except DatabaseError:
            # the provider redelivers on non-2xx
            logger.exception("Could not apply webhook delivery")
            return Response(
                {"received": False}, status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
        return Response({"received": True, "outcome": outcome.value})


class BlockedSeatsView(APIView):
    """Handler for GET /api/events/{event_id}/blocked"""

    permission_classes = [permissions.AllowAny]

    def get(self, request: Request, event_id: str) -> Response:
        try:
            seats = wiring.checkout_service().list_blocked_seats(event_id)
        except DomainError as exc:
            return error_response(exc)
        return Response(
            {
                "eventId": event_id,
                "blocked": [{"tableId": table_id, "seatId": seat_id} for table_id, seat_id in seats],
            }
        )


class OrderDetailView(APIView):
    """Handler for GET /api/orders/{order_id}"""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request: Request, order_id: str) -> Response:
        try:
            order = wiring.order_service().get_order(
                order_id, requester_id=str(request.user.pk), is_staff=request.user.is_staff
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(OrderSerializer(order).data)


class TicketDetailView(APIView):
    """Handler for GET /api/tickets/{ticket_id}"""

    permission_classes = [permissions.AllowAny]

    def get(self, request: Request, ticket_id: str) -> Response:
        try:
            ticket = wiring.order_service().get_ticket(ticket_id)
        except DomainError as exc:
            return error_response(exc)
        return Response(TicketSerializer(ticket).data)
