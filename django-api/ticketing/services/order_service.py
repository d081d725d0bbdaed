"""Read-side lookups for orders and issued tickets."""

from ticketing.domain import Order, OrderId, Ticket
from ticketing.domain.errors import OrderNotFoundError, TicketNotFoundError
from ticketing.stores.interfaces import OrderStore


class OrderService:
    """Service for order and ticket lookups."""

    def __init__(self, orders: OrderStore) -> None:
        self._orders = orders

    def get_order(self, order_id: str, requester_id: str, is_staff: bool = False) -> Order:
        """Return an order visible to the requester.

        Orders belonging to someone else are reported as missing.

        Raises:
            OrderNotFoundError: If the id is malformed, unknown, or not the
                requester's.
        """
        try:
            parsed = OrderId.from_string(order_id)
        except ValueError:
            raise OrderNotFoundError(order_id)
        order = self._orders.get(parsed)
        if order is None or not (is_staff or order.user_id == requester_id):
            raise OrderNotFoundError(order_id)
        return order

    def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = self._orders.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket
