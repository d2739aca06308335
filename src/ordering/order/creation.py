"""Order creation at checkout-session time — commands and handler.

The order starts in PENDING_PAYMENT with a subtotal-only total; the payment
provider fills in shipping and tax later (see ordering.order.payment).
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    items = Text(required=True, sanitize=False)  # JSON: list of item dicts
    payment_session_id = String(max_length=255, sanitize=False)
    currency = String(max_length=3, default="USD")


@ordering.command(part_of="Order")
class AttachPaymentSession:
    """Link the provider's checkout session to an order created before the session existed."""

    order_id = Identifier(required=True)
    payment_session_id = String(required=True, max_length=255, sanitize=False)


@ordering.command_handler(part_of=Order)
class OrderCreationHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items

        order = Order.place(
            items=items_data,
            payment_session_id=command.payment_session_id,
            currency=command.currency,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order created",
            order_id=str(order.id),
            order_number=order.order_number,
            subtotal=order.subtotal,
            item_count=len(order.items),
        )
        return str(order.id)

    @handle(AttachPaymentSession)
    def attach_payment_session(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        order.payment_session_id = command.payment_session_id
        repo.add(order)
        return str(order.id)


def place_order(items, payment_session_id=None, currency="USD") -> str:
    """Create an order and its first ledger entry; returns the order id.

    Raises:
        protean.exceptions.ValidationError: no items, an item with a
            non-positive quantity or negative price, or a customization that
            does not match its technique.
    """
    return current_domain.process(
        PlaceOrder(
            items=json.dumps(items),
            payment_session_id=payment_session_id,
            currency=currency,
        ),
        asynchronous=False,
    )
