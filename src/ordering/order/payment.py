"""ReconcilePayment — fold provider-confirmed payment facts into the order.

The provider calculates shipping and tax during checkout, so they are only
known once the session completes. When the command names the actor that
confirmed the payment, the order also moves to PAID in the same unit of
work, so an order is never PAID with subtotal-only totals.
"""

import json

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus
from ordering.order.status import log_transition
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


@ordering.command(part_of="Order")
class ReconcilePayment:
    order_id = Identifier(required=True)
    payment_reference_id = String(max_length=255, sanitize=False)
    amount_total = Integer()
    shipping_total = Integer()
    tax_total = Integer()
    shipping_address = Text(sanitize=False)  # JSON: address dict
    paid_by = String(max_length=100)  # actor tag; leave unset to only record totals
    paid_reason = Text(sanitize=False)


@ordering.command_handler(part_of=Order)
class ReconcilePaymentHandler:
    @handle(ReconcilePayment)
    def reconcile_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        address = json.loads(command.shipping_address) if command.shipping_address else None
        address_saved = order.record_payment(
            payment_reference_id=command.payment_reference_id or order.payment_reference_id,
            amount_total=command.amount_total,
            shipping_total=command.shipping_total,
            tax_total=command.tax_total,
            address=address,
        )

        entry = None
        if command.paid_by:
            entry = order.transition_to(OrderStatus.PAID, command.paid_by, reason=command.paid_reason)

        repo.add(order)

        logger.info(
            "Order updated with provider totals",
            order_id=str(order.id),
            total=order.total,
            shipping=order.shipping,
            tax=order.tax,
            address_saved=address_saved,
        )
        if command.paid_by:
            log_transition(order, entry)
        return order
