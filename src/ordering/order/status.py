"""TransitionOrderStatus — the one command that moves an order between statuses.

The handler loads the Order, lets the aggregate append its ledger entry and
saves both through the repository inside the handler's unit of work.
Re-applying the status an order already has is a no-op, which makes
redelivered webhooks and retried jobs harmless.

Targets that do not follow the forward lifecycle (for example DELIVERED →
PAID by an operator) are recorded with ``flagged=True`` so they stand out in
the audit trail.
"""

from dataclasses import dataclass

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus, OrderStatusHistory
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    order: Order
    history_entry: OrderStatusHistory | None = None

    @property
    def changed(self) -> bool:
        return self.history_entry is not None


@ordering.command(part_of="Order")
class TransitionOrderStatus:
    order_id = Identifier(required=True)
    target_status = String(required=True, max_length=32, choices=OrderStatus)
    changed_by = String(required=True, max_length=100)
    reason = Text(sanitize=False)
    event_sequence = Integer()


def log_transition(order: Order, entry: OrderStatusHistory | None) -> None:
    if entry is None:
        logger.info("Order already in target status, skipping", order_id=str(order.id), status=order.status)
        return
    if entry.flagged:
        logger.warning(
            "Out-of-sequence status change recorded",
            order_id=str(order.id),
            from_status=entry.from_status,
            to_status=entry.to_status,
            changed_by=entry.changed_by,
        )
    logger.info(
        "Order status updated",
        order_id=str(order.id),
        from_status=entry.from_status,
        to_status=entry.to_status,
        changed_by=entry.changed_by,
    )


@ordering.command_handler(part_of=Order)
class TransitionOrderStatusHandler:
    @handle(TransitionOrderStatus)
    def transition_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        entry = order.transition_to(
            command.target_status,
            command.changed_by,
            reason=command.reason,
            event_sequence=command.event_sequence,
        )
        if entry is not None:
            repo.add(order)

        log_transition(order, entry)
        return TransitionResult(order=order, history_entry=entry)


def transition_order(order_id, target_status, changed_by, reason=None, event_sequence=None) -> TransitionResult:
    """Move an order to ``target_status`` and record who did it and why.

    Args:
        order_id: Internal order id.
        target_status: Status to enter, an OrderStatus or its value.
        changed_by: Actor tag, see ordering.order.order.is_valid_actor().
        reason: Free-text explanation stored on the ledger entry.
        event_sequence: Optional monotonically increasing number of the
            external event that caused this change. Events not newer than
            the last one applied are refused with StaleEvent.

    Raises:
        OrderNotFound: The order id does not resolve.
        InvalidActor: ``changed_by`` is not a recognised actor tag.
        StaleEvent: ``event_sequence`` is older than the last applied event.
    """
    return current_domain.process(
        TransitionOrderStatus(
            order_id=str(order_id),
            target_status=OrderStatus(target_status).value,
            changed_by=changed_by,
            reason=reason,
            event_sequence=event_sequence,
        ),
        asynchronous=False,
    )
