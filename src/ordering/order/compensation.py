"""Failure Compensator — refunds and closes out orders that cannot be fulfilled.

This runs in failure paths, so it never raises: whatever happens, the order
ends in a terminal status with a reason explaining what was attempted. A
refund that fails is recorded as FAILED rather than silently dropped. The
refund is attempted exactly once; retrying is the caller's decision.

The refund is an external call and happens before the CloseFailedOrder
command, whose handler writes the terminal status and its ledger entry in
one unit of work.
"""

from protean import handle
from protean.fields import Boolean, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.exceptions import CompensationFailure, OrderingError, OrderNotFound
from ordering.order.order import Order
from ordering.order.status import TransitionResult, log_transition
from ordering.utils.logging import get_logger
from payments.gateway.port import PaymentGateway, RefundRequest

logger = get_logger(__name__)

REFUND_REASON_CODE = "requested_by_customer"


@ordering.command(part_of="Order")
class CloseFailedOrder:
    order_id = Identifier(required=True)
    reason = Text(required=True, sanitize=False)
    refunded = Boolean(default=False)
    refund_reference_id = String(max_length=255, sanitize=False)
    refund_error = Text(sanitize=False)
    event_sequence = Integer()


@ordering.command_handler(part_of=Order)
class CloseFailedOrderHandler:
    @handle(CloseFailedOrder)
    def close_failed_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        entry = order.close_after_fulfillment_failure(
            command.reason,
            refunded=command.refunded,
            refund_reference_id=command.refund_reference_id,
            refund_error=command.refund_error,
            event_sequence=command.event_sequence,
        )
        if entry is not None:
            repo.add(order)

        log_transition(order, entry)
        return TransitionResult(order=order, history_entry=entry)


class FailureCompensator:
    def __init__(self, gateway: PaymentGateway) -> None:
        self.gateway = gateway

    def handle_fulfillment_failure(self, order_id: str, reason: str, event_sequence: int | None = None) -> None:
        logger.error("Order fulfillment failed", order_id=order_id, reason=reason)

        try:
            order = current_domain.repository_for(Order).get_order(order_id)
        except OrderNotFound:
            logger.error("Cannot compensate unknown order", order_id=order_id)
            return
        except Exception:
            logger.exception("Could not load order for compensation", order_id=order_id)
            return

        if order.is_terminal():
            logger.info("Order already closed, nothing to compensate", order_id=order_id, status=order.status)
            return

        if not order.is_refundable():
            # Never charged, or already past PAID: nothing to give back
            self._close(order_id, reason, event_sequence=event_sequence)
            return

        try:
            refund_id = self._refund(order, reason)
        except CompensationFailure as exc:
            logger.error(
                "Refund failed for order",
                order_id=order_id,
                order_number=order.order_number,
                error=str(exc),
            )
            self._close(order_id, reason, refund_error=str(exc), event_sequence=event_sequence)
            return

        self._close(order_id, reason, refunded=True, refund_reference_id=refund_id, event_sequence=event_sequence)

    def _refund(self, order: Order, reason: str) -> str | None:
        request = RefundRequest(
            payment_reference_id=order.payment_reference_id,
            order_id=str(order.id),
            reason=REFUND_REASON_CODE,
            metadata={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "failure_reason": reason,
            },
        )
        try:
            result = self.gateway.create_refund(request)
        except Exception as exc:
            raise CompensationFailure(str(exc), order_id=str(order.id)) from exc

        if not result.success:
            raise CompensationFailure(result.failure_reason or "Refund was not accepted", order_id=str(order.id))

        logger.info(
            "Refund created for order",
            order_id=str(order.id),
            order_number=order.order_number,
            refund_id=result.gateway_refund_id,
        )
        return result.gateway_refund_id

    def _close(self, order_id: str, reason: str, **outcome) -> None:
        try:
            current_domain.process(CloseFailedOrder(order_id=order_id, reason=reason, **outcome), asynchronous=False)
        except OrderingError as exc:
            logger.error("Could not record compensation outcome", order_id=order_id, error=str(exc))
        except Exception:
            logger.exception("Could not record compensation outcome", order_id=order_id)
