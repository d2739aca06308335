"""Payment webhook processing — turns verified provider events into order changes.

checkout.session.completed
    locate order by session → skip unless PENDING_PAYMENT → reconcile
    totals and address → PAID → enqueue POD submission
checkout.session.expired
    PENDING_PAYMENT → CANCELLED

Event ids are claimed in the provider event inbox before processing so that
a redelivered event is skipped, even by another process.
"""

from collections.abc import Callable

from ordering.inbox.provider_event import claim_event, release_event
from ordering.order.order import OrderStatus
from ordering.order.status import transition_order
from ordering.utils.logging import get_logger
from payments.gateway.port import PaymentEvent
from payments.payment.reconciliation import PaymentReconciler

logger = get_logger(__name__)

WEBHOOK_ACTOR = "webhook:stripe"
EVENT_SOURCE = "stripe"

SESSION_COMPLETED = "checkout.session.completed"
SESSION_EXPIRED = "checkout.session.expired"

# Outcomes reported back to the HTTP layer
PROCESSED = "processed"
DUPLICATE = "duplicate"
SKIPPED = "skipped"
IGNORED = "ignored"


class PaymentWebhookProcessor:
    def __init__(
        self,
        reconciler: PaymentReconciler,
        enqueue_submission: Callable[[str], None] | None = None,
    ) -> None:
        self.reconciler = reconciler
        self.enqueue_submission = enqueue_submission

    def process(self, event: PaymentEvent) -> str:
        if not claim_event(EVENT_SOURCE, event.id):
            logger.info("Event already processed, skipping", event_id=event.id, type=event.type)
            return DUPLICATE

        logger.info("Received payment event", event_id=event.id, type=event.type)

        try:
            if event.type == SESSION_COMPLETED:
                return self._session_completed(event)
            if event.type == SESSION_EXPIRED:
                return self._session_expired(event)
        except Exception:
            # Let a redelivery of this event try again
            release_event(EVENT_SOURCE, event.id)
            raise

        logger.info("Unhandled event type", event_id=event.id, type=event.type)
        return IGNORED

    def _session_completed(self, event: PaymentEvent) -> str:
        session = event.session
        if session is None:
            logger.warning("Completed event without a checkout session", event_id=event.id)
            return IGNORED

        order = self.reconciler.locate_order_by_session(session.id)
        if order is None:
            logger.error("Order not found for session", session_id=session.id)
            return SKIPPED

        order_id = str(order.id)
        if OrderStatus(order.status) != OrderStatus.PENDING_PAYMENT:
            logger.info("Order already processed, skipping", order_id=order_id, status=order.status)
            return SKIPPED

        self.reconciler.confirm_payment(
            order_id,
            session,
            WEBHOOK_ACTOR,
            f"Payment completed via Stripe session {session.id}",
        )

        if self.enqueue_submission is not None:
            try:
                self.enqueue_submission(order_id)
            except Exception as exc:
                # The order is PAID; submission can be triggered again manually
                logger.error(
                    "Failed to enqueue POD submission",
                    order_id=order_id,
                    error=str(exc),
                )
            else:
                logger.info("Triggered POD submission", order_id=order_id)

        return PROCESSED

    def _session_expired(self, event: PaymentEvent) -> str:
        session = event.session
        order = self.reconciler.locate_order_by_session(session.id) if session else None
        if order is None:
            logger.info("No order found for expired session", event_id=event.id)
            return SKIPPED

        if OrderStatus(order.status) != OrderStatus.PENDING_PAYMENT:
            return SKIPPED

        transition_order(
            order.id,
            OrderStatus.CANCELLED,
            WEBHOOK_ACTOR,
            f"Checkout session expired: {session.id}",
        )
        logger.info("Cancelled expired order", order_id=str(order.id), order_number=order.order_number)
        return PROCESSED
