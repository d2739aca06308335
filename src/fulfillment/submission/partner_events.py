"""Fulfillment partner events — folds partner status updates into the order.

The partner reports progress through webhook callbacks. Each callback
carries the partner's order (id, external_id, status) and optionally a
monotonically increasing ``sequence``. Status changes are recorded under the
``webhook:printful`` actor, so replays are no-ops and out-of-order
deliveries, failures included, are refused.
"""

from dataclasses import dataclass

from protean.utils.globals import current_domain

from ordering.order.compensation import FailureCompensator
from ordering.order.exceptions import OrderNotFound
from ordering.order.fulfillment import RecordPartnerStatus
from ordering.order.order import Order, OrderStatus
from ordering.order.status import TransitionResult
from ordering.utils.logging import get_logger

logger = get_logger(__name__)

PARTNER_ACTOR = "webhook:printful"

PARTNER_STATUS_MAP = {
    "draft": OrderStatus.SUBMITTED_TO_POD,
    "pending": OrderStatus.SUBMITTED_TO_POD,
    "inprocess": OrderStatus.IN_PRODUCTION,
    "fulfilled": OrderStatus.SHIPPED,
    "shipped": OrderStatus.SHIPPED,
    "delivered": OrderStatus.DELIVERED,
    "canceled": OrderStatus.CANCELLED,
}

# Event types that imply a status when the payload has none
_EVENT_STATUS = {
    "package_shipped": "shipped",
    "order_delivered": "delivered",
    "order_canceled": "canceled",
}

FAILURE_EVENTS = frozenset({"order_failed"})


@dataclass(frozen=True)
class PartnerEvent:
    type: str
    order_id: str | None = None
    external_id: str | None = None
    partner_order_id: str | None = None
    partner_status: str | None = None
    reason: str | None = None
    sequence: int | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "PartnerEvent":
        """Parse a partner callback body.

        ``data.order`` holds the partner order; ``order_id`` may be given
        directly when the caller already knows our id.
        """
        data = payload.get("data") or {}
        partner_order = data.get("order") or {}
        sequence = payload.get("sequence")
        partner_order_id = partner_order.get("id")
        return cls(
            type=payload.get("type", ""),
            order_id=payload.get("order_id"),
            external_id=partner_order.get("external_id"),
            partner_order_id=str(partner_order_id) if partner_order_id is not None else None,
            partner_status=partner_order.get("status"),
            reason=data.get("reason"),
            sequence=int(sequence) if sequence is not None else None,
        )


class FulfillmentEventProcessor:
    def __init__(self, compensator: FailureCompensator) -> None:
        self.compensator = compensator

    def process(self, event: PartnerEvent) -> TransitionResult | None:
        """Apply one partner event. Returns the transition result, if any.

        Raises:
            OrderNotFound: The event does not resolve to an order.
            StaleEvent: The event is older than the last one applied.
        """
        order = self._locate(event)
        order_id = str(order.id)

        if event.type in FAILURE_EVENTS:
            # Stale failures are refused before any refund is attempted
            order.ensure_newer_event(event.sequence)
            reason = event.reason or "Fulfillment partner reported the order as failed"
            self.compensator.handle_fulfillment_failure(order_id, reason, event_sequence=event.sequence)
            return None

        partner_status = event.partner_status or _EVENT_STATUS.get(event.type)
        target = PARTNER_STATUS_MAP.get(partner_status or "")

        if target is None:
            logger.info(
                "Partner event carries no mapped status",
                order_id=order_id,
                event_type=event.type,
                partner_status=partner_status,
            )
            if not (event.partner_order_id or partner_status):
                return None

        return current_domain.process(
            RecordPartnerStatus(
                order_id=order_id,
                fulfillment_reference_id=event.partner_order_id,
                fulfillment_status=partner_status,
                target_status=target.value if target else None,
                changed_by=PARTNER_ACTOR,
                reason=f"Fulfillment partner reported status {partner_status} ({event.type})",
                event_sequence=event.sequence,
            ),
            asynchronous=False,
        )

    def _locate(self, event: PartnerEvent) -> Order:
        repo = current_domain.repository_for(Order)
        if event.order_id:
            return repo.get_order(event.order_id)
        if event.external_id:
            return repo.get_by_order_number(event.external_id)
        if event.partner_order_id:
            return repo.get_by_fulfillment_reference(event.partner_order_id)
        raise OrderNotFound("<unidentified>")
