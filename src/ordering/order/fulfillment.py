"""Fulfillment commands — partner references, partner status and print assets.

The partner's order id and status are mirrored onto the Order in the same
unit of work as the status change they cause, so the order never shows a
partner reference without the matching ledger entry.
"""

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus
from ordering.order.status import TransitionResult, log_transition
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


@ordering.command(part_of="Order")
class RecordPodSubmission:
    order_id = Identifier(required=True)
    fulfillment_reference_id = String(required=True, max_length=255, sanitize=False)
    fulfillment_status = String(max_length=100)
    changed_by = String(required=True, max_length=100)
    reason = Text(sanitize=False)


@ordering.command(part_of="Order")
class RecordPartnerStatus:
    order_id = Identifier(required=True)
    fulfillment_reference_id = String(max_length=255, sanitize=False)
    fulfillment_status = String(max_length=100)
    target_status = String(max_length=32, choices=OrderStatus)  # unset when the partner status maps to none
    changed_by = String(required=True, max_length=100)
    reason = Text(sanitize=False)
    event_sequence = Integer()


@ordering.command(part_of="Order")
class AttachPrintReadyAsset:
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    url = Text(required=True, sanitize=False)


@ordering.command_handler(part_of=Order)
class FulfillmentHandler:
    @handle(RecordPodSubmission)
    def record_pod_submission(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        order.record_fulfillment(command.fulfillment_reference_id, command.fulfillment_status)
        entry = order.transition_to(OrderStatus.SUBMITTED_TO_POD, command.changed_by, reason=command.reason)
        repo.add(order)

        log_transition(order, entry)
        return TransitionResult(order=order, history_entry=entry)

    @handle(RecordPartnerStatus)
    def record_partner_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        # Stale events are refused before anything is mirrored
        order.ensure_newer_event(command.event_sequence)

        entry = None
        if command.target_status:
            entry = order.transition_to(
                command.target_status,
                command.changed_by,
                reason=command.reason,
                event_sequence=command.event_sequence,
            )
        if command.fulfillment_reference_id or command.fulfillment_status:
            order.record_fulfillment(
                command.fulfillment_reference_id,
                command.fulfillment_status,
                event_sequence=command.event_sequence,
            )
        repo.add(order)

        if command.target_status:
            log_transition(order, entry)
        return TransitionResult(order=order, history_entry=entry)

    @handle(AttachPrintReadyAsset)
    def attach_print_ready_asset(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        item = order.attach_print_ready_asset(command.item_id, command.url)
        repo.add(order)

        logger.info("Print-ready asset attached", order_id=str(order.id), item_id=str(item.id))
        return item
