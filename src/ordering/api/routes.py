"""FastAPI routes for the Ordering domain — orders and their audit trail."""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from fulfillment.submission.job import SubmitPodOrderJob
from ordering.api.dependencies import get_submission_job
from ordering.api.schemas import (
    AdminTransitionRequest,
    AttachPaymentSessionRequest,
    CreateOrderRequest,
    OrderIdResponse,
    OrderItemResponse,
    OrderResponse,
    PrintReadyAssetRequest,
    ShippingAddressResponse,
    StatusHistoryResponse,
    StatusResponse,
    SubmissionResponse,
    TransitionResponse,
)
from ordering.order.creation import AttachPaymentSession, place_order as place_order_command
from ordering.order.fulfillment import AttachPrintReadyAsset
from ordering.order.order import Order
from ordering.order.status import transition_order

order_router = APIRouter(prefix="/orders", tags=["orders"])


def order_response(order: Order) -> OrderResponse:
    address = order.shipping_address
    return OrderResponse(
        id=str(order.id),
        order_number=order.order_number,
        status=order.status,
        subtotal=order.subtotal,
        shipping=order.shipping,
        tax=order.tax,
        total=order.total,
        currency=order.currency,
        payment_session_id=order.payment_session_id,
        payment_reference_id=order.payment_reference_id,
        refund_reference_id=order.refund_reference_id,
        fulfillment_reference_id=order.fulfillment_reference_id,
        fulfillment_status=order.fulfillment_status,
        shipping_address=(
            ShippingAddressResponse(
                name=address.name,
                address1=address.address1,
                address2=address.address2,
                city=address.city,
                state_code=address.state_code,
                country_code=address.country_code,
                zip=address.zip,
                email=address.email,
                phone=address.phone,
            )
            if address is not None
            else None
        ),
        items=[
            OrderItemResponse(
                id=str(item.id),
                position=item.position,
                product_variant_id=item.product_variant_id,
                partner_variant_id=item.partner_variant_id,
                product_name=item.product_name,
                variant_name=item.variant_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                thumbnail_url=item.thumbnail_url,
                customization=item.customization or None,
            )
            for item in sorted(order.items, key=lambda item: item.position)
        ],
        history=[
            StatusHistoryResponse(
                from_status=entry.from_status,
                to_status=entry.to_status,
                changed_by=entry.changed_by,
                reason=entry.reason,
                flagged=entry.flagged,
                event_sequence=entry.event_sequence,
                created_at=entry.created_at,
            )
            for entry in order.history()
        ],
        paid_at=order.paid_at,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        created_at=order.created_at,
    )


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: CreateOrderRequest) -> OrderIdResponse:
    """Create a PENDING_PAYMENT order at checkout time."""
    order_id = place_order_command(
        [item.model_dump(mode="json", exclude_none=True) for item in body.items],
        payment_session_id=body.payment_session_id,
        currency=body.currency.upper(),
    )
    order = current_domain.repository_for(Order).get_order(order_id)
    return OrderIdResponse(order_id=order_id, order_number=order.order_number)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    """Order with items, shipping address and full status history."""
    order = current_domain.repository_for(Order).get_order(order_id)
    return order_response(order)


@order_router.put("/{order_id}/payment-session", response_model=StatusResponse)
async def link_payment_session(order_id: str, body: AttachPaymentSessionRequest) -> StatusResponse:
    command = AttachPaymentSession(order_id=order_id, payment_session_id=body.payment_session_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="payment_session_attached")


@order_router.post("/{order_id}/status", response_model=TransitionResponse)
async def change_status(order_id: str, body: AdminTransitionRequest) -> TransitionResponse:
    """Manual status change by an operator, recorded as ``admin:<id>``."""
    result = transition_order(order_id, body.status, f"admin:{body.admin_id}", reason=body.reason)
    return TransitionResponse(
        order_id=order_id,
        status=result.order.status,
        changed=result.changed,
        flagged=bool(result.history_entry and result.history_entry.flagged),
    )


@order_router.post("/{order_id}/submit", response_model=SubmissionResponse)
def submit_order(order_id: str, job: SubmitPodOrderJob = Depends(get_submission_job)) -> SubmissionResponse:
    """Submit a paid order to the fulfillment partner now."""
    result = job.run_with_retry(order_id)
    return SubmissionResponse(
        order_id=result.order_id,
        status=result.status,
        fulfillment_reference_id=result.fulfillment_reference_id,
        fulfillment_status=result.fulfillment_status,
    )


@order_router.put("/{order_id}/items/{item_id}/print-ready", response_model=StatusResponse)
async def attach_print_ready(order_id: str, item_id: str, body: PrintReadyAssetRequest) -> StatusResponse:
    command = AttachPrintReadyAsset(order_id=order_id, item_id=item_id, url=body.print_ready_url)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="print_ready_attached")
