"""FastAPI routes for the Payments domain — provider webhooks and checkout sessions."""

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from ordering.api.dependencies import get_gateway, get_payment_webhooks, get_reconciler, get_settings
from ordering.api.routes import order_response
from ordering.config import Settings
from ordering.order.exceptions import OrderingError
from ordering.utils.logging import get_logger
from payments.api.schemas import (
    CheckoutSessionResponse,
    ConfigureGatewayRequest,
    GatewayConfigResponse,
    SessionAddressResponse,
    SessionLookupResponse,
    SessionShippingDetailsResponse,
    WebhookResponse,
    WebhookStatusResponse,
)
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway, PaymentSession
from payments.gateway.stripe_adapter import StripeGateway
from payments.payment.reconciliation import PaymentReconciler
from payments.payment.webhook import PaymentWebhookProcessor

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post("/stripe", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(default=""),
    gateway: PaymentGateway = Depends(get_gateway),
    processor: PaymentWebhookProcessor = Depends(get_payment_webhooks),
) -> WebhookResponse:
    """Process a payment provider event.

    Only signature failures are rejected. Processing errors are acknowledged
    with 200 so the provider does not redeliver; it retries on 5xx only.
    """
    payload = await request.body()
    event = gateway.construct_event(payload, stripe_signature)
    if event is None:
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        outcome = await run_in_threadpool(processor.process, event)
    except OrderingError as exc:
        logger.error("Error processing payment event", event_id=event.id, type=event.type, error=str(exc))
        return WebhookResponse(error="Processing error")
    return WebhookResponse(outcome=outcome)


@webhook_router.get("/stripe", response_model=WebhookStatusResponse)
async def stripe_webhook_status(gateway: PaymentGateway = Depends(get_gateway)) -> WebhookStatusResponse:
    configured = isinstance(gateway, FakeGateway) or (
        isinstance(gateway, StripeGateway) and bool(gateway.webhook_secret)
    )
    return WebhookStatusResponse(status="Stripe webhook endpoint active", configured=configured)


# ---------------------------------------------------------------------------
# Gateway Router
# ---------------------------------------------------------------------------
gateway_router = APIRouter(prefix="/payments", tags=["payments"])


def _session_response(session: PaymentSession) -> CheckoutSessionResponse:
    details = session.shipping_details
    return CheckoutSessionResponse(
        id=session.id,
        status=session.payment_status,
        amount_total=session.amount_total,
        currency=session.currency,
        customer_email=details.email if details else None,
        customer_name=details.name if details else None,
        shipping=session.shipping_total or 0,
        tax=session.tax_total or 0,
        shipping_details=(
            SessionShippingDetailsResponse(
                name=details.name,
                address=SessionAddressResponse(
                    line1=details.line1,
                    line2=details.line2,
                    city=details.city,
                    state=details.state,
                    postal_code=details.postal_code,
                    country=details.country,
                ),
            )
            if details is not None
            else None
        ),
    )


@gateway_router.get("/sessions/{session_id}", response_model=SessionLookupResponse)
def get_checkout_session(
    session_id: str,
    reconciler: PaymentReconciler = Depends(get_reconciler),
) -> SessionLookupResponse:
    """Checkout session as the provider reports it, with the order it paid for.

    Used by the checkout success page. 404 when no order is linked to the
    session, 502 when the provider lookup fails.
    """
    lookup = reconciler.lookup_session(session_id)
    return SessionLookupResponse(
        session=_session_response(lookup.session),
        order=order_response(lookup.order),
    )


@gateway_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(
    body: ConfigureGatewayRequest,
    settings: Settings = Depends(get_settings),
    gateway: PaymentGateway = Depends(get_gateway),
) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    Allows toggling refund success/failure for manual API testing.
    """
    if settings.is_production:
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        raise_on_refund=body.raise_on_refund,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
        raise_on_refund=gateway.raise_on_refund,
    )
