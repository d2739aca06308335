"""Stripe payment gateway adapter.

Uses the stripe-python SDK to:
- Issue refunds against a PaymentIntent
- Retrieve completed Checkout Sessions (final totals, shipping details)
- Verify webhook signatures with the endpoint's signing secret
"""

import stripe
import structlog

from ordering.order.exceptions import ProviderError
from payments.gateway.mapping import event_from_payload, session_from_payload
from payments.gateway.port import (
    PaymentEvent,
    PaymentGateway,
    PaymentSession,
    RefundRequest,
    RefundResult,
)

logger = structlog.get_logger(__name__)


def _as_dict(obj) -> dict:
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return obj


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    name = "stripe"

    def __init__(self, api_key: str, webhook_secret: str | None = None) -> None:
        if not api_key:
            raise ValueError("STRIPE_SECRET_KEY is required for the Stripe gateway")
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def create_refund(self, request: RefundRequest) -> RefundResult:
        params = {
            "payment_intent": request.payment_reference_id,
            "reason": request.reason,
            "metadata": request.metadata,
        }
        if request.amount is not None:
            params["amount"] = request.amount
        if request.order_id:
            params["idempotency_key"] = f"refund-{request.order_id}"

        try:
            refund = stripe.Refund.create(api_key=self.api_key, **params)
        except stripe.StripeError as exc:
            logger.error(
                "Stripe refund failed",
                payment_intent=request.payment_reference_id,
                error=str(exc),
            )
            return RefundResult(
                success=False,
                gateway_status="failed",
                failure_reason=exc.user_message or str(exc),
            )

        data = _as_dict(refund)
        status = data.get("status")
        return RefundResult(
            success=status in ("succeeded", "pending"),
            gateway_refund_id=data.get("id"),
            gateway_status=status,
            failure_reason=data.get("failure_reason"),
        )

    def retrieve_session(self, session_id: str) -> PaymentSession:
        try:
            session = stripe.checkout.Session.retrieve(
                session_id,
                api_key=self.api_key,
                expand=["payment_intent"],
            )
        except stripe.StripeError as exc:
            raise ProviderError("stripe", str(exc), status_code=exc.http_status) from exc
        return session_from_payload(_as_dict(session))

    def construct_event(self, payload: bytes, signature: str) -> PaymentEvent | None:
        if not self.webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET is not set")
            return None
        if not signature:
            return None

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            logger.warning("Stripe signature verification failed", error=str(exc))
            return None
        return event_from_payload(_as_dict(event))
