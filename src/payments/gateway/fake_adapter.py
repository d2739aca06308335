"""Configurable fake payment gateway for development and testing.

This adapter simulates the payment provider without any external calls.
It can be configured at runtime to succeed or fail, and records every call
so tests can assert on what the ordering core asked for.

Webhook payloads are plain JSON in Stripe's shape; the signature is
accepted when it equals ``test-signature``.
"""

import json
from uuid import uuid4

from ordering.order.exceptions import ProviderError
from payments.gateway.mapping import event_from_payload
from payments.gateway.port import (
    PaymentEvent,
    PaymentGateway,
    PaymentSession,
    RefundRequest,
    RefundResult,
)

TEST_SIGNATURE = "test-signature"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    name = "fake"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Refund declined"
        self.raise_on_refund: bool = False
        self.sessions: dict[str, PaymentSession] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Refund declined",
        raise_on_refund: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_on_refund = raise_on_refund

    def add_session(self, session: PaymentSession) -> None:
        self.sessions[session.id] = session

    def create_refund(self, request: RefundRequest) -> RefundResult:
        self.calls.append(
            {
                "method": "create_refund",
                "payment_reference_id": request.payment_reference_id,
                "order_id": request.order_id,
                "reason": request.reason,
                "metadata": dict(request.metadata),
                "amount": request.amount,
            }
        )

        if self.raise_on_refund:
            raise ProviderError("fake", self.failure_reason)
        if self.should_succeed:
            return RefundResult(
                success=True,
                gateway_refund_id=f"fake_ref_{uuid4().hex[:12]}",
                gateway_status="succeeded",
            )
        return RefundResult(
            success=False,
            gateway_status="failed",
            failure_reason=self.failure_reason,
        )

    def retrieve_session(self, session_id: str) -> PaymentSession:
        self.calls.append({"method": "retrieve_session", "session_id": session_id})
        try:
            return self.sessions[session_id]
        except KeyError:
            raise ProviderError("fake", f"No such checkout session: {session_id}", status_code=404) from None

    def construct_event(self, payload: bytes, signature: str) -> PaymentEvent | None:
        if signature != TEST_SIGNATURE:
            return None
        return event_from_payload(json.loads(payload))

    @property
    def refund_calls(self) -> list[dict]:
        return [call for call in self.calls if call["method"] == "create_refund"]
