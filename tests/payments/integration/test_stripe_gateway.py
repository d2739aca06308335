"""Integration tests for the Stripe gateway adapter with the SDK boundary mocked."""

import hashlib
import hmac
import json
import time
from unittest.mock import patch

import pytest
import stripe
from ordering.order.exceptions import ProviderError
from payments.gateway.port import RefundRequest
from payments.gateway.stripe_adapter import StripeGateway

WEBHOOK_SECRET = "whsec_test_secret"


def _sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def _checkout_event(event_type="checkout.session.completed"):
    return {
        "id": "evt_stripe_1",
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": "cs_test_abc",
                "object": "checkout.session",
                "amount_total": 4500,
                "currency": "usd",
                "payment_intent": "pi_abc",
                "total_details": {"amount_tax": 300},
            }
        },
    }


@pytest.fixture()
def gateway():
    return StripeGateway(api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET)


class TestConstruction:
    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            StripeGateway(api_key="")


class TestCreateRefund:
    def test_succeeded_refund(self, gateway):
        with patch.object(stripe.Refund, "create", return_value={"id": "re_1", "status": "succeeded"}) as create:
            result = gateway.create_refund(
                RefundRequest(payment_reference_id="pi_abc", order_id="o1", metadata={"order_id": "o1"})
            )

        assert result.success
        assert result.gateway_refund_id == "re_1"
        create.assert_called_once_with(
            api_key="sk_test_123",
            payment_intent="pi_abc",
            reason="requested_by_customer",
            metadata={"order_id": "o1"},
            idempotency_key="refund-o1",
        )

    def test_retried_refund_reuses_idempotency_key(self, gateway):
        request = RefundRequest(payment_reference_id="pi_abc", order_id="o1")
        with patch.object(stripe.Refund, "create", return_value={"id": "re_1", "status": "succeeded"}) as create:
            gateway.create_refund(request)
            gateway.create_refund(request)

        keys = [call.kwargs["idempotency_key"] for call in create.call_args_list]
        assert keys == ["refund-o1", "refund-o1"]

    def test_no_idempotency_key_without_order_id(self, gateway):
        with patch.object(stripe.Refund, "create", return_value={"id": "re_1", "status": "succeeded"}) as create:
            gateway.create_refund(RefundRequest(payment_reference_id="pi_abc"))
        assert "idempotency_key" not in create.call_args.kwargs

    def test_sdk_object_response_is_read_through_to_dict(self, gateway):
        refund = stripe.StripeObject.construct_from({"id": "re_5", "status": "succeeded"}, "sk_test_123")
        with patch.object(stripe.Refund, "create", return_value=refund):
            result = gateway.create_refund(RefundRequest(payment_reference_id="pi_abc"))

        assert result.success
        assert result.gateway_refund_id == "re_5"

    def test_pending_refund_counts_as_success(self, gateway):
        with patch.object(stripe.Refund, "create", return_value={"id": "re_2", "status": "pending"}):
            result = gateway.create_refund(RefundRequest(payment_reference_id="pi_abc"))
        assert result.success

    def test_partial_amount_passed_through(self, gateway):
        with patch.object(stripe.Refund, "create", return_value={"id": "re_3", "status": "succeeded"}) as create:
            gateway.create_refund(RefundRequest(payment_reference_id="pi_abc", amount=1200))
        assert create.call_args.kwargs["amount"] == 1200

    def test_failed_status(self, gateway):
        with patch.object(
            stripe.Refund,
            "create",
            return_value={"id": "re_4", "status": "failed", "failure_reason": "expired_or_canceled_card"},
        ):
            result = gateway.create_refund(RefundRequest(payment_reference_id="pi_abc"))

        assert not result.success
        assert result.failure_reason == "expired_or_canceled_card"

    def test_stripe_error_becomes_failed_result(self, gateway):
        error = stripe.InvalidRequestError("No such payment_intent: 'pi_abc'", "payment_intent", http_status=404)
        with patch.object(stripe.Refund, "create", side_effect=error):
            result = gateway.create_refund(RefundRequest(payment_reference_id="pi_abc"))

        assert not result.success
        assert result.gateway_status == "failed"
        assert "No such payment_intent" in result.failure_reason


class TestRetrieveSession:
    def test_maps_session(self, gateway):
        session = _checkout_event()["data"]["object"]
        with patch.object(stripe.checkout.Session, "retrieve", return_value=session) as retrieve:
            result = gateway.retrieve_session("cs_test_abc")

        assert result.amount_total == 4500
        assert result.tax_total == 300
        assert result.payment_reference_id == "pi_abc"
        retrieve.assert_called_once_with("cs_test_abc", api_key="sk_test_123", expand=["payment_intent"])

    def test_stripe_error_becomes_provider_error(self, gateway):
        error = stripe.InvalidRequestError("No such checkout.session", "id", http_status=404)
        with patch.object(stripe.checkout.Session, "retrieve", side_effect=error):
            with pytest.raises(ProviderError) as exc_info:
                gateway.retrieve_session("cs_missing")

        assert exc_info.value.provider == "stripe"
        assert exc_info.value.status_code == 404


class TestConstructEvent:
    def test_valid_signature(self, gateway):
        payload = json.dumps(_checkout_event()).encode()

        event = gateway.construct_event(payload, _sign(payload))

        assert event.id == "evt_stripe_1"
        assert event.type == "checkout.session.completed"
        assert event.session.id == "cs_test_abc"
        assert event.session.currency == "USD"

    def test_wrong_secret(self, gateway):
        payload = json.dumps(_checkout_event()).encode()
        assert gateway.construct_event(payload, _sign(payload, secret="whsec_other")) is None

    def test_tampered_payload(self, gateway):
        payload = json.dumps(_checkout_event()).encode()
        signature = _sign(payload)
        assert gateway.construct_event(payload.replace(b"4500", b"1"), signature) is None

    def test_missing_signature(self, gateway):
        assert gateway.construct_event(b"{}", "") is None

    def test_missing_webhook_secret(self):
        gateway = StripeGateway(api_key="sk_test_123")
        payload = json.dumps(_checkout_event()).encode()
        assert gateway.construct_event(payload, _sign(payload)) is None
