"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and StripeGateway
(production) without changing any ordering code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ShippingDetails:
    """Shipping address collected by the provider's hosted checkout."""

    name: str | None = None
    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    email: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class PaymentSession:
    """Provider-confirmed facts about a completed checkout session.

    Amounts are in minor currency units. Shipping and tax are only known once
    the customer has completed checkout.
    """

    id: str
    payment_reference_id: str | None = None
    amount_total: int | None = None
    shipping_total: int | None = None
    tax_total: int | None = None
    currency: str | None = None
    payment_status: str | None = None
    shipping_details: ShippingDetails | None = None


@dataclass(frozen=True)
class PaymentEvent:
    """A verified webhook event from the payment provider."""

    id: str
    type: str
    session: PaymentSession | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    gateway_refund_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundRequest:
    payment_reference_id: str
    order_id: str | None = None  # sent as the refund idempotency key
    reason: str = "requested_by_customer"
    metadata: dict = field(default_factory=dict)
    amount: int | None = None  # None refunds the full charge


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name: str = "gateway"

    @abstractmethod
    def create_refund(self, request: RefundRequest) -> RefundResult:
        """Refund a previous charge."""
        ...

    @abstractmethod
    def retrieve_session(self, session_id: str) -> PaymentSession:
        """Fetch a checkout session with its final totals and shipping details."""
        ...

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> PaymentEvent | None:
        """Verify a webhook payload and parse it. Returns None if the signature is invalid."""
        ...
