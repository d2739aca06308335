"""Payment gateway factory.

build_gateway() picks the adapter named by the PAYMENT_GATEWAY setting:
- FakeGateway for development and testing
- StripeGateway for production

The gateway is constructed once by the composition root and passed to the
components that need it; nothing here holds a process-wide instance.
"""

from ordering.config import Settings
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway


def build_gateway(settings: Settings) -> PaymentGateway:
    if settings.payment_gateway == "fake":
        return FakeGateway()
    if settings.payment_gateway == "stripe":
        from payments.gateway.stripe_adapter import StripeGateway

        return StripeGateway(
            api_key=settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret,
        )
    raise ValueError(f"Unknown payment gateway: {settings.payment_gateway}")
