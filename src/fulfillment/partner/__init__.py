"""Fulfillment partner factory.

build_partner() picks the adapter named by the FULFILLMENT_PARTNER setting:
- FakePartner for development and testing
- PrintfulPartner for production
"""

from fulfillment.partner.fake_adapter import FakePartner
from fulfillment.partner.port import FulfillmentPartner
from ordering.config import Settings


def build_partner(settings: Settings) -> FulfillmentPartner:
    if settings.fulfillment_partner == "fake":
        return FakePartner()
    if settings.fulfillment_partner == "printful":
        from fulfillment.partner.printful_adapter import PrintfulPartner

        return PrintfulPartner(
            api_key=settings.printful_api_key,
            store_id=settings.printful_store_id,
            webhook_secret=settings.printful_webhook_secret,
            base_url=settings.printful_base_url,
            timeout=settings.provider_timeout_seconds,
        )
    raise ValueError(f"Unknown fulfillment partner: {settings.fulfillment_partner}")
