"""Fulfillment partner port — abstract interface for print-on-demand integrations.

All partner adapters must implement this interface. The ordering code
programs against the port; adapters are swapped via configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PartnerOrder:
    """The partner's view of an order we submitted."""

    id: str
    status: str
    external_id: str | None = None


class FulfillmentPartner(ABC):
    """Abstract interface for fulfillment partner adapters."""

    name: str = "partner"

    @abstractmethod
    def create_order(self, payload: dict, confirm: bool = False) -> PartnerOrder:
        """Create an order at the partner, as a draft unless ``confirm`` is set.

        Raises:
            ProviderError: the partner rejected the request or could not be reached.
        """
        ...

    @abstractmethod
    def confirm_order(self, partner_order_id: str) -> PartnerOrder:
        """Confirm a draft order so the partner starts production."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Verify that a webhook callback is authentic."""
        ...
