"""Fake fulfillment partner — deterministic partner for testing and development.

Generates partner order ids and tracks their status in memory.
Configurable success/failure behavior for integration testing.
"""

from itertools import count

from fulfillment.partner.port import FulfillmentPartner, PartnerOrder
from ordering.order.exceptions import ProviderError


class FakePartner(FulfillmentPartner):
    """Fake partner that always succeeds by default."""

    name = "fake"

    def __init__(self) -> None:
        self.should_succeed = True
        self.fail_confirm = False
        self.failure_reason = "Partner unavailable"
        self.orders: dict[str, PartnerOrder] = {}
        self.payloads: list[dict] = []
        self._ids = count(10001)

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Partner unavailable",
        fail_confirm: bool = False,
    ) -> None:
        """Configure the fake partner behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.fail_confirm = fail_confirm

    def create_order(self, payload: dict, confirm: bool = False) -> PartnerOrder:
        self.payloads.append(payload)
        if not self.should_succeed:
            raise ProviderError("fake", self.failure_reason, status_code=503)

        order = PartnerOrder(
            id=str(next(self._ids)),
            status="pending" if confirm else "draft",
            external_id=payload.get("external_id"),
        )
        self.orders[order.id] = order
        return order

    def confirm_order(self, partner_order_id: str) -> PartnerOrder:
        if self.fail_confirm or not self.should_succeed:
            raise ProviderError("fake", self.failure_reason, status_code=503)
        return self._set_status(partner_order_id, "pending")

    def verify_webhook_signature(self, _payload: bytes, _signature: str) -> bool:
        # FakePartner accepts any signature (or empty signature) for testing
        return True

    def _set_status(self, partner_order_id: str, status: str) -> PartnerOrder:
        current = self.orders.get(partner_order_id)
        if current is None:
            raise ProviderError("fake", f"Order {partner_order_id} not found", status_code=404)
        updated = PartnerOrder(id=current.id, status=status, external_id=current.external_id)
        self.orders[partner_order_id] = updated
        return updated
