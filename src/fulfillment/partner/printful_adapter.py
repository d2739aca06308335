"""Printful fulfillment partner adapter.

Talks to the Printful REST API over requests:
- Create orders (draft, or confirmed immediately with ?confirm=1)
- Confirm draft orders
- Verify webhook callbacks when a signing secret is configured

Every response is wrapped as {"code": ..., "result": ...}; error bodies carry
{"error": {"message": ..., "reason": ...}}.
"""

import hashlib
import hmac
import time

import requests
import structlog

from fulfillment.partner.port import FulfillmentPartner, PartnerOrder
from ordering.order.exceptions import ProviderError

logger = structlog.get_logger(__name__)


def _partner_order(result: dict) -> PartnerOrder:
    return PartnerOrder(
        id=str(result["id"]),
        status=result.get("status", "draft"),
        external_id=result.get("external_id"),
    )


class PrintfulPartner(FulfillmentPartner):
    """Production Printful adapter."""

    name = "printful"

    def __init__(
        self,
        api_key: str,
        store_id: str | None = None,
        webhook_secret: str | None = None,
        base_url: str = "https://api.printful.com",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("PRINTFUL_API_KEY is required for the Printful partner")
        self.base_url = base_url.rstrip("/")
        self.webhook_secret = webhook_secret
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )
        if store_id:
            self.session.headers["X-PF-Store-Id"] = store_id

    def create_order(self, payload: dict, confirm: bool = False) -> PartnerOrder:
        params = {"confirm": 1} if confirm else None
        return _partner_order(self._request("POST", "/orders", json=payload, params=params))

    def confirm_order(self, partner_order_id: str) -> PartnerOrder:
        return _partner_order(self._request("POST", f"/orders/{partner_order_id}/confirm"))

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        if not self.webhook_secret:
            # Printful does not sign callbacks unless a secret has been set up
            return True
        if not signature:
            return False
        expected = hmac.new(self.webhook_secret.encode(), payload, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)

    def _request(self, method: str, path: str, **kwargs) -> dict:
        started = time.monotonic()
        try:
            response = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("Printful request failed", method=method, path=path, error=str(exc))
            raise ProviderError("printful", str(exc) or "Network error") from exc

        duration_ms = int((time.monotonic() - started) * 1000)

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            error = data.get("error") or {}
            message = error.get("message") or data.get("result") or "Printful API error"
            logger.error(
                "Printful API error",
                method=method,
                path=path,
                status=response.status_code,
                reason=error.get("reason"),
                duration_ms=duration_ms,
            )
            raise ProviderError("printful", str(message), status_code=response.status_code)

        logger.debug("Printful request succeeded", method=method, path=path, duration_ms=duration_ms)
        return data.get("result") or {}
