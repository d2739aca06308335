"""FastAPI routes for the Fulfillment domain — partner callbacks."""

import json

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from fulfillment.api.schemas import (
    ConfigurePartnerRequest,
    PartnerConfigResponse,
    PartnerWebhookResponse,
)
from fulfillment.partner.fake_adapter import FakePartner
from fulfillment.partner.port import FulfillmentPartner
from fulfillment.submission.partner_events import FulfillmentEventProcessor, PartnerEvent
from ordering.api.dependencies import get_fulfillment_events, get_partner, get_settings
from ordering.config import Settings
from ordering.order.exceptions import StaleEvent
from ordering.utils.logging import get_logger

logger = get_logger(__name__)

webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post("/printful", response_model=PartnerWebhookResponse)
async def printful_webhook(
    request: Request,
    x_pf_signature: str = Header(default=""),
    partner: FulfillmentPartner = Depends(get_partner),
    processor: FulfillmentEventProcessor = Depends(get_fulfillment_events),
) -> PartnerWebhookResponse:
    """Process a fulfillment partner status callback."""
    payload = await request.body()
    if not partner.verify_webhook_signature(payload, x_pf_signature):
        raise HTTPException(status_code=401, detail="Invalid partner webhook signature")

    try:
        event = PartnerEvent.from_payload(json.loads(payload))
    except (ValueError, TypeError, AttributeError) as exc:
        raise HTTPException(status_code=400, detail="Malformed partner event") from exc

    try:
        result = await run_in_threadpool(processor.process, event)
    except StaleEvent as exc:
        # Acknowledge so the partner stops redelivering an outdated update
        logger.warning("Ignoring stale partner event", event_type=event.type, error=str(exc))
        return PartnerWebhookResponse(outcome="stale")

    if result is None:
        return PartnerWebhookResponse(outcome="processed")
    return PartnerWebhookResponse(
        outcome="updated" if result.changed else "unchanged",
        status=result.order.status,
    )


partner_router = APIRouter(prefix="/fulfillment", tags=["fulfillment"])


@partner_router.post("/partner/configure", response_model=PartnerConfigResponse)
async def configure_partner(
    body: ConfigurePartnerRequest,
    settings: Settings = Depends(get_settings),
    partner: FulfillmentPartner = Depends(get_partner),
) -> PartnerConfigResponse:
    """Configure the FakePartner behavior (non-production only)."""
    if settings.is_production:
        raise HTTPException(status_code=403, detail="Partner configuration not available in production")

    if not isinstance(partner, FakePartner):
        raise HTTPException(status_code=400, detail="Partner configuration only available for FakePartner")

    partner.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        fail_confirm=body.fail_confirm,
    )
    return PartnerConfigResponse(
        partner=type(partner).__name__,
        should_succeed=partner.should_succeed,
        failure_reason=partner.failure_reason,
        fail_confirm=partner.fail_confirm,
    )
