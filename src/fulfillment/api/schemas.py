"""Pydantic API schemas for the Fulfillment domain.

These are the external API contracts — separate from the partner event
records the API layer translates them into.
"""

from pydantic import BaseModel


class PartnerWebhookResponse(BaseModel):
    received: bool = True
    outcome: str
    status: str | None = None


class ConfigurePartnerRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Partner unavailable"
    fail_confirm: bool = False


class PartnerConfigResponse(BaseModel):
    partner: str
    should_succeed: bool
    failure_reason: str
    fail_confirm: bool
