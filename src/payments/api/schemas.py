"""Pydantic request/response schemas for the Payments API."""

from pydantic import BaseModel

from ordering.api.schemas import OrderResponse


class WebhookResponse(BaseModel):
    received: bool = True
    outcome: str | None = None
    error: str | None = None


class WebhookStatusResponse(BaseModel):
    status: str
    configured: bool


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Refund declined"
    raise_on_refund: bool = False


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
    raise_on_refund: bool


class SessionAddressResponse(BaseModel):
    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class SessionShippingDetailsResponse(BaseModel):
    name: str | None = None
    address: SessionAddressResponse


class CheckoutSessionResponse(BaseModel):
    id: str
    status: str | None = None
    amount_total: int | None = None
    currency: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    shipping: int = 0
    tax: int = 0
    shipping_details: SessionShippingDetailsResponse | None = None


class SessionLookupResponse(BaseModel):
    session: CheckoutSessionResponse
    order: OrderResponse
