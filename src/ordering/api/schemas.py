"""Pydantic request/response schemas for the Ordering API.

These are external contracts, separate from the Protean aggregate in
ordering.order.order.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from ordering.order.customization import Customization
from ordering.order.order import OrderStatus


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class OrderItemRequest(BaseModel):
    product_variant_id: str
    product_name: str
    quantity: int = Field(ge=1, default=1)
    unit_price: int = Field(ge=0, description="Minor currency units")
    partner_variant_id: int | None = None
    variant_name: str | None = None
    thumbnail_url: str | None = None
    customization: Customization | None = None


class CreateOrderRequest(BaseModel):
    items: list[OrderItemRequest] = Field(min_length=1)
    payment_session_id: str | None = None
    currency: str = Field(default="USD", min_length=3, max_length=3)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {
                            "product_variant_id": "var-tee-black-m",
                            "product_name": "Classic Tee",
                            "quantity": 1,
                            "unit_price": 2500,
                            "partner_variant_id": 4012,
                            "customization": {
                                "technique": "dtg",
                                "placement": "front",
                                "design_url": "https://cdn.example.com/designs/42.png",
                            },
                        }
                    ],
                    "payment_session_id": "cs_test_123",
                }
            ]
        }
    }


class AttachPaymentSessionRequest(BaseModel):
    payment_session_id: str


class AdminTransitionRequest(BaseModel):
    status: OrderStatus
    admin_id: str = Field(min_length=1)
    reason: str | None = None


class PrintReadyAssetRequest(BaseModel):
    print_ready_url: str


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class ShippingAddressResponse(BaseModel):
    name: str
    address1: str
    address2: str | None = None
    city: str
    state_code: str
    country_code: str
    zip: str
    email: str | None = None
    phone: str | None = None


class OrderItemResponse(BaseModel):
    id: str
    position: int
    product_variant_id: str
    partner_variant_id: int | None = None
    product_name: str
    variant_name: str | None = None
    quantity: int
    unit_price: int
    thumbnail_url: str | None = None
    customization: dict | None = None


class StatusHistoryResponse(BaseModel):
    from_status: OrderStatus | None = None
    to_status: OrderStatus
    changed_by: str
    reason: str | None = None
    flagged: bool = False
    event_sequence: int | None = None
    created_at: datetime


class OrderResponse(BaseModel):
    id: str
    order_number: str
    status: OrderStatus
    subtotal: int
    shipping: int
    tax: int
    total: int
    currency: str
    payment_session_id: str | None = None
    payment_reference_id: str | None = None
    refund_reference_id: str | None = None
    fulfillment_reference_id: str | None = None
    fulfillment_status: str | None = None
    shipping_address: ShippingAddressResponse | None = None
    items: list[OrderItemResponse] = []
    history: list[StatusHistoryResponse] = []
    paid_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    created_at: datetime


class OrderIdResponse(BaseModel):
    order_id: str
    order_number: str


class TransitionResponse(BaseModel):
    order_id: str
    status: OrderStatus
    changed: bool
    flagged: bool = False


class SubmissionResponse(BaseModel):
    order_id: str
    status: str
    fulfillment_reference_id: str | None = None
    fulfillment_status: str | None = None


class StatusResponse(BaseModel):
    status: str = "ok"
