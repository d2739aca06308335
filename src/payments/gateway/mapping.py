"""Translate provider webhook payloads into gateway-neutral types.

Payloads follow Stripe's JSON shape, which the fake gateway mirrors so the
same webhook fixtures exercise both adapters.
"""

from payments.gateway.port import PaymentEvent, PaymentSession, ShippingDetails


def session_from_payload(data: dict) -> PaymentSession:
    """Map a checkout session dict onto a PaymentSession."""
    payment_intent = data.get("payment_intent")
    if isinstance(payment_intent, dict):
        payment_intent = payment_intent.get("id")

    shipping_cost = data.get("shipping_cost") or {}
    total_details = data.get("total_details") or {}

    # Newer API versions nest shipping under collected_information
    shipping = data.get("shipping_details") or (data.get("collected_information") or {}).get("shipping_details")
    customer = data.get("customer_details") or {}
    shipping_details = None
    if shipping:
        address = shipping.get("address") or {}
        shipping_details = ShippingDetails(
            name=shipping.get("name"),
            line1=address.get("line1"),
            line2=address.get("line2"),
            city=address.get("city"),
            state=address.get("state"),
            country=address.get("country"),
            postal_code=address.get("postal_code"),
            email=customer.get("email"),
            phone=customer.get("phone"),
        )

    currency = data.get("currency")
    return PaymentSession(
        id=data["id"],
        payment_reference_id=payment_intent,
        amount_total=data.get("amount_total"),
        shipping_total=shipping_cost.get("amount_total"),
        tax_total=total_details.get("amount_tax"),
        currency=currency.upper() if currency else None,
        payment_status=data.get("payment_status"),
        shipping_details=shipping_details,
    )


def event_from_payload(data: dict) -> PaymentEvent:
    obj = (data.get("data") or {}).get("object") or {}
    session = session_from_payload(obj) if obj.get("object") == "checkout.session" else None
    return PaymentEvent(id=data["id"], type=data["type"], session=session)
