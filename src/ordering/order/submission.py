"""Submission Validator — decides whether an order can go to the fulfillment partner.

PAID → SUBMITTED_TO_POD is the one transition with an external side effect,
so it is gated by a pure pre-flight check. Rejections name the failing line
item (1-based) so the caller can report something actionable.
"""

from dataclasses import dataclass

from ordering.order.order import Order, OrderStatus


@dataclass(frozen=True)
class SubmissionCheck:
    valid: bool
    reason: str | None = None


_OK = SubmissionCheck(valid=True)


def _ordered_items(order: Order) -> list:
    return sorted(order.items, key=lambda item: item.position)


def resolve_design_url(customization) -> str | None:
    """Pick the asset to print: print-ready first, then design, then the original upload."""
    if customization is None:
        return None
    return customization.print_ready_url or customization.design_url or customization.original_design_url or None


def validate_for_submission(order: Order) -> SubmissionCheck:
    if OrderStatus(order.status) != OrderStatus.PAID:
        return SubmissionCheck(False, f"Order status must be PAID, got {order.status}")

    if order.shipping_address is None:
        return SubmissionCheck(False, "Order has no shipping address")

    items = _ordered_items(order)
    if not items:
        return SubmissionCheck(False, "Order has no items")

    for number, item in enumerate(items, start=1):
        if not item.partner_variant_id:
            return SubmissionCheck(False, f"Item {number} has no fulfillment variant ID")
        if not resolve_design_url(item.print_customization()):
            return SubmissionCheck(False, f"Item {number} has no design URL")

    return _OK


def build_submission_payload(order: Order) -> dict:
    """Outbound fulfillment request for a validated order.

    Raises:
        ValueError: the order is missing an address or an item lacks a design URL.
    """
    address = order.shipping_address
    if address is None:
        raise ValueError("Order has no shipping address")

    items = []
    for number, item in enumerate(_ordered_items(order), start=1):
        customization = item.print_customization()
        design_url = resolve_design_url(customization)
        if not design_url:
            raise ValueError(f"Item {number} has no design URL")

        items.append(
            {
                "variant_id": item.partner_variant_id,
                "quantity": item.quantity,
                "files": [{"url": design_url, "type": customization.placement}],
                "options": [{"id": "technique", "value": customization.technique}],
            }
        )

    recipient = {
        "name": address.name or "Customer",
        "address1": address.address1,
        "city": address.city,
        "state_code": address.state_code,
        "country_code": address.country_code,
        "zip": address.zip,
    }
    for optional in ("address2", "email", "phone"):
        value = getattr(address, optional)
        if value:
            recipient[optional] = value

    return {
        "external_id": order.order_number,
        "recipient": recipient,
        "items": items,
    }
