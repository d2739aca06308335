"""Order aggregate (CQRS) — the single source of truth for an order's lifecycle.

The Order holds the current status; its OrderStatusHistory entities are the
append-only ledger of every status it has held. Both live inside the same
aggregate, so the repository persists a status change and its ledger entry
in one unit of work or not at all.

CQRS (not event sourced) — the ledger already gives the temporal view that
support and reconciliation need.

State Machine:
    PENDING_PAYMENT → PAID → SUBMITTED_TO_POD → IN_PRODUCTION → SHIPPED → DELIVERED
    any non-terminal state → CANCELLED / REFUNDED / FAILED

DELIVERED, CANCELLED, REFUNDED and FAILED are terminal. Changes that leave
the forward lifecycle are still recorded, but flagged on the ledger entry.
"""

import random
import re
import string
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Dict,
    HasMany,
    Integer,
    String,
    Text,
    ValueObject,
)
from pydantic import ValidationError as CustomizationError

from ordering.domain import ordering
from ordering.order.customization import dump_customization, parse_customization
from ordering.order.exceptions import InvalidActor, StaleEvent


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    SUBMITTED_TO_POD = "SUBMITTED_TO_POD"
    IN_PRODUCTION = "IN_PRODUCTION"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"


TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
        OrderStatus.FAILED,
    }
)

_SIDE_BRANCHES = {OrderStatus.CANCELLED, OrderStatus.REFUNDED, OrderStatus.FAILED}

# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
VALID_TRANSITIONS = {
    OrderStatus.PENDING_PAYMENT: {OrderStatus.PAID} | _SIDE_BRANCHES,
    OrderStatus.PAID: {OrderStatus.SUBMITTED_TO_POD} | _SIDE_BRANCHES,
    OrderStatus.SUBMITTED_TO_POD: {OrderStatus.IN_PRODUCTION} | _SIDE_BRANCHES,
    OrderStatus.IN_PRODUCTION: {OrderStatus.SHIPPED} | _SIDE_BRANCHES,
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED} | _SIDE_BRANCHES,
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
    OrderStatus.FAILED: set(),  # Terminal
}

# Timestamp set on first entry into the status
STATUS_TIMESTAMPS = {
    OrderStatus.PAID: "paid_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
}

SYSTEM_ACTOR = "system"

_ACTOR_PATTERN = re.compile(r"^(system|(webhook|job|admin):[\w.@:-]+)$")


def is_valid_actor(changed_by: str) -> bool:
    """Actor tags are ``system``, ``webhook:<provider>``, ``job:<name>`` or ``admin:<id>``."""
    return bool(changed_by) and _ACTOR_PATTERN.match(changed_by) is not None


def utcnow() -> datetime:
    return datetime.now(UTC)


def generate_order_number(now: datetime | None = None) -> str:
    """Human-facing order number, ``ORD-YYYYMMDD-XXXX``."""
    now = now or utcnow()
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"ORD-{now:%Y%m%d}-{suffix}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships, usually collected by the payment provider at checkout."""

    name = String(max_length=255)
    address1 = String(max_length=255)
    address2 = String(max_length=255)
    city = String(max_length=100)
    state_code = String(max_length=20)
    country_code = String(max_length=2, default="US")
    zip = String(max_length=20)
    email = String(max_length=255)
    phone = String(max_length=50)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A product variant in an order plus its print customization."""

    position = Integer(required=True)  # 1-based, as shown to customers
    product_variant_id = String(required=True, max_length=64)
    partner_variant_id = Integer()
    product_name = String(required=True, max_length=255)
    variant_name = String(max_length=255)
    quantity = Integer(required=True)
    unit_price = Integer(required=True)  # minor currency units
    thumbnail_url = Text(sanitize=False)
    customization = Dict()  # JSON, see ordering.order.customization

    @invariant.post
    def quantity_must_be_positive(self):
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": [f"Quantity must be positive for variant {self.product_variant_id}"]})

    @invariant.post
    def unit_price_must_not_be_negative(self):
        if self.unit_price is not None and self.unit_price < 0:
            raise ValidationError(
                {"unit_price": [f"Unit price must not be negative for variant {self.product_variant_id}"]}
            )

    @invariant.post
    def customization_must_match_its_technique(self):
        if not self.customization:
            return
        try:
            parse_customization(self.customization)
        except CustomizationError as exc:
            problems = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
            raise ValidationError({"customization": problems}) from exc

    def print_customization(self):
        """Typed customization, or None when the item carries none."""
        if not self.customization:
            return None
        return parse_customization(self.customization)


@ordering.entity(part_of="Order", limit=None)
class OrderStatusHistory:
    """Append-only record of one status change. Never updated or deleted."""

    position = Integer(required=True)
    from_status = String(max_length=32, choices=OrderStatus)
    to_status = String(required=True, max_length=32, choices=OrderStatus)
    changed_by = String(required=True, max_length=100)
    reason = Text(sanitize=False)
    # Set when the change skipped or reversed the forward lifecycle
    flagged = Boolean(default=False)
    event_sequence = Integer()
    created_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=32)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING_PAYMENT.value)

    # Amounts in minor currency units
    subtotal = Integer(default=0)
    shipping = Integer(default=0)
    tax = Integer(default=0)
    total = Integer(default=0)
    currency = String(max_length=3, default="USD")

    # Provider references
    payment_session_id = String(max_length=255, sanitize=False)
    payment_reference_id = String(max_length=255, sanitize=False)
    refund_reference_id = String(max_length=255, sanitize=False)
    fulfillment_reference_id = String(max_length=255, sanitize=False)
    fulfillment_status = String(max_length=100)
    last_event_sequence = Integer()

    shipping_address = ValueObject(ShippingAddress)
    items = HasMany(OrderItem)
    status_history = HasMany(OrderStatusHistory)

    # Timestamps
    paid_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def amounts_must_not_be_negative(self):
        for name in ("subtotal", "shipping", "tax", "total"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValidationError({name: [f"{name.capitalize()} must not be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, items, payment_session_id=None, currency="USD"):
        """Create an order in PENDING_PAYMENT with a subtotal-only total.

        ``items`` is a list of dicts with the OrderItem fields (``position``
        is assigned here). The payment provider fills in shipping and tax
        later, see ``record_payment``.
        """
        if not items:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = utcnow()
        order = cls(
            order_number=generate_order_number(now),
            status=OrderStatus.PENDING_PAYMENT.value,
            currency=currency or "USD",
            payment_session_id=payment_session_id,
            created_at=now,
            updated_at=now,
        )

        for position, item in enumerate(items, start=1):
            order.add_items(
                OrderItem(
                    position=position,
                    product_variant_id=item["product_variant_id"],
                    partner_variant_id=item.get("partner_variant_id"),
                    product_name=item["product_name"],
                    variant_name=item.get("variant_name"),
                    quantity=item["quantity"],
                    unit_price=item["unit_price"],
                    thumbnail_url=item.get("thumbnail_url"),
                    customization=item.get("customization") or {},
                )
            )

        subtotal = sum(item.unit_price * item.quantity for item in order.items)
        with atomic_change(order):
            order.subtotal = subtotal
            order.total = subtotal
            order._append_history(
                from_status=None,
                to_status=OrderStatus.PENDING_PAYMENT,
                changed_by=SYSTEM_ACTOR,
                reason="Order created, awaiting payment",
                flagged=False,
                event_sequence=None,
                now=now,
            )
        return order

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def transition_to(self, target_status, changed_by, reason=None, event_sequence=None):
        """Move to ``target_status`` and append the matching ledger entry.

        Returns the new OrderStatusHistory entry, or None when the order is
        already in ``target_status``.

        Raises:
            InvalidActor: ``changed_by`` is not a recognised actor tag.
            StaleEvent: ``event_sequence`` is not newer than the last applied event.
        """
        target = OrderStatus(target_status)
        if not is_valid_actor(changed_by):
            raise InvalidActor(changed_by)

        current = OrderStatus(self.status)
        if current == target:
            return None

        self.ensure_newer_event(event_sequence)
        flagged = not self.is_expected_transition(target)

        now = utcnow()
        with atomic_change(self):
            self.status = target.value
            timestamp_field = STATUS_TIMESTAMPS.get(target)
            if timestamp_field and getattr(self, timestamp_field) is None:
                setattr(self, timestamp_field, now)
            if event_sequence is not None:
                self.last_event_sequence = event_sequence
            self.updated_at = now
            entry = self._append_history(current, target, changed_by, reason, flagged, event_sequence, now)
        return entry

    def ensure_newer_event(self, event_sequence):
        """Refuse a provider event that is not newer than the last one applied."""
        if event_sequence is None or self.last_event_sequence is None:
            return
        if event_sequence <= self.last_event_sequence:
            raise StaleEvent(str(self.id), event_sequence, self.last_event_sequence)

    def _append_history(self, from_status, to_status, changed_by, reason, flagged, event_sequence, now):
        entry = OrderStatusHistory(
            position=len(self.status_history) + 1,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value,
            changed_by=changed_by,
            reason=reason,
            flagged=flagged,
            event_sequence=event_sequence,
            created_at=now,
        )
        self.add_status_history(entry)
        return entry

    def history(self):
        """Ledger entries, oldest first."""
        return sorted(self.status_history, key=lambda entry: entry.position)

    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATUSES

    def is_expected_transition(self, target: OrderStatus) -> bool:
        """True when ``target`` follows the forward lifecycle from the current status."""
        return OrderStatus(target) in VALID_TRANSITIONS[OrderStatus(self.status)]

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment(self, payment_reference_id, amount_total, shipping_total=None, tax_total=None, address=None):
        """Adopt the provider's totals and, if none is on file, its shipping address.

        Returns True when the address was saved.
        """
        address_saved = False
        with atomic_change(self):
            self.payment_reference_id = payment_reference_id
            self.total = amount_total or 0
            if shipping_total:
                self.shipping = shipping_total
            if tax_total:
                self.tax = tax_total
            if address and self.shipping_address is None:
                self.shipping_address = ShippingAddress(**address)
                address_saved = True
            self.updated_at = utcnow()
        return address_saved

    def is_refundable(self) -> bool:
        """Charged and not yet handed to production."""
        return OrderStatus(self.status) == OrderStatus.PAID and bool(self.payment_reference_id)

    # -------------------------------------------------------------------
    # Fulfillment
    # -------------------------------------------------------------------
    def record_fulfillment(self, fulfillment_reference_id=None, fulfillment_status=None, event_sequence=None):
        """Mirror the partner's order id and status onto the order.

        A sequenced partner event that changes no status still advances
        ``last_event_sequence``, so older events stay refused.
        """
        with atomic_change(self):
            if fulfillment_reference_id is not None:
                self.fulfillment_reference_id = str(fulfillment_reference_id)
            if fulfillment_status is not None:
                self.fulfillment_status = fulfillment_status
            if event_sequence is not None and (
                self.last_event_sequence is None or event_sequence > self.last_event_sequence
            ):
                self.last_event_sequence = event_sequence
            self.updated_at = utcnow()

    def attach_print_ready_asset(self, item_id, url):
        """Attach a prepared print asset to a line item.

        This is the only change allowed on an item once the order is paid.
        """
        if self.is_terminal():
            raise ValidationError({"status": [f"Order {self.id} is {self.status}; items can no longer change"]})

        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": [f"Item {item_id} does not belong to order {self.id}"]})

        customization = item.print_customization()
        if customization is None:
            raise ValidationError({"customization": [f"Item {item_id} has no customization to attach an asset to"]})

        item.customization = dump_customization(customization.with_print_ready_url(url))
        self.updated_at = utcnow()
        return item

    def close_after_fulfillment_failure(
        self,
        reason,
        refunded=False,
        refund_reference_id=None,
        refund_error=None,
        event_sequence=None,
    ):
        """Move a failed order to its terminal status with a reason saying what was attempted."""
        if refunded:
            if refund_reference_id:
                self.refund_reference_id = refund_reference_id
            return self.transition_to(
                OrderStatus.REFUNDED,
                SYSTEM_ACTOR,
                f"Auto-refunded due to fulfillment failure: {reason}",
                event_sequence=event_sequence,
            )
        if refund_error is not None:
            reason = f"Fulfillment failed and refund failed: {reason} (refund error: {refund_error})"
        return self.transition_to(OrderStatus.FAILED, SYSTEM_ACTOR, reason, event_sequence=event_sequence)

    def __repr__(self) -> str:
        return f"<Order {self.order_number} {self.status}>"
