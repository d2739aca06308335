"""Payment Reconciler — folds provider-confirmed payment facts into the order.

The provider calculates shipping and tax during checkout, so they are only
known once the session completes. ``finalize_from_payment_session`` only
records those facts; ``confirm_payment`` records them and moves the order
to PAID in the same unit of work.
"""

import json
from dataclasses import dataclass

from protean.utils.globals import current_domain

from ordering.order.exceptions import OrderNotFound
from ordering.order.order import Order
from ordering.order.payment import ReconcilePayment
from ordering.utils.logging import get_logger
from payments.gateway.port import PaymentGateway, PaymentSession, ShippingDetails

logger = get_logger(__name__)


def address_from_details(details: ShippingDetails) -> dict:
    return {
        "name": details.name or "",
        "address1": details.line1 or "",
        "address2": details.line2 or None,
        "city": details.city or "",
        "state_code": details.state or "",
        "country_code": details.country or "US",
        "zip": details.postal_code or "",
        "email": details.email or None,
        "phone": details.phone or None,
    }


@dataclass(frozen=True)
class SessionLookup:
    session: PaymentSession
    order: Order


class PaymentReconciler:
    def __init__(self, gateway: PaymentGateway | None = None) -> None:
        self.gateway = gateway

    def locate_order_by_session(self, session_id: str) -> Order | None:
        return current_domain.repository_for(Order).find_by_payment_session(session_id)

    def finalize_from_payment_session(self, order_id: str, session: PaymentSession) -> Order:
        """Record the confirmed total, shipping, tax, payment reference and address.

        Does not change the order's status.

        Raises:
            OrderNotFound: The order id does not resolve.
        """
        return current_domain.process(self._command(order_id, session), asynchronous=False)

    def confirm_payment(self, order_id: str, session: PaymentSession, changed_by: str, reason: str) -> Order:
        """Record the provider's totals and move the order to PAID."""
        command = self._command(order_id, session, paid_by=changed_by, paid_reason=reason)
        return current_domain.process(command, asynchronous=False)

    def lookup_session(self, session_id: str) -> SessionLookup:
        """Fetch a checkout session from the provider together with its order.

        Raises:
            OrderNotFound: No order is linked to ``session_id``.
            ProviderError: The provider lookup failed.
        """
        order = self.locate_order_by_session(session_id)
        if order is None:
            raise OrderNotFound(session_id)

        session = self.gateway.retrieve_session(session_id)
        logger.info(
            "Checkout session retrieved",
            session_id=session_id,
            order_id=str(order.id),
            payment_status=session.payment_status,
        )
        return SessionLookup(session=session, order=order)

    def _command(self, order_id, session: PaymentSession, paid_by=None, paid_reason=None) -> ReconcilePayment:
        address = None
        if session.shipping_details is not None:
            address = json.dumps(address_from_details(session.shipping_details))
        return ReconcilePayment(
            order_id=str(order_id),
            payment_reference_id=session.payment_reference_id,
            amount_total=session.amount_total,
            shipping_total=session.shipping_total,
            tax_total=session.tax_total,
            shipping_address=address,
            paid_by=paid_by,
            paid_reason=paid_reason,
        )
