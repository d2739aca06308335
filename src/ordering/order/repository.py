"""Order repository — lookups by the identifiers providers hand back."""

from protean.exceptions import ObjectNotFoundError

from ordering.domain import ordering
from ordering.order.exceptions import OrderNotFound
from ordering.order.order import Order


@ordering.repository(part_of=Order)
class OrderRepository:
    def get_order(self, order_id) -> Order:
        try:
            return self.get(str(order_id))
        except ObjectNotFoundError as exc:
            raise OrderNotFound(str(order_id)) from exc

    def find_by_payment_session(self, session_id: str) -> Order | None:
        return self._first(payment_session_id=session_id)

    def get_by_order_number(self, order_number: str) -> Order:
        order = self._first(order_number=order_number)
        if order is None:
            raise OrderNotFound(order_number)
        return order

    def get_by_fulfillment_reference(self, fulfillment_reference_id) -> Order:
        order = self._first(fulfillment_reference_id=str(fulfillment_reference_id))
        if order is None:
            raise OrderNotFound(str(fulfillment_reference_id))
        return order

    def _first(self, **criteria) -> Order | None:
        return self.query.filter(**criteria).all().first
