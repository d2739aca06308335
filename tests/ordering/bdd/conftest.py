"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.order.order import OrderStatus
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("an order awaiting payment", target_fixture="order")
def _(make_order):
    return make_order()


@given(parsers.cfparse('a paid order charged with "{payment_reference_id}"'), target_fixture="order")
def _(make_order, payment_reference_id):
    return make_order(status=OrderStatus.PAID, payment_reference_id=payment_reference_id)


@given("a paid order the customer was never charged for", target_fixture="order")
def _(make_order):
    return make_order(status=OrderStatus.PAID)


@given(parsers.cfparse('a delivered order charged with "{payment_reference_id}"'), target_fixture="order")
def _(make_order, payment_reference_id):
    return make_order(status=OrderStatus.DELIVERED, payment_reference_id=payment_reference_id)


@given(parsers.cfparse('the payment gateway declines refunds with "{reason}"'))
def _(gateway, reason):
    gateway.configure(should_succeed=False, failure_reason=reason)


@given(parsers.cfparse('the fulfillment partner is down with "{reason}"'))
def _(partner, reason):
    partner.configure(should_succeed=False, failure_reason=reason)


# ---------------------------------------------------------------------------
# Then steps (shared, plain assertions against the stored order)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order, load_order, status):
    assert load_order(order.id).status == status


@then(parsers.cfparse('the last history entry reads "{reason}"'))
def _(order, load_order, reason):
    assert load_order(order.id).history()[-1].reason == reason


@then(parsers.cfparse('the last history entry was made by "{actor}"'))
def _(order, load_order, actor):
    assert load_order(order.id).history()[-1].changed_by == actor


@then("every history entry starts where the previous one ended")
def _(order, load_order):
    history = load_order(order.id).history()
    for previous, entry in zip(history, history[1:]):
        assert entry.from_status == previous.to_status
    assert history[-1].to_status == load_order(order.id).status


@then(parsers.cfparse('a refund was requested for payment "{payment_reference_id}"'))
def _(gateway, payment_reference_id):
    assert [call["payment_reference_id"] for call in gateway.refund_calls] == [payment_reference_id]


@then("no refund was requested")
def _(gateway):
    assert gateway.refund_calls == []


@pytest.fixture()
def bdd_context():
    """Values handed from one step to the next that are not the order itself."""
    return {}
