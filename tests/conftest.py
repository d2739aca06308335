import json
import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Selects the Protean config overlay (in-memory database for "test")
    before the ordering domain is imported.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


# ---------------------------------------------------------------------------
# Domain
# ---------------------------------------------------------------------------
@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------
@pytest.fixture()
def gateway():
    from payments.gateway.fake_adapter import FakeGateway

    return FakeGateway()


@pytest.fixture()
def partner():
    from fulfillment.partner.fake_adapter import FakePartner

    return FakePartner()


@pytest.fixture()
def compensator(gateway):
    from ordering.order.compensation import FailureCompensator

    return FailureCompensator(gateway)


@pytest.fixture()
def sleeps():
    """Delays requested by retry loops, recorded instead of slept."""
    return []


@pytest.fixture()
def app(gateway, partner, sleeps):
    from app import create_app
    from ordering.config import Settings

    return create_app(settings=Settings(env="test"), gateway=gateway, partner=partner, sleep=sleeps.append)


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


# ---------------------------------------------------------------------------
# Order builders
# ---------------------------------------------------------------------------
DEFAULT_CUSTOMIZATION = {
    "technique": "dtg",
    "placement": "front",
    "design_url": "https://cdn.example.com/designs/42.png",
}

DEFAULT_ADDRESS = {
    "name": "Ada Lovelace",
    "address1": "12 Analytical Way",
    "city": "Portland",
    "state_code": "OR",
    "country_code": "US",
    "zip": "97201",
    "email": "ada@example.com",
}

FIXTURE_ACTOR = "admin:fixture"

_FORWARD = [
    "PENDING_PAYMENT",
    "PAID",
    "SUBMITTED_TO_POD",
    "IN_PRODUCTION",
    "SHIPPED",
    "DELIVERED",
]


def _new_item(**overrides):
    values = {
        "product_variant_id": "var-tee-black-m",
        "product_name": "Classic Tee",
        "quantity": 1,
        "unit_price": 2500,
        "partner_variant_id": 4012,
        "variant_name": "Black / M",
        "customization": DEFAULT_CUSTOMIZATION,
    }
    values.update(overrides)
    return {key: value for key, value in values.items() if value is not None}


def _path_to(status):
    """Statuses an order walks through from PENDING_PAYMENT to ``status``."""
    if status in _FORWARD:
        return _FORWARD[1 : _FORWARD.index(status) + 1]
    # Side branches are entered straight from PENDING_PAYMENT
    return [status]


@pytest.fixture()
def make_order():
    """Place an order and drive it to ``status`` through real transitions.

    Every intermediate status leaves its ledger entry, so the history of a
    built order is a continuous chain like one produced in production.
    """
    from ordering.order.creation import place_order
    from ordering.order.fulfillment import RecordPartnerStatus, RecordPodSubmission
    from ordering.order.order import Order, OrderStatus
    from ordering.order.payment import ReconcilePayment
    from ordering.order.status import transition_order
    from protean.utils.globals import current_domain

    counter = iter(range(1, 10_000))

    def _make(
        status=OrderStatus.PENDING_PAYMENT,
        items=None,
        address=True,
        payment_reference_id=None,
        payment_session_id=None,
        fulfillment_reference_id=None,
    ):
        if payment_session_id is None:
            payment_session_id = f"cs_test_{next(counter)}"
        order_id = place_order(items or [_new_item()], payment_session_id=payment_session_id)

        if address or payment_reference_id:
            subtotal = current_domain.repository_for(Order).get_order(order_id).subtotal
            current_domain.process(
                ReconcilePayment(
                    order_id=order_id,
                    payment_reference_id=payment_reference_id,
                    amount_total=subtotal,
                    shipping_address=json.dumps(DEFAULT_ADDRESS) if address else None,
                ),
                asynchronous=False,
            )

        path = _path_to(OrderStatus(status).value)
        for step in path:
            if step == "SUBMITTED_TO_POD" and fulfillment_reference_id:
                current_domain.process(
                    RecordPodSubmission(
                        order_id=order_id,
                        fulfillment_reference_id=fulfillment_reference_id,
                        fulfillment_status="pending",
                        changed_by=FIXTURE_ACTOR,
                    ),
                    asynchronous=False,
                )
            else:
                transition_order(order_id, step, FIXTURE_ACTOR)

        if fulfillment_reference_id and "SUBMITTED_TO_POD" not in path:
            current_domain.process(
                RecordPartnerStatus(
                    order_id=order_id,
                    fulfillment_reference_id=fulfillment_reference_id,
                    changed_by=FIXTURE_ACTOR,
                ),
                asynchronous=False,
            )

        return current_domain.repository_for(Order).get_order(order_id)

    return _make


@pytest.fixture()
def item_builder():
    """Build an item dict, overriding any field; None drops the field."""
    return _new_item


@pytest.fixture()
def load_order():
    """Fresh copy of an order from its repository."""
    from ordering.order.order import Order
    from protean.utils.globals import current_domain

    def _load(order_id):
        return current_domain.repository_for(Order).get_order(order_id)

    return _load
