"""Integration tests for the Order API endpoints."""

from ordering.order.order import OrderStatus

ORDER_BODY = {
    "items": [
        {
            "product_variant_id": "var-tee-black-m",
            "product_name": "Classic Tee",
            "quantity": 2,
            "unit_price": 2000,
            "partner_variant_id": 4012,
            "customization": {
                "technique": "dtg",
                "placement": "back",
                "design_url": "https://cdn.example.com/designs/42.png",
            },
        }
    ],
    "payment_session_id": "cs_test_api",
}


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "env": "test",
            "domain": "ordering",
            "providers": {"payment_gateway": "fake", "fulfillment_partner": "fake"},
        }


class TestPlaceOrder:
    def test_returns_201(self, client, load_order):
        response = client.post("/orders", json=ORDER_BODY)

        assert response.status_code == 201
        body = response.json()
        assert body["order_number"].startswith("ORD-")
        order = load_order(body["order_id"])
        assert order.status == "PENDING_PAYMENT"
        assert order.total == 4000
        assert order.payment_session_id == "cs_test_api"

    def test_currency_is_uppercased(self, client, load_order):
        order_id = client.post("/orders", json=ORDER_BODY | {"currency": "eur"}).json()["order_id"]
        assert load_order(order_id).currency == "EUR"

    def test_unknown_technique_rejected(self, client):
        body = {
            "items": [
                {
                    "product_variant_id": "v",
                    "product_name": "Tee",
                    "unit_price": 100,
                    "customization": {"technique": "laser"},
                }
            ]
        }
        assert client.post("/orders", json=body).status_code == 422

    def test_empty_order_rejected(self, client):
        assert client.post("/orders", json={"items": []}).status_code == 422


class TestGetOrder:
    def test_includes_items_and_history(self, client):
        order_id = client.post("/orders", json=ORDER_BODY).json()["order_id"]

        response = client.get(f"/orders/{order_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == order_id
        assert body["status"] == "PENDING_PAYMENT"
        customization = body["items"][0]["customization"]
        assert customization["technique"] == "dtg"
        assert customization["placement"] == "back"
        assert customization["design_url"] == "https://cdn.example.com/designs/42.png"
        assert body["shipping_address"] is None
        assert [entry["to_status"] for entry in body["history"]] == ["PENDING_PAYMENT"]
        assert body["history"][0]["from_status"] is None

    def test_history_chain_is_continuous(self, client, make_order):
        order = make_order(status=OrderStatus.SHIPPED, payment_reference_id="pi_123")

        history = client.get(f"/orders/{order.id}").json()["history"]

        assert [entry["to_status"] for entry in history] == [
            "PENDING_PAYMENT",
            "PAID",
            "SUBMITTED_TO_POD",
            "IN_PRODUCTION",
            "SHIPPED",
        ]
        for previous, entry in zip(history, history[1:]):
            assert entry["from_status"] == previous["to_status"]

    def test_unknown_order_is_404(self, client):
        response = client.get("/orders/missing")
        assert response.status_code == 404
        assert response.json() == {"detail": "Order not found: missing", "code": "NOT_FOUND"}


class TestAdminTransition:
    def test_records_admin_actor(self, client, make_order, load_order):
        order = make_order()

        response = client.post(
            f"/orders/{order.id}/status",
            json={"status": "CANCELLED", "admin_id": "ops_7", "reason": "Customer request"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "order_id": str(order.id),
            "status": "CANCELLED",
            "changed": True,
            "flagged": False,
        }
        entry = load_order(order.id).history()[-1]
        assert entry.changed_by == "admin:ops_7"
        assert entry.reason == "Customer request"

    def test_out_of_sequence_change_flagged(self, client, make_order):
        order = make_order(status=OrderStatus.DELIVERED)

        response = client.post(f"/orders/{order.id}/status", json={"status": "PAID", "admin_id": "ops_7"})

        assert response.json()["flagged"] is True

    def test_same_status_unchanged(self, client, make_order, load_order):
        order = make_order()

        response = client.post(
            f"/orders/{order.id}/status",
            json={"status": "PENDING_PAYMENT", "admin_id": "ops_7"},
        )

        assert response.json()["changed"] is False
        assert len(load_order(order.id).history()) == 1

    def test_invalid_admin_id(self, client, make_order, load_order):
        order = make_order()
        response = client.post(f"/orders/{order.id}/status", json={"status": "PAID", "admin_id": "has space"})
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_FAILURE"
        assert load_order(order.id).status == "PENDING_PAYMENT"

    def test_unknown_status(self, client, make_order):
        order = make_order()
        response = client.post(f"/orders/{order.id}/status", json={"status": "LOST", "admin_id": "ops_7"})
        assert response.status_code == 422


class TestSubmitOrder:
    def test_submits(self, client, make_order, load_order):
        order = make_order(status=OrderStatus.PAID, payment_reference_id="pi_123")

        response = client.post(f"/orders/{order.id}/submit")

        assert response.status_code == 200
        assert response.json()["status"] == "submitted"
        assert load_order(order.id).status == "SUBMITTED_TO_POD"

    def test_incomplete_order_reason_surfaced(self, client, make_order, item_builder):
        order = make_order(
            status=OrderStatus.PAID,
            payment_reference_id="pi_123",
            items=[item_builder(), item_builder(partner_variant_id=None)],
        )

        response = client.post(f"/orders/{order.id}/submit")

        assert response.status_code == 422
        assert response.json()["detail"] == "Item 2 has no fulfillment variant ID"

    def test_partner_outage_is_generic_502(self, client, partner, make_order):
        partner.configure(should_succeed=False, failure_reason="upstream 503 from print facility")
        order = make_order(status=OrderStatus.PAID, payment_reference_id="pi_123")

        response = client.post(f"/orders/{order.id}/submit")

        assert response.status_code == 502
        assert "try again later" in response.json()["detail"]
        assert "print facility" not in response.json()["detail"]


class TestPaymentSessionAndAssets:
    def test_link_payment_session(self, client, make_order, load_order):
        order = make_order()

        response = client.put(f"/orders/{order.id}/payment-session", json={"payment_session_id": "cs_new"})

        assert response.status_code == 200
        assert load_order(order.id).payment_session_id == "cs_new"

    def test_attach_print_ready(self, client, make_order, load_order):
        order = make_order(status=OrderStatus.PAID)
        item_id = order.items[0].id

        response = client.put(
            f"/orders/{order.id}/items/{item_id}/print-ready",
            json={"print_ready_url": "https://cdn/print.png"},
        )

        assert response.status_code == 200
        item = load_order(order.id).items[0]
        assert item.print_customization().print_ready_url == "https://cdn/print.png"

    def test_attach_to_terminal_order_refused(self, client, make_order):
        order = make_order(status=OrderStatus.CANCELLED)

        response = client.put(
            f"/orders/{order.id}/items/{order.items[0].id}/print-ready",
            json={"print_ready_url": "https://cdn/print.png"},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_FAILURE"
