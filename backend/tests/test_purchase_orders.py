"""
Purchase order tests.

Verifies:
- Creation persists header + items and never changes stock
- Lifecycle transitions (and rejection of illegal ones)
- Receipt only adds stock when RECEIVE_UPDATES_STOCK is enabled
- Premium gate (402 for standard tier)
"""

import pytest

from bizops.models import PurchaseOrder, PurchaseOrderItem


@pytest.fixture
def premium_headers(make_user, login):
    make_user("buyer", role="manager", tier="premium")
    return login("buyer")


def _create_po(client, headers, vendor_id, product_id, quantity=5, **order):
    return client.post("/api/purchase-orders", headers=headers, json={
        "order": {"vendor_id": vendor_id, **order},
        "items": [{"product_id": product_id, "quantity": quantity}],
    })


class TestCreatePurchaseOrder:

    def test_creation_does_not_touch_stock(self, client, premium_headers, vendor, make_product, stock_of):
        product = make_product(quantity=4, cost_cents=120)

        resp = _create_po(client, premium_headers, vendor.id, product.id, quantity=10, tax_cents=30)

        assert resp.status_code == 201, resp.get_json()
        body = resp.get_json()
        assert body["order"]["po_number"].startswith("PO-")
        assert body["order"]["status"] == "pending"
        assert body["order"]["subtotal_cents"] == 1200
        assert body["order"]["total_cents"] == 1230
        assert body["items"][0]["unit_cost_cents"] == 120
        assert body["vendor"]["id"] == vendor.id
        assert stock_of(product.id) == 4

    def test_expected_date_accepted(self, client, premium_headers, vendor, make_product):
        product = make_product()

        resp = _create_po(client, premium_headers, vendor.id, product.id, expected_date="2026-11-01T00:00:00Z")

        assert resp.status_code == 201
        assert resp.get_json()["order"]["expected_date"].startswith("2026-11-01")

    @pytest.mark.parametrize("expected_date", ["next week", 20261101, ""])
    def test_bad_expected_date_rejected(self, client, premium_headers, vendor, make_product, expected_date):
        product = make_product()

        resp = _create_po(client, premium_headers, vendor.id, product.id, expected_date=expected_date)

        assert resp.status_code == 400
        assert resp.get_json()["field"] == "order.expected_date"

    def test_vendor_required(self, client, premium_headers, make_product):
        product = make_product()

        resp = client.post("/api/purchase-orders", headers=premium_headers, json={
            "order": {}, "items": [{"product_id": product.id, "quantity": 1}],
        })

        assert resp.status_code == 400
        assert resp.get_json()["field"] == "order.vendor_id"

    def test_unknown_vendor_writes_nothing(self, client, premium_headers, make_product, db_session):
        product = make_product()

        resp = _create_po(client, premium_headers, 9999, product.id)

        assert resp.status_code == 404
        assert db_session.query(PurchaseOrder).count() == 0
        assert db_session.query(PurchaseOrderItem).count() == 0

    def test_unknown_product_writes_nothing(self, client, premium_headers, vendor, db_session):
        resp = _create_po(client, premium_headers, vendor.id, 9999)

        assert resp.status_code == 404
        assert db_session.query(PurchaseOrder).count() == 0

    def test_standard_tier_gets_402(self, client, sales_headers, vendor, make_product):
        product = make_product()

        assert _create_po(client, sales_headers, vendor.id, product.id).status_code == 402
        assert client.get("/api/purchase-orders", headers=sales_headers).status_code == 402


class TestPurchaseOrderLifecycle:

    def _po_id(self, client, headers, vendor, product, quantity=5):
        return _create_po(client, headers, vendor.id, product.id, quantity=quantity).get_json()["order"]["id"]

    def test_confirm_then_receive(self, client, premium_headers, vendor, make_product, stock_of):
        product = make_product(quantity=4)
        po_id = self._po_id(client, premium_headers, vendor, product)

        confirmed = client.put(f"/api/purchase-orders/{po_id}", headers=premium_headers, json={"status": "confirmed"})
        assert confirmed.status_code == 200
        assert confirmed.get_json()["order"]["status"] == "confirmed"

        received = client.put(f"/api/purchase-orders/{po_id}", headers=premium_headers, json={"status": "received"})
        assert received.status_code == 200
        assert received.get_json()["order"]["status"] == "received"
        assert received.get_json()["order"]["received_at"] is not None

        # Receipt does not reconcile stock by default
        assert stock_of(product.id) == 4

    def test_receive_updates_stock_when_enabled(self, app, client, premium_headers, vendor, make_product, stock_of, monkeypatch):
        monkeypatch.setitem(app.config, "RECEIVE_UPDATES_STOCK", True)
        product = make_product(quantity=4)
        po_id = self._po_id(client, premium_headers, vendor, product, quantity=6)

        client.put(f"/api/purchase-orders/{po_id}", headers=premium_headers, json={"status": "confirmed"})
        client.put(f"/api/purchase-orders/{po_id}", headers=premium_headers, json={"status": "received"})

        assert stock_of(product.id) == 10

    def test_pending_cannot_jump_to_received(self, client, premium_headers, vendor, make_product):
        product = make_product()
        po_id = self._po_id(client, premium_headers, vendor, product)

        resp = client.put(f"/api/purchase-orders/{po_id}", headers=premium_headers, json={"status": "received"})

        assert resp.status_code == 409

    def test_cancelled_is_terminal(self, client, premium_headers, vendor, make_product):
        product = make_product()
        po_id = self._po_id(client, premium_headers, vendor, product)

        assert client.put(f"/api/purchase-orders/{po_id}", headers=premium_headers, json={"status": "cancelled"}).status_code == 200
        assert client.put(f"/api/purchase-orders/{po_id}", headers=premium_headers, json={"status": "confirmed"}).status_code == 409

    def test_unknown_status_rejected(self, client, premium_headers, vendor, make_product):
        product = make_product()
        po_id = self._po_id(client, premium_headers, vendor, product)

        resp = client.put(f"/api/purchase-orders/{po_id}", headers=premium_headers, json={"status": "shipped"})

        assert resp.status_code == 400
        assert resp.get_json()["field"] == "status"

    def test_vendor_with_purchase_orders_cannot_be_deleted(self, client, premium_headers, vendor, make_product):
        product = make_product()
        self._po_id(client, premium_headers, vendor, product)

        assert client.delete(f"/api/vendors/{vendor.id}", headers=premium_headers).status_code == 409
