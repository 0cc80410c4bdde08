"""
Product catalog tests.

Verifies:
- Create/update validation (integer cents, required fields, uniqueness)
- Barcode lookup and low-stock listing (inclusive threshold)
- Manual quantity adjustment
- Deactivation hides a product without deleting it
"""

import pytest

from bizops.models import Product


class TestProductWrites:

    def test_create_product(self, client, admin_headers):
        resp = client.post("/api/products", headers=admin_headers, json={
            "name": "Coffee Beans 1kg",
            "sku": "CB-1KG",
            "barcode": "4006381333931",
            "price_cents": 1899,
            "cost_cents": 1100,
            "quantity": 40,
        })

        assert resp.status_code == 201, resp.get_json()
        body = resp.get_json()
        assert body["price_cents"] == 1899
        assert body["low_stock_threshold"] == 10
        assert body["is_low_stock"] is False

    @pytest.mark.parametrize("payload,field", [
        ({"price_cents": 100}, "name"),
        ({"name": "No price"}, "price_cents"),
        ({"name": "Float", "price_cents": 19.99}, "price_cents"),
        ({"name": "Negative", "price_cents": -1}, "price_cents"),
        ({"name": "Neg qty", "price_cents": 100, "quantity": -3}, "quantity"),
        ({"name": "Huge qty", "price_cents": 100, "quantity": 2**31}, "quantity"),
        ({"name": "Bad field", "price_cents": 100, "id": 7}, "id"),
    ])
    def test_create_rejects_bad_payload(self, client, admin_headers, payload, field):
        resp = client.post("/api/products", headers=admin_headers, json=payload)

        assert resp.status_code == 400
        assert resp.get_json()["field"] == field

    def test_duplicate_sku_conflicts(self, client, admin_headers, make_product):
        make_product(sku="DUP-1")

        resp = client.post("/api/products", headers=admin_headers, json={
            "name": "Other", "sku": "DUP-1", "price_cents": 100,
        })

        assert resp.status_code == 409

    def test_blank_identifiers_do_not_collide(self, client, admin_headers):
        for name in ("First", "Second"):
            resp = client.post("/api/products", headers=admin_headers, json={
                "name": name, "sku": "", "barcode": "", "price_cents": 100,
            })
            assert resp.status_code == 201
            assert resp.get_json()["sku"] is None

    def test_update_is_field_level(self, client, admin_headers, make_product):
        product = make_product(price_cents=500, category="Tea")

        resp = client.put(f"/api/products/{product.id}", headers=admin_headers, json={"price_cents": 650})

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["price_cents"] == 650
        assert body["category"] == "Tea"

    def test_update_missing_product_404(self, client, admin_headers):
        resp = client.put("/api/products/4040", headers=admin_headers, json={"price_cents": 650})
        assert resp.status_code == 404

    def test_quantity_adjustment(self, client, admin_headers, make_product, stock_of):
        product = make_product(quantity=10)

        resp = client.patch(f"/api/products/{product.id}/quantity", headers=admin_headers, json={"quantity": 25})

        assert resp.status_code == 200
        assert stock_of(product.id) == 25

    @pytest.mark.parametrize("quantity", [-1, "3.5", None, 2**31])
    def test_quantity_adjustment_rejects_bad_values(self, client, admin_headers, make_product, stock_of, quantity):
        product = make_product(quantity=10)

        resp = client.patch(f"/api/products/{product.id}/quantity", headers=admin_headers, json={"quantity": quantity})

        assert resp.status_code == 400
        assert stock_of(product.id) == 10

    def test_delete_deactivates(self, client, admin_headers, make_product, db_session):
        product = make_product()

        resp = client.delete(f"/api/products/{product.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.get_json()["is_active"] is False
        assert db_session.query(Product).filter_by(id=product.id).count() == 1
        listed = client.get("/api/products", headers=admin_headers).get_json()
        assert product.id not in [p["id"] for p in listed]


class TestProductReads:

    def test_barcode_lookup(self, client, sales_headers, make_product):
        product = make_product(barcode="0012345678905")

        resp = client.get("/api/products/barcode/0012345678905", headers=sales_headers)

        assert resp.status_code == 200
        assert resp.get_json()["id"] == product.id

    def test_barcode_lookup_is_exact(self, client, sales_headers, make_product):
        make_product(barcode="0012345678905")

        resp = client.get("/api/products/barcode/00123456789", headers=sales_headers)

        assert resp.status_code == 404

    def test_low_stock_is_inclusive_and_active_only(self, client, sales_headers, make_product):
        at_threshold = make_product("At", quantity=5, low_stock_threshold=5)
        below = make_product("Below", quantity=1, low_stock_threshold=5)
        make_product("Above", quantity=6, low_stock_threshold=5)
        make_product("Inactive", quantity=0, low_stock_threshold=5, is_active=False)

        resp = client.get("/api/products/low-stock", headers=sales_headers)

        assert resp.status_code == 200
        ids = {p["id"] for p in resp.get_json()}
        assert ids == {at_threshold.id, below.id}

    def test_list_is_ordered_by_name(self, client, sales_headers, make_product):
        make_product("Zucchini")
        make_product("Apple")

        names = [p["name"] for p in client.get("/api/products", headers=sales_headers).get_json()]

        assert names == ["Apple", "Zucchini"]

    def test_get_missing_product_404(self, client, sales_headers):
        assert client.get("/api/products/999", headers=sales_headers).status_code == 404
