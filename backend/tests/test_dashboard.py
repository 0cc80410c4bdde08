"""
Dashboard reporting and health tests.

Verifies:
- Metrics count completed orders only
- Sales analytics and top products aggregate completed orders
- /health reports degraded (200) when no OpenAI key is configured
"""


def _order(client, headers, product_id, quantity, status="completed"):
    resp = client.post("/api/sales-orders", headers=headers, json={
        "order": {"status": status, "payment_status": "paid"},
        "items": [{"product_id": product_id, "quantity": quantity}],
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["order"]


class TestDashboard:

    def test_metrics(self, client, admin_headers, make_product, customer):
        product = make_product(price_cents=300, quantity=20)
        _order(client, admin_headers, product.id, 2)
        _order(client, admin_headers, product.id, 1, status="pending")

        resp = client.get("/api/dashboard/metrics", headers=admin_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["revenue_cents"]["current"] == 600
        assert body["orders"]["current"] == 1
        assert body["orders"]["previous"] == 0
        assert body["customers"] == 1
        # 17 left on hand at 300 cents each
        assert body["inventory_value_cents"] == 5100

    def test_inactive_products_excluded_from_inventory_value(self, client, admin_headers, make_product):
        make_product(price_cents=100, quantity=5)
        make_product("Retired", price_cents=100, quantity=50, is_active=False)

        body = client.get("/api/dashboard/metrics", headers=admin_headers).get_json()

        assert body["inventory_value_cents"] == 500

    def test_sales_analytics(self, client, admin_headers, make_product):
        product = make_product(price_cents=250, quantity=50)
        _order(client, admin_headers, product.id, 2)
        _order(client, admin_headers, product.id, 4)
        _order(client, admin_headers, product.id, 8, status="cancelled")

        resp = client.get("/api/dashboard/sales-analytics?days=7", headers=admin_headers)

        assert resp.status_code == 200
        rows = resp.get_json()
        assert len(rows) == 1
        assert rows[0]["total_cents"] == 1500
        assert rows[0]["count"] == 2

    def test_top_products(self, client, admin_headers, make_product):
        tea = make_product("Tea", price_cents=100, quantity=50)
        coffee = make_product("Coffee", price_cents=500, quantity=50)
        _order(client, admin_headers, tea.id, 10)
        _order(client, admin_headers, coffee.id, 3)
        _order(client, admin_headers, tea.id, 30, status="pending")

        resp = client.get("/api/dashboard/top-products?limit=1", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.get_json() == [
            {"product_id": coffee.id, "name": "Coffee", "total_sold": 3, "total_revenue_cents": 1500},
        ]

    def test_empty_reports(self, client, admin_headers):
        assert client.get("/api/dashboard/sales-analytics", headers=admin_headers).get_json() == []
        assert client.get("/api/dashboard/top-products", headers=admin_headers).get_json() == []


class TestHealth:

    def test_degraded_without_openai_key(self, client, db_session):
        resp = client.get("/health")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "degraded"
        assert body["checks"]["database"]["status"] == "healthy"
        assert body["checks"]["insight_generator"]["status"] == "degraded"
