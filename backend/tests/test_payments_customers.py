"""
Customer and payment tests.

Verifies:
- Customer CRUD and delete protection
- Payments update order payment_status and the customer balance
- Payment validation (amount, method, references)
- Vendor CRUD behind the premium gate
"""

import pytest

from bizops.models import Customer, Payment, SalesOrder


def _unpaid_order(client, headers, product_id, customer_id, quantity=1):
    resp = client.post("/api/sales-orders", headers=headers, json={
        "order": {"customer_id": customer_id},
        "items": [{"product_id": product_id, "quantity": quantity}],
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["order"]


class TestCustomers:

    def test_create_and_fetch(self, client, sales_headers):
        resp = client.post("/api/customers", headers=sales_headers, json={
            "name": "Corner Cafe", "email": "hello@cafe.test", "phone": "555-0100",
        })

        assert resp.status_code == 201
        customer = resp.get_json()
        assert customer["total_due_cents"] == 0

        fetched = client.get(f"/api/customers/{customer['id']}", headers=sales_headers)
        assert fetched.get_json()["name"] == "Corner Cafe"

    def test_name_required(self, client, sales_headers):
        resp = client.post("/api/customers", headers=sales_headers, json={"email": "x@y.test"})

        assert resp.status_code == 400
        assert resp.get_json()["field"] == "name"

    def test_balance_not_client_writable(self, client, sales_headers, customer):
        resp = client.put(f"/api/customers/{customer.id}", headers=sales_headers, json={"total_due_cents": 0})

        assert resp.status_code == 400
        assert resp.get_json()["field"] == "total_due_cents"

    def test_update(self, client, sales_headers, customer):
        resp = client.put(f"/api/customers/{customer.id}", headers=sales_headers, json={"phone": "555-0199"})

        assert resp.status_code == 200
        assert resp.get_json()["phone"] == "555-0199"
        assert resp.get_json()["name"] == "Acme Retail"

    def test_delete_requires_manager_or_admin(self, client, sales_headers, customer):
        assert client.delete(f"/api/customers/{customer.id}", headers=sales_headers).status_code == 403

    def test_delete_unreferenced(self, client, admin_headers, customer, db_session):
        assert client.delete(f"/api/customers/{customer.id}", headers=admin_headers).status_code == 200
        assert db_session.query(Customer).count() == 0

    def test_delete_referenced_conflicts(self, client, admin_headers, customer, make_product):
        product = make_product()
        _unpaid_order(client, admin_headers, product.id, customer.id)

        assert client.delete(f"/api/customers/{customer.id}", headers=admin_headers).status_code == 409


class TestPayments:

    def test_partial_then_full_payment(self, client, admin_headers, customer, make_product, db_session):
        product = make_product(price_cents=1000)
        order = _unpaid_order(client, admin_headers, product.id, customer.id, quantity=3)

        first = client.post("/api/payments", headers=admin_headers, json={
            "sales_order_id": order["id"], "amount_cents": 1000, "method": "cash",
        })
        assert first.status_code == 201, first.get_json()
        assert first.get_json()["customer_id"] == customer.id

        status = db_session.query(SalesOrder.payment_status).filter_by(id=order["id"]).scalar()
        due = db_session.query(Customer.total_due_cents).filter_by(id=customer.id).scalar()
        assert status == "partial"
        assert due == 2000

        second = client.post("/api/payments", headers=admin_headers, json={
            "sales_order_id": order["id"], "amount_cents": 2000, "method": "card", "reference": "AUTH-77",
        })
        assert second.status_code == 201

        status = db_session.query(SalesOrder.payment_status).filter_by(id=order["id"]).scalar()
        due = db_session.query(Customer.total_due_cents).filter_by(id=customer.id).scalar()
        assert status == "paid"
        assert due == 0

    def test_payment_against_customer_only(self, client, admin_headers, customer, make_product, db_session):
        product = make_product(price_cents=500)
        _unpaid_order(client, admin_headers, product.id, customer.id, quantity=2)

        resp = client.post("/api/payments", headers=admin_headers, json={
            "customer_id": customer.id, "amount_cents": 300, "method": "transfer",
        })

        assert resp.status_code == 201
        due = db_session.query(Customer.total_due_cents).filter_by(id=customer.id).scalar()
        assert due == 700

    def test_listing_by_customer(self, client, admin_headers, customer):
        client.post("/api/payments", headers=admin_headers, json={
            "customer_id": customer.id, "amount_cents": 100, "method": "cash",
        })
        client.post("/api/payments", headers=admin_headers, json={"amount_cents": 50, "method": "cash"})

        mine = client.get(f"/api/customers/{customer.id}/payments", headers=admin_headers).get_json()
        everything = client.get("/api/payments", headers=admin_headers).get_json()

        assert len(mine) == 1
        assert len(everything) == 2

    @pytest.mark.parametrize("payload,field", [
        ({"amount_cents": 0, "method": "cash"}, "amount_cents"),
        ({"amount_cents": -10, "method": "cash"}, "amount_cents"),
        ({"amount_cents": 10.5, "method": "cash"}, "amount_cents"),
        ({"method": "cash"}, "amount_cents"),
        ({"amount_cents": 100, "method": "bitcoin"}, "method"),
        ({"amount_cents": 100, "method": "cash", "status": "void"}, "status"),
    ])
    def test_invalid_payment_rejected(self, client, admin_headers, db_session, payload, field):
        resp = client.post("/api/payments", headers=admin_headers, json=payload)

        assert resp.status_code == 400
        assert resp.get_json()["field"] == field
        assert db_session.query(Payment).count() == 0

    def test_unknown_order_404(self, client, admin_headers, db_session):
        resp = client.post("/api/payments", headers=admin_headers, json={
            "sales_order_id": 777, "amount_cents": 100, "method": "cash",
        })

        assert resp.status_code == 404
        assert db_session.query(Payment).count() == 0

    def test_customer_must_match_order(self, client, admin_headers, customer, make_product, db_session):
        other = Customer(name="Someone Else", total_due_cents=0)
        db_session.add(other)
        db_session.commit()
        product = make_product()
        order = _unpaid_order(client, admin_headers, product.id, customer.id)

        resp = client.post("/api/payments", headers=admin_headers, json={
            "sales_order_id": order["id"], "customer_id": other.id, "amount_cents": 100, "method": "cash",
        })

        assert resp.status_code == 400
        assert resp.get_json()["field"] == "customer_id"

    def test_get_payment(self, client, admin_headers):
        created = client.post("/api/payments", headers=admin_headers, json={"amount_cents": 100, "method": "cash"}).get_json()

        assert client.get(f"/api/payments/{created['id']}", headers=admin_headers).get_json() == created
        assert client.get("/api/payments/98765", headers=admin_headers).status_code == 404


class TestVendors:

    def test_crud(self, client, admin_headers):
        created = client.post("/api/vendors", headers=admin_headers, json={"name": "Beans Ltd"})
        assert created.status_code == 201
        vendor = created.get_json()
        assert vendor["performance_score"] == 100

        updated = client.put(f"/api/vendors/{vendor['id']}", headers=admin_headers, json={"performance_score": 80})
        assert updated.get_json()["performance_score"] == 80

        assert client.delete(f"/api/vendors/{vendor['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/vendors/{vendor['id']}", headers=admin_headers).status_code == 404

    def test_score_range_enforced(self, client, admin_headers):
        resp = client.post("/api/vendors", headers=admin_headers, json={"name": "Bad", "performance_score": 101})

        assert resp.status_code == 400
        assert resp.get_json()["field"] == "performance_score"
