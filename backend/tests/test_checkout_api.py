"""
End-to-end register tests through the HTTP API.

Verifies:
- Cart endpoints build the session cart with the stock cap
- Checkout writes the sale, its lines, stock and ledger in one go
- Short stock returns 409 and leaves no rows behind
- Cashiers cannot complete sales
- A repeated client_sale_id returns the stored sale with 200
- An attached customer's store credit is spent before tender
- Stored receipts can be reprinted
"""

from sqlalchemy import update

from shoppos.extensions import db
from shoppos.models import CreditLedgerEntry, Product, Sale, SaleLine


def add(client, headers, product, times=1):
    response = None
    for _ in range(times):
        response = client.post('/api/pos/cart/items', headers=headers, json={'product_id': product.id})
    return response


def pay(client, headers, **fields):
    return client.put('/api/pos/session', headers=headers, json=fields)


def grant_credit(customer, amount):
    db.session.add(CreditLedgerEntry(
        customer_id=customer.id, entry_type="credit", amount=amount, description="Opening credit",
    ))
    db.session.commit()


class TestCartApi:
    """Cart endpoints."""

    def test_requires_auth(self, client, db_session):
        response = client.get('/api/pos/session')
        assert response.status_code == 401

    def test_add_increments_and_caps_at_stock(self, client, admin_headers, catalog):
        bread = catalog["bread"]
        add(client, admin_headers, bread, times=2)
        response = add(client, admin_headers, bread)

        assert response.status_code == 200
        assert response.json["added"] is False
        lines = response.json["cart"]["lines"]
        assert len(lines) == 1
        assert lines[0]["quantity"] == 2
        assert response.json["cart"]["total"] == 3000

    def test_add_out_of_stock_is_ignored(self, client, admin_headers, catalog):
        response = add(client, admin_headers, catalog["soap"])
        assert response.status_code == 200
        assert response.json["added"] is False
        assert response.json["cart"]["lines"] == []

    def test_add_unknown_product(self, client, admin_headers, catalog):
        response = client.post('/api/pos/cart/items', headers=admin_headers, json={'product_id': 9999})
        assert response.status_code == 404

    def test_set_quantity_zero_removes_line(self, client, admin_headers, catalog):
        cola = catalog["cola"]
        add(client, admin_headers, cola)
        response = client.put(f'/api/pos/cart/items/{cola.id}', headers=admin_headers, json={'quantity': 0})
        assert response.status_code == 200
        assert response.json["cart"]["lines"] == []

    def test_set_quantity_for_missing_line(self, client, admin_headers, catalog):
        response = client.put(f'/api/pos/cart/items/{catalog["cola"].id}', headers=admin_headers, json={'quantity': 2})
        assert response.status_code == 404

    def test_sessions_are_per_user(self, client, admin_headers, cashier_headers, catalog):
        add(client, admin_headers, catalog["cola"])
        response = client.get('/api/pos/session', headers=cashier_headers)
        assert response.json["cart"]["lines"] == []

    def test_invalid_payment_method(self, client, admin_headers, db_session):
        response = pay(client, admin_headers, payment_method="cheque")
        assert response.status_code == 400

    def test_unknown_customer(self, client, admin_headers, db_session):
        response = pay(client, admin_headers, customer_id=4242)
        assert response.status_code == 404

    def test_change_reported_on_session(self, client, admin_headers, catalog):
        add(client, admin_headers, catalog["cola"], times=2)
        response = pay(client, admin_headers, paid_amount=5000)
        assert response.json["change_amount"] == 3000


class TestCheckoutApi:
    """POST /api/pos/checkout."""

    def test_cash_sale_commits_everything(self, client, admin_headers, catalog, company, stock_of):
        cola, bread = catalog["cola"], catalog["bread"]
        add(client, admin_headers, cola, times=2)
        add(client, admin_headers, bread)
        pay(client, admin_headers, paid_amount=5000)

        response = client.post('/api/pos/checkout', headers=admin_headers, json={})

        assert response.status_code == 201
        data = response.json
        assert data["replayed"] is False
        assert data["sale"]["sale_number"].startswith("SALE-")
        assert data["sale"]["total_amount"] == 3500
        assert data["sale"]["change_amount"] == 1500
        assert [(l["product_id"], l["quantity"], l["total_price"]) for l in data["lines"]] == [
            (cola.id, 2, 2000),
            (bread.id, 1, 1500),
        ]
        assert "Golden Mart" in data["receipt_html"]

        assert stock_of(cola.id) == 8
        assert stock_of(bread.id) == 1
        assert db.session.query(SaleLine).count() == 2
        assert [l["unit_cost"] for l in data["lines"]] == [600, 1000]
        # No customer attached, so the change is not kept as credit
        assert db.session.query(CreditLedgerEntry).count() == 0

    def test_session_reset_after_sale(self, client, admin_headers, catalog):
        add(client, admin_headers, catalog["cola"])
        pay(client, admin_headers, paid_amount=1000)
        client.post('/api/pos/checkout', headers=admin_headers, json={})

        response = client.get('/api/pos/session', headers=admin_headers)
        assert response.json["cart"]["lines"] == []
        assert response.json["paid_amount"] is None

    def test_fresh_catalog_in_response(self, client, admin_headers, catalog):
        bread = catalog["bread"]
        add(client, admin_headers, bread, times=2)
        pay(client, admin_headers, paid_amount=3000)
        response = client.post('/api/pos/checkout', headers=admin_headers, json={})

        ids = {p["id"] for p in response.json["products"]}
        assert bread.id not in ids
        assert catalog["cola"].id in ids

    def test_change_kept_as_store_credit(self, client, admin_headers, catalog, customer):
        add(client, admin_headers, catalog["cola"], times=2)
        pay(client, admin_headers, customer_id=customer.id, paid_amount=5000)

        response = client.post('/api/pos/checkout', headers=admin_headers, json={})
        assert response.status_code == 201

        balances = client.get('/api/credits/balances', headers=admin_headers).json
        row = next(item for item in balances["items"] if item["id"] == customer.id)
        assert row["store_credit"] == 3000
        assert row["debt"] == 0

    def test_store_credit_sale_records_debt(self, client, admin_headers, catalog, customer):
        add(client, admin_headers, catalog["cola"], times=2)
        pay(client, admin_headers, customer_id=customer.id, payment_method="store_credit", paid_amount=500)

        response = client.post('/api/pos/checkout', headers=admin_headers, json={})
        assert response.status_code == 201
        assert response.json["sale"]["payment_method"] == "store_credit"

        entry = db.session.query(CreditLedgerEntry).one()
        assert entry.entry_type == "debit"
        assert entry.amount == 1500
        assert entry.description == f"Debt from sale {response.json['sale']['sale_number']}"

    def test_underpaid_cash_sale_rejected(self, client, admin_headers, catalog, stock_of):
        add(client, admin_headers, catalog["cola"], times=2)
        pay(client, admin_headers, paid_amount=1500)

        response = client.post('/api/pos/checkout', headers=admin_headers, json={})
        assert response.status_code == 400
        assert response.json["details"] == {"total": 2000, "credit_applied": 0, "amount_due": 2000, "paid_amount": 1500}
        assert stock_of(catalog["cola"].id) == 10

    def test_empty_cart_rejected(self, client, admin_headers, db_session):
        response = client.post('/api/pos/checkout', headers=admin_headers, json={})
        assert response.status_code == 400
        assert response.json["error"] == "Cart is empty"

    def test_cashier_cannot_complete_sale(self, client, cashier_headers, catalog, stock_of):
        add(client, cashier_headers, catalog["cola"])
        pay(client, cashier_headers, paid_amount=1000)

        response = client.post('/api/pos/checkout', headers=cashier_headers, json={})

        assert response.status_code == 403
        assert response.json["error"] == "Only administrators can complete sales"
        assert stock_of(catalog["cola"].id) == 10
        assert db.session.query(Sale).count() == 0

    def test_short_stock_rolls_back(self, client, admin_headers, catalog, customer, stock_of):
        cola, bread = catalog["cola"], catalog["bread"]
        add(client, admin_headers, cola)
        add(client, admin_headers, bread, times=2)
        pay(client, admin_headers, customer_id=customer.id, paid_amount=10000)

        # Another register sold a loaf in the meantime
        db.session.execute(update(Product).where(Product.id == bread.id).values(stock_quantity=1))
        db.session.commit()

        response = client.post('/api/pos/checkout', headers=admin_headers, json={})

        assert response.status_code == 409
        assert response.json["details"]["items"][0]["product_id"] == bread.id
        assert db.session.query(Sale).count() == 0
        assert db.session.query(SaleLine).count() == 0
        assert db.session.query(CreditLedgerEntry).count() == 0
        assert stock_of(cola.id) == 10
        assert stock_of(bread.id) == 1

        # The cart is kept so the operator can fix it
        session = client.get('/api/pos/session', headers=admin_headers).json
        assert len(session["cart"]["lines"]) == 2

    def test_client_sale_id_must_be_string(self, client, admin_headers, catalog):
        response = client.post('/api/pos/checkout', headers=admin_headers, json={'client_sale_id': 12})
        assert response.status_code == 400
        response = client.post('/api/pos/checkout', headers=admin_headers, json={'client_sale_id': 'x' * 65})
        assert response.status_code == 400

    def test_repeated_client_sale_id_replays(self, client, admin_headers, catalog, stock_of):
        cola = catalog["cola"]
        add(client, admin_headers, cola)
        pay(client, admin_headers, paid_amount=1000)
        first = client.post('/api/pos/checkout', headers=admin_headers, json={'client_sale_id': 'reg1-42'})
        assert first.status_code == 201

        # Register retries after a lost response
        add(client, admin_headers, cola)
        pay(client, admin_headers, paid_amount=1000)
        second = client.post('/api/pos/checkout', headers=admin_headers, json={'client_sale_id': 'reg1-42'})

        assert second.status_code == 200
        assert second.json["replayed"] is True
        assert second.json["sale"]["id"] == first.json["sale"]["id"]
        assert db.session.query(Sale).count() == 1
        assert stock_of(cola.id) == 9


class TestStoreCreditAtCheckout:
    """Existing store credit is applied to the next sale."""

    def test_session_shows_credit_applied(self, client, admin_headers, catalog, customer):
        grant_credit(customer, 1500)
        add(client, admin_headers, catalog["cola"], times=2)
        response = pay(client, admin_headers, customer_id=customer.id, paid_amount=1000)

        assert response.json["credit_applied"] == 1500
        assert response.json["amount_due"] == 500
        assert response.json["change_amount"] == 500

    def test_credit_covers_sale_without_tender(self, client, admin_headers, catalog, customer):
        grant_credit(customer, 2000)
        add(client, admin_headers, catalog["cola"], times=2)
        pay(client, admin_headers, customer_id=customer.id, paid_amount=0)

        response = client.post('/api/pos/checkout', headers=admin_headers, json={})

        assert response.status_code == 201
        sale = response.json["sale"]
        assert sale["credit_applied"] == 2000
        assert sale["amount_due"] == 0
        assert "Credit Applied" in response.json["receipt_html"]

        entry = db.session.query(CreditLedgerEntry).filter_by(entry_type="credit_used").one()
        assert entry.amount == 2000
        assert entry.sale_id == sale["id"]
        assert entry.description == f"Credit applied to sale {sale['sale_number']}"

        balances = client.get('/api/credits/balances', headers=admin_headers).json
        row = next(item for item in balances["items"] if item["id"] == customer.id)
        assert row["store_credit"] == 0

    def test_tender_measured_against_amount_due(self, client, admin_headers, catalog, customer):
        grant_credit(customer, 500)
        add(client, admin_headers, catalog["cola"], times=2)
        pay(client, admin_headers, customer_id=customer.id, paid_amount=2000)

        response = client.post('/api/pos/checkout', headers=admin_headers, json={})

        assert response.status_code == 201
        # 500 of credit used, 1,500 due, 500 change kept as new credit
        assert response.json["sale"]["change_amount"] == 500
        balances = client.get('/api/credits/balances', headers=admin_headers).json
        row = next(item for item in balances["items"] if item["id"] == customer.id)
        assert row["store_credit"] == 500

    def test_failed_checkout_keeps_credit(self, client, admin_headers, catalog, customer):
        grant_credit(customer, 1000)
        bread = catalog["bread"]
        add(client, admin_headers, bread, times=2)
        pay(client, admin_headers, customer_id=customer.id, paid_amount=2000)
        db.session.execute(update(Product).where(Product.id == bread.id).values(stock_quantity=1))
        db.session.commit()

        response = client.post('/api/pos/checkout', headers=admin_headers, json={})

        assert response.status_code == 409
        assert db.session.query(CreditLedgerEntry).filter_by(entry_type="credit_used").count() == 0


class TestSalesApi:
    """Stored sales and receipt reprints."""

    def _checkout(self, client, headers, catalog, customer=None):
        add(client, headers, catalog["cola"])
        fields = {"paid_amount": 1000}
        if customer is not None:
            fields["customer_id"] = customer.id
        pay(client, headers, **fields)
        return client.post('/api/pos/checkout', headers=headers, json={}).json["sale"]

    def test_get_sale(self, client, admin_headers, catalog):
        sale = self._checkout(client, admin_headers, catalog)
        response = client.get(f'/api/sales/{sale["id"]}', headers=admin_headers)
        assert response.status_code == 200
        assert response.json["sale"]["sale_number"] == sale["sale_number"]
        assert response.json["lines"][0]["product_name"] == "Cola"

    def test_missing_sale(self, client, admin_headers, db_session):
        assert client.get('/api/sales/999', headers=admin_headers).status_code == 404

    def test_list_sales(self, client, admin_headers, catalog):
        self._checkout(client, admin_headers, catalog)
        response = client.get('/api/sales', headers=admin_headers)
        assert response.json["count"] == 1

    def test_reprint_receipt(self, client, admin_headers, catalog, customer, company):
        sale = self._checkout(client, admin_headers, catalog, customer=customer)
        response = client.get(f'/api/sales/{sale["id"]}/receipt', headers=admin_headers)

        assert response.status_code == 200
        assert response.mimetype == "text/html"
        html = response.get_data(as_text=True)
        assert sale["sale_number"] in html
        assert "Cola" in html
        assert html.count("Aye Aye") == 1
