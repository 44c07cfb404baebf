"""
Master data management tests.

Verifies:
- Categories and brands can be renamed and soft-deleted
- Supplier records CRUD
- Attribute definitions and per-product attribute values
- Customers without history can be deleted
- Writes are admin-only
"""

import pytest

from shoppos.extensions import db
from shoppos.models import Category, CreditLedgerEntry, ProductAttribute, Supplier


class TestCategoriesAndBrands:
    """PUT/DELETE on /api/categories and /api/brands."""

    def test_rename_category(self, client, admin_headers, catalog):
        drinks = db.session.query(Category).filter_by(name="Drinks").one()
        response = client.put(f'/api/categories/{drinks.id}', headers=admin_headers,
                              json={'name': 'Beverages', 'description': 'Cold and hot'})
        assert response.status_code == 200
        assert response.json["name"] == "Beverages"
        assert response.json["description"] == "Cold and hot"

        product = client.get(f'/api/products/{catalog["cola"].id}', headers=admin_headers).json
        assert product["category_name"] == "Beverages"

    def test_rename_to_existing_name_conflicts(self, client, admin_headers, catalog):
        drinks = db.session.query(Category).filter_by(name="Drinks").one()
        response = client.put(f'/api/categories/{drinks.id}', headers=admin_headers, json={'name': 'bakery'})
        assert response.status_code == 409

    def test_blank_name_rejected(self, client, admin_headers, catalog):
        brand_id = catalog["cola"].brand_id
        response = client.put(f'/api/brands/{brand_id}', headers=admin_headers, json={'name': '  '})
        assert response.status_code == 400

    def test_delete_brand_hides_it(self, client, admin_headers, catalog):
        brand_id = catalog["cola"].brand_id
        assert client.delete(f'/api/brands/{brand_id}', headers=admin_headers).status_code == 200

        listing = client.get('/api/brands', headers=admin_headers).json
        assert listing["count"] == 0
        # The product keeps its brand reference
        product = client.get(f'/api/products/{catalog["cola"].id}', headers=admin_headers).json
        assert product["brand_name"] == "House"

        assert client.delete(f'/api/brands/{brand_id}', headers=admin_headers).status_code == 404

    def test_recreating_deleted_category_reactivates_it(self, client, admin_headers, catalog):
        bakery = db.session.query(Category).filter_by(name="Bakery").one()
        client.delete(f'/api/categories/{bakery.id}', headers=admin_headers)

        response = client.post('/api/categories', headers=admin_headers, json={'name': 'Bakery'})

        assert response.status_code == 201
        assert response.json["id"] == bakery.id
        assert response.json["is_active"] is True

    def test_cashier_cannot_edit(self, client, cashier_headers, catalog):
        brand_id = catalog["cola"].brand_id
        assert client.put(f'/api/brands/{brand_id}', headers=cashier_headers, json={'name': 'X'}).status_code == 403
        assert client.delete(f'/api/brands/{brand_id}', headers=cashier_headers).status_code == 403


class TestSuppliers:
    """/api/suppliers"""

    def _create(self, client, headers, **fields):
        body = {'name': 'Yoma Trading', 'contact_person': 'U Kyaw', 'phone': '09-444'}
        body.update(fields)
        return client.post('/api/suppliers', headers=headers, json=body)

    def test_create_and_get(self, client, admin_headers, db_session):
        response = self._create(client, admin_headers)
        assert response.status_code == 201
        assert response.json["is_active"] is True

        fetched = client.get(f'/api/suppliers/{response.json["id"]}', headers=admin_headers)
        assert fetched.json["contact_person"] == "U Kyaw"

    def test_name_required(self, client, admin_headers, db_session):
        response = client.post('/api/suppliers', headers=admin_headers, json={'phone': '09-1'})
        assert response.status_code == 400

    def test_unknown_field_rejected(self, client, admin_headers, db_session):
        assert self._create(client, admin_headers, rating=5).status_code == 400

    def test_update(self, client, admin_headers, db_session):
        supplier_id = self._create(client, admin_headers).json["id"]
        response = client.put(f'/api/suppliers/{supplier_id}', headers=admin_headers,
                              json={'notes': 'Delivers Mondays', 'is_active': False})
        assert response.status_code == 200
        assert response.json["notes"] == "Delivers Mondays"
        assert response.json["is_active"] is False
        assert response.json["name"] == "Yoma Trading"

    def test_search(self, client, admin_headers, db_session):
        self._create(client, admin_headers)
        self._create(client, admin_headers, name='Golden Rice', contact_person='Daw Mya', phone='09-222')

        response = client.get('/api/suppliers?q=mya', headers=admin_headers)
        assert [s["name"] for s in response.json["items"]] == ["Golden Rice"]

    def test_delete(self, client, admin_headers, db_session):
        supplier_id = self._create(client, admin_headers).json["id"]
        assert client.delete(f'/api/suppliers/{supplier_id}', headers=admin_headers).status_code == 200
        assert db.session.get(Supplier, supplier_id) is None
        assert client.delete(f'/api/suppliers/{supplier_id}', headers=admin_headers).status_code == 404

    def test_cashier_can_read_not_write(self, client, cashier_headers, db_session):
        assert client.get('/api/suppliers', headers=cashier_headers).status_code == 200
        assert self._create(client, cashier_headers).status_code == 403


class TestAttributes:
    """/api/attributes and /api/products/<id>/attributes"""

    @pytest.fixture
    def size(self, client, admin_headers):
        response = client.post('/api/attributes', headers=admin_headers,
                               json={'name': 'Size', 'type': 'select', 'values': ['S', 'M', 'L', 'M', ' ']})
        assert response.status_code == 201
        return response.json

    @pytest.fixture
    def volume(self, client, admin_headers):
        return client.post('/api/attributes', headers=admin_headers,
                           json={'name': 'Volume (ml)', 'type': 'number'}).json

    def test_select_values_cleaned(self, size):
        assert size["values"] == ["S", "M", "L"]
        assert size["is_active"] is True
        assert size["is_required"] is False

    def test_select_without_values_rejected(self, client, admin_headers, db_session):
        response = client.post('/api/attributes', headers=admin_headers, json={'name': 'Colour', 'type': 'select'})
        assert response.status_code == 400

    def test_unknown_type_rejected(self, client, admin_headers, db_session):
        response = client.post('/api/attributes', headers=admin_headers, json={'name': 'Colour', 'type': 'rgb'})
        assert response.status_code == 400

    def test_duplicate_name_conflicts(self, client, admin_headers, size):
        response = client.post('/api/attributes', headers=admin_headers, json={'name': 'size'})
        assert response.status_code == 409

    def test_non_select_drops_values(self, client, admin_headers, size):
        response = client.put(f'/api/attributes/{size["id"]}', headers=admin_headers, json={'type': 'text'})
        assert response.status_code == 200
        assert response.json["values"] == []

    def test_set_product_values(self, client, admin_headers, catalog, size, volume):
        cola = catalog["cola"]
        response = client.put(f'/api/products/{cola.id}/attributes', headers=admin_headers,
                              json={'attributes': {str(size["id"]): 'M', str(volume["id"]): '330'}})

        assert response.status_code == 200
        assert [(a["name"], a["value"]) for a in response.json["items"]] == [("Size", "M"), ("Volume (ml)", "330")]

    def test_set_replaces_previous_values(self, client, admin_headers, catalog, size, volume):
        cola = catalog["cola"]
        client.put(f'/api/products/{cola.id}/attributes', headers=admin_headers,
                   json={'attributes': {str(size["id"]): 'M', str(volume["id"]): '330'}})
        client.put(f'/api/products/{cola.id}/attributes', headers=admin_headers,
                   json={'attributes': {str(size["id"]): 'L', str(volume["id"]): ''}})

        items = client.get(f'/api/products/{cola.id}/attributes', headers=admin_headers).json["items"]
        assert [(a["name"], a["value"]) for a in items] == [("Size", "L")]

    def test_value_checked_against_type(self, client, admin_headers, catalog, size, volume):
        cola = catalog["cola"]
        bad_select = client.put(f'/api/products/{cola.id}/attributes', headers=admin_headers,
                                json={'attributes': {str(size["id"]): 'XXL'}})
        bad_number = client.put(f'/api/products/{cola.id}/attributes', headers=admin_headers,
                                json={'attributes': {str(volume["id"]): 'large'}})
        assert bad_select.status_code == 400
        assert bad_number.status_code == 400

    def test_required_attribute_enforced(self, client, admin_headers, catalog, size, volume):
        client.put(f'/api/attributes/{volume["id"]}', headers=admin_headers, json={'is_required': True})
        response = client.put(f'/api/products/{catalog["cola"].id}/attributes', headers=admin_headers,
                              json={'attributes': {str(size["id"]): 'S'}})
        assert response.status_code == 400
        assert "Volume (ml)" in response.json["error"]

    def test_unknown_product(self, client, admin_headers, size):
        response = client.put('/api/products/9999/attributes', headers=admin_headers,
                              json={'attributes': {str(size["id"]): 'S'}})
        assert response.status_code == 404

    def test_delete_attribute_removes_product_values(self, client, admin_headers, catalog, size):
        cola = catalog["cola"]
        client.put(f'/api/products/{cola.id}/attributes', headers=admin_headers,
                   json={'attributes': {str(size["id"]): 'S'}})

        assert client.delete(f'/api/attributes/{size["id"]}', headers=admin_headers).status_code == 200
        assert db.session.query(ProductAttribute).count() == 0
        assert client.get('/api/attributes', headers=admin_headers).json["count"] == 0

    def test_cashier_cannot_define_attributes(self, client, cashier_headers, db_session):
        response = client.post('/api/attributes', headers=cashier_headers, json={'name': 'Size'})
        assert response.status_code == 403


class TestCustomerDelete:
    """DELETE /api/customers/<id>"""

    def test_delete_unused_customer(self, client, admin_headers, customer):
        assert client.delete(f'/api/customers/{customer.id}', headers=admin_headers).status_code == 200
        assert client.get(f'/api/customers/{customer.id}', headers=admin_headers).status_code == 404

    def test_customer_with_history_kept(self, client, admin_headers, customer):
        db.session.add(CreditLedgerEntry(customer_id=customer.id, entry_type="credit", amount=100, description="Gift"))
        db.session.commit()

        response = client.delete(f'/api/customers/{customer.id}', headers=admin_headers)
        assert response.status_code == 409

    def test_cashier_cannot_delete(self, client, cashier_headers, customer):
        assert client.delete(f'/api/customers/{customer.id}', headers=cashier_headers).status_code == 403
