import unittest
from flask import Flask

from shoppos.extensions import db
from shoppos.models import CompanyProfile, CreditLedgerEntry, Customer
from shoppos.services import company_service, customers_service
from shoppos.services.credit_service import append_entry
from shoppos.validation import ConflictError, NotFoundError, ValidationError


class CompanyAndCustomerServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = Flask(__name__)
        cls.app.config.update(
            SECRET_KEY="test",
            SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
            TESTING=True,
        )
        db.init_app(cls.app)
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        from shoppos import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(CreditLedgerEntry).delete()
        db.session.query(Customer).delete()
        db.session.query(CompanyProfile).delete()
        db.session.commit()

    # -- company profile -----------------------------------------------------

    def test_first_save_requires_company_name(self):
        with self.assertRaises(ValidationError):
            company_service.upsert_company_profile({"phone": "09-1"})
        self.assertIsNone(company_service.get_company_profile())

    def test_upsert_creates_then_updates_single_row(self):
        company_service.upsert_company_profile({"company_name": "Golden Mart", "phone": "09-1"})
        company_service.upsert_company_profile({"address": "12 Market Street"})

        self.assertEqual(db.session.query(CompanyProfile).count(), 1)
        profile = company_service.get_company_profile()
        self.assertEqual(profile.company_name, "Golden Mart")
        self.assertEqual(profile.phone, "09-1")
        self.assertEqual(profile.address, "12 Market Street")

    def test_unknown_fields_ignored(self):
        profile = company_service.upsert_company_profile({"company_name": "Golden Mart", "id": 99})
        self.assertNotEqual(profile.id, 99)

    # -- customers -----------------------------------------------------------

    def test_create_customer_starts_with_zero_balances(self):
        row = customers_service.create_customer(patch={"name": "Aye Aye", "phone": "09-777"})
        self.assertEqual(row["name"], "Aye Aye")
        self.assertEqual(row["store_credit"], 0)
        self.assertEqual(row["debt"], 0)

    def test_get_customer_includes_ledger_balances(self):
        row = customers_service.create_customer(patch={"name": "Aye Aye"})
        append_entry(customer_id=row["id"], entry_type="credit", amount=2000, description="Change")
        append_entry(customer_id=row["id"], entry_type="debit", amount=500, description="Tab")
        db.session.commit()

        fetched = customers_service.get_customer(row["id"])
        self.assertEqual(fetched["store_credit"], 2000)
        self.assertEqual(fetched["debt"], 500)
        self.assertEqual(fetched["net"], 1500)

    def test_update_customer(self):
        row = customers_service.create_customer(patch={"name": "Aye Aye"})
        updated = customers_service.update_customer(customer_id=row["id"], patch={"phone": "09-888"})
        self.assertEqual(updated["phone"], "09-888")
        self.assertEqual(updated["name"], "Aye Aye")

    def test_missing_customer(self):
        with self.assertRaises(NotFoundError):
            customers_service.get_customer(4040)
        with self.assertRaises(NotFoundError):
            customers_service.update_customer(customer_id=4040, patch={"name": "x"})

    def test_search_by_name_or_phone(self):
        customers_service.create_customer(patch={"name": "Aye Aye", "phone": "09-777"})
        customers_service.create_customer(patch={"name": "Bo Bo", "phone": "09-555"})

        self.assertEqual([c["name"] for c in customers_service.list_customers("bo")], ["Bo Bo"])
        self.assertEqual([c["name"] for c in customers_service.list_customers("777")], ["Aye Aye"])
        self.assertEqual(len(customers_service.list_customers()), 2)

    def test_delete_customer_without_history(self):
        row = customers_service.create_customer(patch={"name": "Aye Aye"})
        customers_service.delete_customer(customer_id=row["id"])
        self.assertIsNone(db.session.get(Customer, row["id"]))

    def test_delete_customer_with_ledger_entries_refused(self):
        row = customers_service.create_customer(patch={"name": "Aye Aye"})
        append_entry(customer_id=row["id"], entry_type="debit", amount=500, description="Tab")
        db.session.commit()

        with self.assertRaises(ConflictError):
            customers_service.delete_customer(customer_id=row["id"])
        self.assertIsNotNone(db.session.get(Customer, row["id"]))

    def test_delete_missing_customer(self):
        with self.assertRaises(NotFoundError):
            customers_service.delete_customer(customer_id=4040)


if __name__ == "__main__":
    unittest.main()
