from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class CompanyProfile(db.Model):
    """
    Single-row business identity printed on receipts and reports.

    Only company_name is required; every other field is optional and
    omitted from receipts when blank.
    """
    __tablename__ = "company_profile"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    website = db.Column(db.String(255), nullable=True)
    tax_number = db.Column(db.String(64), nullable=True)
    logo_url = db.Column(db.String(512), nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_name": self.company_name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "website": self.website,
            "tax_number": self.tax_number,
            "logo_url": self.logo_url,
            "updated_at": to_utc_z(self.updated_at),
        }
