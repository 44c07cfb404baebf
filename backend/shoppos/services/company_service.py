# Overview: The single company profile row printed on receipts.

from __future__ import annotations

from ..extensions import db
from ..models import CompanyProfile
from ..validation import ValidationError

COMPANY_MUTABLE_FIELDS = {"company_name", "address", "phone", "email", "website", "tax_number", "logo_url"}


def get_company_profile() -> CompanyProfile | None:
    return db.session.query(CompanyProfile).order_by(CompanyProfile.id.asc()).first()


def upsert_company_profile(patch: dict) -> CompanyProfile:
    """Update the profile, creating it on first save. company_name is required."""
    profile = get_company_profile()
    if profile is None:
        if not patch.get("company_name"):
            raise ValidationError("company_name is required")
        profile = CompanyProfile()
        db.session.add(profile)

    for k, v in patch.items():
        if k in COMPANY_MUTABLE_FIELDS:
            setattr(profile, k, v)

    db.session.commit()
    return profile
