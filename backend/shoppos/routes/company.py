# Overview: Flask API routes for the company profile shown on receipts.

from flask import Blueprint, request, jsonify

from ..models import CompanyProfile
from ..services import company_service
from ..validation import ModelValidationPolicy, ValidationError, validate_payload
from ..decorators import require_auth, require_admin

COMPANY_POLICY = ModelValidationPolicy(
    writable_fields={"company_name", "address", "phone", "email", "website", "tax_number", "logo_url"},
)

company_bp = Blueprint("company", __name__, url_prefix="/api/company-profile")


@company_bp.get("")
@require_auth
def get_profile_route():
    profile = company_service.get_company_profile()
    return jsonify({"profile": profile.to_dict() if profile else None}), 200


@company_bp.put("")
@require_auth
@require_admin
def update_profile_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=CompanyProfile, payload=payload, policy=COMPANY_POLICY, partial=True)
        profile = company_service.upsert_company_profile(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"profile": profile.to_dict()}), 200
