# Overview: Flask API routes for customer credit/debt balances and manual postings.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import credit_service
from ..services.credit_service import CreditError
from ..validation import ValidationError, parse_amount, parse_int
from ..decorators import require_auth


credits_bp = Blueprint("credits", __name__, url_prefix="/api/credits")


@credits_bp.get("/balances")
@require_auth
def balances_route():
    return jsonify(credit_service.list_customer_balances(request.args.get("q"))), 200


@credits_bp.get("/transactions")
@require_auth
def transactions_route():
    """Query params: limit (default 100), customer_id."""
    limit = max(1, min(request.args.get("limit", default=100, type=int), 500))
    entries = credit_service.list_transactions(
        limit=limit,
        customer_id=request.args.get("customer_id", type=int),
    )
    return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)}), 200


@credits_bp.post("/transactions")
@require_auth
def post_transaction_route():
    """
    Record a repayment, debt increase or credit grant.

    Body: customer_id, entry_type (repayment|debit|credit), amount, description
    """
    data = request.get_json(silent=True) or {}

    try:
        customer_id = parse_int(data.get("customer_id"), "customer_id")
        amount = parse_amount(data.get("amount"), "amount", allow_zero=False)
        entry, balance = credit_service.post_customer_transaction(
            customer_id=customer_id,
            entry_type=data.get("entry_type"),
            amount=amount,
            description=data.get("description") or "",
            user_id=g.current_user.id,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CreditError as e:
        return jsonify({"error": str(e), "details": e.details}), 400

    current_app.logger.info(
        "Ledger %s of %s posted for customer %s by user %s",
        entry.entry_type, entry.amount, customer_id, g.current_user.id,
    )
    return jsonify({"entry": entry.to_dict(), "balance": balance.to_dict()}), 201
