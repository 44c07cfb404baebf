# Overview: Flask API routes for user and role administration (admin only).

"""
User administration

Mirrors the CLI (flask users create/list) for the admin screen. Deleting
a user deactivates the account; rows it created keep their attribution.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..services import auth_service
from ..services.auth_service import PasswordValidationError
from ..validation import ConflictError, NotFoundError, ValidationError

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    """Query params: q (username substring)"""
    search = (request.args.get("q") or "").strip().lower()
    users = [u.to_dict() for u in auth_service.list_users() if search in u.username.lower()]
    return jsonify({"items": users, "count": len(users)}), 200


@users_bp.post("")
@require_auth
@require_admin
def create_user_route():
    """Body: username, password, role (admin|cashier, default cashier)"""
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role") or "cashier",
        )
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify(user.to_dict()), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_admin
def update_user_route(user_id: int):
    """Body (all optional): role, password, is_active"""
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_user(user_id, data, acting_user_id=g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(user.to_dict()), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def delete_user_route(user_id: int):
    try:
        auth_service.deactivate_user(user_id, acting_user_id=g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"ok": True}), 200
