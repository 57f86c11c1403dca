# Overview: Flask API routes for user administration; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_admin
from ..errors import PosError
from ..http_errors import error_response
from ..models.auth import ROLE_CASHIER
from ..services import auth_service, session_service

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    return jsonify([u.to_dict() for u in auth_service.list_users()]), 200


@users_bp.post("")
@require_auth
@require_admin
def create_user_route():
    """
    Request body:
    {"username": "jane", "password": "...", "role": "cashier", "full_name": "Jane"}
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role") or ROLE_CASHIER,
            full_name=data.get("full_name"),
        )
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Failed to create user"}), 500

    return jsonify(user.to_dict()), 201


@users_bp.post("/<int:user_id>/deactivate")
@require_auth
@require_admin
def deactivate_user_route(user_id: int):
    """Deactivates the account and revokes its open sessions."""
    try:
        user = auth_service.set_user_active(user_id, False)
    except PosError as e:
        return error_response(e)

    session_service.revoke_all_user_sessions(user_id)
    return jsonify(user.to_dict()), 200
