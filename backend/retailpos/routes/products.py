# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalogue routes.

SECURITY: All routes require authentication.
- Reads are open to every role (the register needs them)
- Writes are admin only
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_admin
from ..errors import PosError
from ..http_errors import error_response
from ..models import Product
from ..services import products_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "barcode",
        "sku",
        "description",
        "category",
        "brand",
        "supplier",
        "cost_price",
        "selling_price",
        "wholesale_price",
        "quantity",
        "reorder_level",
        "expiry_date",
        "is_active",
    },
    required_on_create={"name", "barcode", "selling_price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Query params:
    - search: matches name or barcode (optional)
    - category: exact category (optional)
    - include_inactive: "true" to include deactivated products
    """
    search = request.args.get("search", "")
    category = request.args.get("category", "")
    include_inactive = request.args.get("include_inactive", "").lower() == "true"

    products = products_service.list_products(
        search=search,
        category=category,
        include_inactive=include_inactive,
    )
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except PosError as e:
        return error_response(e)
    return jsonify(product.to_dict()), 200


@products_bp.get("/barcode/<barcode>")
@require_auth
def get_product_by_barcode_route(barcode: str):
    try:
        product = products_service.get_product_by_barcode(barcode)
    except PosError as e:
        return error_response(e)
    return jsonify(product.to_dict()), 200


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(patch=patch, actor_id=g.current_user.id)
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Failed to create product"}), 500

    return jsonify(created.to_dict()), 201


@products_bp.patch("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    """
    Partial update. A "quantity" value is booked as a manual stock
    adjustment for the difference, never written directly.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(
            product_id=product_id,
            patch=patch,
            actor_id=g.current_user.id,
        )
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Failed to update product"}), 500

    return jsonify(updated.to_dict()), 200


@products_bp.post("/<int:product_id>/deactivate")
@require_auth
@require_admin
def deactivate_product_route(product_id: int):
    try:
        product = products_service.deactivate_product(product_id)
    except PosError as e:
        return error_response(e)
    return jsonify(product.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    """Hard delete; 409 when sales, purchases or ledger entries reference the product."""
    try:
        products_service.delete_product(product_id)
    except PosError as e:
        return error_response(e)
    return jsonify({"ok": True}), 200
