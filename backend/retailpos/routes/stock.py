# Overview: Flask API routes for stock operations; parses input and returns JSON responses.

"""
Stock routes: adjustments, purchases, ledger and stock reports.

SECURITY: Adjustments, purchases, ledger and valuation are admin only.
Low-stock, expiring and out-of-stock lists are open to every role.
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_admin
from ..errors import PosError
from ..http_errors import error_response
from ..services import ledger_service, reporting_service, stock_service
from ..validation import parse_adjustment_request, parse_purchase_request

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.post("/adjust")
@require_auth
@require_admin
def adjust_stock_route():
    """
    Request body:
    {"product_id": 1, "quantity": -3, "reason": "damage", "note": "dropped"}
    """
    try:
        req = parse_adjustment_request(request.get_json(silent=True))
        entry = stock_service.adjust_stock(
            product_id=req.product_id,
            quantity_delta=req.quantity_delta,
            reason=req.reason,
            actor_id=g.current_user.id,
            note=req.note,
        )
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Failed to adjust stock"}), 500

    return jsonify(entry.to_summary()), 200


@stock_bp.post("/purchases")
@require_auth
@require_admin
def create_purchase_route():
    try:
        req = parse_purchase_request(request.get_json(silent=True))
        purchase = stock_service.record_purchase(
            supplier_name=req.supplier_name,
            lines=req.lines,
            actor_id=g.current_user.id,
            payment_status=req.payment_status,
            expected_delivery=req.expected_delivery,
            notes=req.notes,
        )
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record purchase")
        return jsonify({"error": "Failed to record purchase"}), 500

    return jsonify(purchase.to_dict()), 201


@stock_bp.get("/purchases")
@require_auth
@require_admin
def list_purchases_route():
    purchases = stock_service.list_purchases()
    return jsonify([p.to_dict(include_lines=False) for p in purchases]), 200


@stock_bp.get("/purchases/<int:purchase_id>")
@require_auth
@require_admin
def get_purchase_route(purchase_id: int):
    try:
        purchase = stock_service.get_purchase(purchase_id)
    except PosError as e:
        return error_response(e)
    return jsonify(purchase.to_dict()), 200


@stock_bp.get("/ledger/<int:product_id>")
@require_auth
@require_admin
def ledger_route(product_id: int):
    limit = request.args.get("limit", default=200, type=int)
    try:
        entries = ledger_service.list_ledger_entries(product_id, limit=limit)
    except PosError as e:
        return error_response(e)
    return jsonify([e.to_dict() for e in entries]), 200


@stock_bp.get("/low-stock")
@require_auth
def low_stock_route():
    """Optional ?threshold=N; otherwise each product's own reorder level."""
    threshold = request.args.get("threshold", type=int)
    products = reporting_service.low_stock(threshold)
    return jsonify([p.to_dict() for p in products]), 200


@stock_bp.get("/expiring")
@require_auth
def expiring_route():
    days = request.args.get("days", default=30, type=int)
    try:
        products = reporting_service.expiring_products(days)
    except PosError as e:
        return error_response(e)
    return jsonify([p.to_dict() for p in products]), 200


@stock_bp.get("/out-of-stock")
@require_auth
def out_of_stock_route():
    return jsonify([p.to_dict() for p in reporting_service.out_of_stock()]), 200


@stock_bp.get("/value")
@require_auth
@require_admin
def inventory_value_route():
    return jsonify(reporting_service.jsonable(reporting_service.inventory_value())), 200
