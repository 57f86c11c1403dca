# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_admin
from ..errors import InvalidInput, PosError
from ..http_errors import error_response
from ..services import reporting_service, sales_service
from ..time_utils import local_day_bounds, parse_iso_date
from ..validation import parse_sale_request

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _parse_date_arg(name: str):
    raw = request.args.get(name)
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be YYYY-MM-DD", name)


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record a completed sale.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}],
        "payment_method": "cash",
        "discount": 0,              // or "discount_percent": 10
        "cash_received": 50.00,     // required for cash
        "notes": "optional"
    }

    400 with details when stock is short, 404 for unknown or inactive
    products.
    """
    try:
        req = parse_sale_request(request.get_json(silent=True))
        sale = sales_service.create_sale(
            actor_id=g.current_user.id,
            lines=req.lines,
            payment_method=req.payment_method,
            discount_amount=req.discount_amount,
            discount_percent=req.discount_percent,
            cash_received=req.cash_received,
            notes=req.notes,
        )
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Failed to create sale"}), 500

    return jsonify(sale.to_dict()), 201


@sales_bp.get("")
@require_auth
def list_sales_route():
    """Optional start_date / end_date (YYYY-MM-DD, store-local, inclusive)."""
    tz_name = current_app.config.get("STORE_TIMEZONE", "UTC")
    try:
        start_day = _parse_date_arg("start_date")
        end_day = _parse_date_arg("end_date")
        start = local_day_bounds(start_day, tz_name)[0] if start_day else None
        end = local_day_bounds(end_day, tz_name)[1] if end_day else None
    except PosError as e:
        return error_response(e)

    sales = sales_service.list_sales(start=start, end=end)
    return jsonify([s.to_dict(include_lines=False) for s in sales]), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except PosError as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 200


@sales_bp.get("/reports/daily")
@require_auth
@require_admin
def daily_report_route():
    """Query param date=YYYY-MM-DD, defaults to today in the store's timezone."""
    try:
        day = _parse_date_arg("date")
        report = reporting_service.daily_sales_report(day)
    except PosError as e:
        return error_response(e)
    return jsonify(reporting_service.jsonable(report)), 200


@sales_bp.get("/reports/top-products")
@require_auth
@require_admin
def top_products_route():
    limit = request.args.get("limit", default=5, type=int)
    days = request.args.get("days", default=30, type=int)
    if limit < 1 or days < 1:
        return jsonify({"error": "limit and days must be positive"}), 400

    report = reporting_service.top_products(limit=limit, days=days)
    return jsonify(reporting_service.jsonable(report)), 200
