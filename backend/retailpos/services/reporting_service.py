# Overview: Service-layer operations for reporting; read-only projections over sales and stock.

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, Sale, SaleLine
from ..models.sales import PAYMENT_METHODS, SALE_STATUS_COMPLETED
from ..money import ZERO, round2, to_decimal
from ..time_utils import days_ago, local_day_bounds, local_today


def _store_timezone() -> str:
    return current_app.config.get("STORE_TIMEZONE", "UTC") or "UTC"


def daily_sales_report(day: date | None = None, tz_name: str | None = None) -> dict:
    """
    Totals for one local calendar day.

    Only completed sales count. Every figure is zero on a day with no sales.
    """
    tz_name = tz_name or _store_timezone()
    day = day or local_today(tz_name)
    start, end = local_day_bounds(day, tz_name)

    sales = (
        db.session.query(Sale)
        .filter(
            Sale.status == SALE_STATUS_COMPLETED,
            Sale.sale_date >= start,
            Sale.sale_date <= end,
        )
        .all()
    )

    by_method = {method: ZERO for method in PAYMENT_METHODS}
    total = ZERO
    for sale in sales:
        amount = round2(sale.total)
        total = round2(total + amount)
        by_method[sale.payment_method] = round2(by_method.get(sale.payment_method, ZERO) + amount)

    count = len(sales)
    totals = [round2(s.total) for s in sales]

    return {
        "date": day.isoformat(),
        "total_bills": count,
        "total_sales": total,
        "cash_sales": by_method["cash"],
        "card_sales": by_method["card"],
        "qr_sales": by_method["qr"],
        "cheque_sales": by_method["cheque"],
        "credit_sales": by_method["credit"],
        "by_payment_method": by_method,
        "average_bill": round2(total / count) if count else ZERO,
        "min_bill": min(totals) if totals else ZERO,
        "max_bill": max(totals) if totals else ZERO,
    }


def top_products(limit: int = 5, days: int = 30) -> list[dict]:
    """
    Best sellers by units over the lookback window.

    avg_price is the plain mean of the unit prices on the matching sale
    lines, not revenue divided by units.
    """
    since = days_ago(days)

    rows = (
        db.session.query(
            SaleLine.product_id,
            func.max(SaleLine.product_name).label("name"),
            func.max(SaleLine.barcode).label("barcode"),
            func.sum(SaleLine.quantity).label("units_sold"),
            func.sum(SaleLine.line_total).label("total_revenue"),
            func.avg(SaleLine.unit_price).label("avg_price"),
        )
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(Sale.status == SALE_STATUS_COMPLETED, Sale.sale_date >= since)
        .group_by(SaleLine.product_id)
        .order_by(func.sum(SaleLine.quantity).desc(), SaleLine.product_id.asc())
        .limit(limit)
        .all()
    )

    result = []
    for row in rows:
        units = int(row.units_sold or 0)
        revenue = round2(to_decimal(row.total_revenue or 0))
        result.append({
            "id": row.product_id,
            "name": row.name,
            "barcode": row.barcode,
            "units_sold": units,
            "total_revenue": revenue,
            "avg_price": round2(to_decimal(row.avg_price or 0)),
        })
    return result


def low_stock(threshold: int | None = None) -> list[Product]:
    """
    Active products at or below a threshold, fewest first.

    Without an explicit threshold each product is compared with its own
    reorder level (or LOW_STOCK_DEFAULT_THRESHOLD when it has none).
    """
    query = db.session.query(Product).filter(Product.is_active.is_(True))
    if threshold is not None:
        query = query.filter(Product.quantity <= threshold)
    else:
        default = current_app.config.get("LOW_STOCK_DEFAULT_THRESHOLD", 10)
        query = query.filter(Product.quantity <= func.coalesce(Product.reorder_level, default))
    return query.order_by(Product.quantity.asc(), Product.id.asc()).all()


def expiring_products(days_ahead: int = 30, today: date | None = None) -> list[Product]:
    """Products with an expiry date on or before today + days_ahead (already expired included)."""
    cutoff = (today or local_today(_store_timezone())) + timedelta(days=days_ahead)
    return (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            Product.expiry_date.isnot(None),
            Product.expiry_date <= cutoff,
        )
        .order_by(Product.expiry_date.asc(), Product.id.asc())
        .all()
    )


def out_of_stock() -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.quantity == 0)
        .order_by(Product.name.asc())
        .all()
    )


def inventory_value() -> dict:
    products = db.session.query(Product).filter(Product.is_active.is_(True)).all()

    total = ZERO
    units = 0
    for p in products:
        total = round2(total + round2(to_decimal(p.cost_price or 0) * p.quantity))
        units += p.quantity

    return {
        "total_value": total,
        "total_products": len(products),
        "total_units": units,
    }


def jsonable(report):
    """Render Decimal figures as floats for JSON responses."""
    if isinstance(report, Decimal):
        return float(report)
    if isinstance(report, dict):
        return {k: jsonable(v) for k, v in report.items()}
    if isinstance(report, list):
        return [jsonable(v) for v in report]
    return report
