from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidInput
from .models.inventory import ADJUSTMENT_REASONS
from .models.purchases import PAYMENT_STATUSES
from .models.sales import PAYMENT_METHODS
from .money import ZERO, round2, to_decimal
from .time_utils import parse_iso_date, parse_iso_datetime


# Maximum price: 9,999,999,999.99 fits Numeric(12, 2)
MAX_PRICE = Decimal("9999999999.99")


# =============================================================================
# Model payload validation (product create/patch)
# =============================================================================


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise InvalidInput(f"{field} must be an integer", field)
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise InvalidInput(f"{field} must be a plain integer (scientific notation not allowed)", field)
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise InvalidInput(f"{field} must be an integer (no decimals)", field)
        try:
            return int(stripped)
        except ValueError:
            raise InvalidInput(f"{field} must be an integer", field)
    # Reject floats explicitly
    if isinstance(value, float):
        raise InvalidInput(f"{field} must be an integer, not a decimal", field)
    raise InvalidInput(f"{field} must be an integer", field)


def _coerce_money(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise InvalidInput(f"{field} must be a number", field)
    try:
        amount = to_decimal(value)
    except ValueError:
        raise InvalidInput(f"{field} must be a number", field)
    if not amount.is_finite():
        raise InvalidInput(f"{field} must be a finite number", field)
    if amount != round2(amount):
        raise InvalidInput(f"{field} cannot have more than 2 decimal places", field)
    return round2(amount)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Numeric):
        return _coerce_money(value, col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise InvalidInput(f"{col.key} must be a boolean", col.key)

    # Dates before DateTime: accept "YYYY-MM-DD"
    if isinstance(coltype, Date) and not isinstance(coltype, DateTime):
        if isinstance(value, date) and not isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise InvalidInput(f"{col.key} must be an ISO-8601 date", col.key)
            if d is None:
                raise InvalidInput(f"{col.key} must be an ISO-8601 date", col.key)
            return d
        raise InvalidInput(f"{col.key} must be a date", col.key)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise InvalidInput(f"{col.key} must be an ISO-8601 datetime", col.key)
            if dt is None:
                raise InvalidInput(f"{col.key} must be an ISO-8601 datetime", col.key)
            return dt
        raise InvalidInput(f"{col.key} must be a datetime", col.key)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise InvalidInput(f"Field not allowed: {k}", k)
        if k not in cols:
            raise InvalidInput(f"Unknown field: {k}", k)

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise InvalidInput(f"{k} cannot be null", k)
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise InvalidInput(f"{k} cannot be blank", k)

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise InvalidInput(f"{k} exceeds max length {col.type.length}", k)

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for field in ("cost_price", "selling_price", "wholesale_price"):
        price = patch.get(field)
        if price is None:
            continue
        if price < 0:
            raise InvalidInput(f"{field} must be >= 0", field)
        if price > MAX_PRICE:
            raise InvalidInput(f"{field} cannot exceed {MAX_PRICE}", field)

    if patch.get("quantity") is not None and patch["quantity"] < 0:
        raise InvalidInput("quantity must be >= 0", "quantity")

    if patch.get("reorder_level") is not None and patch["reorder_level"] < 0:
        raise InvalidInput("reorder_level must be >= 0", "reorder_level")


# =============================================================================
# Typed engine requests
# =============================================================================


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class SaleRequest:
    lines: tuple[SaleLineRequest, ...]
    payment_method: str
    discount_amount: Decimal = ZERO
    discount_percent: Decimal | None = None
    cash_received: Decimal | None = None
    notes: str | None = None


@dataclass(frozen=True)
class AdjustmentRequest:
    product_id: int
    quantity_delta: int
    reason: str
    note: str | None = None


@dataclass(frozen=True)
class PurchaseLineRequest:
    product_id: int
    quantity: int
    cost_price: Decimal


@dataclass(frozen=True)
class PurchaseRequest:
    supplier_name: str
    lines: tuple[PurchaseLineRequest, ...]
    payment_status: str = "pending"
    expected_delivery: datetime | None = None
    notes: str | None = None


def require_positive_int(value: Any, field: str) -> int:
    if value is None:
        raise InvalidInput(f"{field} is required", field)
    n = coerce_int(value, field)
    if n <= 0:
        raise InvalidInput(f"{field} must be a positive integer", field)
    return n


def require_money(value: Any, field: str, *, positive: bool = False) -> Decimal:
    if value is None:
        raise InvalidInput(f"{field} is required", field)
    amount = _coerce_money(value, field)
    if positive and amount <= 0:
        raise InvalidInput(f"{field} must be greater than 0", field)
    if amount < 0:
        raise InvalidInput(f"{field} must be >= 0", field)
    if amount > MAX_PRICE:
        raise InvalidInput(f"{field} cannot exceed {MAX_PRICE}", field)
    return amount


def require_payment_method(value: Any) -> str:
    if value is None or value == "":
        raise InvalidInput("Payment method required", "payment_method")
    if value not in PAYMENT_METHODS:
        raise InvalidInput(
            f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}",
            "payment_method",
        )
    return value


def require_adjustment_reason(value: Any) -> str:
    if value is None or value == "":
        raise InvalidInput("reason is required", "reason")
    if value not in ADJUSTMENT_REASONS:
        raise InvalidInput(
            f"reason must be one of: {', '.join(ADJUSTMENT_REASONS)}",
            "reason",
        )
    return value


def optional_text(value: Any, field: str, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"{field} must be a string", field)
    text = value.strip()
    if max_length is not None and len(text) > max_length:
        raise InvalidInput(f"{field} exceeds max length {max_length}", field)
    return text or None


def _reject_unknown(payload: dict, allowed: set[str], where: str = "request") -> None:
    unknown = sorted(k for k in payload if k not in allowed)
    if unknown:
        raise InvalidInput(f"Field not allowed in {where}: {', '.join(unknown)}", unknown[0])


def _require_object(payload: Any, where: str) -> dict:
    if not isinstance(payload, dict):
        raise InvalidInput(f"{where} must be a JSON object")
    return payload


def _require_items(payload: dict) -> list:
    items = payload.get("items")
    if not items or not isinstance(items, list):
        raise InvalidInput("Items array required", "items")
    return items


def normalize_sale_lines(lines: Iterable) -> tuple[SaleLineRequest, ...]:
    """
    Accept SaleLineRequest objects or (product_id, quantity) pairs.

    Raises InvalidInput for an empty cart or any non-positive quantity.
    """
    if lines is None:
        raise InvalidInput("Items array required", "items")
    normalized = []
    for i, line in enumerate(lines, start=1):
        if isinstance(line, SaleLineRequest):
            product_id, quantity = line.product_id, line.quantity
        elif isinstance(line, (tuple, list)) and len(line) == 2:
            product_id, quantity = line
        else:
            raise InvalidInput(f"items[{i}] must be (product_id, quantity)", "items")
        normalized.append(
            SaleLineRequest(
                product_id=require_positive_int(product_id, "product_id"),
                quantity=require_positive_int(quantity, "quantity"),
            )
        )
    if not normalized:
        raise InvalidInput("Items array required", "items")
    return tuple(normalized)


def normalize_purchase_lines(lines: Iterable) -> tuple[PurchaseLineRequest, ...]:
    if lines is None:
        raise InvalidInput("Items array required", "items")
    normalized = []
    for i, line in enumerate(lines, start=1):
        if isinstance(line, PurchaseLineRequest):
            product_id, quantity, cost = line.product_id, line.quantity, line.cost_price
        elif isinstance(line, (tuple, list)) and len(line) == 3:
            product_id, quantity, cost = line
        else:
            raise InvalidInput(f"items[{i}] must be (product_id, quantity, cost_price)", "items")
        normalized.append(
            PurchaseLineRequest(
                product_id=require_positive_int(product_id, "product_id"),
                quantity=require_positive_int(quantity, "quantity"),
                cost_price=require_money(cost, "cost_price", positive=True),
            )
        )
    if not normalized:
        raise InvalidInput("Items array required", "items")
    return tuple(normalized)


SALE_FIELDS = {"items", "discount", "discount_percent", "payment_method", "cash_received", "notes"}
SALE_ITEM_FIELDS = {"product_id", "quantity"}

ADJUST_FIELDS = {"product_id", "quantity", "reason", "note"}

PURCHASE_FIELDS = {"supplier_name", "items", "payment_status", "expected_delivery", "notes"}
PURCHASE_ITEM_FIELDS = {"product_id", "quantity", "cost_price"}


def parse_sale_request(payload: Any) -> SaleRequest:
    payload = _require_object(payload, "Sale request")
    _reject_unknown(payload, SALE_FIELDS)

    raw_lines = []
    for item in _require_items(payload):
        item = _require_object(item, "Sale item")
        _reject_unknown(item, SALE_ITEM_FIELDS, "sale item")
        raw_lines.append((item.get("product_id"), item.get("quantity")))

    discount = payload.get("discount")
    discount_percent = payload.get("discount_percent")
    cash_received = payload.get("cash_received")

    return SaleRequest(
        lines=normalize_sale_lines(raw_lines),
        payment_method=require_payment_method(payload.get("payment_method")),
        discount_amount=require_money(discount, "discount") if discount is not None else ZERO,
        discount_percent=(
            require_money(discount_percent, "discount_percent")
            if discount_percent is not None else None
        ),
        cash_received=(
            require_money(cash_received, "cash_received")
            if cash_received is not None else None
        ),
        notes=optional_text(payload.get("notes"), "notes"),
    )


def parse_adjustment_request(payload: Any) -> AdjustmentRequest:
    payload = _require_object(payload, "Adjustment request")
    _reject_unknown(payload, ADJUST_FIELDS)

    if payload.get("product_id") is None or payload.get("quantity") is None or not payload.get("reason"):
        raise InvalidInput("product_id, quantity, and reason required")

    delta = coerce_int(payload["quantity"], "quantity")
    if delta == 0:
        raise InvalidInput("quantity must be non-zero", "quantity")

    return AdjustmentRequest(
        product_id=require_positive_int(payload["product_id"], "product_id"),
        quantity_delta=delta,
        reason=require_adjustment_reason(payload["reason"]),
        note=optional_text(payload.get("note"), "note", max_length=255),
    )


def parse_purchase_request(payload: Any) -> PurchaseRequest:
    payload = _require_object(payload, "Purchase request")
    _reject_unknown(payload, PURCHASE_FIELDS)

    supplier_name = optional_text(payload.get("supplier_name"), "supplier_name", max_length=255)
    if not supplier_name:
        raise InvalidInput("supplier_name and items array required", "supplier_name")

    raw_lines = []
    for item in _require_items(payload):
        item = _require_object(item, "Purchase item")
        _reject_unknown(item, PURCHASE_ITEM_FIELDS, "purchase item")
        raw_lines.append((item.get("product_id"), item.get("quantity"), item.get("cost_price")))

    payment_status = payload.get("payment_status") or "pending"
    if payment_status not in PAYMENT_STATUSES:
        raise InvalidInput(
            f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}",
            "payment_status",
        )

    expected_delivery = payload.get("expected_delivery")
    if expected_delivery is not None:
        if not isinstance(expected_delivery, str):
            raise InvalidInput("expected_delivery must be an ISO-8601 datetime", "expected_delivery")
        try:
            expected_delivery = parse_iso_datetime(expected_delivery)
        except ValueError:
            raise InvalidInput("expected_delivery must be an ISO-8601 datetime", "expected_delivery")

    return PurchaseRequest(
        supplier_name=supplier_name,
        lines=normalize_purchase_lines(raw_lines),
        payment_status=payment_status,
        expected_delivery=expected_delivery,
        notes=optional_text(payload.get("notes"), "notes"),
    )
