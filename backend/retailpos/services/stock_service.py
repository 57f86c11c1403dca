# Overview: Service-layer operations for stock adjustments and purchase receipts.

"""
Stock Service

Manual adjustments and supplier purchases. Both write product quantity and
the ledger in one unit of work, like sale creation.

Purchases are received on entry: stock goes up immediately, the document is
stored as delivered, and the product's cost price becomes the cost paid on
the most recent purchase line.
"""

from __future__ import annotations

from flask import current_app

from ..errors import InvalidInput, NotFound
from ..extensions import db
from ..models import Purchase, PurchaseLine
from ..models.inventory import REASON_MANUAL_ADJUST, REASON_PURCHASE
from ..models.purchases import PAYMENT_STATUSES
from ..money import ZERO, round2
from ..time_utils import utcnow
from ..validation import (
    coerce_int,
    optional_text,
    normalize_purchase_lines,
    require_adjustment_reason,
)
from .concurrency import unit_of_work
from .document_service import DOCUMENT_TYPE_PURCHASE, next_document_number
from .ledger_service import apply_stock_change, overwrite_quantity
from .products_service import get_product


def adjust_stock(
    *,
    product_id: int,
    quantity_delta: int,
    reason: str,
    actor_id: int,
    note: str | None = None,
    reference_doc: str | None = None,
):
    """
    Apply a signed manual adjustment to one product.

    Raises:
        InvalidInput: zero delta or reason outside the manual reasons
        NotFound: product does not exist
        InvalidAdjustment: result would be negative
    """
    quantity_delta = coerce_int(quantity_delta, "quantity")
    if quantity_delta == 0:
        raise InvalidInput("quantity must be non-zero", "quantity")
    reason = require_adjustment_reason(reason)

    with unit_of_work():
        product = get_product(product_id, lock=True)
        entry = apply_stock_change(
            product=product,
            quantity_delta=quantity_delta,
            reason=reason,
            actor_id=actor_id,
            note=note,
            reference_doc=reference_doc,
        )

    current_app.logger.info(
        "Stock adjusted: product %s %+d (%s) -> %s by user %s",
        product_id, quantity_delta, reason, entry.quantity_after, actor_id,
    )
    return entry


def set_stock_level(*, product_id: int, new_quantity: int, actor_id: int, note: str | None = None):
    """
    Overwrite quantity on hand, booking the difference as manual_adjust.

    Returns the ledger entry, or None when the quantity is already correct.
    """
    new_quantity = coerce_int(new_quantity, "quantity")
    if new_quantity < 0:
        raise InvalidInput("quantity must be >= 0", "quantity")

    with unit_of_work():
        product = get_product(product_id, lock=True)
        entry = overwrite_quantity(
            product=product,
            new_quantity=new_quantity,
            actor_id=actor_id,
            note=note,
        )

    if entry is not None:
        current_app.logger.info(
            "Stock set: product %s %+d (%s) -> %s by user %s",
            product_id, entry.quantity_delta, REASON_MANUAL_ADJUST, entry.quantity_after, actor_id,
        )
    return entry


def record_purchase(
    *,
    supplier_name: str,
    lines,
    actor_id: int,
    payment_status: str = "pending",
    expected_delivery=None,
    notes: str | None = None,
) -> Purchase:
    """
    Receive a supplier purchase: raise stock, update cost prices, store the
    purchase document. All lines or none.

    lines: iterable of PurchaseLineRequest or (product_id, quantity, cost_price).
    """
    supplier_name = optional_text(supplier_name, "supplier_name", max_length=255)
    if not supplier_name:
        raise InvalidInput("supplier_name is required", "supplier_name")
    purchase_lines = normalize_purchase_lines(lines)
    if payment_status not in PAYMENT_STATUSES:
        raise InvalidInput(
            f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}",
            "payment_status",
        )

    with unit_of_work():
        invoice_number = next_document_number(
            document_type=DOCUMENT_TYPE_PURCHASE,
            prefix=current_app.config.get("INVOICE_NUMBER_PREFIX", "PO"),
        )
        now = utcnow()

        purchase = Purchase(
            invoice_number=invoice_number,
            supplier_name=supplier_name,
            subtotal=ZERO,
            tax=ZERO,
            total=ZERO,
            payment_status=payment_status,
            delivery_status="delivered",
            purchase_date=now,
            expected_delivery=expected_delivery,
            delivered_date=now,
            received_by_id=actor_id,
            notes=notes,
        )
        db.session.add(purchase)

        subtotal = ZERO
        for line_number, line in enumerate(purchase_lines, start=1):
            product = get_product(line.product_id, lock=True)

            line_total = round2(line.cost_price * line.quantity)
            subtotal = round2(subtotal + line_total)

            # last cost wins
            product.cost_price = line.cost_price
            apply_stock_change(
                product=product,
                quantity_delta=line.quantity,
                reason=REASON_PURCHASE,
                actor_id=actor_id,
                reference_doc=invoice_number,
            )

            purchase.lines.append(
                PurchaseLine(
                    line_number=line_number,
                    product_id=product.id,
                    product_name=product.name,
                    barcode=product.barcode,
                    quantity=line.quantity,
                    cost_price=line.cost_price,
                    line_total=line_total,
                )
            )

        purchase.subtotal = subtotal
        purchase.total = subtotal
        db.session.flush()

    current_app.logger.info(
        "Purchase %s received from %s: %d line(s), total %s",
        purchase.invoice_number, purchase.supplier_name, len(purchase_lines), purchase.total,
    )
    return purchase


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFound("purchase", purchase_id)
    return purchase


def list_purchases(start=None, end=None, limit: int = 100) -> list[Purchase]:
    query = db.session.query(Purchase)
    if start is not None:
        query = query.filter(Purchase.purchase_date >= start)
    if end is not None:
        query = query.filter(Purchase.purchase_date <= end)
    return query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).limit(limit).all()
