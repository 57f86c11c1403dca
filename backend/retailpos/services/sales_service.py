"""
Sales Service - atomic sale creation

WHY: A sale touches the journal, every product on the bill and the stock
ledger. Either all of it lands or none of it does; a failure on line 3 must
not leave lines 1 and 2 decremented.

ORDER OF WORK (single unit of work):
1. Validate the request shape (no reads yet)
2. Lock every referenced product, ascending id order
3. Check availability in request order (duplicates aggregated)
4. Price lines, discount, tax, total, change
5. Allocate the bill number
6. Decrement stock + append one ledger entry per line
7. Insert Sale and SaleLines
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import InsufficientStock, InvalidInput, NotFound
from ..extensions import db
from ..models import Sale, SaleLine
from ..models.inventory import REASON_SALE
from ..models.sales import SALE_STATUS_COMPLETED
from ..money import ZERO, percent_of, round2, to_decimal
from ..time_utils import utcnow
from ..validation import (
    normalize_sale_lines,
    require_money,
    require_payment_method,
)
from .concurrency import unit_of_work
from .document_service import DOCUMENT_TYPE_SALE, next_document_number
from .ledger_service import apply_stock_change
from .products_service import lock_products


def _configured_tax_percent() -> Decimal:
    raw = current_app.config.get("SALES_TAX_PERCENT", "0") or "0"
    try:
        pct = to_decimal(raw)
    except ValueError:
        raise InvalidInput(f"SALES_TAX_PERCENT is not a number: {raw!r}")
    if pct < 0 or pct > 100:
        raise InvalidInput("SALES_TAX_PERCENT must be between 0 and 100")
    return pct


def _validate_discount(discount_amount, discount_percent) -> tuple[Decimal, Decimal | None]:
    amount = require_money(discount_amount if discount_amount is not None else ZERO, "discount")

    if discount_percent is None:
        return amount, None

    percent = require_money(discount_percent, "discount_percent")
    if percent > 100:
        raise InvalidInput("discount_percent must be between 0 and 100", "discount_percent")
    if amount > 0:
        raise InvalidInput(
            "Provide either discount or discount_percent, not both",
            "discount_percent",
        )
    return amount, percent


def _check_availability(lines, products) -> None:
    """
    First failing product in request order wins.

    A product listed on several lines is checked once, at its first
    appearance, against the total requested across all of its lines.
    """
    requested: dict[int, int] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    seen = set()
    for line in lines:
        if line.product_id in seen:
            continue
        seen.add(line.product_id)

        product = products[line.product_id]
        if product.quantity < requested[line.product_id]:
            raise InsufficientStock(
                product_id=product.id,
                product_name=product.name,
                requested=requested[line.product_id],
                available=product.quantity,
            )


def create_sale(
    *,
    actor_id: int,
    lines,
    payment_method: str,
    discount_amount=ZERO,
    cash_received=None,
    discount_percent=None,
    notes: str | None = None,
) -> Sale:
    """
    Record a completed sale and decrement stock, atomically.

    lines: iterable of SaleLineRequest or (product_id, quantity) pairs.

    Raises:
        InvalidInput: bad request shape, discount above subtotal, short cash
        NotFound: product missing or inactive
        InsufficientStock: requested more than on hand
        ConflictError / TransactionFailure: database refused the write
    """
    sale_lines = normalize_sale_lines(lines)
    payment_method = require_payment_method(payment_method)
    discount, pct = _validate_discount(discount_amount, discount_percent)

    if cash_received is not None:
        cash_received = require_money(cash_received, "cash_received")
    if payment_method == "cash" and cash_received is None:
        raise InvalidInput("cash_received is required for cash payments", "cash_received")

    tax_percent = _configured_tax_percent()

    with unit_of_work():
        products = lock_products(line.product_id for line in sale_lines)

        for line in sale_lines:
            product = products.get(line.product_id)
            if product is None:
                raise NotFound("product", line.product_id)
            if not product.is_active:
                raise NotFound("product", line.product_id, f"Product {product.name} is inactive")

        _check_availability(sale_lines, products)

        subtotal = ZERO
        priced = []
        for line in sale_lines:
            product = products[line.product_id]
            unit_price = round2(product.selling_price)
            line_total = round2(unit_price * line.quantity)
            subtotal = round2(subtotal + line_total)
            priced.append((line, product, unit_price, line_total))

        if pct is not None:
            discount = percent_of(subtotal, pct)
        if discount > subtotal:
            raise InvalidInput("Discount cannot exceed subtotal", "discount")

        taxable = round2(subtotal - discount)
        tax_amount = percent_of(taxable, tax_percent)
        total = round2(taxable + tax_amount)

        change = ZERO
        if payment_method == "cash":
            if cash_received < total:
                raise InvalidInput(
                    f"Insufficient cash received. Total: {total}, received: {cash_received}",
                    "cash_received",
                )
            change = round2(cash_received - total)

        bill_number = next_document_number(
            document_type=DOCUMENT_TYPE_SALE,
            prefix=current_app.config.get("BILL_NUMBER_PREFIX", "INV"),
        )

        sale = Sale(
            bill_number=bill_number,
            subtotal=subtotal,
            discount_percent=pct if pct is not None else ZERO,
            discount_amount=discount,
            tax_percent=tax_percent,
            tax_amount=tax_amount,
            total=total,
            payment_method=payment_method,
            amount_received=cash_received,
            change=change,
            cashier_id=actor_id,
            status=SALE_STATUS_COMPLETED,
            notes=notes,
            sale_date=utcnow(),
        )
        db.session.add(sale)

        for line_number, (line, product, unit_price, line_total) in enumerate(priced, start=1):
            apply_stock_change(
                product=product,
                quantity_delta=-line.quantity,
                reason=REASON_SALE,
                actor_id=actor_id,
                reference_doc=bill_number,
            )
            sale.lines.append(
                SaleLine(
                    line_number=line_number,
                    product_id=product.id,
                    product_name=product.name,
                    barcode=product.barcode,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    line_total=line_total,
                )
            )

        db.session.flush()

    current_app.logger.info(
        "Sale %s recorded: %d line(s), total %s, %s, cashier %s",
        sale.bill_number, len(priced), sale.total, sale.payment_method, actor_id,
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFound("sale", sale_id)
    return sale


def get_sale_by_bill_number(bill_number: str) -> Sale:
    sale = db.session.query(Sale).filter_by(bill_number=bill_number).first()
    if sale is None:
        raise NotFound("sale", bill_number, f"Sale {bill_number} not found")
    return sale


def list_sales(start=None, end=None, limit: int = 100) -> list[Sale]:
    """Newest first; start/end are UTC-naive datetimes, both inclusive."""
    query = db.session.query(Sale)
    if start is not None:
        query = query.filter(Sale.sale_date >= start)
    if end is not None:
        query = query.filter(Sale.sale_date <= end)
    return query.order_by(Sale.sale_date.desc(), Sale.id.desc()).limit(limit).all()
