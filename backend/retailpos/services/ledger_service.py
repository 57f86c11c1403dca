# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import func

from ..errors import InvalidAdjustment, InvalidInput, NotFound
from ..extensions import db
from ..models import Product, StockLedgerEntry
from ..models.inventory import REASON_MANUAL_ADJUST, STOCK_REASONS
from ..money import round2
"""
Stock Ledger Invariants (authoritative)

- Append-only: entries are never updated or deleted.
- Every change to Product.quantity goes through apply_stock_change(), which
  writes the new quantity and its entry in the caller's transaction.
- quantity_after == quantity_before + quantity_delta for every entry.
- Right after commit, the newest entry for a product has
  quantity_after == Product.quantity.
- Summing quantity_delta over all entries of a product gives the net change
  since the product was created with its opening quantity.
"""


def apply_stock_change(
    *,
    product: Product,
    quantity_delta: int,
    reason: str,
    actor_id: int,
    note: str | None = None,
    reference_doc: str | None = None,
) -> StockLedgerEntry:
    """
    Move product.quantity by quantity_delta and append the matching entry.

    Does not commit. The product must already be loaded (and locked) in the
    current session. Callers validate availability beforehand; the negative
    check here is the last line before the CHECK constraint.
    """
    if reason not in STOCK_REASONS:
        raise InvalidInput(f"Unknown stock reason: {reason}", "reason")
    if quantity_delta == 0:
        raise InvalidInput("quantity_delta must be non-zero", "quantity")

    before = product.quantity
    after = before + quantity_delta
    if after < 0:
        raise InvalidAdjustment(
            product_id=product.id,
            current_quantity=before,
            quantity_delta=quantity_delta,
        )

    product.quantity = after

    entry = StockLedgerEntry(
        product_id=product.id,
        product_name=product.name,
        barcode=product.barcode,
        quantity_delta=quantity_delta,
        quantity_before=before,
        quantity_after=after,
        reason=reason,
        actor_id=actor_id,
        note=note,
        cost_impact=round2(quantity_delta * (product.cost_price or 0)),
        reference_doc=reference_doc,
    )
    db.session.add(entry)
    db.session.flush()  # assigns entry.id and bumps product.version_id
    return entry


def overwrite_quantity(
    *,
    product: Product,
    new_quantity: int,
    actor_id: int,
    note: str | None = None,
) -> StockLedgerEntry | None:
    """
    Book the difference between a locked product's quantity and new_quantity
    as a manual_adjust entry. Returns None when nothing changes.
    """
    delta = new_quantity - product.quantity
    if delta == 0:
        return None
    return apply_stock_change(
        product=product,
        quantity_delta=delta,
        reason=REASON_MANUAL_ADJUST,
        actor_id=actor_id,
        note=note,
    )


def list_ledger_entries(product_id: int, limit: int = 200) -> list[StockLedgerEntry]:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound("product", product_id)

    return (
        db.session.query(StockLedgerEntry)
        .filter_by(product_id=product_id)
        .order_by(StockLedgerEntry.id.desc())
        .limit(limit)
        .all()
    )


def list_entries_for_document(reference_doc: str) -> list[StockLedgerEntry]:
    return (
        db.session.query(StockLedgerEntry)
        .filter_by(reference_doc=reference_doc)
        .order_by(StockLedgerEntry.id.asc())
        .all()
    )


def net_ledger_change(product_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(StockLedgerEntry.quantity_delta), 0))
        .filter(StockLedgerEntry.product_id == product_id)
        .scalar()
    )
    return int(total or 0)


def check_product_ledger(product_id: int) -> dict:
    """
    Audit one product's ledger against its live quantity.

    Reports whether every entry's arithmetic holds, whether consecutive
    entries chain (each before equals the previous after), and whether the
    newest entry matches Product.quantity.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound("product", product_id)

    entries = (
        db.session.query(StockLedgerEntry)
        .filter_by(product_id=product_id)
        .order_by(StockLedgerEntry.id.asc())
        .all()
    )

    arithmetic_ok = all(e.quantity_after == e.quantity_before + e.quantity_delta for e in entries)
    chain_ok = all(
        later.quantity_before == earlier.quantity_after
        for earlier, later in zip(entries, entries[1:])
    )
    latest_matches = (not entries) or entries[-1].quantity_after == product.quantity

    return {
        "product_id": product_id,
        "entries": len(entries),
        "current_quantity": product.quantity,
        "net_change": sum(e.quantity_delta for e in entries),
        "opening_quantity": entries[0].quantity_before if entries else product.quantity,
        "arithmetic_ok": arithmetic_ok,
        "chain_ok": chain_ok,
        "latest_matches_product": latest_matches,
        "consistent": arithmetic_ok and chain_ok and latest_matches,
    }
