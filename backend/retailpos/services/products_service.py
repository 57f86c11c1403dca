# backend/retailpos/services/products_service.py
"""
Products Service

Product master data: lookup, create, update, deactivate, guarded delete.

Quantity on hand is never written here directly. Opening stock on create
and administrative quantity overwrites on update are routed through the
stock ledger so every change has an entry.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..errors import ConflictError, InvalidInput, NotFound
from ..extensions import db
from ..models import Product, PurchaseLine, SaleLine, StockLedgerEntry
from ..models.inventory import REASON_RESTOCK
from ..validation import coerce_int
from .concurrency import lock_for_update, unit_of_work
from .ledger_service import apply_stock_change, overwrite_quantity

PRODUCT_MUTABLE_FIELDS = {
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
    "reorder_level",
    "expiry_date",
    "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def get_product(product_id: int, *, require_active: bool = False, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    product = query.first()
    if product is None:
        raise NotFound("product", product_id)
    if require_active and not product.is_active:
        raise NotFound("product", product_id, f"Product {product_id} is inactive")
    return product


def lock_products(product_ids) -> dict[int, Product]:
    """
    Load and row-lock a set of products.

    Locks are taken in ascending id order regardless of request order, so two
    carts touching the same products cannot deadlock each other.
    """
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    query = db.session.query(Product).filter(Product.id.in_(ids)).order_by(Product.id.asc())
    return {p.id: p for p in lock_for_update(query).populate_existing().all()}


def get_product_by_barcode(barcode: str) -> Product:
    code = (barcode or "").strip()
    product = db.session.query(Product).filter_by(barcode=code).first()
    if product is None:
        raise NotFound("product", code, f"Product with barcode {code} not found")
    return product


def list_products(search: str = "", category: str = "", include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.barcode.ilike(pattern)))

    if category:
        query = query.filter(Product.category == category)

    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))

    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def _ensure_unique_codes(patch: dict, exclude_id: int | None = None) -> None:
    for field in ("barcode", "sku"):
        value = patch.get(field)
        if not value:
            continue
        query = db.session.query(Product.id).filter(getattr(Product, field) == value)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        if query.first() is not None:
            raise ConflictError(f"{field.capitalize()} already exists", detail=value)


def create_product(*, patch: dict, actor_id: int) -> Product:
    """
    Create a product from a validated patch dict.

    A non-zero opening quantity is booked as a "restock" ledger entry so the
    ledger accounts for every unit on hand.

    Raises:
        InvalidInput: required fields missing
        ConflictError: barcode or SKU already exists
    """
    missing = [f for f in ("name", "barcode", "selling_price") if patch.get(f) in (None, "")]
    if missing:
        raise InvalidInput(f"Missing required fields: {', '.join(missing)}")

    opening_quantity = patch.get("quantity") or 0

    with unit_of_work():
        _ensure_unique_codes(patch)

        product = Product(quantity=0)
        apply_product_patch(product, patch)
        if product.cost_price is None:
            product.cost_price = 0
        db.session.add(product)
        db.session.flush()

        if opening_quantity:
            apply_stock_change(
                product=product,
                quantity_delta=opening_quantity,
                reason=REASON_RESTOCK,
                actor_id=actor_id,
                note="Opening stock",
            )

    return product


def update_product(*, product_id: int, patch: dict, actor_id: int) -> Product:
    """
    Update product master data.

    A "quantity" key is an administrative overwrite: it is converted into a
    manual_adjust ledger entry for the difference rather than set directly.
    Field changes and the stock entry commit together or not at all.
    """
    new_quantity = patch.get("quantity")
    if new_quantity is not None:
        new_quantity = coerce_int(new_quantity, "quantity")
        if new_quantity < 0:
            raise InvalidInput("quantity must be >= 0", "quantity")

    with unit_of_work():
        product = get_product(product_id, lock=True)
        _ensure_unique_codes(patch, exclude_id=product.id)
        apply_product_patch(product, patch)
        db.session.flush()

        if new_quantity is not None:
            overwrite_quantity(
                product=product,
                new_quantity=new_quantity,
                actor_id=actor_id,
                note="Quantity set from product edit",
            )

    return product


def deactivate_product(product_id: int) -> Product:
    """Soft delete: the product stays for history but can no longer be sold."""
    with unit_of_work():
        product = get_product(product_id, lock=True)
        product.is_active = False
    return product


def count_product_references(product_id: int) -> dict:
    return {
        "sale_lines": db.session.query(SaleLine.id).filter_by(product_id=product_id).count(),
        "purchase_lines": db.session.query(PurchaseLine.id).filter_by(product_id=product_id).count(),
        "ledger_entries": db.session.query(StockLedgerEntry.id).filter_by(product_id=product_id).count(),
    }


def delete_product(product_id: int) -> None:
    """
    Hard delete, allowed only for products nothing historical points at.

    Raises ConflictError when any sale line, purchase line or ledger entry
    references the product; deactivate_product() is the alternative.
    """
    with unit_of_work():
        product = get_product(product_id, lock=True)
        refs = count_product_references(product_id)
        if any(refs.values()):
            raise ConflictError(
                "Product has sales, purchases or stock history; deactivate it instead",
                detail=", ".join(f"{k}={v}" for k, v in refs.items() if v),
            )
        db.session.delete(product)
