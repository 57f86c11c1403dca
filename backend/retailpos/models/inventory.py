from __future__ import annotations

from ..extensions import db
from ..money import as_float
from ..time_utils import to_utc_z

# Reason codes for stock ledger entries
REASON_SALE = "sale"
REASON_PURCHASE = "purchase"
REASON_RESTOCK = "restock"
REASON_DAMAGE = "damage"
REASON_EXPIRED = "expired"
REASON_MANUAL_ADJUST = "manual_adjust"
REASON_RETURN = "return"

STOCK_REASONS = (
    REASON_SALE,
    REASON_PURCHASE,
    REASON_RESTOCK,
    REASON_DAMAGE,
    REASON_EXPIRED,
    REASON_MANUAL_ADJUST,
    REASON_RETURN,
)

# sale/purchase entries are only written by the sale and purchase paths
ADJUSTMENT_REASONS = (
    REASON_RESTOCK,
    REASON_DAMAGE,
    REASON_EXPIRED,
    REASON_MANUAL_ADJUST,
    REASON_RETURN,
)


class Product(db.Model):
    """
    Product master data (one SKU).

    quantity is the live quantity on hand. It is only changed by the
    sale, adjustment and purchase paths, each of which appends a
    StockLedgerEntry in the same transaction.

    version_id is an optimistic lock: a concurrent writer that read a
    stale row fails its flush with StaleDataError instead of silently
    overwriting the quantity.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("barcode", name="uq_products_barcode"),
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)

    # Category/brand are plain labels here
    category = db.Column(db.String(120), nullable=True)
    brand = db.Column(db.String(120), nullable=True)
    supplier = db.Column(db.String(255), nullable=True)

    cost_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False)
    wholesale_price = db.Column(db.Numeric(12, 2), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=10)
    expiry_date = db.Column(db.Date, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} barcode={self.barcode!r} name={self.name!r} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "barcode": self.barcode,
            "sku": self.sku,
            "description": self.description,
            "category": self.category,
            "brand": self.brand,
            "supplier": self.supplier,
            "cost_price": as_float(self.cost_price),
            "selling_price": as_float(self.selling_price),
            "wholesale_price": as_float(self.wholesale_price),
            "quantity": self.quantity,
            "reorder_level": self.reorder_level,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockLedgerEntry(db.Model):
    """
    Append-only record of one quantity change.

    Invariant: quantity_after == quantity_before + quantity_delta, and right
    after commit quantity_after equals the product's live quantity.
    product_name/barcode are copied so the entry stays readable after the
    product is edited.
    """
    __tablename__ = "stock_ledger_entries"
    __table_args__ = (
        db.CheckConstraint(
            "quantity_after = quantity_before + quantity_delta",
            name="ck_stock_ledger_arithmetic",
        ),
        db.CheckConstraint("quantity_after >= 0", name="ck_stock_ledger_after_non_negative"),
        db.Index("ix_stock_ledger_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)

    quantity_delta = db.Column(db.Integer, nullable=False)
    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(32), nullable=False, index=True)

    actor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    note = db.Column(db.String(255), nullable=True)
    cost_impact = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Bill or invoice number of the document that caused the change
    reference_doc = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("ledger_entries", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "barcode": self.barcode,
            "quantity_delta": self.quantity_delta,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "reason": self.reason,
            "actor_id": self.actor_id,
            "note": self.note,
            "cost_impact": as_float(self.cost_impact),
            "reference_doc": self.reference_doc,
            "created_at": to_utc_z(self.created_at),
        }

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity_change": self.quantity_delta,
            "new_stock": self.quantity_after,
            "reason": self.reason,
        }
