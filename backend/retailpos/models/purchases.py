from __future__ import annotations

from ..extensions import db
from ..money import as_float
from ..time_utils import to_utc_z

PAYMENT_STATUSES = ("pending", "partial", "paid")
DELIVERY_STATUSES = ("pending", "partial", "delivered")


class Purchase(db.Model):
    """
    Goods receipt from a supplier.

    Recorded in the same transaction as the stock increments and ledger
    entries for its lines. Receiving also overwrites each product's
    cost_price with the cost paid on this purchase (last cost wins).
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_purchases_invoice_number"),
        db.Index("ix_purchases_supplier_date", "supplier_name", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable invoice number (e.g., "PO-000042")
    invoice_number = db.Column(db.String(64), nullable=False)
    supplier_name = db.Column(db.String(255), nullable=False)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    delivery_status = db.Column(db.String(16), nullable=False, default="pending")

    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False)
    expected_delivery = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_date = db.Column(db.DateTime(timezone=True), nullable=True)

    received_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "PurchaseLine",
        backref="purchase",
        order_by="PurchaseLine.line_number",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "supplier_name": self.supplier_name,
            "subtotal": as_float(self.subtotal),
            "tax": as_float(self.tax),
            "total": as_float(self.total),
            "payment_status": self.payment_status,
            "delivery_status": self.delivery_status,
            "purchase_date": to_utc_z(self.purchase_date),
            "expected_delivery": to_utc_z(self.expected_delivery),
            "delivered_date": to_utc_z(self.delivered_date),
            "received_by_id": self.received_by_id,
            "notes": self.notes,
            "items_count": len(self.lines),
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = (
        db.UniqueConstraint("purchase_id", "line_number", name="uq_purchase_lines_purchase_line"),
        db.CheckConstraint("quantity >= 1", name="ck_purchase_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "barcode": self.barcode,
            "quantity": self.quantity,
            "cost_price": as_float(self.cost_price),
            "line_total": as_float(self.line_total),
        }
