from __future__ import annotations

from ..extensions import db
from ..money import as_float
from ..time_utils import to_utc_z

PAYMENT_METHODS = ("cash", "card", "qr", "cheque", "credit")

SALE_STATUS_COMPLETED = "completed"
SALE_STATUS_REFUNDED = "refunded"
SALE_STATUS_CANCELLED = "cancelled"
SALE_STATUSES = (SALE_STATUS_COMPLETED, SALE_STATUS_REFUNDED, SALE_STATUS_CANCELLED)


class Sale(db.Model):
    """
    One completed checkout (bill).

    Created together with its StockLedgerEntries in a single transaction and
    never updated afterwards. Only "completed" is ever written; the other
    statuses are reserved.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("bill_number", name="uq_sales_bill_number"),
        db.Index("ix_sales_sale_date", "sale_date"),
        db.Index("ix_sales_status_sale_date", "status", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable bill number (e.g., "INV-000123")
    bill_number = db.Column(db.String(64), nullable=False)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    payment_method = db.Column(db.String(16), nullable=False, index=True)
    amount_received = db.Column(db.Numeric(12, 2), nullable=True)
    change = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED)
    notes = db.Column(db.Text, nullable=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        order_by="SaleLine.line_number",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "bill_number": self.bill_number,
            "subtotal": as_float(self.subtotal),
            "discount_percent": as_float(self.discount_percent),
            "discount_amount": as_float(self.discount_amount),
            "tax_percent": as_float(self.tax_percent),
            "tax_amount": as_float(self.tax_amount),
            "total": as_float(self.total),
            "payment_method": self.payment_method,
            "amount_received": as_float(self.amount_received),
            "change": as_float(self.change),
            "cashier_id": self.cashier_id,
            "status": self.status,
            "notes": self.notes,
            "sale_date": to_utc_z(self.sale_date),
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """Line item snapshot: name, barcode and unit price as they were at sale time."""
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "line_number", name="uq_sale_lines_sale_line"),
        db.CheckConstraint("quantity >= 1", name="ck_sale_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "barcode": self.barcode,
            "quantity": self.quantity,
            "unit_price": as_float(self.unit_price),
            "line_total": as_float(self.line_total),
        }
