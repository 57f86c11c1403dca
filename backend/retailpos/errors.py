# Overview: Typed error taxonomy raised by the sale/stock engine.

"""
Engine error taxonomy.

Every failure the engine reports is one of the PosError subclasses below.
Each carries typed context attributes; to_dict() renders them for callers.
Transport codes (HTTP statuses) are assigned in http_errors, not here.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for all engine errors."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def context(self) -> dict:
        return {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "kind": self.kind}
        details = self.context()
        if details:
            payload["details"] = details
        return payload


class NotFound(PosError):
    """A referenced product, sale, purchase or user does not resolve."""

    kind = "not_found"

    def __init__(self, entity: str, entity_id, message: str | None = None):
        super().__init__(message or f"{entity.capitalize()} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id

    def context(self) -> dict:
        return {"entity": self.entity, "entity_id": self.entity_id}


class InsufficientStock(PosError):
    kind = "insufficient_stock"

    def __init__(self, *, product_id: int, product_name: str, requested: int, available: int):
        super().__init__(f"Insufficient stock for {product_name}. Available: {available}")
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available

    def context(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "requested": self.requested,
            "available": self.available,
        }


class InvalidAdjustment(PosError):
    """Adjustment would drive quantity on hand below zero."""

    kind = "invalid_adjustment"

    def __init__(self, *, product_id: int, current_quantity: int, quantity_delta: int):
        super().__init__(
            f"Cannot reduce stock below zero (current {current_quantity}, change {quantity_delta})"
        )
        self.product_id = product_id
        self.current_quantity = current_quantity
        self.quantity_delta = quantity_delta

    def context(self) -> dict:
        return {
            "product_id": self.product_id,
            "current_quantity": self.current_quantity,
            "quantity_delta": self.quantity_delta,
        }


class InvalidInput(PosError):
    """400-level input problem, raised before any write."""

    kind = "invalid_input"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def context(self) -> dict:
        return {"field": self.field} if self.field else {}


class ConflictError(PosError):
    """Unique constraint violation (duplicate barcode, bill or invoice number, ...)."""

    kind = "conflict"

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.detail = detail

    def context(self) -> dict:
        return {"detail": self.detail} if self.detail else {}


class TransactionFailure(PosError):
    """The atomic write aborted for infrastructure reasons; nothing was persisted."""

    kind = "transaction_failure"
