# Overview: Service-layer operations for document numbering.

from __future__ import annotations

from sqlalchemy import update

from ..errors import InvalidInput
from ..extensions import db
from ..models import DocumentSequence

DOCUMENT_TYPE_SALE = "SALE"
DOCUMENT_TYPE_PURCHASE = "PURCHASE"


def next_document_number(
    *,
    document_type: str,
    prefix: str,
    pad: int = 6,
) -> str:
    """
    Allocate the next document number for a document type, e.g. "INV-000042".

    Runs inside the caller's transaction and never commits. The UPDATE takes
    a write lock on the sequence row, so two concurrent sales serialize here.
    If two callers race to create the first row for a type, the loser's flush
    raises IntegrityError, which the unit of work reports as ConflictError.
    """
    if not document_type:
        raise InvalidInput("document_type is required")
    if not prefix:
        raise InvalidInput("prefix is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type)
            .scalar()
        )
        next_num = current - 1
    else:
        seq = DocumentSequence(document_type=document_type, next_number=2)
        db.session.add(seq)
        db.session.flush()
        next_num = 1

    return f"{prefix}-{next_num:0{pad}d}"
