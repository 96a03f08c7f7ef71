# Overview: Atomic document number allocation for receipts and transaction references.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from ..time_utils import utcnow


RECEIPT = "RECEIPT"
TRANSACTION = "TRANSACTION"

PREFIXES = {
    RECEIPT: "RCP",
    TRANSACTION: "TXN",
}


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _bump(document_type: str) -> int | None:
    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1, updated_at=utcnow())
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    db.session.flush()
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return current - 1


def next_sequence_value(document_type: str) -> int:
    """
    Atomically allocate the next number for a document type.

    The increment is a single UPDATE so concurrent writers serialize on the
    row. The first allocation inserts the row inside a savepoint; losing
    that insert race falls back to the UPDATE path without discarding the
    caller's pending work.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    value = _bump(document_type)
    if value is not None:
        return value

    try:
        with db.session.begin_nested():
            db.session.add(DocumentSequence(document_type=document_type, next_number=2))
        return 1
    except IntegrityError:
        value = _bump(document_type)
        if value is None:
            raise
        return value


def next_document_number(document_type: str, *, pad: int = 6) -> str:
    """
    Format the next number for document_type, e.g. RCP-2026-000042.

    The year is informational; the sequence itself never resets.
    """
    prefix = PREFIXES.get(document_type)
    if prefix is None:
        raise DocumentSequenceError(f"Unknown document type: {document_type}")
    number = next_sequence_value(document_type)
    return f"{prefix}-{utcnow().year}-{number:0{pad}d}"
