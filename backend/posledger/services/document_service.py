# Overview: Document number allocation for transactions and refund records.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import DocumentSequence

DOCUMENT_PREFIXES = {
    "TRANSACTION": "T",
    "REFUND": "R",
}


def next_document_number(document_type: str, *, pad: int = 6) -> str:
    """
    Allocate the next document number for a type, e.g. "T-000001".

    Runs inside the caller's unit of work and only flushes, so a rolled-back
    checkout or refund also gives its number back.
    """
    prefix = DOCUMENT_PREFIXES.get(document_type)
    if prefix is None:
        raise ValueError(f"Unknown document type: {document_type}")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
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
        db.session.add(DocumentSequence(document_type=document_type, next_number=2))
        db.session.flush()
        next_num = 1

    return f"{prefix}-{next_num:0{pad}d}"
