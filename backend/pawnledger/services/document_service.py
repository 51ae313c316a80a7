# Overview: Service-layer allocation of human-readable document codes and storage slots.

from __future__ import annotations

import re

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Contract, DocumentSequence
from ..time_utils import utcnow
from .concurrency import savepoint


# document_type -> (prefix, zero padding)
CODE_FORMATS = {
    "DEPOSIT": ("DEP", 3),
    "CONSIGNMENT": ("CONS", 5),
    "INVENTORY": ("INV", 4),
}

STORAGE_PREFIX = "A"
_STORAGE_CODE_RE = re.compile(r"^([A-Za-z]+)-(\d+)$")


class DocumentSequenceError(ValueError):
    pass


def _current_value(document_type: str, period: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type, period=period)
        .scalar()
    )


def next_sequence_number(*, document_type: str, period: str = "") -> int:
    """
    Atomically allocate the next running number for (document_type, period).

    The counter row is bumped with UPDATE next_number = next_number + 1 in the
    caller's transaction, so two writers never receive the same number.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.period == period,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        return _current_value(document_type, period) - 1

    try:
        with savepoint():
            db.session.add(DocumentSequence(document_type=document_type, period=period, next_number=2))
        return 1
    except IntegrityError:
        # Another writer created the row first
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        return _current_value(document_type, period) - 1


def next_document_code(document_type: str, *, year: int | None = None) -> str:
    """DEP-2025-001, CONS-2025-00001, INV-2025-0001."""
    try:
        prefix, pad = CODE_FORMATS[document_type]
    except KeyError:
        raise DocumentSequenceError(f"Unknown document type: {document_type}")
    year = year or utcnow().year
    number = next_sequence_number(document_type=document_type, period=str(year))
    return f"{prefix}-{year}-{number:0{pad}d}"


def next_storage_code() -> str:
    """
    Preview of the next storage slot (A-001, A-002, ...).

    Read-only: nothing is reserved, the slot is taken when a contract is
    saved with it.
    """
    codes = (
        db.session.query(Contract.storage_code)
        .filter(Contract.storage_code.isnot(None), Contract.storage_code != "")
        .all()
    )
    highest = 0
    for (code,) in codes:
        match = _STORAGE_CODE_RE.match(code.strip())
        if match and match.group(1).upper() == STORAGE_PREFIX:
            highest = max(highest, int(match.group(2)))
    return f"{STORAGE_PREFIX}-{highest + 1:03d}"
