# Overview: Service-layer operations for the cashbook ledger; appends entries and builds the monthly book.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from flask import current_app
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import CashbookEntry, LedgerCategory
from ..time_utils import month_range, utcnow
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_cashbook_entry,
    quantize_money,
    to_decimal,
    validate_payload,
)
from .concurrency import savepoint

"""
Cashbook invariants

- Append-only: entries are never updated or deleted.
- amount is always >= 0; direction comes from type (IN/OUT).
- profit is booked independently of amount and may be negative.
- Entries are flushed inside the caller's transaction; the caller commits.
"""

MANUAL_ENTRY_POLICY = ModelValidationPolicy(
    writable_fields={"type", "category", "amount", "profit", "description"},
    required_on_create={"type", "category", "amount"},
)

_ZERO = Decimal("0")


def append_cashbook_entry(
    *,
    type: str,
    category: str,
    amount: Any,
    profit: Any = 0,
    description: Optional[str] = None,
    contract_id: int | None = None,
    inventory_item_id: int | None = None,
    buyer_customer_id: int | None = None,
    created_at: Optional[datetime] = None,
) -> CashbookEntry:
    """Append one ledger line and flush it within the current transaction."""
    if type not in ("IN", "OUT"):
        raise ValidationError("type must be IN or OUT")

    amount_dec = quantize_money(to_decimal(amount))
    if amount_dec < 0:
        raise ValidationError("amount must be >= 0")

    entry = CashbookEntry(
        type=type,
        category=category,
        amount=amount_dec,
        profit=quantize_money(to_decimal(profit)),
        description=description,
        contract_id=contract_id,
        inventory_item_id=inventory_item_id,
        buyer_customer_id=buyer_customer_id,
    )
    if created_at is not None:
        entry.created_at = created_at

    db.session.add(entry)
    db.session.flush()
    return entry


def append_cashbook_entry_best_effort(**kwargs) -> CashbookEntry | None:
    """
    Same as append_cashbook_entry, but a failure is logged and swallowed.

    The write runs in a savepoint so a failed insert leaves the surrounding
    transaction (and the primary change in it) intact.
    """
    try:
        with savepoint():
            return append_cashbook_entry(**kwargs)
    except Exception:
        current_app.logger.exception(
            "Failed to append cashbook entry %s for contract=%s item=%s",
            kwargs.get("category"),
            kwargs.get("contract_id"),
            kwargs.get("inventory_item_id"),
        )
        return None


def create_manual_entry(payload: dict) -> CashbookEntry:
    """General entry keyed in by staff (no contract or item link)."""
    patch = validate_payload(model=CashbookEntry, payload=payload, policy=MANUAL_ENTRY_POLICY, partial=False)
    enforce_rules_cashbook_entry(patch)

    entry = append_cashbook_entry(
        type=patch["type"],
        category=patch["category"] or LedgerCategory.GENERAL,
        amount=patch["amount"],
        profit=patch.get("profit") or 0,
        description=patch.get("description"),
    )
    db.session.commit()
    return entry


def resolve_month(year: Any = None, month: Any = None) -> tuple[int, int]:
    """
    Accepts ?year=2025&month=3 or ?month=2025-03.

    Anything missing or invalid falls back to the current UTC month.
    """
    now = utcnow()

    if isinstance(month, str) and "-" in month:
        parts = month.split("-", 1)
        year, month = parts[0], parts[1]

    try:
        y = int(year)
        m = int(month)
    except (TypeError, ValueError):
        return now.year, now.month

    if y < 1900 or not 1 <= m <= 12:
        return now.year, now.month
    return y, m


def cashbook_month(year: Any = None, month: Any = None) -> dict:
    y, m = resolve_month(year, month)
    start, end = month_range(y, m)

    entries = (
        db.session.query(CashbookEntry)
        .options(joinedload(CashbookEntry.contract), joinedload(CashbookEntry.inventory_item))
        .filter(CashbookEntry.created_at >= start, CashbookEntry.created_at < end)
        .order_by(CashbookEntry.created_at.asc(), CashbookEntry.id.asc())
        .all()
    )

    total_in = _ZERO
    total_out = _ZERO
    total_profit = _ZERO
    principal_out = _ZERO
    principal_in = _ZERO

    for e in entries:
        amount = to_decimal(e.amount)
        if e.type == "IN":
            total_in += amount
        elif e.type == "OUT":
            total_out += amount
        total_profit += to_decimal(e.profit)

        if e.category == LedgerCategory.DEPOSIT_PRINCIPAL_OUT:
            principal_out += amount
        elif e.category in (LedgerCategory.CUT_PRINCIPAL, LedgerCategory.REDEEM):
            principal_in += amount

    return {
        "year": y,
        "month": m,
        "entries": [e.to_dict() for e in entries],
        "summary": {
            "total_in": float(total_in),
            "total_out": float(total_out),
            "net_cash": float(total_in - total_out),
            "total_profit": float(total_profit),
            "principal_out": float(principal_out),
            "principal_in": float(principal_in),
        },
    }
