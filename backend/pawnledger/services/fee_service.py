# Overview: Service-layer fee calculator; pure arithmetic over principal and term.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR
from typing import Any

from ..validation import to_decimal


"""
Fee schedule (per contract term)

- 0.5% of principal per day, rounded UP to the next 10.
- Any positive total below 50 is raised to 50.
- Document fee by principal bracket: <=1000 -> 50, <=5000 -> 100, else 200,
  never more than the total.
- The rest is split 60/40 into storage/care; storage is floored and care
  takes what is left, so doc + storage + care == total exactly.
- 7-day terms are half of the 15-day fee (rounded up to 10), with the 15-day
  split rescaled proportionally and the rounding remainder put in care.
"""

DAILY_RATE = Decimal("0.005")
MIN_FEE = Decimal("50")
TERM_OPTIONS = (7, 15, 30)
DEFAULT_TERM_DAYS = 15

_ZERO = Decimal("0")


@dataclass(frozen=True)
class FeeBreakdown:
    doc_fee: Decimal = _ZERO
    storage_fee: Decimal = _ZERO
    care_fee: Decimal = _ZERO
    total: Decimal = _ZERO

    def to_dict(self) -> dict:
        return {
            "doc_fee": _json_number(self.doc_fee),
            "storage_fee": _json_number(self.storage_fee),
            "care_fee": _json_number(self.care_fee),
            "total": _json_number(self.total),
        }


def _json_number(value: Decimal):
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def round_up_to_10(value: Decimal) -> Decimal:
    return (value / 10).to_integral_value(rounding=ROUND_CEILING) * 10


def _floor(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)


def doc_fee_for(principal: Decimal) -> Decimal:
    if principal <= 1000:
        return Decimal("50")
    if principal <= 5000:
        return Decimal("100")
    return Decimal("200")


def split_total(total: Decimal, principal: Decimal) -> FeeBreakdown:
    doc_fee = min(doc_fee_for(principal), total)
    remainder = max(total - doc_fee, _ZERO)
    storage_fee = _floor(remainder * Decimal("0.6"))
    care_fee = remainder - storage_fee
    return FeeBreakdown(doc_fee=doc_fee, storage_fee=storage_fee, care_fee=care_fee, total=total)


def _by_daily_rate(principal: Decimal, term_days: int) -> FeeBreakdown:
    total = round_up_to_10(principal * DAILY_RATE * term_days)
    if _ZERO < total < MIN_FEE:
        total = MIN_FEE
    return split_total(total, principal)


def normalize_term_days(term_days: Any) -> int:
    """Term the fee is computed for: non-numeric -> 15, below one day -> 1."""
    try:
        days = int(term_days)
    except (TypeError, ValueError):
        days = DEFAULT_TERM_DAYS
    return max(days, 1)


def calculate_fee(principal: Any, term_days: Any = DEFAULT_TERM_DAYS) -> FeeBreakdown:
    amount = max(to_decimal(principal), _ZERO)
    days = normalize_term_days(term_days)

    if days != 7:
        return _by_daily_rate(amount, days)

    fee15 = _by_daily_rate(amount, 15)
    if fee15.total <= 0:
        return FeeBreakdown()
    total = round_up_to_10(fee15.total / 2)

    doc_fee = _floor(fee15.doc_fee * total / fee15.total)
    storage_fee = _floor(fee15.storage_fee * total / fee15.total)
    care_fee = total - doc_fee - storage_fee
    return FeeBreakdown(doc_fee=doc_fee, storage_fee=storage_fee, care_fee=care_fee, total=total)
