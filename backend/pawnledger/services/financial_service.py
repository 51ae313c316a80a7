# Overview: Service-layer normalizer that maps historical money field names onto one shape.

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping

from ..validation import to_decimal
from .fee_service import DEFAULT_TERM_DAYS, FeeBreakdown


"""
Contracts written over the years carry the same numbers under different names
(principal vs securityDeposit, feeConfig vs feeBreakdown, docFee vs doc_fee).
Everything that reads money off a contract goes through this module.
"""

PRINCIPAL_KEYS = ("principal", "securityDeposit", "security_deposit", "depositAmount", "pawnAmount", "amount")
TERM_KEYS = ("termDays", "term_days", "term", "periodDays")
FEE_CONTAINER_KEYS = ("feeBreakdown", "fee_breakdown", "feeConfig", "fee_config", "fees", "fee", "feeDetail")
NESTED_KEYS = ("financial", "finance", "money")

DOC_FEE_KEYS = ("docFee", "doc_fee", "documentFee")
STORAGE_FEE_KEYS = ("storageFee", "storage_fee", "keepFee")
CARE_FEE_KEYS = ("careFee", "care_fee", "serviceFee")
TOTAL_KEYS = ("total", "totalFee", "sum")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class ContractFinancials:
    principal: Decimal = _ZERO
    term_days: int = DEFAULT_TERM_DAYS
    fee: FeeBreakdown = field(default_factory=FeeBreakdown)
    net_receive: Decimal = _ZERO

    def to_dict(self) -> dict:
        return {
            "principal": float(self.principal),
            "term_days": self.term_days,
            "fee": self.fee.to_dict(),
            "net_receive": float(self.net_receive),
        }


def _ensure_mapping(value: Any) -> Mapping:
    if not value:
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    if isinstance(value, Mapping):
        return value
    return {}


def _first_number(source: Mapping, keys: tuple[str, ...]) -> Decimal | None:
    """First alias holding a usable number; unparsable values are skipped."""
    for key in keys:
        raw = source.get(key)
        if raw is None or raw == "":
            continue
        value = to_decimal(raw, default=None)
        if value is not None:
            return value
    return None


def normalize_fee_config(raw: Any) -> FeeBreakdown:
    """
    Canonical fee breakdown from a dict, a JSON string, or None.

    total is the sum of the three parts. A stored total is only used when
    every part is zero (rows that kept nothing but the total).
    """
    source = _ensure_mapping(raw)
    doc_fee = _first_number(source, DOC_FEE_KEYS) or _ZERO
    storage_fee = _first_number(source, STORAGE_FEE_KEYS) or _ZERO
    care_fee = _first_number(source, CARE_FEE_KEYS) or _ZERO

    total = doc_fee + storage_fee + care_fee
    if total == 0:
        total = _first_number(source, TOTAL_KEYS) or _ZERO

    return FeeBreakdown(doc_fee=doc_fee, storage_fee=storage_fee, care_fee=care_fee, total=total)


def _contract_as_mapping(obj: Any) -> Mapping:
    # Contract rows expose the canonical columns directly
    if hasattr(obj, "__table__") and hasattr(obj, "principal"):
        return {
            "principal": obj.principal,
            "term_days": obj.term_days,
            "fee_config": obj.fee_config,
        }
    return _ensure_mapping(obj)


def get_contract_financials(obj: Any) -> ContractFinancials:
    if obj is None:
        return ContractFinancials()

    contract = _contract_as_mapping(obj)

    nested: Mapping | None = None
    for key in NESTED_KEYS:
        candidate = _ensure_mapping(contract.get(key))
        if candidate:
            nested = candidate
            break

    base = nested if nested is not None else contract

    principal = _first_number(base, PRINCIPAL_KEYS) or _ZERO

    term = _first_number(base, TERM_KEYS)
    term_days = int(term) if term else DEFAULT_TERM_DAYS

    fee_raw: Any = None
    for source in ((nested or {}), contract):
        for key in FEE_CONTAINER_KEYS:
            if source.get(key):
                fee_raw = source[key]
                break
        if fee_raw is not None:
            break

    fee = normalize_fee_config(fee_raw)
    net_receive = max(principal - fee.total, _ZERO)

    return ContractFinancials(principal=principal, term_days=term_days, fee=fee, net_receive=net_receive)
