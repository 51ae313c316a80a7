# Overview: Service-layer reporting; period statistics and monthly series over the cashbook and contracts.

from __future__ import annotations

import re
from collections import OrderedDict
from datetime import MAXYEAR, MINYEAR, datetime
from decimal import Decimal
from typing import Any, Iterable

from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import CashbookEntry, ConsignmentContract, Contract
from ..time_utils import month_range, to_utc_z, utcnow, year_range
from ..validation import ValidationError, quantize_money, to_decimal

"""
Row classification

Historical ledger rows do not all use the current category names, so rows
are bucketed by case-insensitive substring matching on category OR
description. New rows always carry a LedgerCategory value; the keyword
lists below exist for the older ones.
"""

DEPOSIT_FEE_CATEGORY_KEYWORDS = (
    "service_fee",
    "deposit_fee",
    "contract_fee",
    "renew_contract",
    "renew_fee",
    "cut_principal",
    "redeem",
    "fee",
    "ค่าบริการ",
    "ต่อสัญญา",
    "ตัดต้น",
    "ไถ่ถอน",
)
DEPOSIT_FEE_DESCRIPTION_KEYWORDS = ("ค่าบริการ", "ต่อสัญญา", "ตัดต้น", "ไถ่ถอน", "renew", "cut", "redeem")

INVENTORY_SALE_CATEGORY_KEYWORDS = ("inventory_sale", "consignment_sale")
INVENTORY_BUY_IN_CATEGORY_KEYWORDS = ("inventory_buy_in",)

_QTY_RE = re.compile(r"(?:จำนวน|qty)\s*:?\s*(\d+)", re.IGNORECASE)

_ZERO = Decimal("0")


class ReportError(ValidationError):
    """Raised when report parameters are invalid."""
    pass


def _norm(value: Any) -> str:
    return str(value or "").strip().lower()


def parse_qty_from_description(description: Any) -> int:
    """'... qty 2' or '... จำนวน 2 ชิ้น' -> 2; anything else -> 1."""
    match = _QTY_RE.search(str(description or ""))
    if not match:
        return 1
    return max(1, int(match.group(1)))


def is_deposit_service_fee_row(row) -> bool:
    category = _norm(row.category)
    description = _norm(row.description)
    if any(k in category for k in DEPOSIT_FEE_CATEGORY_KEYWORDS):
        return True
    return any(k in description for k in DEPOSIT_FEE_DESCRIPTION_KEYWORDS)


def is_inventory_sale_row(row) -> bool:
    entry_type = str(row.type or "").upper()
    if entry_type and entry_type != "IN":
        return False
    category = _norm(row.category)
    return any(k in category for k in INVENTORY_SALE_CATEGORY_KEYWORDS)


def is_inventory_buy_in_row(row) -> bool:
    entry_type = str(row.type or "").upper()
    if entry_type and entry_type != "OUT":
        return False
    category = _norm(row.category)
    return any(k in category for k in INVENTORY_BUY_IN_CATEGORY_KEYWORDS)


def normal_sale_profit(row) -> Decimal:
    """Row profit when set, else amount - unit_cost * qty."""
    profit = to_decimal(row.profit)
    if profit != 0:
        return profit

    item = row.inventory_item
    cost = to_decimal(item.cost) if item is not None else _ZERO
    if cost <= 0:
        return _ZERO
    quantity = item.quantity or 1
    unit_cost = cost / quantity if quantity > 1 else cost
    return to_decimal(row.amount) - unit_cost * parse_qty_from_description(row.description)


def consignment_commission(row, net_to_seller: Any) -> Decimal:
    """Row profit when set, else amount - net_to_seller * qty."""
    profit = to_decimal(row.profit)
    if profit != 0:
        return profit

    net = to_decimal(net_to_seller)
    if net <= 0:
        return _ZERO
    return to_decimal(row.amount) - net * parse_qty_from_description(row.description)


def _vat_rate() -> Decimal:
    return Decimal(str(current_app.config.get("VAT_RATE", "0.07")))


def _money(value: Decimal) -> float:
    return float(quantize_money(Decimal(value)))


def _int_param(value: Any, field: str, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ReportError(f"{field} must be an integer")


def _year_param(value: Any, default: int) -> int:
    y = _int_param(value, "year", default)
    # year_range needs y + 1 to be a valid datetime year
    if not MINYEAR <= y < MAXYEAR:
        raise ReportError(f"year must be between {MINYEAR} and {MAXYEAR - 1}")
    return y


def resolve_period(mode: Any, year: Any, month: Any) -> tuple[str, int, int | None, datetime, datetime]:
    now = utcnow()
    mode = str(mode or "month").lower()
    y = _year_param(year, now.year)

    if mode == "year":
        start, end = year_range(y)
        return mode, y, None, start, end
    if mode == "month":
        m = _int_param(month, "month", now.month)
        if not 1 <= m <= 12:
            raise ReportError("month must be between 1 and 12")
        start, end = month_range(y, m)
        return mode, y, m, start, end
    raise ReportError("mode must be month or year")


def _net_to_seller_map(rows: Iterable[CashbookEntry]) -> dict[int, Decimal]:
    ids = {
        r.inventory_item.consignment_contract_id
        for r in rows
        if r.inventory_item is not None and r.inventory_item.consignment_contract_id
    }
    if not ids:
        return {}
    found = (
        db.session.query(ConsignmentContract.id, ConsignmentContract.net_to_seller)
        .filter(ConsignmentContract.id.in_(ids))
        .all()
    )
    return {cid: to_decimal(net) for cid, net in found}


def _is_consignment_row(row) -> bool:
    return row.inventory_item is not None and bool(row.inventory_item.consignment_contract_id)


def _cashbook_rows(start: datetime, end: datetime) -> list[CashbookEntry]:
    return (
        db.session.query(CashbookEntry)
        .options(joinedload(CashbookEntry.inventory_item))
        .filter(CashbookEntry.created_at >= start, CashbookEntry.created_at < end)
        .order_by(CashbookEntry.created_at.asc(), CashbookEntry.id.asc())
        .all()
    )


def admin_stats(*, mode: Any = None, year: Any = None, month: Any = None) -> dict:
    mode, y, m, start, end = resolve_period(mode, year, month)
    rows = _cashbook_rows(start, end)

    total_in = total_out = total_profit = _ZERO
    in_count = out_count = 0
    for r in rows:
        amount = to_decimal(r.amount)
        if r.type == "IN":
            total_in += amount
            in_count += 1
        elif r.type == "OUT":
            total_out += amount
            out_count += 1
        total_profit += to_decimal(r.profit)

    active_count = db.session.query(func.count(Contract.id)).filter(Contract.status == "ACTIVE").scalar() or 0
    latest_active = (
        db.session.query(Contract)
        .filter(Contract.status == "ACTIVE")
        .order_by(Contract.created_at.desc(), Contract.id.desc())
        .first()
    )

    deposit_paid, contracts_created = (
        db.session.query(func.coalesce(func.sum(Contract.principal), 0), func.count(Contract.id))
        .filter(Contract.created_at >= start, Contract.created_at < end)
        .one()
    )

    contract_rows = [r for r in rows if r.contract_id is not None]
    fee_rows = [r for r in contract_rows if is_deposit_service_fee_row(r)]
    service_fee_income = sum((to_decimal(r.profit) for r in fee_rows), _ZERO)

    item_rows = [r for r in rows if r.inventory_item_id is not None]
    sale_rows = [r for r in item_rows if is_inventory_sale_row(r)]
    normal_rows = [r for r in sale_rows if not _is_consignment_row(r)]
    consignment_rows = [r for r in sale_rows if _is_consignment_row(r)]
    buy_in_rows = [r for r in item_rows if is_inventory_buy_in_row(r)]

    net_map = _net_to_seller_map(consignment_rows)
    normal_profit = sum((normal_sale_profit(r) for r in normal_rows), _ZERO)
    commission = sum(
        (consignment_commission(r, net_map.get(r.inventory_item.consignment_contract_id)) for r in consignment_rows),
        _ZERO,
    )
    vat = commission * _vat_rate()

    latest = None
    if latest_active is not None:
        latest = {
            "id": latest_active.id,
            "code": latest_active.code,
            "principal": float(latest_active.principal or 0),
            "due_date": to_utc_z(latest_active.due_date),
            "created_at": to_utc_z(latest_active.created_at),
            "customer": {
                "name": latest_active.customer.name,
                "phone": latest_active.customer.phone,
            } if latest_active.customer else None,
        }

    return {
        "mode": mode,
        "year": y,
        "month": m,
        "range": {"start": to_utc_z(start), "end": to_utc_z(end)},
        "overview": {
            "active_contracts_count": int(active_count),
            "latest_active_contract": latest,
            "total_in": _money(total_in),
            "total_out": _money(total_out),
            "total_profit": _money(total_profit),
            "in_count": in_count,
            "out_count": out_count,
        },
        "deposit": {
            "paid_principal": _money(to_decimal(deposit_paid)),
            "contracts_created": int(contracts_created or 0),
            "service_fee_income": _money(service_fee_income),
        },
        "trade": {
            "buy_in_count": len(buy_in_rows),
            "sale_count": len(sale_rows),
            "normal_sale_profit": _money(normal_profit),
            "consignment_commission": _money(commission),
            "consignment_vat": _money(vat),
        },
    }


def _month_key(dt: datetime) -> str:
    return f"{dt.year:04d}-{dt.month:02d}-01"


def admin_stats_series(*, mode: Any = None, year: Any = None) -> dict:
    """Per-month buckets for one calendar year. Only mode=month is supported."""
    if str(mode or "month").lower() != "month":
        raise ReportError("mode must be month")
    y = _year_param(year, utcnow().year)
    start, end = year_range(y)

    deposit_buckets: dict[str, dict] = OrderedDict()
    contracts = (
        db.session.query(Contract.created_at, Contract.principal)
        .filter(Contract.created_at >= start, Contract.created_at < end)
        .order_by(Contract.created_at.asc())
        .all()
    )
    for created_at, principal in contracts:
        b = deposit_buckets.setdefault(
            _month_key(created_at), {"deposit_paid": _ZERO, "contracts_created": 0}
        )
        b["deposit_paid"] += to_decimal(principal)
        b["contracts_created"] += 1

    rows = _cashbook_rows(start, end)
    net_map = _net_to_seller_map([r for r in rows if r.inventory_item_id and is_inventory_sale_row(r)])

    buckets: dict[str, dict] = OrderedDict()
    for r in rows:
        b = buckets.setdefault(_month_key(r.created_at), {
            "total_in": _ZERO,
            "total_out": _ZERO,
            "total_profit": _ZERO,
            "deposit_fee_income": _ZERO,
            "buy_in_count": 0,
            "sale_count": 0,
            "normal_sale_profit": _ZERO,
            "consignment_commission": _ZERO,
        })

        amount = to_decimal(r.amount)
        if r.type == "IN":
            b["total_in"] += amount
        elif r.type == "OUT":
            b["total_out"] += amount
        b["total_profit"] += to_decimal(r.profit)

        if r.contract_id and is_deposit_service_fee_row(r):
            b["deposit_fee_income"] += to_decimal(r.profit)

        if r.inventory_item_id and is_inventory_buy_in_row(r):
            b["buy_in_count"] += 1

        if r.inventory_item_id and is_inventory_sale_row(r):
            b["sale_count"] += 1
            if _is_consignment_row(r):
                net = net_map.get(r.inventory_item.consignment_contract_id)
                b["consignment_commission"] += consignment_commission(r, net)
            else:
                b["normal_sale_profit"] += normal_sale_profit(r)

    vat_rate = _vat_rate()
    keys = sorted(buckets)

    return {
        "year": y,
        "deposit_series": [
            {
                "m": k,
                "deposit_paid": _money(v["deposit_paid"]),
                "contracts_created": v["contracts_created"],
            }
            for k, v in sorted(deposit_buckets.items())
        ],
        "trade_series": [
            {
                "m": k,
                "total_in": _money(buckets[k]["total_in"]),
                "total_out": _money(buckets[k]["total_out"]),
                "total_profit": _money(buckets[k]["total_profit"]),
                "buy_in_count": buckets[k]["buy_in_count"],
                "sale_count": buckets[k]["sale_count"],
                "normal_sale_profit": _money(buckets[k]["normal_sale_profit"]),
                "consignment_commission": _money(buckets[k]["consignment_commission"]),
                "consignment_vat": _money(buckets[k]["consignment_commission"] * vat_rate),
            }
            for k in keys
        ],
        "fee_series": [
            {"m": k, "fee_income": _money(buckets[k]["deposit_fee_income"])}
            for k in keys
        ],
    }
