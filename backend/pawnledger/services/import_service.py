# Overview: Service-layer import of deposit contracts from the legacy spreadsheet export.

from __future__ import annotations

import csv
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, TextIO

from flask import current_app

from ..extensions import db
from ..models import Contract, ContractActionLog, Customer, LedgerCategory
from ..validation import clean_str, quantize_money, to_decimal
from .document_service import next_document_code
from .fee_service import FeeBreakdown, TERM_OPTIONS, round_up_to_10, split_total
from .financial_service import get_contract_financials
from .ledger_service import append_cashbook_entry

"""
Legacy sheet import

- One contract per row; every row commits on its own so one bad row does not
  block the rest.
- Thai sheets use Buddhist-era years (2567 = 2024) and dd/mm/yyyy dates.
- The term is read off the start/due dates and snapped to 7/15/30 when it is
  within a day of one of them.
- A "fee per 15 days" column is scaled to the term (7 -> half, 30 -> double),
  rounded up to 10 and split like a fresh quote.
- The payout ledger line and NEW_CONTRACT log are dated at the start date.
"""

COLUMN_ALIASES = {
    "storage_code": ("storage_code", "box", "เลขกล่อง", "กล่อง", "รหัสกล่อง"),
    "customer_name": ("customer_name", "name", "ชื่อลูกค้า", "ชื่อ", "ลูกค้า"),
    "asset_model": ("asset_model", "model_name", "item", "รายการ", "ทรัพย์สิน", "สินค้า"),
    "serial": ("serial", "serial_number", "sn", "ซีเรียล"),
    "start_date": ("start_date", "start", "วันที่ฝาก", "วันที่", "วันฝาก"),
    "due_date": ("due_date", "due", "ครบรอบ", "วันครบ", "วันครบกำหนด"),
    "principal": ("principal", "securityDeposit", "amount", "ราคา", "ยอดฝาก", "วงเงิน"),
    "fee15": ("fee15", "fee_per_15_days", "ดอก/15 วัน", "ดอก/15วัน", "ค่าฝาก/15 วัน"),
    "contact": ("contact", "line_id", "ติดต่อ", "ไลน์", "LINE"),
    "note": ("note", "หมายเหตุ"),
}

SUMMARY_MARKERS = ("ยอดรวม", "รวมทั้งหมด", "total")

_LINE_ID_RE = re.compile(r"-\s*([^)]+)\)")
_DATE_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{2,4})$")


class LegacyImportError(ValueError):
    """Raised when a legacy row cannot be turned into a contract."""


@dataclass
class LegacyRow:
    line_number: int
    customer_name: str
    line_id: str | None
    asset_model: str | None
    serial: str | None
    storage_code: str | None
    start_date: datetime
    due_date: datetime
    term_days: int
    principal: Decimal
    fee: FeeBreakdown
    note: str | None = None


@dataclass
class ImportReport:
    dry_run: bool = False
    imported: list[str] = field(default_factory=list)
    skipped: list[dict] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "dry_run": self.dry_run,
            "imported": list(self.imported),
            "imported_count": len(self.imported),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
        }


# =============================================================================
# PARSING
# =============================================================================

def _pick(row: dict, column: str) -> str | None:
    for alias in COLUMN_ALIASES[column]:
        if alias in row:
            value = clean_str(row.get(alias))
            if value:
                return value
    return None


def normalize_year(year: int) -> int:
    """Gregorian year from a Buddhist-era or two-digit year."""
    if year < 100:
        year += 2500
    while year >= 2400:
        year -= 543
    return year


def parse_legacy_date(value: Any) -> datetime | None:
    s = clean_str(value)
    if not s:
        return None

    match = _DATE_RE.match(s)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return datetime(normalize_year(year), month, day)
        except ValueError:
            return None

    try:
        parsed = datetime.fromisoformat(s[:10])
    except ValueError:
        return None
    return parsed.replace(year=normalize_year(parsed.year))


def infer_term_days(start: datetime, due: datetime) -> int | None:
    days = (due - start).days
    for option in TERM_OPTIONS:
        if abs(days - option) <= 1:
            return option
    return None


def fee_from_fee15(principal: Decimal, term_days: int, fee15: Decimal) -> FeeBreakdown:
    if fee15 <= 0:
        return FeeBreakdown()
    if term_days == 7:
        total = round_up_to_10(fee15 / 2)
    elif term_days == 30:
        total = round_up_to_10(fee15 * 2)
    else:
        total = round_up_to_10(fee15)
    return split_total(total, principal)


def extract_line_id(contact: str | None) -> str | None:
    """`Somchai (LINE - somchai99)` -> `somchai99`; a bare value is taken as-is."""
    if not contact:
        return None
    match = _LINE_ID_RE.search(contact)
    if match:
        return match.group(1).strip() or None
    return contact.strip() or None


def is_summary_row(row: dict) -> bool:
    for value in row.values():
        text = str(value or "").strip().lower()
        if text and any(marker in text for marker in SUMMARY_MARKERS):
            return True
    return False


def parse_row(row: dict, line_number: int) -> LegacyRow:
    customer_name = _pick(row, "customer_name")
    if not customer_name:
        raise LegacyImportError("customer name is missing")

    start = parse_legacy_date(_pick(row, "start_date"))
    due = parse_legacy_date(_pick(row, "due_date"))
    if not start or not due:
        raise LegacyImportError("start date and due date are required")

    term_days = infer_term_days(start, due)
    if term_days is None:
        raise LegacyImportError(f"cannot infer term from {start.date()} -> {due.date()}")

    financials = get_contract_financials({**row, "principal": _pick(row, "principal"), "term_days": term_days})
    principal = quantize_money(financials.principal)
    if principal <= 0:
        raise LegacyImportError("principal is missing")

    fee15_raw = _pick(row, "fee15")
    if fee15_raw:
        fee = fee_from_fee15(principal, term_days, to_decimal(fee15_raw))
    else:
        fee = financials.fee

    return LegacyRow(
        line_number=line_number,
        customer_name=customer_name,
        line_id=extract_line_id(_pick(row, "contact")),
        asset_model=_pick(row, "asset_model"),
        serial=_pick(row, "serial"),
        storage_code=_pick(row, "storage_code"),
        start_date=start,
        due_date=due,
        term_days=term_days,
        principal=principal,
        fee=fee,
        note=_pick(row, "note"),
    )


# =============================================================================
# WRITING
# =============================================================================

def _customer_for(parsed: LegacyRow) -> Customer:
    query = db.session.query(Customer).filter(Customer.name == parsed.customer_name)
    if parsed.line_id:
        query = query.filter(Customer.line_id == parsed.line_id)
    customer = query.order_by(Customer.id.asc()).first()
    if customer:
        return customer

    customer = Customer(name=parsed.customer_name, line_id=parsed.line_id)
    db.session.add(customer)
    db.session.flush()
    return customer


def _write_contract(parsed: LegacyRow) -> Contract:
    customer = _customer_for(parsed)
    contract = Contract(
        code=next_document_code("DEPOSIT", year=parsed.start_date.year),
        type="DEPOSIT",
        status="ACTIVE",
        customer_id=customer.id,
        principal=parsed.principal,
        fee_config=parsed.fee.to_dict(),
        term_days=parsed.term_days,
        start_date=parsed.start_date,
        due_date=parsed.due_date,
        asset_model=parsed.asset_model,
        asset_serial=parsed.serial,
        storage_code=parsed.storage_code,
    )
    db.session.add(contract)
    db.session.flush()

    net_receive = parsed.principal - parsed.fee.total
    if net_receive > 0:
        append_cashbook_entry(
            type="OUT",
            category=LedgerCategory.DEPOSIT_PRINCIPAL_OUT,
            amount=net_receive,
            profit=0,
            contract_id=contract.id,
            description=f"Imported deposit {contract.code}: paid {net_receive} to {customer.name}",
            created_at=parsed.start_date,
        )
    db.session.add(ContractActionLog(
        contract_id=contract.id,
        action="NEW_CONTRACT",
        amount=parsed.principal,
        note=parsed.note or "Imported from legacy sheet",
        created_at=parsed.start_date,
    ))
    db.session.flush()
    return contract


def import_rows(rows: Iterable[dict], *, dry_run: bool = False) -> ImportReport:
    """
    Import legacy rows. Data starts on line 2 (line 1 is the header), which is
    how rows are numbered in the report.
    """
    report = ImportReport(dry_run=dry_run)
    for line_number, row in enumerate(rows, start=2):
        if not any(clean_str(v) for v in row.values()) or is_summary_row(row):
            continue

        try:
            parsed = parse_row(row, line_number)
        except LegacyImportError as exc:
            report.skipped.append({"line": line_number, "error": str(exc)})
            continue

        if dry_run:
            report.imported.append(f"line {line_number}")
            continue

        try:
            contract = _write_contract(parsed)
            db.session.commit()
        except Exception as exc:
            db.session.rollback()
            current_app.logger.exception("Failed to import legacy row on line %s", line_number)
            report.failed.append({"line": line_number, "error": str(exc)})
            continue
        report.imported.append(contract.code)

    return report


def import_csv(stream: TextIO, *, dry_run: bool = False) -> ImportReport:
    reader = csv.DictReader(stream)
    rows = ({(k or "").strip(): v for k, v in row.items()} for row in reader)
    return import_rows(rows, dry_run=dry_run)
