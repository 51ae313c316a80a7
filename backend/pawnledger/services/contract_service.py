# Overview: Service-layer operations for the deposit contract lifecycle; status changes, ledger lines and action logs.

from __future__ import annotations

from decimal import Decimal
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import Contract, ContractActionLog, ContractImage, InventoryItem, LedgerCategory
from ..time_utils import add_days, utcnow
from ..validation import NotFoundError, ValidationError, clean_str, parse_money, parse_quantity, quantize_money
from . import notification_service
from .concurrency import lock_for_update, savepoint
from .customer_service import upsert_customer_by_id_card
from .document_service import next_document_code
from .fee_service import DEFAULT_TERM_DAYS, calculate_fee
from .financial_service import get_contract_financials, normalize_fee_config
from .ledger_service import append_cashbook_entry, append_cashbook_entry_best_effort

"""
Contract lifecycle

    ACTIVE -> RENEWED | REDEEMED | FORFEITED

- Only ACTIVE contracts can be renewed, redeemed, cut or forfeited.
- Renewal closes the old row and opens a successor starting at the old due date.
- Forfeit converts the pledged asset into exactly one inventory item.
- Ledger lines and action logs are side writes: when one fails it is logged
  and the primary change still goes through. Forfeit is the exception; its
  status change, log and inventory item commit together.
"""

_ZERO = Decimal("0")


def _load_contract(contract_id: int, *, lock: bool = False) -> Contract:
    query = db.session.query(Contract).filter_by(id=contract_id)
    if lock:
        query = lock_for_update(query)
    contract = query.first()
    if not contract:
        raise NotFoundError("Contract not found")
    return contract


def _require_active(contract: Contract, action: str) -> None:
    if contract.status != "ACTIVE":
        raise ValidationError(
            f"Cannot {action} a contract with status {contract.status}",
            details={"status": contract.status},
        )


def _add_action_log(contract_id: int, action: str, amount: Any, note: str | None = None) -> ContractActionLog:
    log = ContractActionLog(
        contract_id=contract_id,
        action=action,
        amount=quantize_money(Decimal(str(amount or 0))),
        note=note,
    )
    db.session.add(log)
    db.session.flush()
    return log


def _add_action_log_best_effort(contract_id: int, action: str, amount: Any, note: str | None = None) -> None:
    try:
        with savepoint():
            _add_action_log(contract_id, action, amount, note)
    except Exception:
        current_app.logger.exception("Failed to write %s action log for contract %s", action, contract_id)


def _optional_money(value: Any, field: str) -> Decimal | None:
    if value is None or value == "":
        return None
    return parse_money(value, field)


def get_contract(contract_id: int) -> Contract:
    return _load_contract(contract_id)


def list_contracts(*, status: str | None = None, contract_type: str | None = None) -> list[Contract]:
    query = db.session.query(Contract).filter(Contract.type == (contract_type or "DEPOSIT"))
    if status:
        query = query.filter(Contract.status == status)
    return query.order_by(Contract.created_at.desc(), Contract.id.desc()).all()


# =============================================================================
# CREATE
# =============================================================================

def create_contract(payload: dict) -> Contract:
    """
    New deposit contract.

    Payload:
        customer:  {name, id_card (required), phone, address, line_id}
        asset:     {model_name, serial, condition, accessories, storage_code}
        financial: {principal, term_days, fee_breakdown}
        images:    [url_or_data, ...]

    The contract (with customer and images) is committed first. The
    DEPOSIT_PRINCIPAL_OUT ledger line and NEW_CONTRACT log are written in a
    second transaction afterwards; if that fails the contract still stands
    without them.
    """
    payload = payload or {}
    customer_data = payload.get("customer") or {}
    asset = payload.get("asset") or {}
    financial = payload.get("financial") or {}
    images = payload.get("images") or []

    if not clean_str(customer_data.get("id_card")):
        raise ValidationError("customer.id_card is required")
    if not isinstance(images, list):
        raise ValidationError("images must be a list")

    principal_raw = financial.get("principal")
    if principal_raw is None or principal_raw == "":
        raise ValidationError("principal is required")
    principal = parse_money(principal_raw, "principal")
    term_days = parse_quantity(financial.get("term_days"), "term_days", default=DEFAULT_TERM_DAYS)

    fee_raw = financial.get("fee_breakdown")
    fee = normalize_fee_config(fee_raw) if fee_raw else calculate_fee(principal, term_days)

    try:
        customer = upsert_customer_by_id_card(
            customer_data.get("id_card"),
            name=customer_data.get("name"),
            phone=customer_data.get("phone"),
            address=customer_data.get("address"),
            line_id=customer_data.get("line_id"),
        )

        start = utcnow()
        contract = Contract(
            code=next_document_code("DEPOSIT", year=start.year),
            type=clean_str(payload.get("type")) or "DEPOSIT",
            status="ACTIVE",
            customer_id=customer.id,
            principal=principal,
            fee_config=fee.to_dict(),
            term_days=term_days,
            start_date=start,
            due_date=add_days(start, term_days),
            asset_model=clean_str(asset.get("model_name")),
            asset_serial=clean_str(asset.get("serial")),
            asset_condition=clean_str(asset.get("condition")),
            asset_accessories=clean_str(asset.get("accessories")),
            storage_code=clean_str(asset.get("storage_code")),
        )
        db.session.add(contract)
        db.session.flush()

        for image in images:
            if image:
                db.session.add(ContractImage(contract_id=contract.id, url_or_data=str(image)))

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    _record_new_contract(contract.id)
    return contract


def _record_new_contract(contract_id: int) -> None:
    """Second unit of work for a new contract: ledger line and action log."""
    try:
        contract = _load_contract(contract_id)
        financials = get_contract_financials(contract)

        if financials.net_receive > 0:
            append_cashbook_entry(
                type="OUT",
                category=LedgerCategory.DEPOSIT_PRINCIPAL_OUT,
                amount=financials.net_receive,
                profit=0,
                contract_id=contract.id,
                description=(
                    f"New deposit {contract.code}: paid {financials.net_receive} to customer "
                    f"(principal {financials.principal}, fee {financials.fee.total})"
                ),
            )
        _add_action_log(contract.id, "NEW_CONTRACT", financials.principal, "New contract")
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record ledger entry for new contract %s", contract_id)


# =============================================================================
# RENEW / REDEEM / CUT PRINCIPAL
# =============================================================================

def renew_contract(contract_id: int, payload: dict | None = None) -> Contract:
    """
    Close an ACTIVE contract as RENEWED and open its successor.

    The successor starts at the old due date. term_days, principal and
    fee_config carry over unless the caller overrides them.
    """
    payload = payload or {}
    existing = _load_contract(contract_id, lock=True)
    _require_active(existing, "renew")

    term_days = parse_quantity(payload.get("term_days"), "term_days", default=existing.term_days or DEFAULT_TERM_DAYS)
    principal = _optional_money(payload.get("principal"), "principal")
    if principal is None:
        principal = existing.principal
    fee_raw = payload.get("fee_config")
    fee = normalize_fee_config(fee_raw if fee_raw else existing.fee_config)

    try:
        start = existing.due_date
        renewed = Contract(
            code=next_document_code("DEPOSIT"),
            type=existing.type,
            status="ACTIVE",
            customer_id=existing.customer_id,
            previous_contract_id=existing.id,
            principal=principal,
            fee_config=fee.to_dict(),
            term_days=term_days,
            start_date=start,
            due_date=add_days(start, term_days),
            asset_model=existing.asset_model,
            asset_serial=existing.asset_serial,
            asset_condition=existing.asset_condition,
            asset_accessories=existing.asset_accessories,
            storage_code=existing.storage_code,
        )
        db.session.add(renewed)
        existing.status = "RENEWED"
        db.session.flush()

        if fee.total > 0:
            append_cashbook_entry_best_effort(
                type="IN",
                category=LedgerCategory.RENEW_FEE,
                amount=fee.total,
                profit=fee.total,
                contract_id=renewed.id,
                description=f"Renewal {renewed.code} of {existing.code}",
            )
        _add_action_log_best_effort(renewed.id, "RENEW_CONTRACT", fee.total, f"Renewed from {existing.code}")

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return renewed


def redeem_contract(contract_id: int, payload: dict | None = None) -> Contract:
    """
    Customer pays back and takes the asset.

    paid_total defaults to the current principal; the fee was collected up
    front. The ledger line books the stored fee total as profit.
    """
    payload = payload or {}
    contract = _load_contract(contract_id, lock=True)
    _require_active(contract, "redeem")

    paid_total = _optional_money(payload.get("paid_total"), "paid_total")
    financials = get_contract_financials(contract)
    if paid_total is None:
        paid_total = financials.principal
    fee_total = financials.fee.total

    try:
        contract.status = "REDEEMED"
        db.session.flush()

        append_cashbook_entry_best_effort(
            type="IN",
            category=LedgerCategory.REDEEM,
            amount=paid_total,
            profit=fee_total,
            contract_id=contract.id,
            description=(
                f"Redeemed {contract.code}: received {paid_total} "
                f"(principal {paid_total - fee_total}, fee profit {fee_total})"
            ),
        )
        _add_action_log_best_effort(contract.id, "REDEEM", paid_total, "Redeemed")

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return contract


def _lenient_money(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return parse_money(value, "amount", allow_negative=True)
    except ValidationError:
        return None


def cut_principal(contract_id: int, payload: dict | None = None) -> Contract:
    """
    Pay down part of the principal.

    Either new_principal (absolute) or cut_amount (delta). The cut value is
    clamped to [0, principal] and recognizes the same share of the fee as
    profit: profit = fee_total * cut / principal_before.
    """
    payload = payload or {}
    contract = _load_contract(contract_id, lock=True)
    _require_active(contract, "cut principal of")

    before = Decimal(contract.principal or 0)
    if before <= 0:
        raise ValidationError("principal must be > 0 to cut")

    new_principal = _lenient_money(payload.get("new_principal"))
    cut_amount = _lenient_money(payload.get("cut_amount"))

    if new_principal is not None:
        target = max(new_principal, _ZERO)
        cut_value = max(before - target, _ZERO)
    elif cut_amount is not None:
        cut_value = min(max(cut_amount, _ZERO), before)
        target = before - cut_value
    else:
        raise ValidationError("cut_amount or new_principal must be a number")

    if cut_value <= 0:
        raise ValidationError("cut amount must be > 0")

    fee_total = get_contract_financials(contract).fee.total
    profit_cut = _ZERO
    if fee_total > 0:
        profit_cut = quantize_money(fee_total * cut_value / before)

    try:
        contract.principal = target
        db.session.flush()

        _add_action_log_best_effort(contract.id, "CUT_PRINCIPAL", cut_value, f"Cut {cut_value}, principal now {target}")
        append_cashbook_entry_best_effort(
            type="IN",
            category=LedgerCategory.CUT_PRINCIPAL,
            amount=cut_value,
            profit=profit_cut,
            contract_id=contract.id,
            description=f"Principal cut {cut_value} on {contract.code}, profit {profit_cut}",
        )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return contract


# =============================================================================
# FORFEIT
# =============================================================================

def forfeit_contract(contract_id: int) -> tuple[Contract, InventoryItem | None]:
    """
    Close an ACTIVE contract as FORFEITED and put the asset into stock.

    Forfeiting an already FORFEITED contract is a replay: the existing
    inventory item is returned and nothing is written.
    """
    contract = _load_contract(contract_id, lock=True)

    if contract.status == "FORFEITED":
        item = db.session.query(InventoryItem).filter_by(source_contract_id=contract.id).first()
        return contract, item

    _require_active(contract, "forfeit")

    financials = get_contract_financials(contract)
    principal = financials.principal

    try:
        contract.status = "FORFEITED"
        _add_action_log(contract.id, "FORFEIT", principal, "Forfeited")

        item = db.session.query(InventoryItem).filter_by(source_contract_id=contract.id).first()
        if item is None:
            item = InventoryItem(
                code=next_document_code("INVENTORY"),
                name=contract.asset_model or f"Asset from contract {contract.code}",
                serial=contract.asset_serial,
                condition=contract.asset_condition,
                accessories=contract.asset_accessories,
                storage_location=contract.storage_code,
                source_type="FORFEIT",
                source_contract_id=contract.id,
                source_contract_code=contract.code,
                cost=principal,
                target_price=max(principal + financials.fee.total, principal),
                quantity=1,
                quantity_available=1,
                quantity_sold=0,
                status="IN_STOCK",
            )
            db.session.add(item)

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Contract %s forfeited into inventory item %s", contract.code, item.code)
    return contract, item


# =============================================================================
# NOTIFY
# =============================================================================

def notify_customer_line(contract_id: int) -> ContractActionLog:
    """Push a due-date reminder to the customer's LINE account."""
    contract = _load_contract(contract_id)

    if not notification_service.is_configured():
        raise ValidationError("LINE notifications are not configured")
    customer = contract.customer
    if not customer or not customer.line_user_id:
        raise ValidationError("Customer has no LINE account linked")

    financials = get_contract_financials(contract)
    text = (
        f"Reminder: contract {contract.code} is due on {contract.due_date:%d/%m/%Y}. "
        f"Outstanding principal {financials.principal:,.2f} THB."
    )
    notification_service.push_line_message(customer.line_user_id, text)

    log = _add_action_log(contract.id, "NOTIFY_CUSTOMER_LINE", 0, text)
    db.session.commit()
    return log
