# Overview: Service-layer customer identity resolution, segmentation and LINE linking.

from __future__ import annotations

import re
from typing import Any

from flask import current_app
from sqlalchemy import exists, func, or_, select
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CashbookEntry, ConsignmentContract, Contract, Customer, InventoryItem
from ..validation import NotFoundError, ValidationError, clean_str
from .concurrency import savepoint

"""
Customer identity

- id_card is the candidate key, unique when present (enforced by the store).
- A duplicate id_card on create is an update path, not an error.
- Buyers without an id_card are matched on phone.
- Segments (DEPOSITOR, BUYER, CONSIGNOR) come from typed references on
  contracts, sale rows in the cashbook, sold items and consignments; they
  are never stored.
"""

UPDATABLE_FIELDS = ("name", "phone", "address", "line_id", "line_user_id")

_NON_DIGITS = re.compile(r"[^0-9]")


def _incoming(fields: dict[str, Any]) -> dict[str, str]:
    cleaned = {}
    for key in UPDATABLE_FIELDS:
        value = clean_str(fields.get(key))
        if value is not None:
            cleaned[key] = value
    return cleaned


def upsert_customer_by_id_card(id_card: str, **fields) -> Customer:
    """
    Insert a customer; when the id_card already exists, update that row with
    the non-empty incoming fields instead.

    Flushes within the caller's transaction.
    """
    id_card = clean_str(id_card)
    if not id_card:
        raise ValidationError("id_card is required")

    data = _incoming(fields)

    try:
        with savepoint():
            customer = Customer(id_card=id_card, **{"name": "", **data})
            db.session.add(customer)
            db.session.flush()
        return customer
    except IntegrityError:
        current_app.logger.warning("Customer id_card %s already exists; updating instead", id_card)

    existing = db.session.query(Customer).filter_by(id_card=id_card).one()
    for key, value in data.items():
        setattr(existing, key, value)
    db.session.flush()
    return existing


def find_or_create_by_phone(phone: str, **fields) -> Customer:
    phone = clean_str(phone)
    if not phone:
        raise ValidationError("phone is required")

    customer = (
        db.session.query(Customer)
        .filter(Customer.phone == phone)
        .order_by(Customer.id.asc())
        .first()
    )
    if customer:
        return customer

    data = _incoming(fields)
    data.pop("phone", None)
    customer = Customer(phone=phone, name=data.pop("name", ""), **data)
    db.session.add(customer)
    db.session.flush()
    return customer


def resolve_customer(
    *,
    id_card: Any = None,
    phone: Any = None,
    name: Any = None,
    address: Any = None,
    line_id: Any = None,
) -> Customer | None:
    """
    Who is this buyer/seller?

    - id_card given: upsert by id_card
    - else phone given: find-or-create by phone
    - else: no customer link
    """
    fields = {"name": name, "phone": phone, "address": address, "line_id": line_id}
    if clean_str(id_card):
        return upsert_customer_by_id_card(id_card, **fields)
    if clean_str(phone):
        return find_or_create_by_phone(phone, name=name, address=address, line_id=line_id)
    return None


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def customer_segments(customer_id: int) -> list[str]:
    segments = []
    is_buyer = db.session.query(
        exists().where(InventoryItem.buyer_customer_id == customer_id)
    ).scalar() or db.session.query(
        exists().where(CashbookEntry.buyer_customer_id == customer_id)
    ).scalar()
    if is_buyer:
        segments.append("BUYER")

    is_depositor = db.session.query(
        exists().where(Contract.customer_id == customer_id, Contract.type == "DEPOSIT")
    ).scalar()
    if is_depositor:
        segments.append("DEPOSITOR")

    is_consignor = db.session.query(
        exists().where(ConsignmentContract.seller_customer_id == customer_id)
    ).scalar()
    if is_consignor:
        segments.append("CONSIGNOR")
    return segments


def list_customers(q: str | None = None) -> list[dict]:
    query = db.session.query(Customer)

    q = clean_str(q)
    if q:
        pattern = f"%{q.lower()}%"
        query = query.filter(
            or_(
                func.lower(Customer.name).like(pattern),
                func.lower(Customer.phone).like(pattern),
                func.lower(Customer.id_card).like(pattern),
                func.lower(Customer.line_id).like(pattern),
            )
        )

    customers = query.order_by(Customer.created_at.desc(), Customer.id.desc()).all()
    ids = [c.id for c in customers]
    if not ids:
        return []

    buyer_ids = {
        row[0]
        for row in db.session.query(InventoryItem.buyer_customer_id)
        .filter(InventoryItem.buyer_customer_id.in_(ids))
        .distinct()
    }
    buyer_ids |= {
        row[0]
        for row in db.session.query(CashbookEntry.buyer_customer_id)
        .filter(CashbookEntry.buyer_customer_id.in_(ids))
        .distinct()
    }
    depositor_ids = {
        row[0]
        for row in db.session.query(Contract.customer_id)
        .filter(Contract.customer_id.in_(ids), Contract.type == "DEPOSIT")
        .distinct()
    }
    consignor_ids = {
        row[0]
        for row in db.session.query(ConsignmentContract.seller_customer_id)
        .filter(ConsignmentContract.seller_customer_id.in_(ids))
        .distinct()
    }

    rows = []
    for c in customers:
        segments = []
        if c.id in buyer_ids:
            segments.append("BUYER")
        if c.id in depositor_ids:
            segments.append("DEPOSITOR")
        if c.id in consignor_ids:
            segments.append("CONSIGNOR")
        data = c.to_dict()
        data["segments"] = segments
        rows.append(data)
    return rows


def customer_detail(customer_id: int) -> dict:
    customer = get_customer(customer_id)

    contracts = (
        db.session.query(Contract)
        .filter(Contract.customer_id == customer.id)
        .order_by(Contract.created_at.desc(), Contract.id.desc())
        .all()
    )
    items_bought = (
        db.session.query(InventoryItem)
        .filter(or_(
            InventoryItem.buyer_customer_id == customer.id,
            InventoryItem.id.in_(
                select(CashbookEntry.inventory_item_id)
                .where(CashbookEntry.buyer_customer_id == customer.id)
            ),
        ))
        .order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc())
        .all()
    )
    consignments = (
        db.session.query(ConsignmentContract)
        .filter(ConsignmentContract.seller_customer_id == customer.id)
        .order_by(ConsignmentContract.created_at.desc(), ConsignmentContract.id.desc())
        .all()
    )

    data = customer.to_dict()
    data["segments"] = customer_segments(customer.id)
    return {
        "customer": data,
        "deposit_contracts": [c.to_dict(include_children=False) for c in contracts],
        "inventory_items_bought": [i.to_dict() for i in items_bought],
        "consignments": [c.to_dict() for c in consignments],
    }


def sanitize_phone(value: Any) -> str:
    return _NON_DIGITS.sub("", str(value or ""))


def register_line_user(
    *,
    line_user_id: Any,
    phone: Any = None,
    storage_code: Any = None,
    consent: Any = False,
) -> dict:
    """
    Link a LINE user id to an existing customer.

    The customer is found by phone (digits only, at least 9) or by the
    storage code of one of their ACTIVE contracts.
    """
    line_user_id = clean_str(line_user_id)
    if not line_user_id:
        raise ValidationError("line_user_id is required")
    if consent is not True:
        raise ValidationError("consent is required")

    phone_norm = sanitize_phone(phone)
    storage_code = clean_str(storage_code)
    if len(phone_norm) < 9 and not storage_code:
        raise ValidationError("phone or storage_code is required")

    customer = None
    contract = None

    if storage_code:
        contract = (
            db.session.query(Contract)
            .filter(
                func.upper(Contract.storage_code) == storage_code.upper(),
                Contract.status == "ACTIVE",
            )
            .order_by(Contract.id.desc())
            .first()
        )
        if contract:
            customer = contract.customer

    if customer is None and len(phone_norm) >= 9:
        stored_digits = func.replace(func.replace(func.replace(Customer.phone, "-", ""), " ", ""), "+", "")
        customer = (
            db.session.query(Customer)
            .filter(stored_digits == phone_norm)
            .order_by(Customer.id.asc())
            .first()
        )

    if customer is None:
        raise NotFoundError("Customer not found")

    if contract is None:
        contract = (
            db.session.query(Contract)
            .filter(Contract.customer_id == customer.id, Contract.status == "ACTIVE")
            .order_by(Contract.due_date.asc())
            .first()
        )

    customer.line_user_id = line_user_id
    db.session.commit()

    current_app.logger.info("Linked LINE user to customer %s", customer.id)
    return {
        "ok": True,
        "message": "LINE account linked",
        "customer_id": customer.id,
        "contract_code": contract.code if contract else None,
    }
