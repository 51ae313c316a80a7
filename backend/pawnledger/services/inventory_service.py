# Overview: Service-layer operations for stock items; buy-in intake, direct sale and bulk sale.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ..extensions import db
from ..models import Customer, InventoryItem, LedgerCategory
from ..validation import NotFoundError, ValidationError, clean_str, parse_money, parse_quantity, quantize_money
from .concurrency import lock_for_update
from .customer_service import resolve_customer
from .document_service import next_document_code
from .ledger_service import append_cashbook_entry

"""
Stock invariants

- quantity_available = quantity - quantity_sold, never below zero.
- status is SOLD exactly when quantity_available reaches zero.
- Unit cost is cost / quantity for multi-unit intakes.
- profit per sale = (selling_price - unit_cost) * qty, accumulated into
  gross_profit and net_profit (identical; no deductions are modelled).
- A bulk sale is all-or-nothing: one failing line rolls back every line.
"""

SOURCE_TYPES = ("PURCHASE", "CONSIGNMENT", "FORFEIT")

_ZERO = Decimal("0")


class SaleLineError(ValidationError):
    """A bulk-sale line failed; carries the failing item id."""

    def __init__(self, message: str, item_id: Any, details: dict | None = None):
        merged = dict(details or {})
        merged["item_id"] = item_id
        super().__init__(message, details=merged)
        self.item_id = item_id


class SaleLineNotFound(NotFoundError):
    def __init__(self, message: str, item_id: Any):
        super().__init__(message)
        self.item_id = item_id
        self.details = {"item_id": item_id}


@dataclass
class BuyerInfo:
    name: str | None = None
    phone: str | None = None
    address: str | None = None
    tax_id: str | None = None
    id_card: str | None = None

    @classmethod
    def from_payload(cls, data: dict | None) -> "BuyerInfo":
        data = data or {}
        return cls(
            name=clean_str(data.get("name")),
            phone=clean_str(data.get("phone")),
            address=clean_str(data.get("address")),
            tax_id=clean_str(data.get("tax_id")),
            id_card=clean_str(data.get("id_card")),
        )


def normalize_source_type(raw: Any) -> str:
    s = str(raw or "").strip().upper()
    if s in ("BUY_IN", "BUYIN", "BUY-IN"):
        return "PURCHASE"
    if s in SOURCE_TYPES:
        return s
    return "PURCHASE"


def unit_cost(item: InventoryItem) -> Decimal:
    cost = Decimal(item.cost or 0)
    quantity = item.quantity or 1
    if quantity > 1:
        return cost / quantity
    return cost


def get_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if not item:
        raise NotFoundError("Inventory item not found")
    return item


def list_items(*, status: str | None = None) -> list[InventoryItem]:
    query = db.session.query(InventoryItem)
    if status == "SOLD":
        query = query.filter(InventoryItem.quantity_available <= 0)
    elif status == "IN_STOCK":
        query = query.filter(InventoryItem.quantity_available > 0)
    return query.order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc()).all()


# =============================================================================
# INTAKE
# =============================================================================

def intake_item(payload: dict) -> InventoryItem:
    """
    Buy goods into stock.

    cost = purchase_total when given, else unit_price * quantity. An
    INVENTORY_BUY_IN OUT line is written in the same transaction when
    cost > 0.
    """
    payload = payload or {}
    name = clean_str(payload.get("name") or payload.get("brand_model"))
    if not name:
        raise ValidationError("name is required")

    quantity = parse_quantity(payload.get("quantity"))

    unit_price_raw = payload.get("unit_price")
    unit_price = parse_money(unit_price_raw, "unit_price") if unit_price_raw not in (None, "") else _ZERO

    total_raw = payload.get("purchase_total")
    if total_raw not in (None, ""):
        cost = parse_money(total_raw, "purchase_total")
    else:
        cost = quantize_money(unit_price * quantity)

    target_raw = payload.get("target_price")
    target_price = parse_money(target_raw, "target_price") if target_raw not in (None, "") else None
    if target_price is not None and target_price <= 0:
        target_price = None

    source_type = normalize_source_type(payload.get("source_type"))
    seller_name = clean_str(payload.get("seller_name"))

    try:
        item = InventoryItem(
            code=next_document_code("INVENTORY"),
            name=name,
            serial=clean_str(payload.get("serial")),
            condition=clean_str(payload.get("condition")),
            accessories=clean_str(payload.get("accessories")),
            storage_location=clean_str(payload.get("storage_location")),
            source_type=source_type,
            cost=cost,
            target_price=target_price,
            quantity=quantity,
            quantity_available=quantity,
            quantity_sold=0,
            status="IN_STOCK",
        )
        db.session.add(item)
        db.session.flush()

        if cost > 0:
            append_cashbook_entry(
                type="OUT",
                category=LedgerCategory.INVENTORY_BUY_IN,
                amount=cost,
                profit=0,
                inventory_item_id=item.id,
                description=f"Buy-in {name} qty {quantity} from {seller_name or 'walk-in customer'}",
            )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return item


# =============================================================================
# SALE
# =============================================================================

def _apply_sale_line(
    item_id: int,
    *,
    quantity: int,
    selling_price: Decimal,
    buyer: BuyerInfo,
    buyer_customer: Customer | None,
) -> InventoryItem:
    """One line of a direct sale; flushes, never commits."""
    item = lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()
    if not item:
        raise SaleLineNotFound("Inventory item not found", item_id)

    if item.source_type == "CONSIGNMENT":
        raise SaleLineError(
            "Consignment items are sold through their consignment contract",
            item_id,
            details={"code": "NOT_DIRECT_STOCK"},
        )

    available = item.quantity_available or 0
    if available <= 0 or item.status == "SOLD":
        raise SaleLineError("Item is out of stock", item_id, details={"code": "OUT_OF_STOCK", "available": available})
    if quantity > available:
        raise SaleLineError(
            "Quantity exceeds available stock",
            item_id,
            details={"code": "QTY_EXCEED", "available": available},
        )

    profit = quantize_money((selling_price - unit_cost(item)) * quantity)

    item.quantity_available = available - quantity
    item.quantity_sold = (item.quantity_sold or 0) + quantity
    item.status = "SOLD" if item.quantity_available == 0 else "IN_STOCK"
    item.selling_price = selling_price
    item.gross_profit = Decimal(item.gross_profit or 0) + profit
    item.net_profit = Decimal(item.net_profit or 0) + profit

    if buyer_customer is not None:
        item.buyer_customer_id = buyer_customer.id
    item.buyer_name = buyer.name
    item.buyer_phone = buyer.phone
    item.buyer_address = buyer.address
    item.buyer_tax_id = buyer.tax_id

    append_cashbook_entry(
        type="IN",
        category=LedgerCategory.INVENTORY_SALE,
        amount=quantize_money(selling_price * quantity),
        profit=profit,
        inventory_item_id=item.id,
        buyer_customer_id=buyer_customer.id if buyer_customer else None,
        description=f"Sale {item.name} ({item.code}) qty {quantity}",
    )
    return item


def _resolve_buyer(buyer: BuyerInfo) -> Customer | None:
    return resolve_customer(
        id_card=buyer.id_card,
        phone=buyer.phone,
        name=buyer.name,
        address=buyer.address,
    )


def _parse_price(value: Any, field: str) -> Decimal:
    if value is None or value == "":
        raise ValidationError(f"{field} must be > 0")
    price = parse_money(value, field)
    if price <= 0:
        raise ValidationError(f"{field} must be > 0")
    return price


def sell_item(item_id: int, payload: dict) -> InventoryItem:
    payload = payload or {}
    quantity = parse_quantity(payload.get("quantity"))
    selling_price = _parse_price(payload.get("selling_price"), "selling_price")
    buyer = BuyerInfo.from_payload(payload.get("buyer") or {
        "name": payload.get("buyer_name"),
        "phone": payload.get("buyer_phone"),
        "address": payload.get("buyer_address"),
        "tax_id": payload.get("buyer_tax_id"),
        "id_card": payload.get("buyer_id_card"),
    })

    try:
        buyer_customer = _resolve_buyer(buyer)
        item = _apply_sale_line(
            item_id,
            quantity=quantity,
            selling_price=selling_price,
            buyer=buyer,
            buyer_customer=buyer_customer,
        )
        db.session.commit()
    except SaleLineNotFound:
        db.session.rollback()
        raise NotFoundError("Inventory item not found")
    except SaleLineError as exc:
        db.session.rollback()
        raise ValidationError(str(exc), details={k: v for k, v in exc.details.items() if k != "item_id"})
    except Exception:
        db.session.rollback()
        raise
    return item


def bulk_sell(payload: dict) -> list[InventoryItem]:
    """
    Sell several items to one buyer in a single transaction.

    Payload: {items: [{id, quantity, selling_price}], buyer: {...}}
    The buyer is resolved once. Any failing line aborts the whole batch and
    the error names its item_id.
    """
    payload = payload or {}
    lines = payload.get("items")
    if not isinstance(lines, list) or not lines:
        raise ValidationError("items is required")

    parsed = []
    for line in lines:
        if not isinstance(line, dict):
            raise ValidationError("Each item must be an object")
        item_id = line.get("id")
        try:
            item_id = int(item_id)
        except (TypeError, ValueError):
            raise ValidationError("Each item needs a numeric id", details={"item_id": item_id})
        try:
            quantity = parse_quantity(line.get("quantity"))
            price = _parse_price(line.get("selling_price"), "selling_price")
        except ValidationError as exc:
            raise SaleLineError(str(exc), item_id)
        parsed.append((item_id, quantity, price))

    buyer = BuyerInfo.from_payload(payload.get("buyer"))

    try:
        buyer_customer = _resolve_buyer(buyer)
        sold = [
            _apply_sale_line(
                item_id,
                quantity=quantity,
                selling_price=price,
                buyer=buyer,
                buyer_customer=buyer_customer,
            )
            for item_id, quantity, price in parsed
        ]
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return sold
