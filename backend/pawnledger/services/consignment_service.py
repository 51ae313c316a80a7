# Overview: Service-layer operations for consignment contracts; intake of seller goods and commission sales.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import ConsignmentContract, InventoryItem, LedgerCategory
from ..validation import NotFoundError, ValidationError, clean_str, parse_money, parse_quantity, quantize_money
from .concurrency import lock_for_update
from .customer_service import resolve_customer
from .document_service import next_document_code
from .ledger_service import append_cashbook_entry

"""
Consignment rules

- Creation writes the item, the contract and the advance OUT line in one transaction.
- A sale never prices below the seller's guaranteed payout:
  commission = price * qty - net_to_seller * qty must be >= 0.
- VAT on commission is informational; it is not posted as its own line.
- The contract flips to SOLD only when its item has no units left.
"""

_ZERO = Decimal("0")


@dataclass
class ConsignmentSale:
    consignment: ConsignmentContract
    item: InventoryItem
    gross_sale: Decimal
    seller_payout: Decimal
    commission_fee: Decimal
    vat_on_commission: Decimal

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "consignment": self.consignment.to_dict(include_item=False),
            "inventory_item": self.item.to_dict(),
            "gross_sale": float(self.gross_sale),
            "seller_payout": float(self.seller_payout),
            "commission_fee": float(self.commission_fee),
            "vat_on_commission": float(self.vat_on_commission),
        }


def _vat_rate() -> Decimal:
    return Decimal(str(current_app.config.get("VAT_RATE", "0.07")))


def _non_negative(value: Any, field: str) -> Decimal:
    if value is None or value == "":
        return _ZERO
    return parse_money(value, field)


def _photos(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v]
    return [str(value)]


def get_consignment(consignment_id: int) -> ConsignmentContract:
    con = db.session.get(ConsignmentContract, consignment_id)
    if not con:
        raise NotFoundError("Consignment not found")
    return con


def list_consignments(*, only_open: bool = True) -> list[ConsignmentContract]:
    query = db.session.query(ConsignmentContract)
    if only_open:
        query = query.filter(ConsignmentContract.status == "ACTIVE")
    return query.order_by(ConsignmentContract.created_at.desc(), ConsignmentContract.id.desc()).all()


def create_consignment(payload: dict) -> ConsignmentContract:
    payload = payload or {}

    seller_name = clean_str(payload.get("seller_name"))
    item_name = clean_str(payload.get("item_name"))
    if not seller_name:
        raise ValidationError("seller_name is required")
    if not item_name:
        raise ValidationError("item_name is required")

    advance = _non_negative(payload.get("advance_amount"), "advance_amount")
    net_to_seller = _non_negative(payload.get("net_to_seller"), "net_to_seller")
    target_price = _non_negative(payload.get("target_price"), "target_price")
    quantity = parse_quantity(payload.get("quantity"))

    try:
        seller = resolve_customer(
            id_card=payload.get("seller_id_card"),
            phone=payload.get("seller_phone"),
            name=seller_name,
            address=payload.get("seller_address"),
        )

        item = InventoryItem(
            code=next_document_code("INVENTORY"),
            name=item_name,
            serial=clean_str(payload.get("serial")),
            condition=clean_str(payload.get("condition")),
            accessories=clean_str(payload.get("accessories")),
            storage_location=clean_str(payload.get("storage_location")),
            source_type="CONSIGNMENT",
            cost=advance,
            target_price=target_price if target_price > 0 else None,
            quantity=quantity,
            quantity_available=quantity,
            quantity_sold=0,
            status="IN_STOCK",
        )
        db.session.add(item)
        db.session.flush()

        con = ConsignmentContract(
            code=next_document_code("CONSIGNMENT"),
            seller_customer_id=seller.id if seller else None,
            seller_name=seller_name,
            seller_id_card=clean_str(payload.get("seller_id_card")),
            seller_phone=clean_str(payload.get("seller_phone")),
            seller_address=clean_str(payload.get("seller_address")),
            item_name=item_name,
            serial=item.serial,
            condition=item.condition,
            accessories=item.accessories,
            photos=_photos(payload.get("photos")),
            advance_amount=advance,
            net_to_seller=net_to_seller,
            target_price=target_price,
            status="ACTIVE",
            inventory_item_id=item.id,
        )
        db.session.add(con)
        db.session.flush()
        item.consignment_contract_id = con.id

        if advance > 0:
            append_cashbook_entry(
                type="OUT",
                category=LedgerCategory.CONSIGNMENT_ADVANCE_OUT,
                amount=advance,
                profit=0,
                inventory_item_id=item.id,
                description=f"Consignment advance {con.code} paid to {seller_name}",
            )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return con


def sell_consignment(consignment_id: int, payload: dict) -> ConsignmentSale:
    payload = payload or {}

    price_raw = payload.get("sale_price")
    price = _non_negative(price_raw, "sale_price")
    if price <= 0:
        raise ValidationError("sale_price must be > 0")
    qty = parse_quantity(payload.get("quantity"))

    try:
        con = lock_for_update(db.session.query(ConsignmentContract).filter_by(id=consignment_id)).first()
        if not con:
            raise NotFoundError("Consignment not found")
        if not con.inventory_item_id:
            raise ValidationError("Consignment has no inventory item", details={"code": "NO_INVENTORY"})

        item = lock_for_update(db.session.query(InventoryItem).filter_by(id=con.inventory_item_id)).first()
        if not item:
            raise ValidationError("Consignment has no inventory item", details={"code": "NO_INVENTORY"})

        available = item.quantity_available or 0
        if qty > available:
            raise ValidationError(
                "Quantity exceeds available stock",
                details={"code": "QTY_EXCEED", "available": available},
            )

        net_per_unit = Decimal(con.net_to_seller or 0)
        seller_payout = quantize_money(net_per_unit * qty)
        gross_sale = quantize_money(price * qty)
        commission_fee = gross_sale - seller_payout
        if commission_fee < 0:
            raise ValidationError(
                "Sale price is below min_sale_price",
                details={"code": "PRICE_TOO_LOW", "min_sale_price": float(net_per_unit)},
            )
        vat_on_commission = quantize_money(commission_fee * _vat_rate())

        buyer = resolve_customer(
            id_card=payload.get("buyer_id_card"),
            phone=payload.get("buyer_phone"),
            name=payload.get("buyer_name"),
            address=payload.get("buyer_address"),
        )

        item.quantity_available = available - qty
        item.quantity_sold = (item.quantity_sold or 0) + qty
        item.status = "SOLD" if item.quantity_available == 0 else "IN_STOCK"
        item.selling_price = price
        item.gross_profit = Decimal(item.gross_profit or 0) + commission_fee
        item.net_profit = Decimal(item.net_profit or 0) + commission_fee
        item.buyer_customer_id = buyer.id if buyer else item.buyer_customer_id
        item.buyer_name = clean_str(payload.get("buyer_name"))
        item.buyer_phone = clean_str(payload.get("buyer_phone"))
        item.buyer_address = clean_str(payload.get("buyer_address"))
        item.buyer_tax_id = clean_str(payload.get("buyer_tax_id"))

        con.status = "SOLD" if item.quantity_available == 0 else "ACTIVE"

        append_cashbook_entry(
            type="IN",
            category=LedgerCategory.CONSIGNMENT_SALE_IN,
            amount=gross_sale,
            profit=0,
            inventory_item_id=item.id,
            buyer_customer_id=buyer.id if buyer else None,
            description=f"Consignment sale {con.code} qty {qty}",
        )
        append_cashbook_entry(
            type="OUT",
            category=LedgerCategory.CONSIGNMENT_PAYOUT_OUT,
            amount=seller_payout,
            profit=0,
            inventory_item_id=item.id,
            description=f"Payout to seller {con.seller_name} for {con.code} qty {qty}",
        )
        append_cashbook_entry(
            type="IN",
            category=LedgerCategory.CONSIGNMENT_COMMISSION_FEE,
            amount=commission_fee,
            profit=commission_fee,
            inventory_item_id=item.id,
            description=f"Consignment commission {con.code} qty {qty} (VAT on commission {vat_on_commission})",
        )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return ConsignmentSale(
        consignment=con,
        item=item,
        gross_sale=gross_sale,
        seller_payout=seller_payout,
        commission_fee=commission_fee,
        vat_on_commission=vat_on_commission,
    )
