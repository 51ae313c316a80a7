from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import money_json


class InventoryItem(db.Model):
    """
    Sellable stock item.

    SOURCES:
    - PURCHASE: bought in over the counter (cost = total paid)
    - CONSIGNMENT: held for a seller (cost = advance paid to the seller)
    - FORFEIT: pledged asset of a forfeited contract (cost = principal)

    QUANTITY INVARIANT:
    quantity_available = quantity - quantity_sold, never negative.
    status is SOLD exactly when quantity_available reaches 0.

    cost is the cost of the whole intake; unit cost is cost / quantity.
    gross_profit / net_profit accumulate over partial sales.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_inventory_items_code"),
        db.UniqueConstraint("source_contract_id", name="uq_inventory_items_source_contract"),
        db.CheckConstraint("quantity_available >= 0", name="ck_inventory_items_available_non_negative"),
        db.Index("ix_inventory_items_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    serial = db.Column(db.String(128), nullable=True)
    condition = db.Column(db.Text, nullable=True)
    accessories = db.Column(db.Text, nullable=True)
    storage_location = db.Column(db.String(64), nullable=True)

    source_type = db.Column(db.String(16), nullable=False, default="PURCHASE", index=True)
    source_contract_id = db.Column(db.Integer, db.ForeignKey("contracts.id"), nullable=True)
    source_contract_code = db.Column(db.String(32), nullable=True)
    # Back-pointer only; consignment_contracts.inventory_item_id carries the FK
    consignment_contract_id = db.Column(db.Integer, nullable=True, index=True)

    cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    target_price = db.Column(db.Numeric(12, 2), nullable=True)
    selling_price = db.Column(db.Numeric(12, 2), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    quantity_available = db.Column(db.Integer, nullable=False, default=1)
    quantity_sold = db.Column(db.Integer, nullable=False, default=0)

    gross_profit = db.Column(db.Numeric(12, 2), nullable=True)
    net_profit = db.Column(db.Numeric(12, 2), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="IN_STOCK", index=True)

    # Buyer snapshot of the latest sale
    buyer_customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    buyer_name = db.Column(db.String(255), nullable=True)
    buyer_phone = db.Column(db.String(32), nullable=True)
    buyer_address = db.Column(db.Text, nullable=True)
    buyer_tax_id = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    source_contract = db.relationship("Contract", foreign_keys=[source_contract_id])
    buyer = db.relationship("Customer", backref=db.backref("inventory_items_bought", lazy=True))

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} code={self.code!r} available={self.quantity_available}>"

    @property
    def display_status(self) -> str:
        if (self.quantity_available or 0) <= 0:
            return "SOLD"
        return self.status or "IN_STOCK"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "serial": self.serial,
            "condition": self.condition,
            "accessories": self.accessories,
            "storage_location": self.storage_location,
            "status": self.display_status,
            "source_type": self.source_type,
            "source_contract_id": self.source_contract_id,
            "source_contract_code": self.source_contract_code,
            "consignment_contract_id": self.consignment_contract_id,
            "cost": money_json(self.cost),
            "target_price": money_json(self.target_price),
            "selling_price": money_json(self.selling_price),
            "quantity": self.quantity,
            "quantity_available": self.quantity_available,
            "quantity_sold": self.quantity_sold,
            "gross_profit": money_json(self.gross_profit),
            "net_profit": money_json(self.net_profit),
            "buyer_customer_id": self.buyer_customer_id,
            "buyer_name": self.buyer_name,
            "buyer_phone": self.buyer_phone,
            "buyer_address": self.buyer_address,
            "buyer_tax_id": self.buyer_tax_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
