from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import money_json


class ConsignmentContract(db.Model):
    """
    Item the shop sells on behalf of a seller.

    MONEY:
    - advance_amount: cash paid to the seller up front (becomes item cost)
    - net_to_seller: guaranteed payout per unit, the sale price floor
    - target_price: asking price per unit

    LIFECYCLE: ACTIVE -> SOLD once the linked item has no units left.
    Partial sales keep the contract ACTIVE.
    """
    __tablename__ = "consignment_contracts"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_consignment_contracts_code"),
        db.UniqueConstraint("inventory_item_id", name="uq_consignment_contracts_item"),
        db.Index("ix_consignment_contracts_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False)

    seller_customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    seller_name = db.Column(db.String(255), nullable=False)
    seller_id_card = db.Column(db.String(32), nullable=True)
    seller_phone = db.Column(db.String(32), nullable=True)
    seller_address = db.Column(db.Text, nullable=True)

    item_name = db.Column(db.String(255), nullable=False)
    serial = db.Column(db.String(128), nullable=True)
    condition = db.Column(db.Text, nullable=True)
    accessories = db.Column(db.Text, nullable=True)
    photos = db.Column(db.JSON, nullable=False, default=list)

    advance_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    net_to_seller = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    target_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="ACTIVE", index=True)

    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    seller = db.relationship("Customer", backref=db.backref("consignments", lazy=True))
    inventory_item = db.relationship("InventoryItem", foreign_keys=[inventory_item_id])

    def __repr__(self) -> str:
        return f"<ConsignmentContract id={self.id} code={self.code!r} status={self.status}>"

    def to_dict(self, *, include_item: bool = True) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "status": self.status,
            "seller_customer_id": self.seller_customer_id,
            "seller_name": self.seller_name,
            "seller_id_card": self.seller_id_card,
            "seller_phone": self.seller_phone,
            "seller_address": self.seller_address,
            "item_name": self.item_name,
            "serial": self.serial,
            "condition": self.condition,
            "accessories": self.accessories,
            "photos": self.photos or [],
            "advance_amount": money_json(self.advance_amount),
            "net_to_seller": money_json(self.net_to_seller),
            "target_price": money_json(self.target_price),
            "inventory_item_id": self.inventory_item_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_item:
            data["inventory_item"] = self.inventory_item.to_dict() if self.inventory_item else None
        return data
