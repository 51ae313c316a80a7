from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import money_json


class LedgerCategory:
    """Categories written by the shop's own operations."""

    DEPOSIT_PRINCIPAL_OUT = "DEPOSIT_PRINCIPAL_OUT"
    RENEW_FEE = "RENEW_FEE"
    REDEEM = "REDEEM"
    CUT_PRINCIPAL = "CUT_PRINCIPAL"

    CONSIGNMENT_ADVANCE_OUT = "CONSIGNMENT_ADVANCE_OUT"
    CONSIGNMENT_SALE_IN = "CONSIGNMENT_SALE_IN"
    CONSIGNMENT_PAYOUT_OUT = "CONSIGNMENT_PAYOUT_OUT"
    CONSIGNMENT_COMMISSION_FEE = "CONSIGNMENT_COMMISSION_FEE"

    INVENTORY_BUY_IN = "INVENTORY_BUY_IN"
    INVENTORY_SALE = "INVENTORY_SALE"

    GENERAL = "GENERAL"

    ALL = frozenset({
        DEPOSIT_PRINCIPAL_OUT, RENEW_FEE, REDEEM, CUT_PRINCIPAL,
        CONSIGNMENT_ADVANCE_OUT, CONSIGNMENT_SALE_IN, CONSIGNMENT_PAYOUT_OUT, CONSIGNMENT_COMMISSION_FEE,
        INVENTORY_BUY_IN, INVENTORY_SALE, GENERAL,
    })


class CashbookEntry(db.Model):
    """
    One money movement.

    IMMUTABLE: Rows are appended and never updated or deleted.

    BALANCE: sum(amount of IN) - sum(amount of OUT) over any period.
    profit is recorded independently and is not derived from amount.

    LINKS: contract_id or inventory_item_id (at most one in practice),
    both null for general entries.
    """
    __tablename__ = "cashbook_entries"
    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_cashbook_entries_amount_non_negative"),
        db.Index("ix_cashbook_entries_created", "created_at"),
        db.Index("ix_cashbook_entries_type_created", "type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(8), nullable=False)  # IN, OUT
    category = db.Column(db.String(64), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    profit = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    description = db.Column(db.Text, nullable=True)

    contract_id = db.Column(db.Integer, db.ForeignKey("contracts.id"), nullable=True, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=True, index=True)
    # Buyer of a sale row; one per sale so every buyer of a multi-unit item is kept
    buyer_customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    contract = db.relationship("Contract", backref=db.backref("cashbook_entries", lazy=True))
    inventory_item = db.relationship("InventoryItem", backref=db.backref("cashbook_entries", lazy=True))

    def __repr__(self) -> str:
        return f"<CashbookEntry id={self.id} {self.type} {self.category} {self.amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "category": self.category,
            "amount": money_json(self.amount),
            "profit": money_json(self.profit),
            "description": self.description,
            "contract_id": self.contract_id,
            "inventory_item_id": self.inventory_item_id,
            "buyer_customer_id": self.buyer_customer_id,
            "contract_code": self.contract.code if self.contract else None,
            "inventory_title": self.inventory_item.name if self.inventory_item else None,
            "created_at": to_utc_z(self.created_at),
        }
