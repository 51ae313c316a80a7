from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Shop customer: depositor, buyer, or consignor (any combination).

    IDENTITY: id_card is the candidate key (unique when present). Buyers who
    only leave a phone number are matched by phone instead, so id_card is
    nullable.

    SEGMENTS are derived at read time from typed references
    (contracts.customer_id, inventory_items.buyer_customer_id,
    consignment_contracts.seller_customer_id), never stored.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("id_card", name="uq_customers_id_card"),
        db.Index("ix_customers_phone", "phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False, default="")
    id_card = db.Column(db.String(32), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)

    # Display id the customer gave us, and the push target resolved by LINE login
    line_id = db.Column(db.String(64), nullable=True)
    line_user_id = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r} id_card={self.id_card!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "id_card": self.id_card,
            "phone": self.phone,
            "address": self.address,
            "line_id": self.line_id,
            "line_user_id": self.line_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
