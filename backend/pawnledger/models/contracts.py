from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import money_json


class Contract(db.Model):
    """
    Deposit (pawn) contract.

    LIFECYCLE: ACTIVE -> RENEWED | REDEEMED | FORFEITED. Only ACTIVE rows
    change; renewal closes this row and starts a successor that points back
    through previous_contract_id.

    FEE SNAPSHOT: fee_config {doc_fee, storage_fee, care_fee, total} is fixed
    when the term starts and never recalculated.

    principal is mutable (cut-principal lowers it) and never negative.
    """
    __tablename__ = "contracts"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_contracts_code"),
        db.CheckConstraint("principal >= 0", name="ck_contracts_principal_non_negative"),
        db.Index("ix_contracts_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="DEPOSIT", index=True)
    status = db.Column(db.String(16), nullable=False, default="ACTIVE", index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    previous_contract_id = db.Column(db.Integer, db.ForeignKey("contracts.id"), nullable=True, index=True)

    principal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    fee_config = db.Column(db.JSON, nullable=False, default=dict)
    term_days = db.Column(db.Integer, nullable=False, default=15)

    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    due_date = db.Column(db.DateTime(timezone=True), nullable=False)

    asset_model = db.Column(db.String(255), nullable=True)
    asset_serial = db.Column(db.String(128), nullable=True)
    asset_condition = db.Column(db.Text, nullable=True)
    asset_accessories = db.Column(db.Text, nullable=True)
    storage_code = db.Column(db.String(32), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("contracts", lazy=True))
    previous_contract = db.relationship("Contract", remote_side=[id], backref=db.backref("renewals", lazy=True))
    images = db.relationship("ContractImage", backref="contract", lazy=True, order_by="ContractImage.id")
    action_logs = db.relationship("ContractActionLog", backref="contract", lazy=True, order_by="ContractActionLog.id")

    def __repr__(self) -> str:
        return f"<Contract id={self.id} code={self.code!r} status={self.status}>"

    def to_dict(self, *, include_children: bool = True) -> dict:
        principal = money_json(self.principal) or 0.0
        data = {
            "id": self.id,
            "code": self.code,
            "type": self.type,
            "status": self.status,
            "customer_id": self.customer_id,
            "previous_contract_id": self.previous_contract_id,
            "principal": principal,
            # Older screens still read security_deposit
            "security_deposit": principal,
            "fee_config": self.fee_config or {},
            "term_days": self.term_days,
            "start_date": to_utc_z(self.start_date),
            "due_date": to_utc_z(self.due_date),
            "asset": {
                "model_name": self.asset_model or "",
                "serial": self.asset_serial or "",
                "condition": self.asset_condition or "",
                "accessories": self.asset_accessories or "",
                "storage_code": self.storage_code or "",
            },
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_children:
            data["customer"] = self.customer.to_dict() if self.customer else None
            data["images"] = [img.url_or_data for img in self.images]
            data["logs"] = [log.to_dict() for log in self.action_logs]
        return data


class ContractImage(db.Model):
    __tablename__ = "contract_images"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    contract_id = db.Column(db.Integer, db.ForeignKey("contracts.id"), nullable=False, index=True)
    url_or_data = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)


class ContractActionLog(db.Model):
    """
    Append-only audit trail of contract lifecycle actions.

    ACTIONS: NEW_CONTRACT, RENEW_CONTRACT, REDEEM, CUT_PRINCIPAL, FORFEIT,
    NOTIFY_CUSTOMER_LINE

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "contract_action_logs"
    __table_args__ = (
        db.Index("ix_contract_logs_contract_created", "contract_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    contract_id = db.Column(db.Integer, db.ForeignKey("contracts.id"), nullable=False, index=True)
    action = db.Column(db.String(32), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    note = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "contract_id": self.contract_id,
            "action": self.action,
            "amount": money_json(self.amount),
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
