from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class AccessPin(db.Model):
    """
    Shared counter PIN per role (ADMIN, STAFF).

    pin_hash is a bcrypt hash; the plain PIN is never stored.
    """
    __tablename__ = "access_pins"
    __table_args__ = (
        db.UniqueConstraint("role", name="uq_access_pins_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    role = db.Column(db.String(16), nullable=False)
    pin_hash = db.Column(db.String(255), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "updated_at": to_utc_z(self.updated_at),
        }
