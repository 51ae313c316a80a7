# Overview: Service-layer PIN login for the counter roles.

"""
Counter PIN authentication.

One shared PIN per role (ADMIN, STAFF), stored as a bcrypt hash in
access_pins. Login answers which role a PIN unlocks; there are no user
accounts or sessions.
"""

import re

import bcrypt

from ..extensions import db
from ..models import AccessPin

ROLES = ("ADMIN", "STAFF")

_PIN_RE = re.compile(r"^\d{4,8}$")


class PinValidationError(ValueError):
    """Raised when a PIN does not meet format requirements."""
    pass


def validate_pin_format(pin: str) -> None:
    if not isinstance(pin, str) or not _PIN_RE.match(pin):
        raise PinValidationError("PIN must be 4 to 8 digits")


def hash_pin(pin: str) -> str:
    """Hash a PIN using bcrypt with cost factor 12."""
    validate_pin_format(pin)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(pin.encode("utf-8"), salt).decode("utf-8")


def verify_pin(pin: str, pin_hash: str) -> bool:
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        return False


def set_pin(role: str, pin: str) -> AccessPin:
    role = (role or "").strip().upper()
    if role not in ROLES:
        raise PinValidationError(f"role must be one of {', '.join(ROLES)}")

    pin_hash = hash_pin(pin)
    record = db.session.query(AccessPin).filter_by(role=role).first()
    if record:
        record.pin_hash = pin_hash
    else:
        record = AccessPin(role=role, pin_hash=pin_hash)
        db.session.add(record)
    db.session.commit()
    return record


def authenticate_pin(pin) -> str | None:
    """Role unlocked by this PIN, or None."""
    if not isinstance(pin, str) or not pin:
        return None
    # ADMIN first so a shared PIN resolves to the higher role
    records = db.session.query(AccessPin).all()
    for record in sorted(records, key=lambda r: ROLES.index(r.role) if r.role in ROLES else len(ROLES)):
        if verify_pin(pin, record.pin_hash):
            return record.role
    return None
