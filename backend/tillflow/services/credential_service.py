# Overview: Service-layer operations for staff PINs; hashing, validation and verification.

"""
Staff PIN Credentials

WHY: Terminals are shared, so staff identify themselves with a short
per-shop PIN. PINs are low entropy, hence bcrypt (salted, slow, constant
time compare) rather than a fast hash.

SECURITY:
- Only the bcrypt hash is stored (ShopStaff.pin_hash)
- verify_pin never raises for a wrong PIN; it returns None
- Setting a PIN marks the staff invitation as accepted
"""

from __future__ import annotations

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import ShopStaff
from ..time_utils import utcnow

DEFAULT_PIN_LENGTH = 4
DEFAULT_PIN_HASH_ROUNDS = 10


class PinValidationError(ValueError):
    """Raised when a PIN doesn't meet requirements."""
    pass


def _pin_length() -> int:
    return int(current_app.config.get("PIN_LENGTH", DEFAULT_PIN_LENGTH))


def validate_pin(pin: str, length: int | None = None) -> None:
    """
    Validate a new PIN.

    Requirements:
    - Exactly `length` characters (PIN_LENGTH, default 4)
    - Digits only
    - Not the same digit repeated (1111)
    - Not a straight run up or down (1234, 4321)

    Raises PinValidationError if requirements not met.
    """
    length = length or _pin_length()
    if pin is None or len(pin) != length:
        raise PinValidationError(f"PIN must be exactly {length} digits")

    if not pin.isdigit():
        raise PinValidationError("PIN must contain digits only")

    if len(set(pin)) == 1:
        raise PinValidationError("PIN cannot be the same digit repeated")

    steps = {int(b) - int(a) for a, b in zip(pin, pin[1:])}
    if steps == {1} or steps == {-1}:
        raise PinValidationError("PIN cannot be a sequence")


def hash_pin(pin: str) -> str:
    """Validate and bcrypt-hash a PIN for storage."""
    validate_pin(pin)
    rounds = int(current_app.config.get("PIN_HASH_ROUNDS", DEFAULT_PIN_HASH_ROUNDS))
    hashed = bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def check_pin(pin: str, pin_hash: str | None) -> bool:
    if not pin or not pin_hash:
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def get_staff(shop_id: int, staff_id: int) -> ShopStaff | None:
    return db.session.query(ShopStaff).filter_by(id=staff_id, shop_id=shop_id).first()


def verify_pin(shop_id: int, staff_id: int, pin: str) -> ShopStaff | None:
    """
    Return the staff member when `pin` matches their PIN at this shop.

    None for an unknown staff member, a staff member without a PIN, or a
    wrong PIN.
    """
    staff = get_staff(shop_id, staff_id)
    if staff is None or staff.pin_hash is None:
        return None
    if not check_pin((pin or "").strip(), staff.pin_hash):
        return None
    return staff


def find_staff_by_pin(shop_id: int, pin: str, staff_ids=None) -> ShopStaff | None:
    """First staff member of the shop (optionally among staff_ids) whose PIN matches."""
    query = db.session.query(ShopStaff).filter(
        ShopStaff.shop_id == shop_id,
        ShopStaff.pin_hash.isnot(None),
    )
    if staff_ids is not None:
        query = query.filter(ShopStaff.id.in_(list(staff_ids)))
    pin = (pin or "").strip()
    for staff in query.order_by(ShopStaff.id).all():
        if check_pin(pin, staff.pin_hash):
            return staff
    return None


def set_pin(shop_id: int, staff_id: int, pin: str) -> ShopStaff:
    """
    Set or replace a staff member's PIN.

    The first PIN accepts the shop invitation.
    """
    staff = get_staff(shop_id, staff_id)
    if not staff:
        raise ValueError("Staff member not found")

    staff.pin_hash = hash_pin(pin)
    if staff.accepted_at is None:
        staff.accepted_at = utcnow()
    db.session.commit()
    return staff


def has_pin(shop_id: int, staff_id: int) -> bool:
    staff = get_staff(shop_id, staff_id)
    return bool(staff and staff.pin_hash)
