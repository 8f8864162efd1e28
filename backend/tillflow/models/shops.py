from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Shop(db.Model):
    """
    A tenant shop.

    WHY: Business type decides which role taxonomy applies to staff and
    which order flow (table service or quick sale) the shop runs.
    """
    __tablename__ = "shops"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)

    # table_order | quick_checkout
    business_type = db.Column(db.String(32), nullable=False, default="table_order")

    # Overrides Config.STAFF_IDLE_TIMEOUT_MINUTES when set
    idle_timeout_minutes = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "business_type": self.business_type,
            "idle_timeout_minutes": self.idle_timeout_minutes,
            "created_at": to_utc_z(self.created_at),
        }


class ShopStaff(db.Model):
    """
    Staff membership of one person at one shop.

    WHY: Role and permission overrides are per shop. A PIN is set when the
    invitation is accepted; no session may be admitted before accepted_at.

    role            table_order taxonomy (manager, waiter, chef, runner)
    secondary_role  quick_checkout taxonomy (cashier, supervisor, manager, administrator)
    """
    __tablename__ = "shop_staff"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "email", name="uq_shop_staff_shop_email"),
        db.Index("ix_shop_staff_shop", "shop_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)

    # Linked account, set once the invitation is accepted
    user_id = db.Column(db.String(64), nullable=True, index=True)

    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=True)

    role = db.Column(db.String(32), nullable=False, default="waiter")
    secondary_role = db.Column(db.String(32), nullable=True)

    # {permission_key: bool}; absent key falls back to the role default
    permission_overrides = db.Column(db.JSON, nullable=False, default=dict)

    # Bcrypt hashed PIN
    pin_hash = db.Column(db.String(255), nullable=True)

    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Clock-in approval memory: None (ask), "yes", "no"
    authorization_status = db.Column(db.String(8), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    shop = db.relationship("Shop", backref=db.backref("staff", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "secondary_role": self.secondary_role,
            "permission_overrides": dict(self.permission_overrides or {}),
            "has_pin": self.pin_hash is not None,
            "accepted_at": to_utc_z(self.accepted_at) if self.accepted_at else None,
            "authorization_status": self.authorization_status,
            "created_at": to_utc_z(self.created_at),
        }
