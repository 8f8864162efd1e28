from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class StaffSession(db.Model):
    """
    Clock-in state of one staff member at one shop.

    WHY: A staff member may be clocked in on at most one device per shop.
    The row is keyed by (shop_id, staff_id) and overwritten when a later
    device claims the pair; the unique constraint is the final backstop
    against two concurrent admissions.

    LIFECYCLE:
    - clocked_in=True: admitted on device_id
    - clocked_in=False: released (logout, idle timeout, clock-out, device switch)
    """
    __tablename__ = "staff_sessions"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "staff_id", name="uq_staff_sessions_shop_staff"),
        db.Index("ix_staff_sessions_shop_clocked_in", "shop_id", "clocked_in"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)
    staff_id = db.Column(db.Integer, db.ForeignKey("shop_staff.id"), nullable=False)

    device_id = db.Column(db.String(128), nullable=False)

    # Role snapshotted at admission
    role = db.Column(db.String(32), nullable=True)

    clocked_in = db.Column(db.Boolean, nullable=False, default=False)
    clocked_in_at = db.Column(db.DateTime(timezone=True), nullable=True)
    clocked_out_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_activity_at = db.Column(db.DateTime(timezone=True), nullable=True)
    released_reason = db.Column(db.String(64), nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    shop = db.relationship("Shop", backref=db.backref("staff_sessions", lazy=True))
    staff = db.relationship("ShopStaff", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "staff_id": self.staff_id,
            "device_id": self.device_id,
            "role": self.role,
            "clocked_in": self.clocked_in,
            "clocked_in_at": to_utc_z(self.clocked_in_at) if self.clocked_in_at else None,
            "clocked_out_at": to_utc_z(self.clocked_out_at) if self.clocked_out_at else None,
            "last_activity_at": to_utc_z(self.last_activity_at) if self.last_activity_at else None,
            "released_reason": self.released_reason,
        }


class ClockInRequest(db.Model):
    """
    Manager approval gate in front of a clock-in.

    LIFECYCLE:
    - PENDING: PIN verified, waiting for a manager
    - APPROVED: may be completed into a StaffSession
    - DENIED: rejected; the staff member is remembered as not authorized
    """
    __tablename__ = "clock_in_requests"
    __table_args__ = (
        db.Index("ix_clock_in_requests_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)
    staff_id = db.Column(db.Integer, db.ForeignKey("shop_staff.id"), nullable=False, index=True)
    device_id = db.Column(db.String(128), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="PENDING")
    responded_by_staff_id = db.Column(db.Integer, db.ForeignKey("shop_staff.id"), nullable=True)
    responded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_dismissed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    staff = db.relationship("ShopStaff", foreign_keys=[staff_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "staff_id": self.staff_id,
            "device_id": self.device_id,
            "status": self.status,
            "responded_by_staff_id": self.responded_by_staff_id,
            "responded_at": to_utc_z(self.responded_at) if self.responded_at else None,
            "is_dismissed": self.is_dismissed,
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "created_at": to_utc_z(self.created_at),
        }
