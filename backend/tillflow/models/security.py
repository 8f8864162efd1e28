from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class SecurityEvent(db.Model):
    """
    Security event audit log scoped to a shop.

    WHY: Track PIN failures, permission denials, session admissions and
    releases, and permission override changes.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_staff_type", "staff_id", "event_type"),
        db.Index("ix_security_events_shop_occurred", "shop_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("shop_staff.id"), nullable=True, index=True)

    # Event classification
    event_type = db.Column(db.String(64), nullable=False, index=True)  # PIN_FAILED, PERMISSION_DENIED, SESSION_ADMITTED, etc.
    resource = db.Column(db.String(128), nullable=True)  # e.g., "order:42"
    action = db.Column(db.String(64), nullable=True)     # e.g., "mark_served"

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    device_id = db.Column(db.String(128), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "staff_id": self.staff_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "device_id": self.device_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
