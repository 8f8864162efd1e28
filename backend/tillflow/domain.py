# Overview: Immutable snapshots the decision engine reasons about.

"""
Domain snapshots.

WHY: The state machine and authorization gateway are pure functions. They
never hold SQLAlchemy rows; the persistence layer converts rows into these
frozen records and back. Applying a transition returns a new snapshot with
only the status replaced.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Mapping

from .order_status import OrderStatus
from .permissions import BusinessType, Role
from .time_utils import to_utc_z


@dataclass(frozen=True)
class OrderItemSnapshot:
    name: str
    quantity: int
    unit_price_cents: int


@dataclass(frozen=True)
class OrderSnapshot:
    id: int
    shop_id: int
    status: OrderStatus
    items: tuple[OrderItemSnapshot, ...] = ()
    total_cents: int = 0
    created_at: datetime | None = None

    def with_status(self, status: OrderStatus) -> "OrderSnapshot":
        return replace(self, status=status)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "status": self.status.value,
            "items": [
                {"name": i.name, "quantity": i.quantity, "unit_price_cents": i.unit_price_cents}
                for i in self.items
            ],
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
        }


@dataclass(frozen=True)
class StaffRecord:
    """What the engine needs to know about a staff member at one shop."""

    id: int
    shop_id: int
    name: str
    role: Role | None
    secondary_role: Role | None = None
    permission_overrides: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))
    accepted_at: datetime | None = None
    has_pin: bool = False
    authorization_status: str | None = None

    @property
    def invitation_accepted(self) -> bool:
        return self.accepted_at is not None


@dataclass(frozen=True)
class ActorSession:
    """
    Explicit session object passed through request handling.

    The role is snapshotted at admission so a concurrent role edit cannot
    change what an already clocked-in actor may do. Overrides are attached
    when the session is loaded for a request.
    """

    shop_id: int
    staff_id: int
    device_id: str
    role: Role | None
    business_type: BusinessType = BusinessType.TABLE_ORDER
    secondary_role: Role | None = None
    permission_overrides: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))
    clocked_in: bool = True
    clocked_in_at: datetime | None = None
    last_activity_at: datetime | None = None

    def with_overrides(self, overrides: Mapping[str, bool] | None) -> "ActorSession":
        return replace(self, permission_overrides=MappingProxyType(dict(overrides or {})))

    def to_dict(self) -> dict:
        return {
            "shop_id": self.shop_id,
            "staff_id": self.staff_id,
            "device_id": self.device_id,
            "role": self.role.value if self.role else None,
            "business_type": self.business_type.value,
            "clocked_in": self.clocked_in,
            "clocked_in_at": to_utc_z(self.clocked_in_at),
            "last_activity_at": to_utc_z(self.last_activity_at),
        }


@dataclass(frozen=True)
class StatusChange:
    """Append-only history entry emitted for every committed transition."""

    order_id: int
    old_status: OrderStatus
    new_status: OrderStatus
    actor_staff_id: int | None
    changed_at: datetime


@dataclass(frozen=True)
class ShopRecord:
    id: int
    name: str
    business_type: BusinessType
    idle_timeout_minutes: int | None = None
