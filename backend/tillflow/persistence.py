# Overview: Contract the engine requires from its persistence collaborator.

"""
Persistence collaborator protocol.

The decision engine only ever talks to storage through these calls. The
SQLAlchemy implementation lives in tillflow.services.persistence_service;
another backend only has to honor the same contract:

- cas_update_order_status is a compare-and-swap on (order_id, expected
  status). Of two writers racing from the same source status exactly one
  gets True.
- A successful status write becomes durable together with the history entry
  appended right after it.
- upsert_session is keyed by (shop_id, staff_id); a uniqueness violation is
  reported as SessionConflict rather than raised.
- Storage failures surface as tillflow.errors.StorageError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Protocol, Union

from .domain import ActorSession, OrderSnapshot, ShopRecord, StaffRecord
from .order_status import OrderStatus
from .permissions import Role


@dataclass(frozen=True)
class SessionConflict:
    """Another writer claimed the (shop, staff) session row concurrently."""

    shop_id: int
    staff_id: int


UpsertOutcome = Union[ActorSession, SessionConflict]


class PersistenceGateway(Protocol):
    def get_shop(self, shop_id: int) -> ShopRecord | None:
        ...

    def get_order(self, order_id: int) -> OrderSnapshot | None:
        ...

    def list_orders(self, shop_id: int, status: OrderStatus | None = None) -> list[OrderSnapshot]:
        ...

    def cas_update_order_status(
        self,
        order_id: int,
        expected_status: OrderStatus,
        new_status: OrderStatus,
    ) -> bool:
        ...

    def append_status_history(
        self,
        order_id: int,
        status: OrderStatus,
        actor_staff_id: int | None,
        changed_at: datetime,
        *,
        old_status: OrderStatus | None = None,
    ) -> None:
        ...

    def get_status_history(self, order_id: int) -> list:
        ...

    def get_staff(self, shop_id: int, staff_id: int) -> StaffRecord | None:
        ...

    def set_permission_overrides(
        self,
        shop_id: int,
        staff_id: int,
        overrides: Mapping[str, bool],
    ) -> StaffRecord:
        ...

    def set_staff_role(
        self,
        shop_id: int,
        staff_id: int,
        role: Role,
        secondary_role: Role | None,
        *,
        clear_overrides: bool,
    ) -> StaffRecord:
        ...

    def get_session(self, shop_id: int, staff_id: int) -> ActorSession | None:
        ...

    def list_sessions(self, shop_id: int | None = None, *, clocked_in: bool = True) -> list[ActorSession]:
        ...

    def upsert_session(
        self,
        shop_id: int,
        staff_id: int,
        device_id: str,
        clocked_in: bool,
        *,
        role: Role | None = None,
        reason: str | None = None,
    ) -> UpsertOutcome:
        ...

    def touch_session(self, shop_id: int, staff_id: int, at: datetime) -> bool:
        ...
