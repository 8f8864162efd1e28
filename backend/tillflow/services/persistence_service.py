# Overview: SQLAlchemy implementation of the persistence collaborator.

"""
SQL persistence for orders, staff and staff sessions.

WHY: The engine is storage-agnostic (tillflow.persistence). This is the
implementation the Flask application wires in.

INVARIANTS:
- Order status is only ever written by cas_update_order_status, an
  UPDATE ... WHERE id = :id AND status = :expected. rowcount tells the
  caller whether it won.
- The CAS write is flushed, not committed. It becomes durable together with
  the history row in append_status_history; a failure there rolls both back.
- Session rows are unique on (shop_id, staff_id); an IntegrityError on
  upsert is reported as SessionConflict.
- Every SQLAlchemyError is rolled back and re-raised as StorageError.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from types import MappingProxyType
from typing import Mapping

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..domain import ActorSession, OrderItemSnapshot, OrderSnapshot, ShopRecord, StaffRecord
from ..errors import StorageError
from ..extensions import db
from ..models import Order, OrderStatusChange, Shop, ShopStaff, StaffSession
from ..order_status import OrderStatus, parse_status
from ..permissions import BusinessType, Role, parse_business_type, parse_role
from ..persistence import SessionConflict, UpsertOutcome
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry

logger = logging.getLogger(__name__)


def order_to_snapshot(order: Order) -> OrderSnapshot:
    return OrderSnapshot(
        id=order.id,
        shop_id=order.shop_id,
        status=parse_status(order.status),
        items=tuple(
            OrderItemSnapshot(name=i.name, quantity=i.quantity, unit_price_cents=i.unit_price_cents)
            for i in order.items
        ),
        total_cents=order.total_cents,
        created_at=order.created_at,
    )


def staff_to_record(staff: ShopStaff) -> StaffRecord:
    return StaffRecord(
        id=staff.id,
        shop_id=staff.shop_id,
        name=staff.name,
        role=parse_role(staff.role),
        secondary_role=parse_role(staff.secondary_role),
        permission_overrides=MappingProxyType(dict(staff.permission_overrides or {})),
        accepted_at=staff.accepted_at,
        has_pin=staff.pin_hash is not None,
        authorization_status=staff.authorization_status,
    )


def shop_to_record(shop: Shop) -> ShopRecord:
    return ShopRecord(
        id=shop.id,
        name=shop.name,
        business_type=parse_business_type(shop.business_type) or BusinessType.TABLE_ORDER,
        idle_timeout_minutes=shop.idle_timeout_minutes,
    )


def session_to_actor(row: StaffSession) -> ActorSession:
    shop = row.shop
    staff = row.staff
    return ActorSession(
        shop_id=row.shop_id,
        staff_id=row.staff_id,
        device_id=row.device_id,
        role=parse_role(row.role),
        business_type=parse_business_type(shop.business_type) if shop else BusinessType.TABLE_ORDER,
        secondary_role=parse_role(staff.secondary_role) if staff else None,
        permission_overrides=MappingProxyType(dict(staff.permission_overrides or {})) if staff else MappingProxyType({}),
        clocked_in=bool(row.clocked_in),
        clocked_in_at=row.clocked_in_at,
        last_activity_at=row.last_activity_at,
    )


@contextmanager
def storage_errors(operation: str):
    """Roll back and wrap database failures as StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Storage failure during %s", operation)
        raise StorageError(f"{operation} failed") from exc


class SqlPersistence:
    """PersistenceGateway backed by the Flask-SQLAlchemy session."""

    # -- shops & staff --

    def get_shop(self, shop_id: int) -> ShopRecord | None:
        with storage_errors("get_shop"):
            shop = db.session.get(Shop, shop_id)
        return shop_to_record(shop) if shop else None

    def get_staff(self, shop_id: int, staff_id: int) -> StaffRecord | None:
        with storage_errors("get_staff"):
            staff = db.session.query(ShopStaff).filter_by(id=staff_id, shop_id=shop_id).first()
        return staff_to_record(staff) if staff else None

    def set_permission_overrides(
        self,
        shop_id: int,
        staff_id: int,
        overrides: Mapping[str, bool],
    ) -> StaffRecord:
        with storage_errors("set_permission_overrides"):
            staff = db.session.query(ShopStaff).filter_by(id=staff_id, shop_id=shop_id).first()
            if not staff:
                raise ValueError("Staff member not found")
            # Reassign so the JSON column is marked dirty
            staff.permission_overrides = {k: bool(v) for k, v in overrides.items()}
            db.session.commit()
            return staff_to_record(staff)

    def set_staff_role(
        self,
        shop_id: int,
        staff_id: int,
        role: Role,
        secondary_role: Role | None,
        *,
        clear_overrides: bool,
    ) -> StaffRecord:
        with storage_errors("set_staff_role"):
            staff = db.session.query(ShopStaff).filter_by(id=staff_id, shop_id=shop_id).first()
            if not staff:
                raise ValueError("Staff member not found")
            staff.role = role.value
            staff.secondary_role = secondary_role.value if secondary_role else None
            if clear_overrides:
                staff.permission_overrides = {}
            db.session.commit()
            return staff_to_record(staff)

    # -- orders --

    def get_order(self, order_id: int) -> OrderSnapshot | None:
        with storage_errors("get_order"):
            # Bypass the identity map so a racing writer's commit is visible
            db.session.expire_all()
            order = db.session.get(Order, order_id)
            return order_to_snapshot(order) if order else None

    def list_orders(self, shop_id: int, status: OrderStatus | None = None) -> list[OrderSnapshot]:
        with storage_errors("list_orders"):
            query = db.session.query(Order).filter_by(shop_id=shop_id)
            if status is not None:
                query = query.filter_by(status=status.value)
            return [order_to_snapshot(o) for o in query.order_by(Order.id).all()]

    def cas_update_order_status(
        self,
        order_id: int,
        expected_status: OrderStatus,
        new_status: OrderStatus,
    ) -> bool:
        with storage_errors("cas_update_order_status"):
            updated = (
                db.session.query(Order)
                .filter(Order.id == order_id, Order.status == expected_status.value)
                .update(
                    {"status": new_status.value, "updated_at": utcnow()},
                    synchronize_session=False,
                )
            )
        if updated != 1:
            logger.info(
                "CAS miss on order %s: expected %s -> %s",
                order_id, expected_status.value, new_status.value,
            )
            return False
        return True

    def append_status_history(
        self,
        order_id: int,
        status: OrderStatus,
        actor_staff_id: int | None,
        changed_at: datetime,
        *,
        old_status: OrderStatus | None = None,
    ) -> None:
        with storage_errors("append_status_history"):
            db.session.add(OrderStatusChange(
                order_id=order_id,
                old_status=old_status.value if old_status else None,
                new_status=status.value,
                actor_staff_id=actor_staff_id,
                changed_at=changed_at,
            ))
            db.session.commit()

    def get_status_history(self, order_id: int) -> list[OrderStatusChange]:
        with storage_errors("get_status_history"):
            return (
                db.session.query(OrderStatusChange)
                .filter_by(order_id=order_id)
                .order_by(OrderStatusChange.changed_at.asc(), OrderStatusChange.id.asc())
                .all()
            )

    # -- staff sessions --

    def get_session(self, shop_id: int, staff_id: int) -> ActorSession | None:
        with storage_errors("get_session"):
            row = db.session.query(StaffSession).filter_by(shop_id=shop_id, staff_id=staff_id).first()
            return session_to_actor(row) if row else None

    def list_sessions(self, shop_id: int | None = None, *, clocked_in: bool = True) -> list[ActorSession]:
        with storage_errors("list_sessions"):
            query = db.session.query(StaffSession).filter_by(clocked_in=clocked_in)
            if shop_id is not None:
                query = query.filter_by(shop_id=shop_id)
            return [session_to_actor(r) for r in query.order_by(StaffSession.id).all()]

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
        def _op():
            now = utcnow()
            row = lock_for_update(
                db.session.query(StaffSession).filter_by(shop_id=shop_id, staff_id=staff_id)
            ).first()
            if row is None:
                row = StaffSession(shop_id=shop_id, staff_id=staff_id, device_id=device_id)
                db.session.add(row)

            row.device_id = device_id
            row.clocked_in = clocked_in
            row.updated_at = now
            if clocked_in:
                row.role = role.value if role else None
                row.clocked_in_at = now
                row.last_activity_at = now
                row.clocked_out_at = None
                row.released_reason = None
            else:
                row.clocked_out_at = now
                row.released_reason = reason

            db.session.commit()
            return session_to_actor(row)

        with storage_errors("upsert_session"):
            try:
                return run_with_retry(_op)
            except IntegrityError:
                db.session.rollback()
                logger.warning("Session upsert conflict for shop %s staff %s", shop_id, staff_id)
                return SessionConflict(shop_id=shop_id, staff_id=staff_id)

    def touch_session(self, shop_id: int, staff_id: int, at: datetime) -> bool:
        with storage_errors("touch_session"):
            updated = (
                db.session.query(StaffSession)
                .filter_by(shop_id=shop_id, staff_id=staff_id, clocked_in=True)
                .update({"last_activity_at": at}, synchronize_session=False)
            )
            db.session.commit()
        return updated == 1
