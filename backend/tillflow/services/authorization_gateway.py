# Overview: Single entry point for "may this session do X?" questions.

"""
Authorization gateway.

WHY: Request handlers hold an ActorSession, not a role. The gateway reads
the role that was snapshotted at admission together with the staff member's
permission overrides and asks the permission model or the state machine.

Pure: never mutates the order, never touches storage.
"""

from __future__ import annotations

from ..domain import ActorSession, OrderSnapshot
from ..errors import Forbidden, Result
from ..permissions import can_manage_permissions as _can_manage_permissions
from ..permissions import effective_permission
from .order_state_machine import order_state_machine


def authorize(session: ActorSession, action: str) -> bool:
    return effective_permission(session.role, session.permission_overrides, action)


def require(session: ActorSession, action: str) -> None:
    """Raise Forbidden unless the session may perform `action`."""
    if not authorize(session, action):
        role = session.role.value if session.role else None
        raise Forbidden(f"Staff {session.staff_id} ({role}) lacks {action}")


def authorize_transition(session: ActorSession, order: OrderSnapshot, target) -> Result[OrderSnapshot]:
    if order.shop_id != session.shop_id:
        return Result.failure(Forbidden(
            f"Order {order.id} does not belong to shop {session.shop_id}",
            order.status, target,
        ))
    return order_state_machine.attempt_transition(
        order, session.role, target, overrides=session.permission_overrides,
    )


def can_manage_permissions(session: ActorSession) -> bool:
    return _can_manage_permissions(session.business_type, session.role, session.secondary_role)
