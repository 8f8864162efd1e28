# Overview: Pure decision logic for order status transitions.

"""
Order state machine.

WHY: Several staff members act on the same order from different devices.
Whether a change is allowed depends on two tables: the global lifecycle
graph (tillflow.order_status) and the acting role's edge table
(tillflow.permissions). This module combines them and nothing else; it
never touches storage and never mutates the order it is given.

DECISION ORDER:
1. Current status terminal               -> InvalidTransition
2. Target is void and role has FullAccess -> allowed (administrative override)
3. Target not a next status of current    -> InvalidTransition
4. Role edge table lacks the edge         -> Forbidden
5. Otherwise                              -> order with status replaced

QUICK SALE:
pending -> completed | cancelled is gated by actions rather than role edges:
completing needs process_payment, cancelling needs sales.void. Overrides
apply to those checks.
"""

from __future__ import annotations

import logging
from typing import Mapping

from ..domain import OrderSnapshot
from ..errors import Forbidden, InvalidTransition, Result
from ..order_status import OrderStatus, is_legal_edge, is_terminal, parse_status
from ..permissions import can_transition, effective_permission, has_full_access, parse_role

logger = logging.getLogger(__name__)


# Action required to take each quick-sale edge
QUICK_SALE_ACTIONS: Mapping[OrderStatus, str] = {
    OrderStatus.COMPLETED: "process_payment",
    OrderStatus.CANCELLED: "sales.void",
}


class OrderStateMachine:
    """Combines the lifecycle graph with role edge tables."""

    def attempt_transition(
        self,
        order: OrderSnapshot,
        actor_role,
        target,
        *,
        overrides: Mapping[str, bool] | None = None,
    ) -> Result[OrderSnapshot]:
        current = order.status
        target_status = parse_status(target)

        if is_terminal(current):
            return Result.failure(InvalidTransition(
                f"Order {order.id} is {current.value} and cannot change",
                current, target_status or target,
            ))

        if target_status is None:
            return Result.failure(InvalidTransition(
                f"Unknown order status: {target!r}", current, target,
            ))

        if target_status == OrderStatus.VOID and has_full_access(actor_role):
            return Result.success(order.with_status(target_status))

        if not is_legal_edge(current, target_status):
            return Result.failure(InvalidTransition(
                f"Cannot move order {order.id} from {current.value} to {target_status.value}",
                current, target_status,
            ))

        if current == OrderStatus.PENDING:
            action = QUICK_SALE_ACTIONS[target_status]
            if parse_role(actor_role) is None or not effective_permission(actor_role, overrides, action):
                return Result.failure(Forbidden(
                    f"Role {_role_label(actor_role)} lacks {action}",
                    current, target_status,
                ))
            return Result.success(order.with_status(target_status))

        if not can_transition(actor_role, current, target_status):
            return Result.failure(Forbidden(
                f"Role {_role_label(actor_role)} may not move an order from "
                f"{current.value} to {target_status.value}",
                current, target_status,
            ))

        return Result.success(order.with_status(target_status))

    def is_permitted(self, actor_role, current, target, *, overrides=None) -> bool:
        """Grid helper: would attempt_transition succeed from `current`?"""
        current_status = parse_status(current)
        if current_status is None:
            return False
        snapshot = OrderSnapshot(id=0, shop_id=0, status=current_status)
        return self.attempt_transition(snapshot, actor_role, target, overrides=overrides).ok


def _role_label(role) -> str:
    parsed = parse_role(role)
    return parsed.value if parsed else repr(role)


order_state_machine = OrderStateMachine()
