# Overview: Service-layer operations for order status changes; decision, CAS write, history.

"""
Order Status Service

WHY: The state machine decides; this module makes the decision durable.
A transition is read -> decide -> compare-and-swap -> append history. If
another staff member changed the order between the read and the write, the
CAS misses and the caller gets StaleState. With retry_on_stale the service
re-reads once and decides again against the fresh status, so a request
that is still legal after the race goes through and one that is not gets
the real reason (usually InvalidTransition).

Storage failures propagate as StorageError and are never retried here.
"""

from __future__ import annotations

import logging

from ..domain import ActorSession, OrderSnapshot
from ..errors import Forbidden, InvalidTransition, Result, StaleState
from ..order_status import OrderStatus, parse_status
from ..persistence import PersistenceGateway
from ..time_utils import utcnow
from . import authorization_gateway

logger = logging.getLogger(__name__)


END_OF_DAY_PERMISSION = "financial.end_of_day"


def commit_transition(
    current: OrderSnapshot,
    decided: OrderSnapshot,
    session: ActorSession,
    *,
    persistence: PersistenceGateway,
) -> Result[OrderSnapshot]:
    """CAS the decided status in and append the history entry."""
    won = persistence.cas_update_order_status(current.id, current.status, decided.status)
    if not won:
        return Result.failure(StaleState(
            f"Order {current.id} is no longer {current.status.value}",
            current.status, decided.status,
        ))

    persistence.append_status_history(
        current.id,
        decided.status,
        session.staff_id,
        utcnow(),
        old_status=current.status,
    )
    logger.info(
        "Order %s %s -> %s by staff %s",
        current.id, current.status.value, decided.status.value, session.staff_id,
    )
    return Result.success(decided)


def transition_order(
    order_id: int,
    session: ActorSession,
    target,
    *,
    persistence: PersistenceGateway,
    retry_on_stale: bool = True,
) -> Result[OrderSnapshot]:
    """
    Move an order to `target` on behalf of a clocked-in staff member.

    Returns a Result carrying the new snapshot or an InvalidTransition,
    Forbidden or StaleState error.
    """
    attempts = 2 if retry_on_stale else 1
    result: Result[OrderSnapshot] | None = None

    for _ in range(attempts):
        order = persistence.get_order(order_id)
        if order is None:
            return Result.failure(InvalidTransition(f"Order {order_id} not found", None, target))

        decision = authorization_gateway.authorize_transition(session, order, target)
        if not decision.ok:
            return decision

        result = commit_transition(order, decision.value, session, persistence=persistence)
        if result.ok or not isinstance(result.error, StaleState):
            return result
        logger.info("Stale status on order %s; re-evaluating", order_id)

    return result


def close_paid_orders(
    shop_id: int,
    session: ActorSession,
    *,
    persistence: PersistenceGateway,
) -> list[OrderSnapshot]:
    """
    End-of-day close: move every paid order of the shop to closed.

    Orders that change concurrently are skipped. Raises Forbidden without
    financial.end_of_day.
    """
    if session.shop_id != shop_id:
        raise Forbidden(f"Staff {session.staff_id} is not clocked in at shop {shop_id}")
    authorization_gateway.require(session, END_OF_DAY_PERMISSION)

    closed = []
    for order in persistence.list_orders(shop_id, OrderStatus.PAID):
        result = commit_transition(
            order, order.with_status(OrderStatus.CLOSED), session, persistence=persistence,
        )
        if result.ok:
            closed.append(result.value)
        else:
            logger.info("Skipping order %s at close: %s", order.id, result.error)
    return closed


def get_status_history(order_id: int, *, persistence) -> list[dict]:
    return [change.to_dict() for change in persistence.get_status_history(order_id)]


def list_orders(shop_id: int, status=None, *, persistence: PersistenceGateway) -> list[OrderSnapshot]:
    parsed = parse_status(status) if status is not None else None
    if status is not None and parsed is None:
        raise ValueError(f"Unknown order status: {status}")
    return persistence.list_orders(shop_id, parsed)
