# Overview: Order status values and the global legal-edge graph.

"""
Order lifecycle graph (authoritative business invariant).

WHY: The next-status sets below hold regardless of who is acting. Role
tables in tillflow.permissions narrow them further; neither may widen the
other except for the administrative void override handled in the state
machine.

Table-order flow:
    new -> accepted -> in_preparation -> ready -> served
        -> payment_requested -> paid -> closed
Quick-sale flow:
    pending -> completed | cancelled
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OrderStatus(str, Enum):
    NEW = "new"
    ACCEPTED = "accepted"
    IN_PREPARATION = "in_preparation"
    READY = "ready"
    SERVED = "served"
    PAYMENT_REQUESTED = "payment_requested"
    PAID = "paid"
    CLOSED = "closed"
    CANCELLED = "cancelled"
    VOID = "void"
    REFUNDED = "refunded"
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass(frozen=True)
class StatusConfig:
    value: OrderStatus
    label: str
    next_statuses: frozenset[OrderStatus]

    @property
    def is_terminal(self) -> bool:
        return not self.next_statuses


def _config(status: OrderStatus, label: str, *next_statuses: OrderStatus) -> StatusConfig:
    return StatusConfig(value=status, label=label, next_statuses=frozenset(next_statuses))


S = OrderStatus

ORDER_STATUSES: dict[OrderStatus, StatusConfig] = {
    S.NEW: _config(S.NEW, "New", S.ACCEPTED, S.CANCELLED),
    S.ACCEPTED: _config(S.ACCEPTED, "Accepted", S.IN_PREPARATION, S.CANCELLED),
    S.IN_PREPARATION: _config(S.IN_PREPARATION, "In Preparation", S.READY, S.CANCELLED),
    S.READY: _config(S.READY, "Ready", S.SERVED),
    S.SERVED: _config(S.SERVED, "Served", S.PAYMENT_REQUESTED),
    S.PAYMENT_REQUESTED: _config(S.PAYMENT_REQUESTED, "Bill Presented", S.PAID, S.CANCELLED),
    S.PAID: _config(S.PAID, "Paid", S.CLOSED),
    S.PENDING: _config(S.PENDING, "Pending", S.COMPLETED, S.CANCELLED),
    S.COMPLETED: _config(S.COMPLETED, "Completed"),
    S.CLOSED: _config(S.CLOSED, "Closed"),
    S.CANCELLED: _config(S.CANCELLED, "Cancelled"),
    S.VOID: _config(S.VOID, "Void"),
    S.REFUNDED: _config(S.REFUNDED, "Refunded"),
}

TERMINAL_STATUSES = frozenset(s for s, cfg in ORDER_STATUSES.items() if cfg.is_terminal)
KITCHEN_STATUSES = (S.NEW, S.ACCEPTED, S.IN_PREPARATION, S.READY)
QUICK_SALE_STATUSES = frozenset({S.PENDING, S.COMPLETED})
INITIAL_STATUS = S.NEW
QUICK_SALE_INITIAL_STATUS = S.PENDING


def parse_status(value) -> OrderStatus | None:
    """Coerce a raw value to OrderStatus, None when unknown."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def get_status_config(status: OrderStatus) -> StatusConfig:
    return ORDER_STATUSES[status]


def next_statuses(status: OrderStatus) -> frozenset[OrderStatus]:
    return ORDER_STATUSES[status].next_statuses


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_legal_edge(current: OrderStatus, target: OrderStatus) -> bool:
    """True iff target is a configured next status of current."""
    return target in next_statuses(current)
