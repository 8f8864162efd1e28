# Overview: Role capability sets for both business modes.

"""
Role capabilities.

WHY: The shop can run as a table-order restaurant (manager, waiter, chef,
runner) or as a quick-checkout counter (cashier, supervisor, manager,
administrator). Rather than two parallel tables, every role is one
RoleCapabilities record: the action keys it holds by default, the order
transition edges it may drive, and the business modes it belongs to. A new
business mode adds records here, not a new table.

Chefs work the kitchen display, which must not sign itself out; their
record carries idle_timeout_exempt.

FullAccess is an explicit variant of the action set. Roles holding it pass
every action check and may void any non-terminal order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

from ..order_status import OrderStatus


class Role(str, Enum):
    MANAGER = "manager"
    WAITER = "waiter"
    CHEF = "chef"
    RUNNER = "runner"
    CASHIER = "cashier"
    SUPERVISOR = "supervisor"
    ADMINISTRATOR = "administrator"


class BusinessType(str, Enum):
    TABLE_ORDER = "table_order"
    QUICK_CHECKOUT = "quick_checkout"


class FullAccess:
    """Singleton marker: the role holds every action key."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "FULL_ACCESS"


FULL_ACCESS = FullAccess()

ActionSet = Union[frozenset, FullAccess]
TransitionTable = Mapping[OrderStatus, frozenset]


@dataclass(frozen=True)
class RoleCapabilities:
    role: Role
    actions: ActionSet
    transitions: TransitionTable
    business_types: frozenset = field(default_factory=frozenset)
    idle_timeout_exempt: bool = False

    @property
    def has_full_access(self) -> bool:
        return isinstance(self.actions, FullAccess)

    def allows(self, action_key: str) -> bool:
        if isinstance(self.actions, FullAccess):
            return True
        return action_key in self.actions


def _edges(table: dict) -> TransitionTable:
    return MappingProxyType({src: frozenset(dst) for src, dst in table.items()})


S = OrderStatus

_SUPERVISING_EDGES = _edges({
    S.NEW: {S.ACCEPTED, S.VOID},
    S.ACCEPTED: {S.IN_PREPARATION, S.VOID},
    S.IN_PREPARATION: {S.READY, S.VOID},
    S.READY: {S.SERVED, S.VOID},
    S.SERVED: {S.PAYMENT_REQUESTED, S.VOID},
    S.PAYMENT_REQUESTED: {S.PAID, S.VOID},
})

_BOTH_MODES = frozenset({BusinessType.TABLE_ORDER, BusinessType.QUICK_CHECKOUT})

ROLE_CAPABILITIES: Mapping[Role, RoleCapabilities] = MappingProxyType({
    Role.MANAGER: RoleCapabilities(
        role=Role.MANAGER,
        actions=FULL_ACCESS,
        transitions=_SUPERVISING_EDGES,
        business_types=_BOTH_MODES,
    ),
    Role.SUPERVISOR: RoleCapabilities(
        role=Role.SUPERVISOR,
        actions=FULL_ACCESS,
        transitions=_SUPERVISING_EDGES,
        business_types=frozenset({BusinessType.QUICK_CHECKOUT}),
    ),
    Role.ADMINISTRATOR: RoleCapabilities(
        role=Role.ADMINISTRATOR,
        actions=FULL_ACCESS,
        transitions=_SUPERVISING_EDGES,
        business_types=_BOTH_MODES,
    ),
    Role.WAITER: RoleCapabilities(
        role=Role.WAITER,
        actions=frozenset({
            "take_order",
            "view_orders",
            "mark_served",
            "request_payment",
            "process_payment",
            "view_menu",
        }),
        transitions=_edges({
            S.NEW: {S.ACCEPTED},
            S.SERVED: {S.PAYMENT_REQUESTED},
            S.PAYMENT_REQUESTED: {S.PAID},
        }),
        business_types=frozenset({BusinessType.TABLE_ORDER}),
    ),
    Role.CHEF: RoleCapabilities(
        role=Role.CHEF,
        actions=frozenset({
            "view_kitchen_orders",
            "accept_order",
            "start_preparation",
            "mark_ready",
        }),
        transitions=_edges({
            S.NEW: {S.ACCEPTED},
            S.ACCEPTED: {S.IN_PREPARATION},
            S.IN_PREPARATION: {S.READY},
        }),
        business_types=frozenset({BusinessType.TABLE_ORDER}),
        idle_timeout_exempt=True,
    ),
    Role.RUNNER: RoleCapabilities(
        role=Role.RUNNER,
        actions=frozenset({"view_ready_orders", "mark_served"}),
        transitions=_edges({S.READY: {S.SERVED}}),
        business_types=frozenset({BusinessType.TABLE_ORDER}),
    ),
    Role.CASHIER: RoleCapabilities(
        role=Role.CASHIER,
        actions=frozenset({"process_payment", "view_orders"}),
        transitions=_edges({
            S.SERVED: {S.PAYMENT_REQUESTED},
            S.PAYMENT_REQUESTED: {S.PAID},
        }),
        business_types=frozenset({BusinessType.QUICK_CHECKOUT}),
    ),
})

# Default idle-timeout exemptions, from the capability records
IDLE_EXEMPT_ROLES = frozenset(r for r, caps in ROLE_CAPABILITIES.items() if caps.idle_timeout_exempt)


def parse_role(value) -> Role | None:
    """Coerce a raw role value, None when it is not a known role."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def parse_business_type(value) -> BusinessType | None:
    if isinstance(value, BusinessType):
        return value
    try:
        return BusinessType(value)
    except ValueError:
        return None


def get_capabilities(role) -> RoleCapabilities | None:
    parsed = parse_role(role)
    if parsed is None:
        return None
    return ROLE_CAPABILITIES.get(parsed)


def active_role(business_type, role, secondary_role=None) -> Role | None:
    """
    Pick the role that applies in a shop of the given business type.

    Staff records carry a table-order role and an optional quick-checkout
    role. Quick-checkout shops use the secondary role when present. Returns
    None when the role does not belong to the shop's business type.
    """
    mode = parse_business_type(business_type) or BusinessType.TABLE_ORDER
    if mode == BusinessType.QUICK_CHECKOUT:
        picked = parse_role(secondary_role) or parse_role(role)
    else:
        picked = parse_role(role)

    caps = ROLE_CAPABILITIES.get(picked) if picked else None
    if caps is None or mode not in caps.business_types:
        return None
    return picked
