# Overview: Pure permission checks over role capabilities and per-staff overrides.

"""
Permission model.

DESIGN PRINCIPLES:
- Fail closed: unknown roles hold no actions and no transition edges
- Overrides win: a per-staff override decides its one key outright
- Pure: nothing here reads storage; callers pass the role and overrides
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from ..order_status import OrderStatus, parse_status
from .roles import BusinessType, Role, get_capabilities, parse_business_type, parse_role


MANAGE_PRODUCTS_PERMISSION = "products.manage"

# Roles allowed to write permission overrides for other staff, per business mode
PERMISSION_MANAGER_ROLES = MappingProxyType({
    BusinessType.TABLE_ORDER: frozenset({Role.MANAGER, Role.ADMINISTRATOR}),
    BusinessType.QUICK_CHECKOUT: frozenset({Role.ADMINISTRATOR}),
})

_EMPTY_TABLE: Mapping[OrderStatus, frozenset] = MappingProxyType({})


def role_default(role, action_key: str) -> bool:
    """Default grant for action_key from the role's capability set."""
    capabilities = get_capabilities(role)
    if capabilities is None:
        return False
    return capabilities.allows(action_key)


def has_permission(role, action_key: str) -> bool:
    """True iff the role holds action_key or holds full access."""
    return role_default(role, action_key)


def has_full_access(role) -> bool:
    capabilities = get_capabilities(role)
    return bool(capabilities and capabilities.has_full_access)


def effective_permission(role, overrides: Mapping[str, bool] | None, action_key: str) -> bool:
    """
    Resolve one permission for a staff member.

    overrides[key] when the key is present (True or False), otherwise the
    role default.
    """
    if overrides and action_key in overrides:
        return bool(overrides[action_key])
    return role_default(role, action_key)


def allowed_transitions(role) -> Mapping[OrderStatus, frozenset]:
    """Static transition table for a role; empty for unknown roles."""
    capabilities = get_capabilities(role)
    if capabilities is None:
        return _EMPTY_TABLE
    return capabilities.transitions


def can_transition(role, current, target) -> bool:
    current_status = parse_status(current)
    target_status = parse_status(target)
    if current_status is None or target_status is None:
        return False
    return target_status in allowed_transitions(role).get(current_status, frozenset())


def can_manage_permissions(business_type, role, secondary_role=None) -> bool:
    """
    Only Managers (table_order) and Administrators (quick_checkout) may
    change other staff members' permissions.
    """
    mode = parse_business_type(business_type)
    if mode is None:
        return False
    candidate = parse_role(secondary_role) if mode == BusinessType.QUICK_CHECKOUT else parse_role(role)
    return candidate in PERMISSION_MANAGER_ROLES[mode]


def can_toggle_permission(business_type, role, secondary_role, action_key: str) -> bool:
    """
    False when the permission is pinned for this role.

    Permission managers always keep products.manage.
    """
    if action_key == MANAGE_PRODUCTS_PERMISSION:
        return not can_manage_permissions(business_type, role, secondary_role)
    return True


def effective_permissions(role, overrides: Mapping[str, bool] | None, codes) -> dict[str, bool]:
    """Resolve every code in `codes`, for permission editors."""
    return {code: effective_permission(role, overrides, code) for code in codes}
