# Overview: Service-layer operations for staff permissions; owns the security event audit trail.

"""
Permission Overrides and Security Event Logging

WHY: Role defaults come from the capability tables; per-staff overrides are
stored on ShopStaff.permission_overrides. Only permission managers may write
them, and every write (granted or refused) is logged.

DESIGN PRINCIPLES:
- Fail closed: unknown keys are rejected, unknown roles hold nothing
- Overrides are replaced whole, never merged in place
- A role change clears all overrides for that staff member
"""

from __future__ import annotations

import logging

from ..domain import ActorSession, StaffRecord
from ..errors import Forbidden
from ..extensions import db
from ..models import SecurityEvent
from ..permissions import (
    BusinessType,
    active_role,
    can_toggle_permission,
    effective_permissions,
    get_all_permission_codes,
    parse_role,
    validate_permission_code,
)
from ..persistence import PersistenceGateway
from ..time_utils import utcnow
from . import authorization_gateway

logger = logging.getLogger(__name__)


class PermissionOverrideError(ValueError):
    """Raised for invalid permission override writes."""
    pass


def log_security_event(
    staff_id: int | None,
    event_type: str,
    success: bool,
    shop_id: int | None = None,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    device_id: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PIN_FAILED
    - PIN_SUCCESS
    - PERMISSION_DENIED
    - PERMISSION_OVERRIDE_CHANGED
    - ROLE_CHANGED
    - SESSION_ADMITTED
    - SESSION_RELEASED
    - CLOCK_IN_REQUESTED
    """
    event = SecurityEvent(
        shop_id=shop_id,
        staff_id=staff_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        device_id=device_id,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def _deny(requester: ActorSession, action: str, resource: str, reason: str) -> Forbidden:
    log_security_event(
        requester.staff_id,
        "PERMISSION_DENIED",
        False,
        shop_id=requester.shop_id,
        resource=resource,
        action=action,
        reason=reason,
        device_id=requester.device_id,
    )
    return Forbidden(reason)


def get_staff_permissions(
    shop_id: int,
    staff_id: int,
    *,
    persistence: PersistenceGateway,
) -> dict:
    """
    Effective permission map for a permission editor.

    Returns {"role", "overrides", "permissions": {code: bool}, "locked": [codes]}.
    """
    staff = persistence.get_staff(shop_id, staff_id)
    if staff is None:
        raise PermissionOverrideError("Staff member not found")
    shop = persistence.get_shop(shop_id)
    business_type = shop.business_type if shop else BusinessType.TABLE_ORDER

    role = active_role(business_type, staff.role, staff.secondary_role)
    codes = get_all_permission_codes()
    return {
        "role": role.value if role else None,
        "overrides": dict(staff.permission_overrides),
        "permissions": effective_permissions(role, staff.permission_overrides, codes),
        "locked": [
            code for code in codes
            if not can_toggle_permission(business_type, staff.role, staff.secondary_role, code)
        ],
    }


def update_permission_override(
    shop_id: int,
    staff_id: int,
    key: str,
    value: bool | None,
    requester: ActorSession,
    *,
    persistence: PersistenceGateway,
) -> StaffRecord:
    """
    Set (True/False) or clear (None) one override for a staff member.

    Raises Forbidden unless the requester may manage permissions in this
    shop. Raises PermissionOverrideError for unknown keys, locked keys and
    missing staff.
    """
    resource = f"staff:{staff_id}"
    if requester.shop_id != shop_id:
        raise _deny(requester, "update_permission_override", resource, "Requester belongs to another shop")
    if not authorization_gateway.can_manage_permissions(requester):
        raise _deny(requester, "update_permission_override", resource, "Only permission managers may change permissions")

    if not validate_permission_code(key):
        raise PermissionOverrideError(f"Unknown permission: {key}")

    staff = persistence.get_staff(shop_id, staff_id)
    if staff is None:
        raise PermissionOverrideError("Staff member not found")

    if not can_toggle_permission(requester.business_type, staff.role, staff.secondary_role, key):
        raise PermissionOverrideError(f"Permission {key} cannot be changed for this role")

    overrides = dict(staff.permission_overrides)
    if value is None:
        overrides.pop(key, None)
    else:
        overrides[key] = bool(value)

    updated = persistence.set_permission_overrides(shop_id, staff_id, overrides)

    log_security_event(
        requester.staff_id,
        "PERMISSION_OVERRIDE_CHANGED",
        True,
        shop_id=shop_id,
        resource=resource,
        action=key,
        reason="cleared" if value is None else f"set to {bool(value)}",
        device_id=requester.device_id,
    )
    logger.info("Staff %s set %s=%s for staff %s in shop %s", requester.staff_id, key, value, staff_id, shop_id)
    return updated


def change_staff_role(
    shop_id: int,
    staff_id: int,
    role,
    secondary_role,
    requester: ActorSession,
    *,
    persistence: PersistenceGateway,
) -> StaffRecord:
    """
    Change a staff member's roles and clear their overrides.

    Sessions already clocked in keep the role snapshotted at admission
    until they are admitted again.
    """
    resource = f"staff:{staff_id}"
    if requester.shop_id != shop_id:
        raise _deny(requester, "change_staff_role", resource, "Requester belongs to another shop")
    if not authorization_gateway.can_manage_permissions(requester):
        raise _deny(requester, "change_staff_role", resource, "Only permission managers may change roles")

    new_role = parse_role(role)
    if new_role is None:
        raise PermissionOverrideError(f"Unknown role: {role}")
    new_secondary = None
    if secondary_role is not None:
        new_secondary = parse_role(secondary_role)
        if new_secondary is None:
            raise PermissionOverrideError(f"Unknown role: {secondary_role}")

    if persistence.get_staff(shop_id, staff_id) is None:
        raise PermissionOverrideError("Staff member not found")

    updated = persistence.set_staff_role(shop_id, staff_id, new_role, new_secondary, clear_overrides=True)

    log_security_event(
        requester.staff_id,
        "ROLE_CHANGED",
        True,
        shop_id=shop_id,
        resource=resource,
        action="change_staff_role",
        reason=f"{new_role.value}/{new_secondary.value if new_secondary else '-'}",
        device_id=requester.device_id,
    )
    return updated
