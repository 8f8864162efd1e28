# Overview: Service-layer operations for clock-in approval; PIN entry to admitted session.

"""
Clock-In Approval Service

WHY: A staff member entering their PIN on a terminal does not clock in by
themselves. A manager approves the first clock-in; the answer is remembered
on ShopStaff.authorization_status so later clock-ins go straight through
until the staff member finishes for the day.

FLOW:
    request_clock_in      PIN checked; request PENDING or auto-APPROVED
    approve / deny        manager decision (approve needs the manager's PIN)
    complete_clock_in     APPROVED request admitted through the session registry
    finish_for_today      own PIN or a manager PIN ends the shift

Auto-approval: manager-equivalent roles for the shop's business type, or
staff already authorized ("yes"). Staff denied ("no") are refused.
Every PIN entry (requester, approver, finish-for-today) goes through the
lockout.
"""

from __future__ import annotations

from ..extensions import db
from ..models import ClockInRequest, Shop, ShopStaff
from ..permissions import BusinessType, Role, active_role, parse_business_type
from ..time_utils import utcnow
from . import credential_service, login_throttle_service
from .permission_service import log_security_event
from .session_registry import Admitted, SessionRegistry


AUTO_APPROVE_ROLES = frozenset({Role.MANAGER, Role.ADMINISTRATOR})
APPROVER_ROLES = frozenset({Role.MANAGER, Role.SUPERVISOR, Role.ADMINISTRATOR})
FINISH_REASON = "finished for today"


class ClockInError(ValueError):
    """Raised for invalid clock-in operations."""
    pass


def _business_type(shop_id: int) -> BusinessType:
    shop = db.session.get(Shop, shop_id)
    if not shop:
        raise ClockInError("Shop not found")
    return parse_business_type(shop.business_type) or BusinessType.TABLE_ORDER


def _shop_role(staff: ShopStaff, business_type: BusinessType) -> Role | None:
    return active_role(business_type, staff.role, staff.secondary_role)


def _check_not_locked(shop_id: int, staff_id: int) -> None:
    locked, seconds = login_throttle_service.is_locked(shop_id, staff_id)
    if locked:
        raise ClockInError(f"Too many failed attempts. Try again in {seconds} seconds")


def _verify_or_count(
    shop_id: int,
    staff_id: int,
    pin: str,
    device_id: str | None,
    failure_message: str = "Invalid PIN",
) -> ShopStaff:
    """Verify a PIN under the lockout; failures count against staff_id."""
    _check_not_locked(shop_id, staff_id)

    staff = credential_service.verify_pin(shop_id, staff_id, pin)
    if staff is None:
        login_throttle_service.record_failed_attempt(shop_id, staff_id, device_id)
        raise ClockInError(failure_message)

    login_throttle_service.record_successful_login(shop_id, staff_id, device_id)
    return staff


def _get_request(request_id: int) -> ClockInRequest:
    request = db.session.get(ClockInRequest, request_id)
    if not request:
        raise ClockInError("Clock-in request not found")
    return request


def request_clock_in(shop_id: int, staff_id: int, pin: str, device_id: str | None = None) -> ClockInRequest:
    staff = _verify_or_count(shop_id, staff_id, pin, device_id)

    if staff.authorization_status == "no":
        raise ClockInError("Access denied by manager")

    business_type = _business_type(shop_id)
    auto_approved = (
        staff.authorization_status == "yes"
        or _shop_role(staff, business_type) in AUTO_APPROVE_ROLES
    )

    now = utcnow()
    request = ClockInRequest(
        shop_id=shop_id,
        staff_id=staff.id,
        device_id=device_id,
        status="APPROVED" if auto_approved else "PENDING",
        responded_by_staff_id=staff.id if auto_approved else None,
        responded_at=now if auto_approved else None,
    )
    db.session.add(request)
    db.session.commit()

    log_security_event(
        staff.id, "CLOCK_IN_REQUESTED", True,
        shop_id=shop_id, resource=f"clock_in_request:{request.id}",
        action="request_clock_in", reason=request.status, device_id=device_id,
    )
    return request


def list_pending_requests(shop_id: int) -> list[ClockInRequest]:
    return db.session.query(ClockInRequest).filter_by(
        shop_id=shop_id, status="PENDING", is_dismissed=False,
    ).order_by(ClockInRequest.created_at.asc(), ClockInRequest.id.asc()).all()


def approve_clock_in_request(shop_id: int, request_id: int, approver_staff_id: int, approver_pin: str) -> ClockInRequest:
    approver = _verify_or_count(
        shop_id, approver_staff_id, approver_pin, None, failure_message="Invalid manager PIN",
    )

    if _shop_role(approver, _business_type(shop_id)) not in APPROVER_ROLES:
        log_security_event(
            approver.id, "PERMISSION_DENIED", False,
            shop_id=shop_id, resource=f"clock_in_request:{request_id}", action="approve_clock_in",
            reason="Insufficient permissions",
        )
        raise ClockInError("Insufficient permissions")

    request = _get_request(request_id)
    if request.shop_id != shop_id:
        raise ClockInError("Clock-in request not found")
    if request.status != "PENDING":
        raise ClockInError(f"Request is already {request.status.lower()}")

    request.status = "APPROVED"
    request.responded_by_staff_id = approver.id
    request.responded_at = utcnow()
    request.staff.authorization_status = "yes"
    db.session.commit()
    return request


def deny_clock_in_request(shop_id: int, request_id: int, approver_staff_id: int) -> ClockInRequest:
    approver = db.session.query(ShopStaff).filter_by(id=approver_staff_id, shop_id=shop_id).first()
    if approver is None or _shop_role(approver, _business_type(shop_id)) not in APPROVER_ROLES:
        raise ClockInError("Insufficient permissions")

    request = _get_request(request_id)
    if request.shop_id != shop_id:
        raise ClockInError("Clock-in request not found")
    if request.status != "PENDING":
        raise ClockInError(f"Request is already {request.status.lower()}")

    request.status = "DENIED"
    request.responded_by_staff_id = approver.id
    request.responded_at = utcnow()
    request.staff.authorization_status = "no"
    db.session.commit()
    return request


def dismiss_clock_in_request(request_id: int) -> ClockInRequest:
    request = _get_request(request_id)
    request.is_dismissed = True
    db.session.commit()
    return request


def complete_clock_in(request_id: int, device_id: str, registry: SessionRegistry, *, force: bool = False):
    """
    Admit the staff member of an APPROVED request.

    Returns the registry outcome: Admitted, or SwitchConfirmationRequired
    when the staff member is active on another device and force is False.
    """
    request = _get_request(request_id)
    if request.status != "APPROVED":
        raise ClockInError("Request not approved")
    if request.completed_at is not None:
        raise ClockInError("Request already completed")

    outcome = registry.admit(request.shop_id, request.staff_id, device_id, force=force)
    if isinstance(outcome, Admitted):
        request.completed_at = utcnow()
        request.device_id = device_id
        request.staff.authorization_status = "yes"
        db.session.commit()
    return outcome


def finish_for_today(shop_id: int, target_staff_id: int, pin: str, registry: SessionRegistry) -> ShopStaff:
    """
    End a staff member's shift.

    Accepts the target's own PIN or the PIN of any manager-equivalent staff
    member of the shop who is not locked out. Wrong PINs count against the
    target's lockout. Resets the clock-in authorization so the next
    clock-in asks again.
    """
    target = db.session.query(ShopStaff).filter_by(id=target_staff_id, shop_id=shop_id).first()
    if not target:
        raise ClockInError("Staff member not found")

    _check_not_locked(shop_id, target.id)

    authorizer = None
    if credential_service.check_pin((pin or "").strip(), target.pin_hash):
        authorizer = target
    else:
        business_type = _business_type(shop_id)
        managers = [
            s for s in db.session.query(ShopStaff).filter(
                ShopStaff.shop_id == shop_id, ShopStaff.pin_hash.isnot(None),
            ).all()
            if _shop_role(s, business_type) in AUTO_APPROVE_ROLES
            and not login_throttle_service.is_locked(shop_id, s.id)[0]
        ]
        authorizer = credential_service.find_staff_by_pin(shop_id, pin, staff_ids=[m.id for m in managers])

    if authorizer is None:
        login_throttle_service.record_failed_attempt(shop_id, target.id, reason="Invalid finish-for-today PIN")
        raise ClockInError("Invalid PIN")
    login_throttle_service.record_successful_login(shop_id, authorizer.id)

    registry.release(shop_id, target.id, FINISH_REASON)
    target.authorization_status = None
    db.session.commit()

    log_security_event(
        authorizer.id, "SHIFT_FINISHED", True,
        shop_id=shop_id, resource=f"staff:{target.id}", action="finish_for_today",
    )
    return target
