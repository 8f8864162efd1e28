"""
PIN Login Throttling Service

WHY: A four digit PIN falls to brute force in minutes. After too many
failures for one staff member at one shop, PIN entry is locked for a while.

SECURITY FEATURES:
- Tracks failed attempts per (shop, staff)
- Lockout after PIN_MAX_FAILED_ATTEMPTS failures within the lockout window
- Lockout duration: PIN_LOCKOUT_MINUTES
- Uses security_events table for tracking (PIN_FAILED events)
- A successful login resets the lockout clock
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import utcnow
from .permission_service import log_security_event


DEFAULT_MAX_FAILED_ATTEMPTS = 5
DEFAULT_LOCKOUT_MINUTES = 15


def _max_attempts() -> int:
    return int(current_app.config.get("PIN_MAX_FAILED_ATTEMPTS", DEFAULT_MAX_FAILED_ATTEMPTS))


def _lockout() -> timedelta:
    return timedelta(minutes=int(current_app.config.get("PIN_LOCKOUT_MINUTES", DEFAULT_LOCKOUT_MINUTES)))


def _last_success(shop_id: int, staff_id: int):
    event = db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "PIN_SUCCESS",
        SecurityEvent.shop_id == shop_id,
        SecurityEvent.staff_id == staff_id,
    ).order_by(SecurityEvent.occurred_at.desc()).first()
    return event.occurred_at if event else None


def get_recent_failed_attempts(shop_id: int, staff_id: int) -> int:
    """
    Count PIN_FAILED events within the lockout window.

    Failures before the most recent successful login are not counted.
    """
    cutoff = utcnow() - _lockout()
    last_success = _last_success(shop_id, staff_id)
    if last_success and last_success > cutoff:
        cutoff = last_success

    return db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "PIN_FAILED",
        SecurityEvent.shop_id == shop_id,
        SecurityEvent.staff_id == staff_id,
        SecurityEvent.occurred_at >= cutoff,
    ).count()


def is_locked(shop_id: int, staff_id: int) -> tuple[bool, int | None]:
    """
    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    if get_recent_failed_attempts(shop_id, staff_id) < _max_attempts():
        return False, None

    most_recent = db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "PIN_FAILED",
        SecurityEvent.shop_id == shop_id,
        SecurityEvent.staff_id == staff_id,
    ).order_by(SecurityEvent.occurred_at.desc()).first()

    if most_recent:
        lockout_end = most_recent.occurred_at + _lockout()
        now = utcnow()
        if now < lockout_end:
            return True, int((lockout_end - now).total_seconds())

    return False, None


def record_failed_attempt(
    shop_id: int,
    staff_id: int,
    device_id: str | None = None,
    reason: str = "Invalid PIN",
) -> int:
    """Record a failed PIN entry. Returns the number of recent failures."""
    log_security_event(
        staff_id,
        "PIN_FAILED",
        False,
        shop_id=shop_id,
        resource=f"shop:{shop_id}",
        action="pin_login",
        reason=reason,
        device_id=device_id,
    )
    return get_recent_failed_attempts(shop_id, staff_id)


def record_successful_login(shop_id: int, staff_id: int, device_id: str | None = None) -> None:
    log_security_event(
        staff_id,
        "PIN_SUCCESS",
        True,
        shop_id=shop_id,
        resource=f"shop:{shop_id}",
        action="pin_login",
        device_id=device_id,
    )


def get_lockout_status(shop_id: int, staff_id: int) -> dict:
    locked, seconds_remaining = is_locked(shop_id, staff_id)
    return {
        "locked": locked,
        "failed_attempts": get_recent_failed_attempts(shop_id, staff_id),
        "max_attempts": _max_attempts(),
        "seconds_until_unlock": seconds_remaining,
    }
