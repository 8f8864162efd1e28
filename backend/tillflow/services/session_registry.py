# Overview: Service-layer owner of staff sessions; admission, release and idle policy.

"""
Staff Session Registry

WHY: A staff member may be clocked in on at most one device per shop. The
registry is the single owner of that rule, keyed by (shop_id, staff_id).
Handlers receive an explicit ActorSession from it; nothing else caches who
is clocked in where.

ADMISSION:
- Staff must exist and have accepted the invitation (else Unauthorized)
- The role must belong to the shop's business type (else Unauthorized)
- Active on another device: SwitchConfirmationRequired unless force=True
- force=True releases the previous device ("device switch") first
- Release may name a device; a session that moved elsewhere is kept
- The role that applies in this shop is snapshotted onto the session

CONCURRENCY:
- Admission and release for one pair run under an in-process lock
- The staff_sessions unique constraint is the cross-process backstop;
  the persistence layer reports violations as SessionConflict

IDLE POLICY:
- WARNING from timeout - warning_seconds, EXPIRED at timeout
- Exempt roles never expire; the default set comes from the role
  capability records (chef), IDLE_TIMEOUT_EXEMPT_ROLES replaces it
- Shop.idle_timeout_minutes overrides the configured default
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from flask import current_app

from ..domain import ActorSession
from ..errors import SessionNotFound, StorageError, Unauthorized
from ..permissions import IDLE_EXEMPT_ROLES, active_role, parse_role
from ..persistence import PersistenceGateway, SessionConflict
from ..time_utils import seconds_since, utcnow
from .permission_service import log_security_event

logger = logging.getLogger(__name__)


DEVICE_SWITCH_REASON = "device switch"
IDLE_TIMEOUT_REASON = "idle timeout"


@dataclass(frozen=True)
class Admitted:
    session: ActorSession


@dataclass(frozen=True)
class SwitchConfirmationRequired:
    """The staff member is active elsewhere; ask before taking over."""

    previous_device_id: str


class IdleState(str, Enum):
    ACTIVE = "active"
    WARNING = "warning"
    EXPIRED = "expired"
    EXEMPT = "exempt"


@dataclass(frozen=True)
class IdlePolicy:
    timeout_minutes: int = 15
    warning_seconds: int = 90
    exempt_roles: frozenset = IDLE_EXEMPT_ROLES

    @classmethod
    def from_config(cls, config) -> "IdlePolicy":
        configured = config.get("IDLE_TIMEOUT_EXEMPT_ROLES")
        if configured is None:
            exempt = IDLE_EXEMPT_ROLES
        else:
            exempt = frozenset(r for r in (parse_role(v) for v in configured) if r)
        return cls(
            timeout_minutes=int(config.get("STAFF_IDLE_TIMEOUT_MINUTES", 15)),
            warning_seconds=int(config.get("IDLE_WARNING_SECONDS", 90)),
            exempt_roles=exempt,
        )

    @property
    def timeout_seconds(self) -> int:
        return self.timeout_minutes * 60

    @property
    def warning_after_seconds(self) -> int:
        return max(self.timeout_seconds - self.warning_seconds, 0)

    def is_exempt(self, role) -> bool:
        return parse_role(role) in self.exempt_roles

    def with_timeout(self, timeout_minutes: int | None) -> "IdlePolicy":
        if not timeout_minutes:
            return self
        return IdlePolicy(timeout_minutes, self.warning_seconds, self.exempt_roles)


class SessionRegistry:
    def __init__(self, persistence: PersistenceGateway, policy: IdlePolicy | None = None, audit=None):
        self.persistence = persistence
        self.policy = policy or IdlePolicy()
        self._audit = audit or log_security_event
        self._locks: dict[tuple[int, int], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _pair_lock(self, shop_id: int, staff_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get((shop_id, staff_id))
            if lock is None:
                lock = self._locks[(shop_id, staff_id)] = threading.Lock()
            return lock

    # -- admission --

    def admit(
        self,
        shop_id: int,
        staff_id: int,
        device_id: str,
        *,
        force: bool = False,
    ) -> Admitted | SwitchConfirmationRequired:
        staff = self.persistence.get_staff(shop_id, staff_id)
        if staff is None or not staff.invitation_accepted:
            self._audit(
                staff_id if staff else None, "SESSION_REJECTED", False,
                shop_id=shop_id, action="admit", device_id=device_id,
                reason="Staff not found" if staff is None else "Invitation not accepted",
            )
            raise Unauthorized(f"Staff {staff_id} cannot clock in at shop {shop_id}")

        shop = self.persistence.get_shop(shop_id)
        if shop is None:
            raise Unauthorized(f"Shop {shop_id} not found")

        role = active_role(shop.business_type, staff.role, staff.secondary_role)
        if role is None:
            raise Unauthorized(f"Staff {staff_id} has no role in shop {shop_id}")

        with self._pair_lock(shop_id, staff_id):
            outcome = self._admit_locked(shop_id, staff_id, device_id, role, force)
            if isinstance(outcome, SessionConflict):
                # Another process claimed the row between our read and write
                logger.warning("Retrying admission of staff %s at shop %s after conflict", staff_id, shop_id)
                outcome = self._admit_locked(shop_id, staff_id, device_id, role, force)
            if isinstance(outcome, SessionConflict):
                raise StorageError(f"Could not admit staff {staff_id} at shop {shop_id}")

        if isinstance(outcome, SwitchConfirmationRequired):
            logger.info(
                "Staff %s at shop %s active on %s; switch to %s needs confirmation",
                staff_id, shop_id, outcome.previous_device_id, device_id,
            )
            return outcome

        self._audit(
            staff_id, "SESSION_ADMITTED", True,
            shop_id=shop_id, action="admit", device_id=device_id, reason=role.value,
        )
        return Admitted(session=outcome)

    def _admit_locked(self, shop_id, staff_id, device_id, role, force):
        existing = self.persistence.get_session(shop_id, staff_id)
        if existing and existing.clocked_in and existing.device_id != device_id:
            if not force:
                return SwitchConfirmationRequired(previous_device_id=existing.device_id)
            self._release_locked(existing, DEVICE_SWITCH_REASON)
        return self.persistence.upsert_session(shop_id, staff_id, device_id, True, role=role)

    # -- release --

    def release(self, shop_id: int, staff_id: int, reason: str, *, device_id: str | None = None) -> bool:
        """
        Clock the staff member out.

        With device_id, only a session on that device is released; a
        session that has since moved to another device is left alone.
        Idempotent: a missing, already released or moved session is logged
        and reported as False.
        """
        with self._pair_lock(shop_id, staff_id):
            existing = self.persistence.get_session(shop_id, staff_id)
            if existing is None or not existing.clocked_in:
                logger.info("%s", SessionNotFound(f"No active session for staff {staff_id} at shop {shop_id}"))
                return False
            if device_id is not None and existing.device_id != device_id:
                logger.info("%s", SessionNotFound(
                    f"Staff {staff_id} at shop {shop_id} is no longer active on {device_id}"
                ))
                return False
            self._release_locked(existing, reason)
            return True

    def _release_locked(self, session: ActorSession, reason: str) -> None:
        outcome = self.persistence.upsert_session(
            session.shop_id, session.staff_id, session.device_id, False, reason=reason,
        )
        if isinstance(outcome, SessionConflict):
            raise StorageError(f"Could not release staff {session.staff_id} at shop {session.shop_id}")
        self._audit(
            session.staff_id, "SESSION_RELEASED", True,
            shop_id=session.shop_id, action="release", device_id=session.device_id, reason=reason,
        )

    # -- reads --

    def touch(self, shop_id: int, staff_id: int, at: datetime | None = None) -> bool:
        return self.persistence.touch_session(shop_id, staff_id, at or utcnow())

    def get_active(self, shop_id: int, staff_id: int) -> ActorSession | None:
        session = self.persistence.get_session(shop_id, staff_id)
        if session is None or not session.clocked_in:
            return None
        return session

    def active_sessions(self, shop_id: int) -> list[ActorSession]:
        return self.persistence.list_sessions(shop_id, clocked_in=True)

    # -- idle policy --

    def policy_for(self, shop_id: int) -> IdlePolicy:
        shop = self.persistence.get_shop(shop_id)
        return self.policy.with_timeout(shop.idle_timeout_minutes if shop else None)

    def idle_state(self, session: ActorSession, now: datetime | None = None, *, policy: IdlePolicy | None = None) -> IdleState:
        policy = policy or self.policy_for(session.shop_id)
        if policy.is_exempt(session.role):
            return IdleState.EXEMPT

        idle = seconds_since(session.last_activity_at or session.clocked_in_at, now)
        if idle >= policy.timeout_seconds:
            return IdleState.EXPIRED
        if idle >= policy.warning_after_seconds:
            return IdleState.WARNING
        return IdleState.ACTIVE

    def sweep_idle(self, shop_id: int | None = None, now: datetime | None = None) -> list[ActorSession]:
        """Release every expired session; returns the sessions released."""
        now = now or utcnow()
        released = []
        policies: dict[int, IdlePolicy] = {}
        for session in self.persistence.list_sessions(shop_id, clocked_in=True):
            policy = policies.get(session.shop_id)
            if policy is None:
                policy = policies[session.shop_id] = self.policy_for(session.shop_id)
            if self.idle_state(session, now, policy=policy) != IdleState.EXPIRED:
                continue
            if self.release(session.shop_id, session.staff_id, IDLE_TIMEOUT_REASON, device_id=session.device_id):
                released.append(session)
        if released:
            logger.info("Released %s idle session(s)", len(released))
        return released


def get_registry() -> SessionRegistry:
    """Registry bound to the current app, created on first use."""
    registry = current_app.extensions.get("tillflow_session_registry")
    if registry is None:
        from .persistence_service import SqlPersistence

        registry = SessionRegistry(SqlPersistence(), IdlePolicy.from_config(current_app.config))
        current_app.extensions["tillflow_session_registry"] = registry
    return registry
