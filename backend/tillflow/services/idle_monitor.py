# Overview: Per-terminal idle timers that warn and then soft-log-out a staff member.

"""
Idle Monitor

WHY: Shared terminals must not stay signed in as whoever used them last.
Each terminal runs one monitor for the staff member signed in on it. Two
cooperative timers run per idle window:

    warning   fires at timeout - warning_seconds (once per window)
    logout    fires at timeout and performs the soft logout

Any activity event of a tracked class clears both timers and re-arms them.

SOFT LOGOUT:
- Releases the server session held on this terminal's device, clears
  the terminal's cached credentials, then signals a redirect to the staff
  login page for the shop
- Runs at most once per monitor, even when the logout timer and a manual
  logout race each other

CANCELLATION:
Timers are cleared before re-arming. Each arm bumps a generation counter;
a callback whose generation is stale does nothing.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from urllib.parse import quote

logger = logging.getLogger(__name__)


ACTIVITY_EVENTS = ("mousedown", "mousemove", "keypress", "scroll", "touchstart", "click")
DEFAULT_WARNING_SECONDS = 90
IDLE_LOGOUT_REASON = "idle timeout"


@dataclass(frozen=True)
class SoftLogoutSignal:
    shop_id: int
    staff_id: int
    redirect_url: str
    reason: str


def staff_login_url(shop_id: int, current_path: str | None = None) -> str:
    """Login page for the shop, carrying the path to return to."""
    base = f"/staff-login/{shop_id}"
    if not current_path or current_path.startswith(base):
        return base
    return f"{base}?returnUrl={quote(current_path, safe='')}"


class ThreadingScheduler:
    """Schedules callbacks on daemon threading.Timer threads."""

    def call_later(self, delay: float, callback):
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle) -> None:
        handle.cancel()


class IdleMonitor:
    def __init__(
        self,
        shop_id: int,
        staff_id: int,
        timeout_minutes: float,
        *,
        on_warning=None,
        on_timeout=None,
        release=None,
        clear_credentials=None,
        scheduler=None,
        disabled: bool = False,
        warning_seconds: int = DEFAULT_WARNING_SECONDS,
        current_path: str | None = None,
        device_id: str | None = None,
    ):
        self.shop_id = shop_id
        self.staff_id = staff_id
        self.device_id = device_id
        self.timeout_seconds = timeout_minutes * 60
        self.warning_seconds = warning_seconds
        self.disabled = disabled
        self.current_path = current_path

        self._on_warning = on_warning
        self._on_timeout = on_timeout
        self._release = release
        self._clear_credentials = clear_credentials
        self._scheduler = scheduler or ThreadingScheduler()

        self._lock = threading.Lock()
        self._handles: list = []
        self._generation = 0
        self._running = False
        self._logged_out = False

    @classmethod
    def for_session(cls, session, policy, **kwargs) -> "IdleMonitor":
        """
        Monitor for a clocked-in session under an IdlePolicy.

        Exempt roles get a disabled monitor. The release callback is scoped
        to the session's device.
        """
        return cls(
            session.shop_id,
            session.staff_id,
            policy.timeout_minutes,
            disabled=policy.is_exempt(session.role),
            warning_seconds=policy.warning_seconds,
            device_id=session.device_id,
            **kwargs,
        )

    @property
    def warning_delay(self) -> float:
        return max(0, self.timeout_seconds - self.warning_seconds)

    @property
    def logged_out(self) -> bool:
        return self._logged_out

    def start(self) -> None:
        if self.disabled:
            logger.debug("Idle monitor disabled for staff %s at shop %s", self.staff_id, self.shop_id)
            return
        with self._lock:
            if self._logged_out:
                return
            self._running = True
            self._arm_locked()

    def stop(self) -> None:
        with self._lock:
            self._running = False
            self._clear_locked()

    def record_activity(self, event: str = "mousemove") -> bool:
        """Reset the idle window. Returns False when the event is ignored."""
        if event not in ACTIVITY_EVENTS:
            return False
        with self._lock:
            if not self._running or self._logged_out:
                return False
            self._arm_locked()
            return True

    def soft_logout(self, reason: str = IDLE_LOGOUT_REASON) -> SoftLogoutSignal | None:
        """
        End the session on this terminal.

        Returns the redirect signal, or None when a logout already ran.
        """
        with self._lock:
            if self._logged_out:
                return None
            self._logged_out = True
            self._running = False
            self._clear_locked()

        logger.info("Soft logout of staff %s at shop %s (%s)", self.staff_id, self.shop_id, reason)
        if self._release is not None:
            self._release(self.shop_id, self.staff_id, reason, device_id=self.device_id)
        if self._clear_credentials is not None:
            self._clear_credentials()

        signal = SoftLogoutSignal(
            shop_id=self.shop_id,
            staff_id=self.staff_id,
            redirect_url=staff_login_url(self.shop_id, self.current_path),
            reason=reason,
        )
        if self._on_timeout is not None:
            self._on_timeout(signal)
        return signal

    # -- timers --

    def _clear_locked(self) -> None:
        self._generation += 1
        for handle in self._handles:
            self._scheduler.cancel(handle)
        self._handles = []

    def _arm_locked(self) -> None:
        self._clear_locked()
        generation = self._generation
        self._handles = [
            self._scheduler.call_later(self.warning_delay, lambda: self._fire_warning(generation)),
            self._scheduler.call_later(self.timeout_seconds, lambda: self._fire_timeout(generation)),
        ]

    def _fire_warning(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._logged_out:
                return
        if self._on_warning is not None:
            self._on_warning(self.warning_seconds)

    def _fire_timeout(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._logged_out:
                return
        self.soft_logout(IDLE_LOGOUT_REASON)
