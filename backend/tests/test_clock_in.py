"""
Clock-in approval workflow tests.

Verifies:
- Managers and previously authorized staff are auto-approved
- Other staff wait for a manager; denial is remembered
- Completing an approved request admits through the session registry
- Finish for today accepts the staff member's own PIN or a manager PIN
- Every PIN entry path honours the lockout
"""

import pytest

from tillflow.models import ClockInRequest, ShopStaff
from tillflow.services import clock_in_service, login_throttle_service
from tillflow.services.clock_in_service import ClockInError
from tillflow.services.session_registry import Admitted, SwitchConfirmationRequired

STAFF_PIN = "4821"
MANAGER_PIN = "7351"


@pytest.fixture
def manager(make_staff, shop):
    return make_staff(shop, role="manager", name="Manager", pin=MANAGER_PIN)


@pytest.fixture
def waiter(make_staff, shop):
    return make_staff(shop, role="waiter", name="Waiter", pin=STAFF_PIN)


class TestRequestClockIn:
    def test_new_waiter_waits_for_approval(self, waiter, shop):
        request = clock_in_service.request_clock_in(shop.id, waiter.id, STAFF_PIN, "terminal-1")
        assert request.status == "PENDING"
        assert clock_in_service.list_pending_requests(shop.id) == [request]

    def test_manager_auto_approved(self, manager, shop):
        request = clock_in_service.request_clock_in(shop.id, manager.id, MANAGER_PIN)
        assert request.status == "APPROVED"
        assert request.responded_by_staff_id == manager.id

    def test_quick_checkout_administrator_auto_approved(self, make_staff, checkout_shop):
        admin = make_staff(checkout_shop, role="waiter", secondary_role="administrator", pin=MANAGER_PIN)
        request = clock_in_service.request_clock_in(checkout_shop.id, admin.id, MANAGER_PIN)
        assert request.status == "APPROVED"

    def test_previously_authorized_auto_approved(self, make_staff, shop):
        staff = make_staff(shop, authorization_status="yes")
        request = clock_in_service.request_clock_in(shop.id, staff.id, STAFF_PIN)
        assert request.status == "APPROVED"

    def test_denied_staff_refused(self, make_staff, shop):
        staff = make_staff(shop, authorization_status="no")
        with pytest.raises(ClockInError):
            clock_in_service.request_clock_in(shop.id, staff.id, STAFF_PIN)

    def test_wrong_pin(self, waiter, shop, db_session):
        with pytest.raises(ClockInError):
            clock_in_service.request_clock_in(shop.id, waiter.id, "0000")
        assert db_session.query(ClockInRequest).count() == 0

    def test_lockout_after_repeated_failures(self, app, waiter, shop):
        for _ in range(app.config["PIN_MAX_FAILED_ATTEMPTS"]):
            with pytest.raises(ClockInError):
                clock_in_service.request_clock_in(shop.id, waiter.id, "0000")

        with pytest.raises(ClockInError, match="Too many failed attempts"):
            clock_in_service.request_clock_in(shop.id, waiter.id, STAFF_PIN)


class TestApproval:
    def test_manager_approves(self, manager, waiter, shop, db_session):
        request = clock_in_service.request_clock_in(shop.id, waiter.id, STAFF_PIN)

        approved = clock_in_service.approve_clock_in_request(shop.id, request.id, manager.id, MANAGER_PIN)

        assert approved.status == "APPROVED"
        assert approved.responded_by_staff_id == manager.id
        assert db_session.get(ShopStaff, waiter.id).authorization_status == "yes"

    def test_wrong_manager_pin(self, manager, waiter, shop):
        request = clock_in_service.request_clock_in(shop.id, waiter.id, STAFF_PIN)
        with pytest.raises(ClockInError, match="Invalid manager PIN"):
            clock_in_service.approve_clock_in_request(shop.id, request.id, manager.id, "0000")

    def test_locked_approver_refused_with_correct_pin(self, app, manager, waiter, shop):
        request = clock_in_service.request_clock_in(shop.id, waiter.id, STAFF_PIN)
        for _ in range(app.config["PIN_MAX_FAILED_ATTEMPTS"]):
            with pytest.raises(ClockInError, match="Invalid manager PIN"):
                clock_in_service.approve_clock_in_request(shop.id, request.id, manager.id, "0000")

        assert login_throttle_service.is_locked(shop.id, manager.id)[0]
        with pytest.raises(ClockInError, match="Too many failed attempts"):
            clock_in_service.approve_clock_in_request(shop.id, request.id, manager.id, MANAGER_PIN)
        assert clock_in_service.list_pending_requests(shop.id) == [request]

    def test_waiter_cannot_approve(self, make_staff, waiter, shop):
        colleague = make_staff(shop, role="waiter", name="Colleague", pin="9073")
        request = clock_in_service.request_clock_in(shop.id, waiter.id, STAFF_PIN)
        with pytest.raises(ClockInError, match="Insufficient permissions"):
            clock_in_service.approve_clock_in_request(shop.id, request.id, colleague.id, "9073")

    def test_quick_checkout_supervisor_approves(self, make_staff, checkout_shop):
        supervisor = make_staff(checkout_shop, role="waiter", secondary_role="supervisor", pin=MANAGER_PIN)
        cashier = make_staff(checkout_shop, role="waiter", secondary_role="cashier", pin=STAFF_PIN)
        request = clock_in_service.request_clock_in(checkout_shop.id, cashier.id, STAFF_PIN)
        approved = clock_in_service.approve_clock_in_request(
            checkout_shop.id, request.id, supervisor.id, MANAGER_PIN,
        )
        assert approved.status == "APPROVED"

    def test_deny_is_remembered(self, manager, waiter, shop, db_session):
        request = clock_in_service.request_clock_in(shop.id, waiter.id, STAFF_PIN)

        denied = clock_in_service.deny_clock_in_request(shop.id, request.id, manager.id)

        assert denied.status == "DENIED"
        assert db_session.get(ShopStaff, waiter.id).authorization_status == "no"
        with pytest.raises(ClockInError, match="Access denied"):
            clock_in_service.request_clock_in(shop.id, waiter.id, STAFF_PIN)

    def test_cannot_approve_twice(self, manager, waiter, shop):
        request = clock_in_service.request_clock_in(shop.id, waiter.id, STAFF_PIN)
        clock_in_service.approve_clock_in_request(shop.id, request.id, manager.id, MANAGER_PIN)
        with pytest.raises(ClockInError):
            clock_in_service.deny_clock_in_request(shop.id, request.id, manager.id)

    def test_dismiss_hides_request(self, waiter, shop):
        request = clock_in_service.request_clock_in(shop.id, waiter.id, STAFF_PIN)
        clock_in_service.dismiss_clock_in_request(request.id)
        assert clock_in_service.list_pending_requests(shop.id) == []


class TestCompleteClockIn:
    def test_complete_admits_session(self, registry, manager, shop):
        request = clock_in_service.request_clock_in(shop.id, manager.id, MANAGER_PIN)

        outcome = clock_in_service.complete_clock_in(request.id, "terminal-1", registry)

        assert isinstance(outcome, Admitted)
        assert registry.get_active(shop.id, manager.id).device_id == "terminal-1"
        assert request.completed_at is not None

    def test_pending_request_cannot_complete(self, registry, waiter, shop):
        request = clock_in_service.request_clock_in(shop.id, waiter.id, STAFF_PIN)
        with pytest.raises(ClockInError, match="not approved"):
            clock_in_service.complete_clock_in(request.id, "terminal-1", registry)

    def test_request_completes_once(self, registry, manager, shop):
        request = clock_in_service.request_clock_in(shop.id, manager.id, MANAGER_PIN)
        clock_in_service.complete_clock_in(request.id, "terminal-1", registry)
        with pytest.raises(ClockInError):
            clock_in_service.complete_clock_in(request.id, "terminal-1", registry)

    def test_switch_handshake(self, registry, manager, shop):
        first = clock_in_service.request_clock_in(shop.id, manager.id, MANAGER_PIN)
        clock_in_service.complete_clock_in(first.id, "terminal-A", registry)

        second = clock_in_service.request_clock_in(shop.id, manager.id, MANAGER_PIN)
        outcome = clock_in_service.complete_clock_in(second.id, "terminal-B", registry)
        assert outcome == SwitchConfirmationRequired(previous_device_id="terminal-A")
        assert second.completed_at is None

        outcome = clock_in_service.complete_clock_in(second.id, "terminal-B", registry, force=True)
        assert isinstance(outcome, Admitted)
        assert registry.get_active(shop.id, manager.id).device_id == "terminal-B"


class TestFinishForToday:
    def _clock_in(self, registry, staff, pin):
        request = clock_in_service.request_clock_in(staff.shop_id, staff.id, pin)
        return clock_in_service.complete_clock_in(request.id, f"terminal-{staff.id}", registry)

    def test_own_pin(self, registry, make_staff, shop, db_session):
        staff = make_staff(shop, authorization_status="yes")
        self._clock_in(registry, staff, STAFF_PIN)

        clock_in_service.finish_for_today(shop.id, staff.id, STAFF_PIN, registry)

        assert registry.get_active(shop.id, staff.id) is None
        assert db_session.get(ShopStaff, staff.id).authorization_status is None

    def test_manager_pin(self, registry, manager, make_staff, shop):
        staff = make_staff(shop, authorization_status="yes")
        self._clock_in(registry, staff, STAFF_PIN)

        clock_in_service.finish_for_today(shop.id, staff.id, f" {MANAGER_PIN} ", registry)

        assert registry.get_active(shop.id, staff.id) is None

    def test_colleague_pin_rejected(self, registry, make_staff, shop):
        staff = make_staff(shop, authorization_status="yes")
        make_staff(shop, role="runner", name="Runner", pin="9073")
        self._clock_in(registry, staff, STAFF_PIN)

        with pytest.raises(ClockInError, match="Invalid PIN"):
            clock_in_service.finish_for_today(shop.id, staff.id, "9073", registry)
        assert registry.get_active(shop.id, staff.id) is not None

    def test_finish_without_session(self, registry, waiter, shop):
        clock_in_service.finish_for_today(shop.id, waiter.id, STAFF_PIN, registry)
        assert registry.get_active(shop.id, waiter.id) is None

    def test_wrong_pins_lock_the_target(self, app, registry, make_staff, shop):
        staff = make_staff(shop, authorization_status="yes")
        self._clock_in(registry, staff, STAFF_PIN)

        for _ in range(app.config["PIN_MAX_FAILED_ATTEMPTS"]):
            with pytest.raises(ClockInError, match="Invalid PIN"):
                clock_in_service.finish_for_today(shop.id, staff.id, "0000", registry)

        with pytest.raises(ClockInError, match="Too many failed attempts"):
            clock_in_service.finish_for_today(shop.id, staff.id, STAFF_PIN, registry)
        assert registry.get_active(shop.id, staff.id) is not None

    def test_locked_manager_pin_not_accepted(self, app, registry, manager, make_staff, shop):
        staff = make_staff(shop, authorization_status="yes")
        self._clock_in(registry, staff, STAFF_PIN)
        for _ in range(app.config["PIN_MAX_FAILED_ATTEMPTS"]):
            login_throttle_service.record_failed_attempt(shop.id, manager.id)

        with pytest.raises(ClockInError, match="Invalid PIN"):
            clock_in_service.finish_for_today(shop.id, staff.id, MANAGER_PIN, registry)
        assert registry.get_active(shop.id, staff.id) is not None
