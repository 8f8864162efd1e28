"""
Permission override write path tests.

Verifies:
- Only permission managers may write overrides (Forbidden otherwise)
- Unknown and locked keys are rejected
- Overrides are visible the next time the session is loaded
- Role changes clear overrides
- Authorization gateway reads session role and overrides
"""

import pytest

from tillflow.errors import Forbidden
from tillflow.models import SecurityEvent, ShopStaff
from tillflow.permissions import Role
from tillflow.services import authorization_gateway, permission_service
from tillflow.services.permission_service import PermissionOverrideError


@pytest.fixture
def manager_session(make_staff, shop, admit):
    return admit(make_staff(shop, role="manager", name="Manager"), "office")


@pytest.fixture
def waiter(make_staff, shop):
    return make_staff(shop, role="waiter", name="Waiter")


class TestUpdatePermissionOverride:
    def test_manager_grants_override(self, persistence, manager_session, waiter, shop, db_session):
        updated = permission_service.update_permission_override(
            shop.id, waiter.id, "sales.void", True, manager_session, persistence=persistence,
        )

        assert updated.permission_overrides == {"sales.void": True}
        assert db_session.get(ShopStaff, waiter.id).permission_overrides == {"sales.void": True}
        event = db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_OVERRIDE_CHANGED").one()
        assert event.staff_id == manager_session.staff_id
        assert event.action == "sales.void"

    def test_clear_override(self, persistence, manager_session, waiter, shop):
        permission_service.update_permission_override(
            shop.id, waiter.id, "sales.void", True, manager_session, persistence=persistence,
        )
        updated = permission_service.update_permission_override(
            shop.id, waiter.id, "sales.void", None, manager_session, persistence=persistence,
        )
        assert dict(updated.permission_overrides) == {}

    @pytest.mark.parametrize("role", ["waiter", "chef", "runner"])
    def test_non_managers_forbidden(self, persistence, make_staff, admit, waiter, shop, db_session, role):
        requester = admit(make_staff(shop, role=role, name=f"Requester {role}"), "terminal-9")

        with pytest.raises(Forbidden):
            permission_service.update_permission_override(
                shop.id, waiter.id, "sales.void", True, requester, persistence=persistence,
            )

        assert db_session.get(ShopStaff, waiter.id).permission_overrides == {}
        assert db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").count() == 1

    def test_quick_checkout_supervisor_forbidden(self, persistence, make_staff, admit, checkout_shop):
        target = make_staff(checkout_shop, role="waiter", secondary_role="cashier", name="Cashier")
        supervisor = admit(make_staff(checkout_shop, role="waiter", secondary_role="supervisor", name="Sup"))
        with pytest.raises(Forbidden):
            permission_service.update_permission_override(
                checkout_shop.id, target.id, "sales.refund", True, supervisor, persistence=persistence,
            )

    def test_quick_checkout_administrator_allowed(self, persistence, make_staff, admit, checkout_shop):
        target = make_staff(checkout_shop, role="waiter", secondary_role="cashier", name="Cashier")
        admin = admit(make_staff(checkout_shop, role="waiter", secondary_role="administrator", name="Admin"))
        updated = permission_service.update_permission_override(
            checkout_shop.id, target.id, "sales.refund", True, admin, persistence=persistence,
        )
        assert updated.permission_overrides["sales.refund"] is True

    def test_requester_from_other_shop(self, persistence, make_shop, make_staff, admit, waiter, shop):
        other = make_shop(name="Elsewhere")
        foreign_manager = admit(make_staff(other, role="manager", name="Foreign"))
        with pytest.raises(Forbidden):
            permission_service.update_permission_override(
                shop.id, waiter.id, "sales.void", True, foreign_manager, persistence=persistence,
            )

    def test_unknown_key(self, persistence, manager_session, waiter, shop):
        with pytest.raises(PermissionOverrideError):
            permission_service.update_permission_override(
                shop.id, waiter.id, "launch_rockets", True, manager_session, persistence=persistence,
            )

    def test_locked_key_for_manager(self, persistence, manager_session, make_staff, shop):
        other_manager = make_staff(shop, role="manager", name="Manager Two")
        with pytest.raises(PermissionOverrideError):
            permission_service.update_permission_override(
                shop.id, other_manager.id, "products.manage", False, manager_session, persistence=persistence,
            )

    def test_missing_staff(self, persistence, manager_session, shop):
        with pytest.raises(PermissionOverrideError):
            permission_service.update_permission_override(
                shop.id, 9999, "sales.void", True, manager_session, persistence=persistence,
            )

    def test_override_visible_on_next_session_load(self, persistence, registry, manager_session, waiter, shop):
        session = registry.admit(shop.id, waiter.id, "terminal-1").session
        assert not authorization_gateway.authorize(session, "sales.void")

        permission_service.update_permission_override(
            shop.id, waiter.id, "sales.void", True, manager_session, persistence=persistence,
        )

        refreshed = registry.get_active(shop.id, waiter.id)
        assert authorization_gateway.authorize(refreshed, "sales.void")


class TestChangeStaffRole:
    def test_role_change_clears_overrides(self, persistence, manager_session, make_staff, shop):
        staff = make_staff(shop, role="waiter", overrides={"sales.void": True})

        updated = permission_service.change_staff_role(
            shop.id, staff.id, "runner", None, manager_session, persistence=persistence,
        )

        assert updated.role == Role.RUNNER
        assert dict(updated.permission_overrides) == {}

    def test_active_session_keeps_role_snapshot(self, persistence, registry, manager_session, waiter, shop):
        registry.admit(shop.id, waiter.id, "terminal-1")
        permission_service.change_staff_role(
            shop.id, waiter.id, "runner", None, manager_session, persistence=persistence,
        )
        assert registry.get_active(shop.id, waiter.id).role == Role.WAITER

    def test_unknown_role(self, persistence, manager_session, waiter, shop):
        with pytest.raises(PermissionOverrideError):
            permission_service.change_staff_role(
                shop.id, waiter.id, "sommelier", None, manager_session, persistence=persistence,
            )

    def test_non_manager_forbidden(self, persistence, admit, waiter, make_staff, shop):
        chef = admit(make_staff(shop, role="chef", name="Chef"))
        with pytest.raises(Forbidden):
            permission_service.change_staff_role(
                shop.id, waiter.id, "manager", None, chef, persistence=persistence,
            )


class TestGetStaffPermissions:
    def test_effective_map(self, persistence, make_staff, shop):
        staff = make_staff(shop, role="runner", overrides={"take_order": True})
        data = permission_service.get_staff_permissions(shop.id, staff.id, persistence=persistence)

        assert data["role"] == "runner"
        assert data["permissions"]["take_order"] is True
        assert data["permissions"]["mark_served"] is True
        assert data["permissions"]["sales.void"] is False
        assert data["locked"] == []

    def test_locked_for_manager(self, persistence, make_staff, shop):
        staff = make_staff(shop, role="manager")
        data = permission_service.get_staff_permissions(shop.id, staff.id, persistence=persistence)
        assert data["locked"] == ["products.manage"]


class TestAuthorizationGateway:
    def test_require_raises_forbidden(self, admit, waiter):
        session = admit(waiter)
        authorization_gateway.require(session, "take_order")
        with pytest.raises(Forbidden):
            authorization_gateway.require(session, "mark_ready")

    def test_can_manage_permissions(self, manager_session, admit, waiter):
        assert authorization_gateway.can_manage_permissions(manager_session)
        assert not authorization_gateway.can_manage_permissions(admit(waiter))
