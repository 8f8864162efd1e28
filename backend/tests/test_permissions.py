"""
Permission model tests.

Verifies:
- Role capability table (actions and transition edges)
- FullAccess roles pass every action check
- Unknown roles fail closed
- Per-staff overrides win over role defaults
- Permission-manager rules per business type
- Roles resolve only in the business types they belong to
"""

import itertools

import pytest

from tillflow.order_status import OrderStatus
from tillflow.permissions import (
    FULL_ACCESS,
    IDLE_EXEMPT_ROLES,
    BusinessType,
    Role,
    active_role,
    allowed_transitions,
    can_manage_permissions,
    can_toggle_permission,
    can_transition,
    effective_permission,
    effective_permissions,
    get_all_permission_codes,
    get_capabilities,
    get_permission_definition,
    get_permissions_by_category,
    has_full_access,
    has_permission,
    validate_permission_code,
)

S = OrderStatus


class TestRoleActions:
    @pytest.mark.parametrize("role", [Role.MANAGER, Role.SUPERVISOR, Role.ADMINISTRATOR])
    def test_full_access_roles_hold_every_key(self, role):
        assert get_capabilities(role).actions is FULL_ACCESS
        for code in get_all_permission_codes():
            assert has_permission(role, code)
        assert has_permission(role, "made_up_action")

    @pytest.mark.parametrize(
        "role,action,expected",
        [
            (Role.WAITER, "take_order", True),
            (Role.WAITER, "mark_served", True),
            (Role.WAITER, "process_payment", True),
            (Role.WAITER, "accept_order", False),
            (Role.CHEF, "view_kitchen_orders", True),
            (Role.CHEF, "mark_ready", True),
            (Role.CHEF, "mark_served", False),
            (Role.RUNNER, "view_ready_orders", True),
            (Role.RUNNER, "mark_served", True),
            (Role.RUNNER, "take_order", False),
            (Role.CASHIER, "process_payment", True),
            (Role.CASHIER, "view_orders", True),
            (Role.CASHIER, "sales.void", False),
        ],
    )
    def test_role_action_table(self, role, action, expected):
        assert has_permission(role, action) is expected

    @pytest.mark.parametrize("role", ["sommelier", None, "", "MANAGER"])
    def test_unknown_role_fails_closed(self, role):
        assert has_permission(role, "view_orders") is False
        assert has_full_access(role) is False
        assert dict(allowed_transitions(role)) == {}
        assert can_transition(role, S.NEW, S.ACCEPTED) is False

    def test_roles_accept_plain_strings(self):
        assert has_permission("waiter", "take_order")
        assert can_transition("chef", "new", "accepted")


class TestTransitionTables:
    def test_runner_only_serves(self):
        assert dict(allowed_transitions(Role.RUNNER)) == {S.READY: frozenset({S.SERVED})}

    def test_chef_kitchen_edges(self):
        assert dict(allowed_transitions(Role.CHEF)) == {
            S.NEW: frozenset({S.ACCEPTED}),
            S.ACCEPTED: frozenset({S.IN_PREPARATION}),
            S.IN_PREPARATION: frozenset({S.READY}),
        }

    def test_waiter_edges(self):
        assert dict(allowed_transitions(Role.WAITER)) == {
            S.NEW: frozenset({S.ACCEPTED}),
            S.SERVED: frozenset({S.PAYMENT_REQUESTED}),
            S.PAYMENT_REQUESTED: frozenset({S.PAID}),
        }

    @pytest.mark.parametrize("role", [Role.MANAGER, Role.SUPERVISOR, Role.ADMINISTRATOR])
    def test_supervising_roles_may_void_every_open_table_status(self, role):
        table = allowed_transitions(role)
        for status in (S.NEW, S.ACCEPTED, S.IN_PREPARATION, S.READY, S.SERVED, S.PAYMENT_REQUESTED):
            assert S.VOID in table[status]

    def test_no_role_table_moves_paid_orders(self):
        for role in Role:
            assert S.PAID not in allowed_transitions(role)

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            allowed_transitions(Role.WAITER)[S.READY] = frozenset({S.SERVED})


class TestEffectivePermission:
    @pytest.mark.parametrize(
        "role,key",
        list(itertools.product(list(Role), ["take_order", "mark_served", "sales.void", "products.manage"])),
    )
    def test_absent_override_falls_back_to_role_default(self, role, key):
        assert effective_permission(role, {}, key) == has_permission(role, key)
        assert effective_permission(role, None, key) == has_permission(role, key)

    @pytest.mark.parametrize("role", list(Role))
    @pytest.mark.parametrize("value", [True, False])
    def test_present_override_wins(self, role, value):
        assert effective_permission(role, {"sales.refund": value}, "sales.refund") is value

    def test_override_revokes_from_full_access(self):
        assert effective_permission(Role.MANAGER, {"reports.view": False}, "reports.view") is False

    def test_override_only_decides_its_own_key(self):
        overrides = {"sales.refund": True}
        assert effective_permission(Role.CASHIER, overrides, "sales.void") is False

    def test_effective_permissions_map(self):
        resolved = effective_permissions(Role.RUNNER, {"take_order": True}, ["take_order", "mark_served", "sales.void"])
        assert resolved == {"take_order": True, "mark_served": True, "sales.void": False}


class TestPermissionManagers:
    @pytest.mark.parametrize(
        "business_type,role,secondary_role,expected",
        [
            (BusinessType.TABLE_ORDER, "manager", None, True),
            (BusinessType.TABLE_ORDER, "administrator", None, True),
            (BusinessType.TABLE_ORDER, "waiter", "administrator", False),
            (BusinessType.TABLE_ORDER, "chef", None, False),
            (BusinessType.QUICK_CHECKOUT, "waiter", "administrator", True),
            (BusinessType.QUICK_CHECKOUT, "manager", "cashier", False),
            (BusinessType.QUICK_CHECKOUT, "waiter", "supervisor", False),
            (BusinessType.QUICK_CHECKOUT, "waiter", None, False),
            ("food_truck", "manager", "administrator", False),
        ],
    )
    def test_can_manage_permissions(self, business_type, role, secondary_role, expected):
        assert can_manage_permissions(business_type, role, secondary_role) is expected

    def test_products_manage_pinned_for_managers(self):
        assert can_toggle_permission(BusinessType.TABLE_ORDER, "manager", None, "products.manage") is False
        assert can_toggle_permission(BusinessType.QUICK_CHECKOUT, "waiter", "administrator", "products.manage") is False
        assert can_toggle_permission(BusinessType.TABLE_ORDER, "waiter", None, "products.manage") is True
        assert can_toggle_permission(BusinessType.TABLE_ORDER, "manager", None, "sales.void") is True


class TestActiveRole:
    def test_table_order_uses_primary_role(self):
        assert active_role("table_order", "waiter", "administrator") == Role.WAITER

    def test_quick_checkout_prefers_secondary_role(self):
        assert active_role("quick_checkout", "waiter", "cashier") == Role.CASHIER

    def test_quick_checkout_falls_back_to_primary_role(self):
        assert active_role("quick_checkout", "manager", None) == Role.MANAGER

    @pytest.mark.parametrize(
        "business_type, role, secondary_role",
        [
            ("quick_checkout", "waiter", None),
            ("quick_checkout", "chef", None),
            ("quick_checkout", "runner", None),
            ("table_order", "cashier", None),
            ("table_order", "supervisor", None),
            ("table_order", "sommelier", None),
        ],
    )
    def test_role_outside_business_type_resolves_to_none(self, business_type, role, secondary_role):
        assert active_role(business_type, role, secondary_role) is None

    @pytest.mark.parametrize("role", list(Role))
    def test_resolved_role_lists_the_business_type(self, role):
        for business_type in BusinessType:
            picked = active_role(business_type, role.value, None)
            if picked is not None:
                assert business_type in get_capabilities(picked).business_types


class TestIdleExemption:
    def test_only_chef_exempt_by_default(self):
        assert IDLE_EXEMPT_ROLES == frozenset({Role.CHEF})
        assert get_capabilities("chef").idle_timeout_exempt is True
        assert get_capabilities("waiter").idle_timeout_exempt is False

    def test_chef_is_table_order_only(self):
        assert get_capabilities("chef").business_types == frozenset({BusinessType.TABLE_ORDER})


class TestCatalog:
    def test_codes_unique(self):
        codes = get_all_permission_codes()
        assert len(codes) == len(set(codes))

    def test_every_role_action_is_catalogued(self):
        for role in Role:
            actions = get_capabilities(role).actions
            if actions is FULL_ACCESS:
                continue
            for action in actions:
                assert validate_permission_code(action), action

    def test_definition_lookup(self):
        definition = get_permission_definition("sales.void")
        assert definition["category"] == "SALES"
        assert get_permission_definition("nope") is None

    def test_by_category(self):
        kitchen = {p[0] for p in get_permissions_by_category("KITCHEN")}
        assert kitchen == {"view_kitchen_orders", "accept_order", "start_preparation", "mark_ready"}
