# Overview: Permission system package.
# Re-exports all public APIs for short imports.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    ORDER_PERMISSIONS,
    KITCHEN_PERMISSIONS,
    SALES_PERMISSIONS,
    PRODUCT_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    REPORT_PERMISSIONS,
    CUSTOMER_PERMISSIONS,
    DISCOUNT_PERMISSIONS,
    STAFF_PERMISSIONS,
    SETTINGS_PERMISSIONS,
    FINANCIAL_PERMISSIONS,
)
from .roles import (
    FULL_ACCESS,
    IDLE_EXEMPT_ROLES,
    ROLE_CAPABILITIES,
    BusinessType,
    FullAccess,
    Role,
    RoleCapabilities,
    active_role,
    get_capabilities,
    parse_business_type,
    parse_role,
)
from .checks import (
    MANAGE_PRODUCTS_PERMISSION,
    PERMISSION_MANAGER_ROLES,
    allowed_transitions,
    can_manage_permissions,
    can_toggle_permission,
    can_transition,
    effective_permission,
    effective_permissions,
    has_full_access,
    has_permission,
    role_default,
)
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "ORDER_PERMISSIONS",
    "KITCHEN_PERMISSIONS",
    "SALES_PERMISSIONS",
    "PRODUCT_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "CUSTOMER_PERMISSIONS",
    "DISCOUNT_PERMISSIONS",
    "STAFF_PERMISSIONS",
    "SETTINGS_PERMISSIONS",
    "FINANCIAL_PERMISSIONS",
    "FULL_ACCESS",
    "IDLE_EXEMPT_ROLES",
    "ROLE_CAPABILITIES",
    "BusinessType",
    "FullAccess",
    "Role",
    "RoleCapabilities",
    "active_role",
    "get_capabilities",
    "parse_business_type",
    "parse_role",
    "MANAGE_PRODUCTS_PERMISSION",
    "PERMISSION_MANAGER_ROLES",
    "allowed_transitions",
    "can_manage_permissions",
    "can_toggle_permission",
    "can_transition",
    "effective_permission",
    "effective_permissions",
    "has_full_access",
    "has_permission",
    "role_default",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
]
