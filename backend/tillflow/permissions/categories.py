# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    ORDERS = "ORDERS"
    KITCHEN = "KITCHEN"
    SALES = "SALES"
    PRODUCTS = "PRODUCTS"
    INVENTORY = "INVENTORY"
    REPORTS = "REPORTS"
    CUSTOMERS = "CUSTOMERS"
    DISCOUNTS = "DISCOUNTS"
    STAFF = "STAFF"
    SETTINGS = "SETTINGS"
    FINANCIAL = "FINANCIAL"
