# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- ORDERS (table service) --

ORDER_PERMISSIONS = [
    ("take_order", "Take Orders", "Create new table orders", PermissionCategory.ORDERS),
    ("view_orders", "View Orders", "See open orders for the shop", PermissionCategory.ORDERS),
    ("mark_served", "Mark Served", "Mark ready orders as served", PermissionCategory.ORDERS),
    ("request_payment", "Present Bill", "Present the bill for a served order", PermissionCategory.ORDERS),
    ("process_payment", "Take Payment", "Mark presented bills as paid", PermissionCategory.ORDERS),
    ("view_menu", "View Menu", "Browse the menu while taking orders", PermissionCategory.ORDERS),
    ("view_ready_orders", "View Ready Orders", "See orders waiting to be run", PermissionCategory.ORDERS),
]


# -- KITCHEN --

KITCHEN_PERMISSIONS = [
    ("view_kitchen_orders", "View Kitchen Orders", "See the kitchen display queue", PermissionCategory.KITCHEN),
    ("accept_order", "Accept Orders", "Accept new orders into the kitchen", PermissionCategory.KITCHEN),
    ("start_preparation", "Start Preparation", "Move accepted orders into preparation", PermissionCategory.KITCHEN),
    ("mark_ready", "Mark Ready", "Mark prepared orders as ready", PermissionCategory.KITCHEN),
]


# -- SALES (quick checkout) --

SALES_PERMISSIONS = [
    ("sales.create", "Create Sales", "Process new transactions", PermissionCategory.SALES),
    ("sales.void", "Void Sales", "Cancel/void transactions", PermissionCategory.SALES),
    ("sales.refund", "Process Refunds", "Issue refunds to customers", PermissionCategory.SALES),
    ("sales.view_all", "View All Sales", "See all store transactions", PermissionCategory.SALES),
    ("sales.view_own", "View Own Sales", "See only own transactions", PermissionCategory.SALES),
    ("sales.edit", "Edit Sales", "Modify transaction details", PermissionCategory.SALES),
    ("sales.apply_discount", "Apply Discounts", "Add discounts to sales", PermissionCategory.SALES),
    ("sales.override_price", "Override Prices", "Change item prices at checkout", PermissionCategory.SALES),
]


# -- PRODUCTS --

PRODUCT_PERMISSIONS = [
    ("products.manage", "Manage Products", "Create, edit and remove menu products", PermissionCategory.PRODUCTS),
    ("products.create", "Create Products", "Add new products", PermissionCategory.PRODUCTS),
    ("products.edit", "Edit Products", "Modify product details", PermissionCategory.PRODUCTS),
    ("products.delete", "Delete Products", "Remove products", PermissionCategory.PRODUCTS),
    ("products.view", "View Products", "See product catalog", PermissionCategory.PRODUCTS),
    ("products.manage_categories", "Manage Categories", "Create/edit categories", PermissionCategory.PRODUCTS),
    ("products.manage_pricing", "Manage Pricing", "Set product prices", PermissionCategory.PRODUCTS),
    ("products.import_export", "Import/Export", "Bulk product operations", PermissionCategory.PRODUCTS),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    ("inventory.adjust", "Adjust Stock", "Modify stock levels", PermissionCategory.INVENTORY),
    ("inventory.view", "View Inventory", "See stock levels", PermissionCategory.INVENTORY),
    ("inventory.receive", "Receive Stock", "Process incoming inventory", PermissionCategory.INVENTORY),
    ("inventory.transfer", "Transfer Stock", "Move stock between locations", PermissionCategory.INVENTORY),
    ("inventory.count", "Stock Counting", "Perform stock takes", PermissionCategory.INVENTORY),
    ("inventory.alerts", "Manage Alerts", "Set low stock alerts", PermissionCategory.INVENTORY),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    ("reports.sales", "Sales Reports", "View sales analytics", PermissionCategory.REPORTS),
    ("reports.inventory", "Inventory Reports", "View stock reports", PermissionCategory.REPORTS),
    ("reports.staff", "Staff Reports", "View staff performance", PermissionCategory.REPORTS),
    ("reports.financial", "Financial Reports", "View financial summaries", PermissionCategory.REPORTS),
    ("reports.export", "Export Reports", "Download report data", PermissionCategory.REPORTS),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    ("customers.create", "Create Customers", "Add new customers", PermissionCategory.CUSTOMERS),
    ("customers.edit", "Edit Customers", "Modify customer details", PermissionCategory.CUSTOMERS),
    ("customers.view", "View Customers", "See customer list", PermissionCategory.CUSTOMERS),
    ("customers.delete", "Delete Customers", "Remove customers", PermissionCategory.CUSTOMERS),
]


# -- DISCOUNTS --

DISCOUNT_PERMISSIONS = [
    ("discounts.create", "Create Discounts", "Set up discount rules", PermissionCategory.DISCOUNTS),
    ("discounts.edit", "Edit Discounts", "Modify discounts", PermissionCategory.DISCOUNTS),
    ("discounts.delete", "Delete Discounts", "Remove discounts", PermissionCategory.DISCOUNTS),
    ("discounts.view", "View Discounts", "See active discounts", PermissionCategory.DISCOUNTS),
]


# -- STAFF --

STAFF_PERMISSIONS = [
    ("staff.invite", "Invite Staff", "Add new team members", PermissionCategory.STAFF),
    ("staff.edit", "Edit Staff", "Modify staff details", PermissionCategory.STAFF),
    ("staff.remove", "Remove Staff", "Deactivate staff accounts", PermissionCategory.STAFF),
    ("staff.view", "View Staff", "See staff list", PermissionCategory.STAFF),
    ("staff.manage_permissions", "Manage Permissions", "Change staff permissions", PermissionCategory.STAFF),
]


# -- SETTINGS --

SETTINGS_PERMISSIONS = [
    ("settings.view", "View Settings", "See business settings", PermissionCategory.SETTINGS),
    ("settings.edit_basic", "Edit Basic Settings", "Modify basic info", PermissionCategory.SETTINGS),
    ("settings.edit_advanced", "Edit Advanced Settings", "Modify system settings", PermissionCategory.SETTINGS),
    ("settings.integrations", "Manage Integrations", "Connect external services", PermissionCategory.SETTINGS),
]


# -- FINANCIAL --

FINANCIAL_PERMISSIONS = [
    ("financial.view_cash", "View Cash Drawer", "See cash drawer balance", PermissionCategory.FINANCIAL),
    ("financial.open_close_drawer", "Open/Close Drawer", "Manage cash drawer", PermissionCategory.FINANCIAL),
    ("financial.cash_in_out", "Cash In/Out", "Add/remove cash", PermissionCategory.FINANCIAL),
    ("financial.end_of_day", "End of Day", "Close daily operations", PermissionCategory.FINANCIAL),
]


PERMISSION_DEFINITIONS = (
    ORDER_PERMISSIONS
    + KITCHEN_PERMISSIONS
    + SALES_PERMISSIONS
    + PRODUCT_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + REPORT_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + DISCOUNT_PERMISSIONS
    + STAFF_PERMISSIONS
    + SETTINGS_PERMISSIONS
    + FINANCIAL_PERMISSIONS
)
