# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (
        "VIEW_CUSTOMERS",
        "View Customers",
        "View and search customer records",
        PermissionCategory.CUSTOMERS,
    ),
    (
        "MANAGE_CUSTOMERS",
        "Manage Customers",
        "Create, edit and deactivate customers",
        PermissionCategory.CUSTOMERS,
    ),
    (
        "MANAGE_APPOINTMENTS",
        "Manage Appointments",
        "Book, reschedule and cancel appointments",
        PermissionCategory.CUSTOMERS,
    ),
]


# -- DEVICES --

DEVICE_PERMISSIONS = [
    (
        "VIEW_DEVICES",
        "View Devices",
        "View repair tickets and their history",
        PermissionCategory.DEVICES,
    ),
    (
        "REGISTER_DEVICES",
        "Register Devices",
        "Take in devices for repair and edit ticket details",
        PermissionCategory.DEVICES,
    ),
    (
        "UPDATE_DEVICE_STATUS",
        "Update Device Status",
        "Move repair tickets through the repair workflow",
        PermissionCategory.DEVICES,
    ),
    (
        "UPDATE_DEVICE_PAYMENT",
        "Update Device Payment",
        "Change the payment status of repair tickets",
        PermissionCategory.DEVICES,
    ),
    (
        "DELETE_DEVICES",
        "Delete Devices",
        "Permanently remove repair tickets",
        PermissionCategory.DEVICES,
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Edit device types, brands, models, services and predefined problems",
        PermissionCategory.DEVICES,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View stock levels, alerts and predictions",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_INVENTORY",
        "Manage Inventory",
        "Create, edit, restock and adjust inventory items",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_PURCHASE_ORDERS",
        "Manage Purchase Orders",
        "Draft, submit, receive and cancel purchase orders; manage suppliers",
        PermissionCategory.INVENTORY,
    ),
    (
        "APPROVE_PURCHASE_ORDERS",
        "Approve Purchase Orders",
        "Approve submitted purchase orders",
        PermissionCategory.INVENTORY,
    ),
    (
        "IMPORT_EXPORT_DATA",
        "Import/Export Data",
        "Export and import customers and inventory spreadsheets",
        PermissionCategory.INVENTORY,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Record counter sales",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "View sales history",
        PermissionCategory.SALES,
    ),
]


# -- FINANCE --

FINANCE_PERMISSIONS = [
    (
        "VIEW_FINANCE",
        "View Finance",
        "View expenses, budgets, loan invoices and analytics",
        PermissionCategory.FINANCE,
    ),
    (
        "MANAGE_EXPENSES",
        "Manage Expenses",
        "Record expenses and edit budgets",
        PermissionCategory.FINANCE,
    ),
    (
        "MANAGE_LOAN_INVOICES",
        "Manage Loan Invoices",
        "Create credit invoices and record their payments",
        PermissionCategory.FINANCE,
    ),
]


# -- COMMUNICATIONS --

COMMUNICATION_PERMISSIONS = [
    (
        "SEND_SMS",
        "Send SMS",
        "Send SMS campaigns and manage templates and recipient groups",
        PermissionCategory.COMMUNICATIONS,
    ),
    (
        "MANAGE_SMS_SETTINGS",
        "Manage SMS Settings",
        "Configure the SMS provider",
        PermissionCategory.COMMUNICATIONS,
    ),
    (
        "MANAGE_SMS_QUEUE",
        "Manage SMS Queue",
        "Inspect, retry and cancel queued SMS",
        PermissionCategory.COMMUNICATIONS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_WORKERS",
        "View Workers",
        "List active workers",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create, edit and deactivate worker accounts",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_LOCATIONS",
        "Manage Locations",
        "Create and edit shop locations",
        PermissionCategory.USERS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "VIEW_DASHBOARD",
        "View Dashboard",
        "View dashboard statistics",
        PermissionCategory.SYSTEM,
    ),
    (
        "MANAGE_SETTINGS",
        "Manage Settings",
        "Edit application settings and the business profile",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    CUSTOMER_PERMISSIONS
    + DEVICE_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + FINANCE_PERMISSIONS
    + COMMUNICATION_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
