# Overview: Permission sets granted by each worker role.

from .definitions import PERMISSION_DEFINITIONS


_ALL = [perm[0] for perm in PERMISSION_DEFINITIONS]


DEFAULT_ROLE_PERMISSIONS = {
    # Admin: everything
    "admin": _ALL,

    # Manager: runs the shop, but cannot touch the SMS queue or delete tickets
    "manager": [
        code for code in _ALL
        if code not in {"MANAGE_SMS_QUEUE", "DELETE_DEVICES", "MANAGE_LOCATIONS"}
    ],

    # Technician: repair floor
    "technician": [
        "VIEW_DASHBOARD",
        "VIEW_CUSTOMERS",
        "VIEW_DEVICES",
        "REGISTER_DEVICES",
        "UPDATE_DEVICE_STATUS",
        "VIEW_INVENTORY",
        "VIEW_WORKERS",
    ],

    # Sales: counter
    "sales": [
        "VIEW_DASHBOARD",
        "VIEW_CUSTOMERS",
        "MANAGE_CUSTOMERS",
        "VIEW_DEVICES",
        "VIEW_INVENTORY",
        "CREATE_SALE",
        "VIEW_SALES",
        "UPDATE_DEVICE_PAYMENT",
        "VIEW_WORKERS",
    ],

    # Customer service: front desk intake and follow-up
    "customer_service": [
        "VIEW_DASHBOARD",
        "VIEW_CUSTOMERS",
        "MANAGE_CUSTOMERS",
        "MANAGE_APPOINTMENTS",
        "VIEW_DEVICES",
        "REGISTER_DEVICES",
        "UPDATE_DEVICE_STATUS",
        "SEND_SMS",
        "VIEW_WORKERS",
    ],
}
