# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CUSTOMERS = "CUSTOMERS"
    DEVICES = "DEVICES"
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    FINANCE = "FINANCE"
    COMMUNICATIONS = "COMMUNICATIONS"
    USERS = "USERS"
    SYSTEM = "SYSTEM"
