"""
Permission constants: the closed set of shop-scoped capabilities.

Each permission gates one family of actions inside a single shop. Values
equal their names so that permission lists forwarded by the identity
gateway (``["VIEW_MENU", ...]``) compare directly against the enum.
Matching is exact and case-sensitive; there are no wildcards.
"""

from enum import Enum


class Permission(str, Enum):
    # ── Transactions ──
    CREATE_TRANSACTION = "CREATE_TRANSACTION"
    VIEW_TRANSACTIONS = "VIEW_TRANSACTIONS"

    # ── Customers ──
    VIEW_CUSTOMERS = "VIEW_CUSTOMERS"
    MANAGE_CUSTOMER_LOYALTY = "MANAGE_CUSTOMER_LOYALTY"   # stamps, point adjustments

    # ── Menu ──
    VIEW_MENU = "VIEW_MENU"
    MANAGE_MENU = "MANAGE_MENU"

    # ── Loyalty programs ──
    VIEW_LOYALTY_PROGRAMS = "VIEW_LOYALTY_PROGRAMS"
    MANAGE_LOYALTY_PROGRAMS = "MANAGE_LOYALTY_PROGRAMS"

    # ── Staff ──
    VIEW_STAFF = "VIEW_STAFF"
    MANAGE_STAFF = "MANAGE_STAFF"                         # invitations, role changes

    # ── Settings ──
    VIEW_SETTINGS = "VIEW_SETTINGS"
    MANAGE_SETTINGS = "MANAGE_SETTINGS"


ALL_PERMISSIONS: frozenset[Permission] = frozenset(Permission)


# Grouping shown on the staff-invitation screens
PERMISSION_GROUPS: tuple[dict, ...] = (
    {
        "name": "Transactions",
        "permissions": (
            (Permission.CREATE_TRANSACTION, "Create Transactions"),
            (Permission.VIEW_TRANSACTIONS, "View Transactions"),
        ),
    },
    {
        "name": "Customers",
        "permissions": (
            (Permission.VIEW_CUSTOMERS, "View Customers"),
            (Permission.MANAGE_CUSTOMER_LOYALTY, "Manage Customer Loyalty"),
        ),
    },
    {
        "name": "Menu",
        "permissions": (
            (Permission.VIEW_MENU, "View Menu"),
            (Permission.MANAGE_MENU, "Manage Menu"),
        ),
    },
    {
        "name": "Loyalty Programs",
        "permissions": (
            (Permission.VIEW_LOYALTY_PROGRAMS, "View Loyalty Programs"),
            (Permission.MANAGE_LOYALTY_PROGRAMS, "Manage Loyalty Programs"),
        ),
    },
    {
        "name": "Staff",
        "permissions": (
            (Permission.VIEW_STAFF, "View Staff"),
            (Permission.MANAGE_STAFF, "Manage Staff"),
        ),
    },
    {
        "name": "Settings",
        "permissions": (
            (Permission.VIEW_SETTINGS, "View Settings"),
            (Permission.MANAGE_SETTINGS, "Manage Settings"),
        ),
    },
)
