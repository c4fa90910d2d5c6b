"""
Role definitions: platform roles and the staff sub-role permission table.

Platform roles decide the coarse shape of access:

    SUPER_ADMIN  every shop, every permission
    SHOP_ADMIN   every permission inside their own shop
    SHOP_STAFF   the permissions of their staff sub-role, inside their own shop
    CUSTOMER     no staff permissions; record ownership is checked per handler

Staff sub-roles each carry an explicit default permission set. The sets are
nested (MANAGER ⊇ BARISTA ⊇ CASHIER) but every one is written out in full
rather than derived, so a change to one role never silently widens another.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType

from brewrewards.auth.permissions import Permission, ALL_PERMISSIONS


class UserRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    SHOP_ADMIN = "SHOP_ADMIN"
    SHOP_STAFF = "SHOP_STAFF"
    CUSTOMER = "CUSTOMER"


class StaffRole(str, Enum):
    OWNER = "OWNER"          # only issued by the owner-invitation flow
    MANAGER = "MANAGER"
    BARISTA = "BARISTA"
    CASHIER = "CASHIER"


# Roles bound to exactly one shop
SHOP_BOUND_ROLES = frozenset({UserRole.SHOP_ADMIN, UserRole.SHOP_STAFF})


# ── Owner: everything ──
_OWNER_PERMS: frozenset[Permission] = ALL_PERMISSIONS

# ── Manager: runs the shop floor, cannot change shop settings ──
_MANAGER_PERMS: frozenset[Permission] = frozenset({
    Permission.CREATE_TRANSACTION,
    Permission.VIEW_TRANSACTIONS,
    Permission.VIEW_CUSTOMERS,
    Permission.MANAGE_CUSTOMER_LOYALTY,
    Permission.VIEW_MENU,
    Permission.MANAGE_MENU,
    Permission.VIEW_LOYALTY_PROGRAMS,
    Permission.MANAGE_LOYALTY_PROGRAMS,
    Permission.VIEW_STAFF,
    Permission.MANAGE_STAFF,
    Permission.VIEW_SETTINGS,
})

# ── Barista: transactions + customer loyalty ──
_BARISTA_PERMS: frozenset[Permission] = frozenset({
    Permission.CREATE_TRANSACTION,
    Permission.VIEW_TRANSACTIONS,
    Permission.VIEW_CUSTOMERS,
    Permission.MANAGE_CUSTOMER_LOYALTY,
    Permission.VIEW_MENU,
    Permission.VIEW_LOYALTY_PROGRAMS,
})

# ── Cashier: ring up sales, look customers up ──
_CASHIER_PERMS: frozenset[Permission] = frozenset({
    Permission.CREATE_TRANSACTION,
    Permission.VIEW_TRANSACTIONS,
    Permission.VIEW_CUSTOMERS,
    Permission.VIEW_MENU,
})


STAFF_ROLE_PERMISSIONS: MappingProxyType[StaffRole, frozenset[Permission]] = MappingProxyType({
    StaffRole.OWNER: _OWNER_PERMS,
    StaffRole.MANAGER: _MANAGER_PERMS,
    StaffRole.BARISTA: _BARISTA_PERMS,
    StaffRole.CASHIER: _CASHIER_PERMS,
})

STAFF_ROLE_DESCRIPTIONS: MappingProxyType[StaffRole, tuple[str, str]] = MappingProxyType({
    StaffRole.OWNER: ("Owner", "Full control of the shop"),
    StaffRole.MANAGER: ("Manager", "Can manage most aspects of the shop"),
    StaffRole.BARISTA: ("Barista", "Can create transactions and manage customer loyalty"),
    StaffRole.CASHIER: ("Cashier", "Can create transactions and view customers"),
})


def parse_user_role(value: str | UserRole | None) -> UserRole | None:
    """Map a raw role string to ``UserRole``; anything unknown becomes ``None``."""
    if value is None:
        return None
    try:
        return UserRole(value)
    except ValueError:
        return None


def parse_staff_role(value: str | StaffRole | None) -> StaffRole | None:
    if value is None:
        return None
    try:
        return StaffRole(value)
    except ValueError:
        return None


def permissions_for_staff_role(role: str | StaffRole | None) -> frozenset[Permission]:
    """
    Default permissions of a staff sub-role.

    Total: an unknown or missing role yields an empty set instead of raising,
    so a failed lookup can only ever deny.
    """
    staff_role = parse_staff_role(role)
    if staff_role is None:
        return frozenset()
    return STAFF_ROLE_PERMISSIONS.get(staff_role, frozenset())
