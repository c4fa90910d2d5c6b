"""
Access predicates: may this principal touch this shop, or do this action?

All functions here are pure and total: no I/O, no stored state, and a
``None`` principal, an unknown role or a shop-bound principal without a
shop always yields ``False``. Nothing here raises for an expected denial.

Two layers are kept apart on purpose:
- shop level (``can_access_shop`` / ``can_modify_shop``), and
- record level (``owns_record``), which handlers apply on top for data
  that belongs to a single customer.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from brewrewards.auth.permissions import Permission
from brewrewards.auth.principal import Principal
from brewrewards.auth.roles import UserRole, SHOP_BOUND_ROLES

T = TypeVar("T")

Check = Callable[[Principal], bool]


def _in_own_shop(principal: Principal, shop_id: str | None) -> bool:
    return bool(principal.shop_id) and principal.shop_id == shop_id


def can_access_shop(principal: Principal | None, shop_id: str | None) -> bool:
    """Read access to a shop's resources."""
    if principal is None:
        return False
    role = principal.role
    if role is UserRole.SUPER_ADMIN:
        return True
    if role in SHOP_BOUND_ROLES:
        return _in_own_shop(principal, shop_id)
    if role is UserRole.CUSTOMER:
        return True
    return False


def can_modify_shop(principal: Principal | None, shop_id: str | None) -> bool:
    """
    Shop-level write access, reserved to admins.

    Staff never pass this; their mutations go through ``has_permission``.
    """
    if principal is None:
        return False
    if principal.role is UserRole.SUPER_ADMIN:
        return True
    if principal.role is UserRole.SHOP_ADMIN:
        return _in_own_shop(principal, shop_id)
    return False


def has_permission(
    principal: Principal | None,
    permission: Permission | str,
    shop_id: str | None = None,
) -> bool:
    if principal is None:
        return False
    role = principal.role
    if role is UserRole.SUPER_ADMIN:
        return True
    if role is UserRole.SHOP_ADMIN:
        if shop_id is None:
            return True
        return _in_own_shop(principal, shop_id)
    if role is UserRole.SHOP_STAFF:
        if not _in_own_shop(principal, shop_id):
            return False
        value = permission.value if isinstance(permission, Permission) else permission
        return value in principal.permissions
    return False


def has_any_permission(
    principal: Principal | None,
    permissions: Iterable[Permission | str],
    shop_id: str | None = None,
) -> bool:
    return any(has_permission(principal, p, shop_id) for p in permissions)


def has_all_permissions(
    principal: Principal | None,
    permissions: Iterable[Permission | str],
    shop_id: str | None = None,
) -> bool:
    return all(has_permission(principal, p, shop_id) for p in permissions)


def has_role(principal: Principal | None, *roles: UserRole) -> bool:
    return principal is not None and principal.role is not None and principal.role in roles


def owns_record(principal: Principal | None, owner_id: str | None) -> bool:
    """Record-level ownership: a user's own rewards, transactions, profile."""
    if principal is None:
        return False
    if principal.role is UserRole.SUPER_ADMIN:
        return True
    if principal.role is None or not owner_id:
        return False
    return principal.id == owner_id


def accessible_shop_ids(principal: Principal | None, all_shop_ids: Iterable[str]) -> list[str]:
    return [shop_id for shop_id in all_shop_ids if can_access_shop(principal, shop_id)]


def filter_by_shop_access(
    principal: Principal | None,
    items: Iterable[T],
    shop_id_of: Callable[[T], str | None],
) -> list[T]:
    return [item for item in items if can_access_shop(principal, shop_id_of(item))]


# ── Check factories (consumed by the request adapter) ────────────────────────

def authenticated() -> Check:
    return lambda principal: principal.role is not None


def shop_access(shop_id: str | None) -> Check:
    return lambda principal: can_access_shop(principal, shop_id)


def shop_modify(shop_id: str | None) -> Check:
    return lambda principal: can_modify_shop(principal, shop_id)


def permission(perm: Permission | str, shop_id: str | None = None) -> Check:
    return lambda principal: has_permission(principal, perm, shop_id)


def any_permission(perms: Iterable[Permission | str], shop_id: str | None = None) -> Check:
    perms = tuple(perms)
    return lambda principal: has_any_permission(principal, perms, shop_id)


def all_permissions(perms: Iterable[Permission | str], shop_id: str | None = None) -> Check:
    perms = tuple(perms)
    return lambda principal: has_all_permissions(principal, perms, shop_id)


def role_in(*roles: UserRole) -> Check:
    return lambda principal: has_role(principal, *roles)
