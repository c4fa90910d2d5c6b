"""Tests for the shop access predicates."""

import pytest

from brewrewards.auth.access import (
    accessible_shop_ids, can_access_shop, can_modify_shop, filter_by_shop_access,
    has_all_permissions, has_any_permission, has_permission, has_role, owns_record,
)
from brewrewards.auth.permissions import Permission
from brewrewards.auth.roles import UserRole
from tests.conftest import make_principal

SHOPS = ["shop_1", "shop_2", None]


# ── Super admin ───────────────────────────────────────────────────────────────

class TestSuperAdmin:
    @pytest.mark.parametrize("shop_id", SHOPS)
    def test_always_allowed(self, shop_id):
        p = make_principal(role="SUPER_ADMIN", shop_id=None)
        assert can_access_shop(p, shop_id)
        assert can_modify_shop(p, shop_id)
        for perm in Permission:
            assert has_permission(p, perm, shop_id)

    def test_even_unknown_permission_strings(self):
        p = make_principal(role="SUPER_ADMIN", shop_id=None)
        assert has_permission(p, "ANYTHING_AT_ALL", "shop_9")


# ── Customer ──────────────────────────────────────────────────────────────────

class TestCustomer:
    @pytest.mark.parametrize("shop_id", SHOPS)
    def test_never_holds_permissions_or_modify(self, shop_id):
        p = make_principal(role="CUSTOMER", shop_id=None)
        assert not can_modify_shop(p, shop_id)
        for perm in Permission:
            assert not has_permission(p, perm, shop_id)

    def test_can_read_any_shop(self):
        p = make_principal(role="CUSTOMER", shop_id=None)
        assert can_access_shop(p, "shop_1")
        assert can_access_shop(p, "shop_2")

    def test_owns_only_own_records(self):
        p = make_principal(role="CUSTOMER", shop_id=None, user_id="cust_1")
        assert owns_record(p, "cust_1")
        assert not owns_record(p, "cust_2")
        assert not owns_record(p, None)


# ── Shop admin ────────────────────────────────────────────────────────────────

class TestShopAdmin:
    def test_own_shop_only(self):
        p = make_principal(role="SHOP_ADMIN", shop_id="shop_1")
        assert can_access_shop(p, "shop_1")
        assert can_modify_shop(p, "shop_1")
        assert not can_access_shop(p, "shop_2")
        assert not can_modify_shop(p, "shop_2")

    @pytest.mark.parametrize("perm", list(Permission))
    def test_all_permissions_in_own_shop(self, perm):
        p = make_principal(role="SHOP_ADMIN", shop_id="shop_1")
        assert has_permission(p, perm, "shop_1")
        assert not has_permission(p, perm, "shop_2")

    def test_no_shop_argument_means_unscoped(self):
        p = make_principal(role="SHOP_ADMIN", shop_id="shop_1")
        assert has_permission(p, Permission.MANAGE_SETTINGS)

    def test_admin_without_shop_cannot_reach_any_shop(self):
        p = make_principal(role="SHOP_ADMIN", shop_id=None)
        assert not can_access_shop(p, "shop_1")
        assert not can_modify_shop(p, None)
        assert not has_permission(p, Permission.VIEW_MENU, "shop_1")


# ── Shop staff ────────────────────────────────────────────────────────────────

class TestShopStaff:
    def test_cashier_defaults(self):
        p = make_principal(staff_role="CASHIER")
        assert has_permission(p, "VIEW_CUSTOMERS", "shop_1")
        assert not has_permission(p, "MANAGE_MENU", "shop_1")
        assert not has_permission(p, "VIEW_CUSTOMERS", "shop_2")
        assert not has_permission(p, "MANAGE_MENU", "shop_2")

    def test_manager_scenario(self):
        p = make_principal(staff_role="MANAGER")
        assert has_permission(p, "MANAGE_STAFF", "shop_1")
        assert not has_permission(p, "MANAGE_STAFF", "shop_2")

    def test_staff_can_read_but_never_modify_shop(self):
        p = make_principal(staff_role="MANAGER")
        assert can_access_shop(p, "shop_1")
        assert not can_access_shop(p, "shop_2")
        assert not can_modify_shop(p, "shop_1")

    def test_requires_matching_shop_argument(self):
        p = make_principal(staff_role="MANAGER")
        assert not has_permission(p, Permission.VIEW_MENU)

    def test_staff_without_shop_fails_closed(self):
        p = make_principal(staff_role="MANAGER", shop_id=None)
        assert not can_access_shop(p, None)
        assert not has_permission(p, Permission.VIEW_MENU, None)
        assert not has_permission(p, Permission.VIEW_MENU, "shop_1")

    def test_explicit_permissions_override_staff_role(self):
        p = make_principal(staff_role="MANAGER", permissions=["VIEW_MENU"])
        assert has_permission(p, Permission.VIEW_MENU, "shop_1")
        assert not has_permission(p, Permission.MANAGE_STAFF, "shop_1")

    def test_matching_is_case_sensitive(self):
        p = make_principal(permissions=["view_menu", "VIEW_CUSTOMERS"])
        assert not has_permission(p, Permission.VIEW_MENU, "shop_1")
        assert not has_permission(p, "view_customers", "shop_1")
        assert has_permission(p, "VIEW_CUSTOMERS", "shop_1")

    def test_unknown_staff_role_has_nothing(self):
        p = make_principal(staff_role="JANITOR")
        assert not has_any_permission(p, list(Permission), "shop_1")


# ── Unknown roles and missing principals ──────────────────────────────────────

class TestFailClosed:
    @pytest.mark.parametrize("role", ["ROOT", "super_admin", ""])
    def test_unknown_role_denied_everywhere(self, role):
        p = make_principal(role=role, shop_id="shop_1", staff_role="MANAGER")
        assert p.role is None
        assert not can_access_shop(p, "shop_1")
        assert not can_modify_shop(p, "shop_1")
        assert not has_permission(p, Permission.VIEW_MENU, "shop_1")
        assert not has_role(p, UserRole.SUPER_ADMIN)
        assert not owns_record(p, p.id)

    def test_none_principal(self):
        assert not can_access_shop(None, "shop_1")
        assert not can_modify_shop(None, "shop_1")
        assert not has_permission(None, Permission.VIEW_MENU, "shop_1")
        assert not owns_record(None, "user_1")


# ── Combinators ───────────────────────────────────────────────────────────────

class TestCombinators:
    def test_any_and_all(self):
        p = make_principal(staff_role="CASHIER")
        perms = [Permission.MANAGE_MENU, Permission.VIEW_MENU]
        assert has_any_permission(p, perms, "shop_1")
        assert not has_all_permissions(p, perms, "shop_1")
        assert has_all_permissions(p, [Permission.VIEW_MENU, Permission.CREATE_TRANSACTION], "shop_1")

    def test_empty_lists(self):
        p = make_principal(staff_role="CASHIER")
        assert not has_any_permission(p, [], "shop_1")
        assert has_all_permissions(p, [], "shop_1")

    def test_any_short_circuits(self):
        p = make_principal(role="SUPER_ADMIN", shop_id=None)
        seen = []

        def perms():
            for perm in (Permission.VIEW_MENU, Permission.MANAGE_MENU):
                seen.append(perm)
                yield perm

        assert has_any_permission(p, perms())
        assert seen == [Permission.VIEW_MENU]

    def test_all_short_circuits(self):
        p = make_principal(role="CUSTOMER", shop_id=None)
        seen = []

        def perms():
            for perm in (Permission.VIEW_MENU, Permission.MANAGE_MENU):
                seen.append(perm)
                yield perm

        assert not has_all_permissions(p, perms())
        assert seen == [Permission.VIEW_MENU]


def test_predicates_are_idempotent():
    p = make_principal(staff_role="BARISTA")
    first = [has_permission(p, perm, "shop_1") for perm in Permission]
    for _ in range(3):
        assert [has_permission(p, perm, "shop_1") for perm in Permission] == first
        assert can_access_shop(p, "shop_1") is True


def test_shop_filtering():
    p = make_principal(role="SHOP_ADMIN", shop_id="shop_2")
    items = [{"id": 1, "shopId": "shop_1"}, {"id": 2, "shopId": "shop_2"}]
    assert filter_by_shop_access(p, items, lambda i: i["shopId"]) == [items[1]]
    assert accessible_shop_ids(p, ["shop_1", "shop_2", "shop_3"]) == ["shop_2"]

    root = make_principal(role="SUPER_ADMIN", shop_id=None)
    assert accessible_shop_ids(root, ["shop_1", "shop_2"]) == ["shop_1", "shop_2"]
