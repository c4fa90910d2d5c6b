"""Tests for shop-scoped authorization endpoints."""

import logging

import pytest
import pytest_asyncio
from fastapi import APIRouter, Depends
from httpx import ASGITransport, AsyncClient

from brewrewards.api.deps import require_any_permission, require_permission, require_shop_modify
from brewrewards.auth.permissions import Permission
from brewrewards.auth.principal import Principal
from tests.conftest import bearer, identity_headers

CATALOGUE = "/api/shops/shop_1/staff/permissions"


@pytest.mark.asyncio
class TestStaffPermissionCatalogue:
    async def test_shop_admin_of_shop(self, client: AsyncClient):
        resp = await client.get(CATALOGUE, headers=bearer(role="SHOP_ADMIN", shop_id="shop_1"))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert [r["id"] for r in data["staffRoles"]] == ["MANAGER", "BARISTA", "CASHIER"]
        manager = data["staffRoles"][0]
        assert "MANAGE_STAFF" in manager["permissions"]
        assert len(data["allPermissions"]) == 12
        assert [g["name"] for g in data["permissionGroups"]][0] == "Transactions"

    async def test_super_admin_any_shop(self, client: AsyncClient):
        resp = await client.get("/api/shops/shop_42/staff/permissions", headers=bearer(role="SUPER_ADMIN"))
        assert resp.status_code == 200

    async def test_admin_of_other_shop_forbidden(self, client: AsyncClient, caplog):
        with caplog.at_level(logging.WARNING, logger="brewrewards.audit"):
            resp = await client.get(CATALOGUE, headers=bearer(role="SHOP_ADMIN", shop_id="shop_2"))
        assert resp.status_code == 403
        assert resp.json() == {"error": "Forbidden: You do not have access to this shop"}
        assert "Access denied" in caplog.text

    async def test_staff_forbidden_even_in_own_shop(self, client: AsyncClient):
        resp = await client.get(CATALOGUE, headers=bearer(
            role="SHOP_STAFF", shop_id="shop_1", staff_role="MANAGER",
        ))
        assert resp.status_code == 403

    async def test_anonymous(self, client: AsyncClient):
        resp = await client.get(CATALOGUE)
        assert resp.status_code == 401


@pytest.mark.asyncio
class TestShopAccessSummary:
    async def test_cashier(self, trusted_client: AsyncClient):
        resp = await trusted_client.get("/api/shops/shop_1/access", headers=identity_headers(
            role="SHOP_STAFF", shop_id="shop_1", staff_role="CASHIER",
        ))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["canAccess"] is True
        assert data["canModify"] is False
        assert "VIEW_CUSTOMERS" in data["permissions"]
        assert "MANAGE_MENU" not in data["permissions"]

    async def test_staff_of_other_shop(self, trusted_client: AsyncClient):
        resp = await trusted_client.get("/api/shops/shop_2/access", headers=identity_headers(
            role="SHOP_STAFF", shop_id="shop_1", staff_role="MANAGER",
        ))
        assert resp.status_code == 403

    async def test_customer_reads_but_holds_nothing(self, trusted_client: AsyncClient):
        resp = await trusted_client.get("/api/shops/shop_2/access", headers=identity_headers(role="CUSTOMER"))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["canModify"] is False
        assert data["permissions"] == []

    async def test_malformed_permissions_header_grants_nothing(self, trusted_client: AsyncClient):
        headers = identity_headers(role="SHOP_STAFF", shop_id="shop_1", staff_role="MANAGER")
        headers["x-user-permissions"] = "{broken"
        resp = await trusted_client.get("/api/shops/shop_1/access", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["permissions"] == []

    async def test_shop_admin_holds_everything(self, trusted_client: AsyncClient):
        resp = await trusted_client.get("/api/shops/shop_1/access", headers=identity_headers(
            role="SHOP_ADMIN", shop_id="shop_1", permissions=[],
        ))
        data = resp.json()["data"]
        assert data["canModify"] is True
        assert len(data["permissions"]) == 12

    async def test_unknown_role(self, trusted_client: AsyncClient):
        resp = await trusted_client.get("/api/shops/shop_1/access", headers=identity_headers(
            role="OVERLORD", shop_id="shop_1", permissions=["MANAGE_MENU"],
        ))
        assert resp.status_code == 403


# ── Guards on shop-scoped routes ──────────────────────────────────────────────

guarded = APIRouter(prefix="/api/shops/{shop_id}")


@guarded.put("/menu")
async def update_menu(principal: Principal = Depends(require_permission(Permission.MANAGE_MENU))):
    return {"success": True, "data": {"by": principal.id}}


@guarded.get("/menu/editor")
async def menu_editor(
    principal: Principal = Depends(require_permission(Permission.VIEW_MENU, Permission.MANAGE_MENU)),
):
    return {"success": True}


@guarded.get("/loyalty-programs")
async def list_loyalty_programs(
    principal: Principal = Depends(require_any_permission(
        Permission.MANAGE_LOYALTY_PROGRAMS, Permission.VIEW_LOYALTY_PROGRAMS,
    )),
):
    return {"success": True}


@guarded.put("/settings")
async def update_settings(principal: Principal = Depends(require_shop_modify)):
    return {"success": True}


@pytest_asyncio.fixture
async def guarded_client(gateway_app):
    gateway_app.include_router(guarded)
    transport = ASGITransport(app=gateway_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.mark.asyncio
class TestRouteGuards:
    async def test_cashier_cannot_manage_menu(self, guarded_client: AsyncClient):
        resp = await guarded_client.put("/api/shops/shop_1/menu", headers=bearer(
            role="SHOP_STAFF", shop_id="shop_1", staff_role="CASHIER",
        ))
        assert resp.status_code == 403
        assert resp.json() == {"error": "Forbidden: Insufficient permissions"}

    async def test_manager_manages_own_menu_only(self, guarded_client: AsyncClient):
        headers = bearer(user_id="mgr", role="SHOP_STAFF", shop_id="shop_1", staff_role="MANAGER")
        own = await guarded_client.put("/api/shops/shop_1/menu", headers=headers)
        assert own.status_code == 200
        assert own.json()["data"]["by"] == "mgr"
        other = await guarded_client.put("/api/shops/shop_2/menu", headers=headers)
        assert other.status_code == 403

    async def test_all_listed_permissions_required(self, guarded_client: AsyncClient):
        barista = bearer(role="SHOP_STAFF", shop_id="shop_1", staff_role="BARISTA")
        resp = await guarded_client.get("/api/shops/shop_1/menu/editor", headers=barista)
        assert resp.status_code == 403

    async def test_any_permission_passes_on_partial_match(self, guarded_client: AsyncClient):
        barista = bearer(role="SHOP_STAFF", shop_id="shop_1", staff_role="BARISTA")
        resp = await guarded_client.get("/api/shops/shop_1/loyalty-programs", headers=barista)
        assert resp.status_code == 200

        cashier = bearer(role="SHOP_STAFF", shop_id="shop_1", staff_role="CASHIER")
        resp = await guarded_client.get("/api/shops/shop_1/loyalty-programs", headers=cashier)
        assert resp.status_code == 403

    async def test_shop_modify_needs_admin_of_shop(self, guarded_client: AsyncClient):
        staff = bearer(role="SHOP_STAFF", shop_id="shop_1", staff_role="OWNER")
        resp = await guarded_client.put("/api/shops/shop_1/settings", headers=staff)
        assert resp.status_code == 403
        assert resp.json() == {"error": "Forbidden: You do not have permission to modify this shop"}

        admin = bearer(role="SHOP_ADMIN", shop_id="shop_1")
        assert (await guarded_client.put("/api/shops/shop_1/settings", headers=admin)).status_code == 200
        assert (await guarded_client.put("/api/shops/shop_2/settings", headers=admin)).status_code == 403

    async def test_super_admin_passes_every_guard(self, guarded_client: AsyncClient):
        headers = bearer(role="SUPER_ADMIN")
        assert (await guarded_client.put("/api/shops/shop_9/menu", headers=headers)).status_code == 200
        assert (await guarded_client.put("/api/shops/shop_9/settings", headers=headers)).status_code == 200

    async def test_anonymous_is_unauthenticated(self, guarded_client: AsyncClient):
        for method, path in [
            ("PUT", "/api/shops/shop_1/menu"),
            ("GET", "/api/shops/shop_1/loyalty-programs"),
            ("PUT", "/api/shops/shop_1/settings"),
        ]:
            resp = await guarded_client.request(method, path)
            assert resp.status_code == 401
            assert resp.json() == {"error": "Unauthorized"}
