"""
API Dependencies: principal resolution, authorization guards, shared services.

Every guard goes through ``authorize_request`` and turns a ``Rejected``
decision into an ``HTTPException`` (401 unauthenticated, 403 forbidden).
Shop-scoped guards read ``shop_id`` from the route path, so they work on any
route declared under ``/api/shops/{shop_id}/...``.

Usage:
    @router.get("/api/shops/{shop_id}/menu")
    async def list_menu(principal: Principal = Depends(require_permission(Permission.VIEW_MENU))):
        ...
"""

import logging

from fastapi import Depends, HTTPException, Request

from brewrewards.auth import access
from brewrewards.auth.access import Check
from brewrewards.auth.adapter import Rejected, authorize_request
from brewrewards.auth.permissions import Permission
from brewrewards.auth.principal import Principal
from brewrewards.auth.roles import UserRole
from brewrewards.services.audit_service import AuditService
from brewrewards.services.identity import IdentityProvider
from brewrewards.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


# ── Shared services (created once in brewrewards.main) ───────────────────────

def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_identity_provider(request: Request) -> IdentityProvider:
    provider = getattr(request.app.state, "identity_provider", None)
    if provider is None:
        raise HTTPException(status_code=503, detail="Identity provider is not configured")
    return provider


def get_audit(request: Request) -> AuditService:
    return request.app.state.audit


# ── Authorization ────────────────────────────────────────────────────────────

async def _authorize(request: Request, check: Check, message: str = "") -> Principal:
    decision = await authorize_request(
        request,
        check,
        session_resolver=getattr(request.app.state, "session_resolver", None),
        message=message,
    )
    if isinstance(decision, Rejected):
        if decision.principal is not None:
            request.app.state.audit.log_access_denied(
                decision.principal,
                action=f"{request.method} {request.url.path}",
                resource=request.url.path,
            )
        raise HTTPException(status_code=decision.status_code, detail=decision.error)
    return decision.principal


def _path_shop_id(request: Request) -> str | None:
    return request.path_params.get("shop_id")


async def get_principal(request: Request) -> Principal:
    """Any authenticated caller with a recognised role."""
    return await _authorize(request, access.authenticated())


async def require_shop_access(request: Request) -> Principal:
    return await _authorize(
        request,
        access.shop_access(_path_shop_id(request)),
        "Forbidden: You do not have access to this shop",
    )


async def require_shop_modify(request: Request) -> Principal:
    return await _authorize(
        request,
        access.shop_modify(_path_shop_id(request)),
        "Forbidden: You do not have permission to modify this shop",
    )


def require_permission(*perms: Permission):
    """Dependency: the caller holds ALL listed permissions in the path's shop."""
    async def _check(request: Request) -> Principal:
        return await _authorize(request, access.all_permissions(perms, _path_shop_id(request)))
    return _check


def require_any_permission(*perms: Permission):
    """Dependency: the caller holds AT LEAST ONE of the listed permissions in the path's shop."""
    async def _check(request: Request) -> Principal:
        return await _authorize(request, access.any_permission(perms, _path_shop_id(request)))
    return _check


def require_roles(*roles: UserRole):
    async def _check(principal: Principal = Depends(get_principal)) -> Principal:
        if not access.has_role(principal, *roles):
            raise HTTPException(status_code=403, detail="Forbidden: Insufficient permissions")
        return principal
    return _check
