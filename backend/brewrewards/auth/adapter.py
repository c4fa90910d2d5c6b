"""
Request authorization adapter: from request metadata to an allow/deny decision.

Identity reaches the service in one of two shapes:
  1. trusted ``x-user-*`` headers set by the identity gateway, or
  2. a session object resolved by a session collaborator.

This module turns either into a ``Principal`` and evaluates a ``Check``
against it. Rejections are ordinary return values (``Rejected``), never
exceptions; the FastAPI layer in ``brewrewards.api.deps`` maps them onto
HTTP status codes.

Trust boundary: the headers are believed as-is. The service must only be
reachable through a gateway that strips client-supplied ``x-user-*``
headers (see ``IdentityGatewayMiddleware``).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from starlette.requests import Request

from brewrewards.auth.access import Check
from brewrewards.auth.principal import Principal

logger = logging.getLogger(__name__)

HEADER_USER_ID = "x-user-id"
HEADER_USER_ROLE = "x-user-role"
HEADER_SHOP_ID = "x-user-shop-id"
HEADER_STAFF_ROLE = "x-user-staff-role"
HEADER_PERMISSIONS = "x-user-permissions"

IDENTITY_HEADERS = (
    HEADER_USER_ID,
    HEADER_USER_ROLE,
    HEADER_SHOP_ID,
    HEADER_STAFF_ROLE,
    HEADER_PERMISSIONS,
)

SessionResolver = Callable[[Request], Awaitable[Mapping[str, Any] | None]]


class RejectionReason(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @property
    def default_message(self) -> str:
        return _MESSAGES[self]


_STATUS_CODES = {
    RejectionReason.UNAUTHENTICATED: 401,
    RejectionReason.FORBIDDEN: 403,
    RejectionReason.RATE_LIMITED: 429,
}

_MESSAGES = {
    RejectionReason.UNAUTHENTICATED: "Unauthorized",
    RejectionReason.FORBIDDEN: "Forbidden: Insufficient permissions",
    RejectionReason.RATE_LIMITED: "Too many requests. Please try again later.",
}


@dataclass(frozen=True)
class Authorized:
    principal: Principal
    allowed: bool = True


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason
    message: str = ""
    principal: Principal | None = None
    allowed: bool = False

    @property
    def status_code(self) -> int:
        return self.reason.status_code

    @property
    def error(self) -> str:
        return self.message or self.reason.default_message


Decision = Union[Authorized, Rejected]


# ── Principal extraction ─────────────────────────────────────────────────────

def parse_permission_list(raw: str | None) -> frozenset[str] | None:
    """
    Decode the serialized permission list.

    Returns ``None`` when nothing was supplied (permissions are then derived
    from the staff sub-role). A value that is present but malformed decodes to
    the empty set, so it can only ever narrow access.
    """
    if raw is None or raw.strip() == "":
        return None
    try:
        decoded = json.loads(raw)
    except ValueError as exc:
        logger.warning("Malformed %s header, treating as empty: %s", HEADER_PERMISSIONS, exc)
        return frozenset()
    if not isinstance(decoded, list) or not all(isinstance(p, str) for p in decoded):
        logger.warning("%s header is not a list of strings, treating as empty", HEADER_PERMISSIONS)
        return frozenset()
    return frozenset(decoded)


def principal_from_headers(headers: Mapping[str, str]) -> Principal | None:
    """Build a principal from gateway headers; ``None`` when identity is missing."""
    lowered = {k.lower(): v for k, v in headers.items()}
    user_id = lowered.get(HEADER_USER_ID)
    role = lowered.get(HEADER_USER_ROLE)
    if not user_id or not role:
        return None

    return Principal.from_claims(
        user_id=user_id,
        role=role,
        shop_id=lowered.get(HEADER_SHOP_ID),
        staff_role=lowered.get(HEADER_STAFF_ROLE),
        permissions=parse_permission_list(lowered.get(HEADER_PERMISSIONS)),
    )


def principal_from_session(session: Mapping[str, Any] | None) -> Principal | None:
    """Build a principal from a resolved session object."""
    if not session:
        return None
    user_id = session.get("id")
    role = session.get("role")
    if not user_id or not role:
        return None

    permissions = session.get("permissions")
    if isinstance(permissions, str):
        permissions = parse_permission_list(permissions)
    elif permissions is not None:
        if not isinstance(permissions, (list, tuple, set, frozenset)) or not all(
            isinstance(p, str) for p in permissions
        ):
            logger.warning("Session permissions are not a list of strings, treating as empty")
            permissions = frozenset()

    shop_id = session.get("shopId") or session.get("shop_id")

    return Principal.from_claims(
        user_id=str(user_id),
        role=role,
        shop_id=str(shop_id) if shop_id is not None else None,
        staff_role=session.get("staffRole") or session.get("staff_role"),
        permissions=permissions,
    )


def extract_principal(metadata: Mapping[str, Any] | Principal | None) -> Principal | None:
    if metadata is None or isinstance(metadata, Principal):
        return metadata
    if "id" in metadata or "role" in metadata:
        return principal_from_session(metadata)
    return principal_from_headers(metadata)


# ── Decision ─────────────────────────────────────────────────────────────────

def authorize(
    metadata: Mapping[str, Any] | Principal | None,
    check: Check,
    message: str = "",
) -> Decision:
    """
    Decide whether the identity in *metadata* satisfies *check*.

    *metadata* may be request headers, a resolved session mapping or an
    already-built ``Principal``.
    """
    principal = extract_principal(metadata)
    if principal is None:
        return Rejected(RejectionReason.UNAUTHENTICATED)

    try:
        allowed = check(principal)
    except Exception:
        # A broken check or table must deny, never grant.
        logger.exception("Authorization check failed for %s", principal.actor)
        allowed = False

    if not allowed:
        return Rejected(RejectionReason.FORBIDDEN, message=message, principal=principal)
    return Authorized(principal)


async def authorize_request(
    request: Request,
    check: Check,
    session_resolver: SessionResolver | None = None,
    message: str = "",
) -> Decision:
    """Resolve the request's identity (awaiting the session lookup, if any) and authorize it."""
    metadata: Mapping[str, Any] | None = None
    if session_resolver is not None:
        metadata = await session_resolver(request)
    if not metadata:
        metadata = request.headers
    return authorize(metadata, check, message=message)
