"""Gateway token creation and validation.

Tokens carry the identity-provider claim names (``custom:userRole`` and
friends) so the gateway can forward them unchanged as ``x-user-*`` headers.
"""

import json
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from brewrewards.config import settings

ALGORITHM = "HS256"

CLAIM_ROLE = "custom:userRole"
CLAIM_SHOP_ID = "custom:shopId"
CLAIM_STAFF_ROLE = "custom:staffRole"
CLAIM_PERMISSIONS = "custom:permissions"


def create_access_token(
    user_id: str,
    email: str,
    role: str,
    shop_id: str | None = None,
    staff_role: str | None = None,
    permissions: list[str] | None = None,
    secret: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {
        "sub": user_id,
        "email": email,
        CLAIM_ROLE: role,
        "exp": expire,
        "type": "access",
    }
    if shop_id:
        payload[CLAIM_SHOP_ID] = shop_id
    if staff_role:
        payload[CLAIM_STAFF_ROLE] = staff_role
    if permissions is not None:
        payload[CLAIM_PERMISSIONS] = json.dumps(sorted(permissions))
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=ALGORITHM)


def decode_access_token(token: str, secret: str | None = None) -> dict:
    """Decode and validate an access token. Raises JWTError on failure."""
    payload = jwt.decode(token, secret or settings.jwt_secret, algorithms=[ALGORITHM])
    if payload.get("type") != "access":
        raise JWTError("Invalid token type")
    if not payload.get("sub") or not payload.get(CLAIM_ROLE):
        raise JWTError("Missing identity claims")
    return payload
