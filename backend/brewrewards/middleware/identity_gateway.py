"""
Identity gateway middleware: the trust boundary for ``x-user-*`` headers.

The authorization adapter believes the identity headers it is given. This
middleware is what makes that safe when the service is exposed directly:

  1. every client-supplied ``x-user-*`` header is dropped;
  2. a ``Bearer`` token, if present, is verified and its claims are
     re-emitted as identity headers;
  3. an invalid token is answered with 401 right here.

Requests without a token continue anonymously; protected routes then reject
them as unauthenticated. When an upstream gateway already performs this
work, set ``TRUST_FORWARDED_IDENTITY=true`` and the middleware passes headers
through untouched.
"""

import logging

from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from brewrewards.auth.adapter import (
    IDENTITY_HEADERS, HEADER_USER_ID, HEADER_USER_ROLE,
    HEADER_SHOP_ID, HEADER_STAFF_ROLE, HEADER_PERMISSIONS,
)
from brewrewards.auth.jwt import (
    decode_access_token, CLAIM_ROLE, CLAIM_SHOP_ID, CLAIM_STAFF_ROLE, CLAIM_PERMISSIONS,
)

logger = logging.getLogger(__name__)

_STRIPPED = frozenset(h.encode("latin-1") for h in IDENTITY_HEADERS)


def identity_headers_from_claims(claims: dict) -> list[tuple[str, str]]:
    headers = [
        (HEADER_USER_ID, str(claims["sub"])),
        (HEADER_USER_ROLE, str(claims[CLAIM_ROLE])),
    ]
    if claims.get(CLAIM_SHOP_ID):
        headers.append((HEADER_SHOP_ID, str(claims[CLAIM_SHOP_ID])))
    if claims.get(CLAIM_STAFF_ROLE):
        headers.append((HEADER_STAFF_ROLE, str(claims[CLAIM_STAFF_ROLE])))
    if claims.get(CLAIM_PERMISSIONS) is not None:
        headers.append((HEADER_PERMISSIONS, str(claims[CLAIM_PERMISSIONS])))
    return headers


class IdentityGatewayMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, secret: str | None = None, trust_forwarded: bool = False):
        super().__init__(app)
        self.secret = secret
        self.trust_forwarded = trust_forwarded

    async def dispatch(self, request: Request, call_next):
        if self.trust_forwarded:
            return await call_next(request)

        raw_headers = [
            (name, value) for name, value in request.scope["headers"]
            if name.lower() not in _STRIPPED
        ]

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
            try:
                claims = decode_access_token(token, secret=self.secret)
                forwarded = [
                    (name.encode("latin-1"), value.encode("latin-1"))
                    for name, value in identity_headers_from_claims(claims)
                ]
            except (JWTError, UnicodeEncodeError) as exc:
                logger.debug("Gateway token rejected: %s", exc)
                return JSONResponse(
                    status_code=401,
                    content={"error": "Unauthorized: Invalid token"},
                )
            raw_headers.extend(forwarded)

        request.scope["headers"] = raw_headers
        return await call_next(request)
