"""
HTTP glue for the fixed-window rate limiter.

Routes that guard authentication-sensitive actions call ``enforce_rate_limit``
before doing any work. A refused attempt is audited and turned into a 429
carrying ``Retry-After`` and the ``X-RateLimit-*`` headers.
"""

from __future__ import annotations

import math

from fastapi import HTTPException
from starlette.requests import Request

from brewrewards.services.audit_service import AuditService
from brewrewards.services.rate_limiter import RateLimiter, RateLimitResult, RateLimitRule

DEFAULT_CLIENT_IP = "127.0.0.1"


class RateLimitExceeded(HTTPException):
    def __init__(self, result: RateLimitResult, now: float, message: str):
        super().__init__(
            status_code=429,
            detail=message,
            headers=rate_limit_headers(result, now),
        )
        self.result = result


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return DEFAULT_CLIENT_IP


def user_agent(request: Request) -> str:
    return request.headers.get("user-agent", "Unknown")


def rate_limit_key(action: str, ip: str, identity: str) -> str:
    return f"{action}:{ip}:{identity.lower()}"


def rate_limit_headers(result: RateLimitResult, now: float) -> dict[str, str]:
    return {
        "Retry-After": str(result.retry_after(now)),
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(math.ceil(result.reset_at)),
    }


def enforce_rate_limit(
    limiter: RateLimiter,
    request: Request,
    action: str,
    identity: str,
    rule: RateLimitRule,
    audit: AuditService,
    message: str,
    audit_action: str,
) -> RateLimitResult:
    """Count one attempt; raise ``RateLimitExceeded`` when the budget is spent."""
    ip = client_ip(request)
    result = limiter.check_rule(rate_limit_key(action, ip, identity), rule)
    if not result.allowed:
        audit.log_rate_limited(
            audit_action,
            reset_at=result.reset_at_datetime.isoformat(),
            ip_address=ip,
            user_agent=user_agent(request),
            details={"email": identity},
        )
        raise RateLimitExceeded(result, limiter.now(), message)
    return result
