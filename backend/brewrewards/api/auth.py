"""Authentication API: login, password reset, profile.

Every mutating endpoint is rate limited per client IP and email before the
identity provider is contacted.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field

from brewrewards.api.deps import get_audit, get_identity_provider, get_principal, get_rate_limiter
from brewrewards.auth.jwt import create_access_token
from brewrewards.auth.principal import Principal
from brewrewards.middleware.rate_limit import client_ip, enforce_rate_limit, user_agent
from brewrewards.services.audit_service import AuditCategory, AuditService, AuditSeverity
from brewrewards.services.identity import (
    IdentityError, IdentityProvider, InvalidCredentials, InvalidResetCode, UserNotConfirmed,
)
from brewrewards.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

RESET_REQUESTED_MESSAGE = "If your email is registered, you will receive password reset instructions"


# ── Request schemas ───────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class ConfirmPasswordResetRequest(BaseModel):
    email: EmailStr
    code: str = Field(min_length=1)
    new_password: str = Field(min_length=8)


# ── Endpoints ─────────────────────────────────────────────────────────────────

@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    provider: IdentityProvider = Depends(get_identity_provider),
    audit: AuditService = Depends(get_audit),
):
    """Authenticate with email + password, receive a gateway token."""
    rules = request.app.state.rate_limits
    enforce_rate_limit(
        limiter, request, "login", body.email, rules["LOGIN"], audit,
        message="Too many login attempts. Please try again later.",
        audit_action="Login",
    )
    ip, agent = client_ip(request), user_agent(request)

    try:
        user = await provider.authenticate(body.email, body.password)
    except InvalidCredentials as exc:
        audit.log_failed_auth(body.email, str(exc), ip, agent)
        raise HTTPException(status_code=401, detail="Incorrect username or password")
    except UserNotConfirmed as exc:
        audit.log_failed_auth(body.email, str(exc), ip, agent)
        return JSONResponse(
            status_code=400,
            content={"error": "User is not confirmed", "code": "USER_NOT_CONFIRMED", "email": body.email},
        )

    config = request.app.state.settings
    token = create_access_token(
        user.id, user.email, user.role,
        shop_id=user.shop_id,
        staff_role=user.staff_role,
        permissions=user.permissions,
        secret=config.jwt_secret,
        expires_minutes=config.access_token_expire_minutes,
    )
    audit.log_successful_auth(user.id, user.role, ip, agent)
    logger.info("Login: %s (%s)", user.email, user.role)

    return {
        "success": True,
        "message": "Login successful",
        "data": {
            "accessToken": token,
            "tokenType": "bearer",
            "expiresIn": config.access_token_expire_minutes * 60,
            "user": user.to_dict(),
        },
    }


@router.post("/password-reset")
async def request_password_reset(
    body: PasswordResetRequest,
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    provider: IdentityProvider = Depends(get_identity_provider),
    audit: AuditService = Depends(get_audit),
):
    """Start a password reset. The answer never reveals whether the account exists."""
    rules = request.app.state.rate_limits
    enforce_rate_limit(
        limiter, request, "password-reset", body.email, rules["PASSWORD_RESET"], audit,
        message="Too many password reset attempts. Please try again later.",
        audit_action="Password reset",
    )
    ip, agent = client_ip(request), user_agent(request)

    try:
        await provider.request_password_reset(body.email)
    except IdentityError as exc:
        audit.log_event(
            "Password reset request failed", AuditCategory.AUTHENTICATION, AuditSeverity.WARNING,
            success=False, ip_address=ip, user_agent=agent,
            details={"email": body.email, "error": str(exc)},
        )
    else:
        audit.log_event(
            "Password reset requested", AuditCategory.AUTHENTICATION,
            ip_address=ip, user_agent=agent, details={"email": body.email},
        )

    return {"success": True, "message": RESET_REQUESTED_MESSAGE}


@router.post("/confirm-password-reset")
async def confirm_password_reset(
    body: ConfirmPasswordResetRequest,
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    provider: IdentityProvider = Depends(get_identity_provider),
    audit: AuditService = Depends(get_audit),
):
    rules = request.app.state.rate_limits
    enforce_rate_limit(
        limiter, request, "confirm-reset", body.email, rules["PASSWORD_RESET"], audit,
        message="Too many attempts. Please try again later.",
        audit_action="Password reset confirmation",
    )
    ip, agent = client_ip(request), user_agent(request)

    try:
        await provider.confirm_password_reset(body.email, body.code, body.new_password)
    except InvalidResetCode as exc:
        audit.log_event(
            "Password reset confirmation failed", AuditCategory.AUTHENTICATION, AuditSeverity.WARNING,
            success=False, ip_address=ip, user_agent=agent,
            details={"email": body.email}, error_message=str(exc),
        )
        raise HTTPException(status_code=400, detail="Invalid verification code provided")

    audit.log_event(
        "Password reset confirmed", AuditCategory.AUTHENTICATION,
        ip_address=ip, user_agent=agent, details={"email": body.email},
    )
    return {"success": True, "message": "Password has been reset successfully"}


@router.get("/me")
async def me(principal: Principal = Depends(get_principal)):
    """The caller's identity and resolved permissions."""
    return {"success": True, "data": principal.to_dict()}
