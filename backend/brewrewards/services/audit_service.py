"""
Audit Service: structured trail of authentication and authorization events.

Entries are emitted as log records on the ``brewrewards.audit`` logger with
the entry attached under ``extra={"audit": {...}}``; the JSON formatter
writes it out whole. Shipping the stream somewhere durable is the log
pipeline's job.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from brewrewards.auth.principal import Principal

audit_logger = logging.getLogger("brewrewards.audit")


class AuditCategory(str, Enum):
    AUTHENTICATION = "AUTHENTICATION"
    AUTHORIZATION = "AUTHORIZATION"
    USER_MANAGEMENT = "USER_MANAGEMENT"
    SHOP_MANAGEMENT = "SHOP_MANAGEMENT"
    SYSTEM = "SYSTEM"


class AuditSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_LEVELS = {
    AuditSeverity.INFO: logging.INFO,
    AuditSeverity.WARNING: logging.WARNING,
    AuditSeverity.ERROR: logging.ERROR,
    AuditSeverity.CRITICAL: logging.CRITICAL,
}


class AuditService:
    """Writes audit entries; returns each entry so callers and tests can inspect it."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or audit_logger

    def log_event(
        self,
        action: str,
        category: AuditCategory,
        severity: AuditSeverity = AuditSeverity.INFO,
        success: bool = True,
        user_id: str | None = None,
        user_role: str | None = None,
        shop_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        details: dict[str, Any] | None = None,
        error_message: str | None = None,
    ) -> dict[str, Any]:
        entry = {
            "id": f"log_{uuid4().hex}",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action": action,
            "category": category.value,
            "severity": severity.value,
            "status": "SUCCESS" if success else "FAILURE",
            "user_id": user_id,
            "user_role": user_role,
            "shop_id": shop_id,
            "ip_address": ip_address,
            "user_agent": user_agent,
            "details": details or {},
        }
        if error_message:
            entry["error_message"] = error_message

        self.logger.log(
            _LEVELS[severity],
            "[AUDIT] [%s] [%s] %s - %s",
            entry["severity"], entry["category"], action, entry["status"],
            extra={"audit": entry},
        )
        return entry

    # ── Convenience wrappers ─────────────────────────────────────────────────

    def log_successful_auth(self, user_id: str, user_role: str,
                            ip_address: str | None = None, user_agent: str | None = None) -> dict:
        return self.log_event(
            "User authenticated", AuditCategory.AUTHENTICATION,
            user_id=user_id, user_role=user_role,
            ip_address=ip_address, user_agent=user_agent,
        )

    def log_failed_auth(self, user_id: str | None, error_message: str,
                        ip_address: str | None = None, user_agent: str | None = None) -> dict:
        return self.log_event(
            "Authentication failed", AuditCategory.AUTHENTICATION, AuditSeverity.WARNING,
            success=False, user_id=user_id,
            ip_address=ip_address, user_agent=user_agent,
            error_message=error_message,
        )

    def log_rate_limited(self, action: str, reset_at: str,
                         ip_address: str | None = None, user_agent: str | None = None,
                         details: dict[str, Any] | None = None) -> dict:
        return self.log_event(
            f"{action} rate limit exceeded", AuditCategory.AUTHENTICATION, AuditSeverity.WARNING,
            success=False, ip_address=ip_address, user_agent=user_agent,
            details={**(details or {}), "reset_at": reset_at},
        )

    def log_access_denied(self, principal: Principal, action: str, resource: str,
                          ip_address: str | None = None) -> dict:
        return self.log_event(
            f"Access denied: {action}", AuditCategory.AUTHORIZATION, AuditSeverity.WARNING,
            success=False, user_id=principal.id,
            user_role=principal.role.value if principal.role else None,
            shop_id=principal.shop_id, ip_address=ip_address,
            details={"resource": resource}, error_message="Insufficient permissions",
        )
