import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from brewrewards.api.auth import router as auth_router
from brewrewards.api.shops import router as shops_router
from brewrewards.auth.adapter import SessionResolver
from brewrewards.config import Settings, settings as default_settings
from brewrewards.middleware.identity_gateway import IdentityGatewayMiddleware
from brewrewards.middleware.logging_config import configure_logging
from brewrewards.middleware.request_context import RequestContextMiddleware
from brewrewards.middleware.security_headers import SecurityHeadersMiddleware
from brewrewards.services.audit_service import AuditService
from brewrewards.services.identity import IdentityProvider, demo_directory
from brewrewards.services.rate_limiter import RATE_LIMITS, RateLimiter, RateLimitRule

logger = logging.getLogger("brewrewards")


def rate_limit_rules(config: Settings) -> dict[str, RateLimitRule]:
    rules = dict(RATE_LIMITS)
    rules["LOGIN"] = RateLimitRule(config.login_rate_limit, config.login_rate_window_ms)
    rules["PASSWORD_RESET"] = RateLimitRule(
        config.password_reset_rate_limit, config.password_reset_rate_window_ms,
    )
    return rules


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: begin sweeping expired rate-limit windows
    app.state.rate_limiter.start(app.state.settings.rate_limit_sweep_interval_seconds)
    logger.info("BrewRewards API started (%s)", app.state.settings.environment)
    yield
    # Shutdown
    await app.state.rate_limiter.stop()


def create_app(
    config: Settings | None = None,
    rate_limiter: RateLimiter | None = None,
    identity_provider: IdentityProvider | None = None,
    session_resolver: SessionResolver | None = None,
    audit: AuditService | None = None,
) -> FastAPI:
    config = config or default_settings

    app = FastAPI(
        title="BrewRewards API",
        description="Multi-tenant coffee-shop loyalty platform: authorization core",
        version="0.1.0",
        lifespan=lifespan,
    )

    # ── Shared services: one instance per application ────────────────────────
    app.state.settings = config
    app.state.rate_limiter = rate_limiter or RateLimiter()
    app.state.rate_limits = rate_limit_rules(config)
    app.state.audit = audit or AuditService()
    app.state.session_resolver = session_resolver
    if identity_provider is None and config.demo_directory_enabled:
        identity_provider = demo_directory()
    app.state.identity_provider = identity_provider

    # ── Middleware (last added runs first) ───────────────────────────────────
    origins = [o.strip() for o in config.allowed_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        IdentityGatewayMiddleware,
        secret=config.jwt_secret,
        trust_forwarded=config.trust_forwarded_identity,
    )
    app.add_middleware(RequestContextMiddleware)

    # ── Error rendering: every error body is {"error": "..."} ────────────────
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        tb = traceback.format_exc()
        logger.error(
            "Unhandled %s on %s %s: %s\n%s",
            type(exc).__name__, request.method, request.url.path, exc, tb,
        )
        if config.environment == "development":
            return JSONResponse(
                status_code=500,
                content={"error": f"{type(exc).__name__}: {exc}", "traceback": tb.splitlines()[-5:]},
            )
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})

    app.include_router(auth_router)
    app.include_router(shops_router)

    @app.get("/api/health")
    async def health_check():
        return {
            "status": "healthy",
            "environment": config.environment,
            "components": {
                "identity_provider": "configured" if app.state.identity_provider else "missing",
                "rate_limiter": {
                    "sweeping": app.state.rate_limiter.running,
                    "tracked_keys": len(app.state.rate_limiter),
                },
            },
        }

    return app


configure_logging(default_settings.log_level, default_settings.json_logs)
app = create_app()
