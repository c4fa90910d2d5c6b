from pydantic import model_validator
from pydantic_settings import BaseSettings

DEFAULT_JWT_SECRET = "dev-jwt-secret-change-in-production"


class Settings(BaseSettings):
    # App
    environment: str = "development"
    log_level: str = "INFO"
    json_logs: bool = False

    # Identity gateway
    jwt_secret: str = DEFAULT_JWT_SECRET
    access_token_expire_minutes: int = 60
    # Set when an upstream gateway already verified the token and forwards x-user-* headers
    trust_forwarded_identity: bool = False

    # Security
    allowed_origins: str = "http://localhost:3000"

    # Rate limiting (fixed window, per process)
    login_rate_limit: int = 5
    login_rate_window_ms: int = 60_000
    password_reset_rate_limit: int = 3
    password_reset_rate_window_ms: int = 300_000
    rate_limit_sweep_interval_seconds: float = 60.0

    # Demo identity directory, used when no managed directory is wired in
    demo_directory_enabled: bool = True

    model_config = {"env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _validate_production(self):
        if self.environment == "production":
            if self.jwt_secret == DEFAULT_JWT_SECRET:
                raise ValueError(
                    "Production requires a non-default JWT_SECRET"
                )
            if self.demo_directory_enabled:
                raise ValueError(
                    "Production must not serve the demo identity directory"
                )
        return self


settings = Settings()
