import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None

    # Content generation (Gemini wins when both keys are present)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    GENERATION_TIMEOUT_SECONDS: float = 30.0

    # Clerk Auth
    CLERK_SECRET_KEY: Optional[str] = None
    CLERK_JWT_KEY: Optional[str] = None  # PEM public key for networkless verification
    CLERK_ISSUER: Optional[str] = None  # e.g. https://your-instance.clerk.accounts.dev
    CLERK_JWKS_URL: Optional[str] = None  # e.g. https://your-instance.clerk.accounts.dev/.well-known/jwks.json

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_PREMIUM_PRICE_ID: Optional[str] = None
    PAYMENTS_DISABLED: bool = False

    # App URLs
    APP_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    # Scheduled jobs
    CRON_SECRET: Optional[str] = None

    # Admin access
    ADMIN_KEY: Optional[str] = None

    # Observability / Tracing
    OTEL_ENABLED: bool = False
    OTEL_EXPORTER: str = "console"  # console | memory

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("trendly")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
        "CLERK_SECRET_KEY",
        "CRON_SECRET",
    ]
    if not getattr(cfg, "PAYMENTS_DISABLED", False):
        required_keys += ["STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "STRIPE_PREMIUM_PRICE_ID"]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if not (getattr(cfg, "GEMINI_API_KEY", None) or getattr(cfg, "OPENAI_API_KEY", None)):
        missing.append("GEMINI_API_KEY or OPENAI_API_KEY")

    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
