"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded in code paths)
    - get_settings() is cached (lru_cache) — single instance per process
    - Money settings are integer cents; rates are fractions in 0..1

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Development placeholders for every secret: works out-of-the-box with docker-compose,
      security_warnings() reports them at startup instead of refusing to boot
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEV_SECRET = "dev-secret-change-me"

class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    environment: str = "development"

    # Database
    database_url: str = (
        "postgresql+asyncpg://smokehouse:smokehouse@db:5432/smokehouse"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Business identity
    business_name: str = "Troy BBQ"
    support_email: str = "support@troybbq.com"
    support_phone: str = "(555) 123-4567"
    public_base_url: str = "http://localhost:4321"
    order_display_prefix: str = "TB"

    # Stripe
    stripe_secret_key: str = "sk_test_placeholder"
    stripe_api_version: str = "2024-06-20"

    # Square
    square_access_token: str = "square-placeholder"
    square_location_id: str = "square-location-placeholder"
    square_environment: str = "sandbox"
    square_api_version: str = "2024-06-04"

    # Gateway resilience (shared by payment + email clients)
    gateway_max_retries: int = 3
    gateway_timeout_seconds: int = 30
    gateway_base_delay_ms: int = 500
    gateway_max_delay_ms: int = 10_000

    # Resend (email)
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com"
    email_from_address: str = "Troy BBQ <orders@troybbq.com>"
    email_reply_to: str = "support@troybbq.com"
    email_domain: str = "troybbq.com"

    # Payment tokens (balance links)
    payment_token_secret: str = _DEV_SECRET
    payment_token_expiry_hours: int = 48

    # Admin sessions
    session_secret: str = _DEV_SECRET
    session_cookie_name: str = "smokehouse_session"
    session_cookie_domain: str | None = None
    session_max_age_seconds: int = 24 * 60 * 60
    session_renew_threshold_seconds: int = 60 * 60
    session_max_per_user: int = 5
    admin_email: str = "admin@troybbq.com"
    # bcrypt hash; empty disables admin login
    admin_password_hash: str = ""

    # Login lockout
    login_max_failed_attempts: int = 5
    login_lockout_seconds: int = 15 * 60

    # API rate limiting
    rate_limit_enabled: bool = True
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 15 * 60

    # Uploads
    upload_dir: str = "uploads"
    quarantine_dir: str = "quarantine"
    upload_max_bytes: int = 5 * 1024 * 1024
    upload_rate_limit: int = 10
    upload_rate_window_seconds: int = 60
    upload_virus_scan_enabled: bool = True
    upload_public_path: str = "/uploads"

    # Security monitoring
    monitor_max_events: int = 10_000
    monitor_max_alerts: int = 100
    monitor_event_retention_hours: int = 168

    # Order tracking streams (SSE)
    order_stream_heartbeat_seconds: float = 30
    order_stream_max_seconds: float = 30 * 60
    order_stream_queue_size: int = 100

    # Scheduled notifications (external cron trigger)
    cron_secret: str = _DEV_SECRET
    notification_batch_size: int = 50

    # API
    cors_origins: list[str] = ["http://localhost:4321"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def square_base_url(self) -> str:
        if self.square_environment == "production":
            return "https://connect.squareup.com"
        return "https://connect.squareupsandbox.com"

    def security_warnings(self) -> list[str]:
        """List weak or placeholder secrets. Logged once at startup."""
        warnings: list[str] = []
        for name in ("payment_token_secret", "session_secret", "cron_secret"):
            value = getattr(self, name)
            if value == _DEV_SECRET:
                warnings.append(f"{name.upper()} is using the development fallback")
            elif len(value) < 32:
                warnings.append(f"{name.upper()} should be at least 32 characters")
        if not self.admin_password_hash:
            warnings.append("ADMIN_PASSWORD_HASH is not set; admin login is disabled")
        if not self.resend_api_key:
            warnings.append("RESEND_API_KEY is not set; email delivery will fail")
        return warnings

@lru_cache
def get_settings() -> Settings:
    return Settings()
