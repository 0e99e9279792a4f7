"""Application configuration loaded from environment variables.

Settings for database, API, email delivery, one-time codes and sessions.
Uses pydantic-settings for validation and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "tasktrack_dev_password"  # nosec B105


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "tasktrack"
    database_user: str = "tasktrack_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD
    # Full SQLAlchemy URL; overrides the host/port/name fields when set
    database_url_override: str = ""
    # Create missing tables at startup (development shortcut; deployed
    # databases are migrated with alembic)
    database_auto_create: bool = False

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    # CRITICAL: Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Session cookie
    session_cookie_name: str = "auth_session"
    session_cookie_secure: bool = True
    session_cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    session_cookie_domain: str = ""
    session_ttl_days: int = 7

    # One-time codes
    otp_length: int = 6
    otp_ttl_minutes: int = 15

    # Email
    email_backend: Literal["resend", "console"] = "resend"
    email_from: str = "noreply@tasktrack.app"
    email_subject: str = "Your Login Code"
    resend_api_key: SecretStr = SecretStr("")

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_login: str = "5/minute"  # /login, /resend-otp
    rate_limit_verify: str = "10/minute"  # /verify-otp
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate production security requirements.

        Security: Prevents deployment with known insecure defaults.
        Checks:
        - SameSite=None requires Secure flag (browser requirement)
        - Code and session lifetimes must be positive
        - CORS must not use wildcard origin (incompatible with credentials)
        - Database password must not be the default in production
        - Console email backend is development-only
        """
        if self.session_cookie_samesite == "none" and not self.session_cookie_secure:
            msg = (
                "SESSION_COOKIE_SECURE must be true when SESSION_COOKIE_SAMESITE=none. "
                "Browsers reject SameSite=None cookies without the Secure flag."
            )
            raise ValueError(msg)

        if self.otp_length < 4:
            msg = f"OTP_LENGTH must be at least 4. Got: {self.otp_length}"
            raise ValueError(msg)
        if self.otp_ttl_minutes <= 0 or self.session_ttl_days <= 0:
            msg = "OTP_TTL_MINUTES and SESSION_TTL_DAYS must be positive."
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if (
                not self.database_url_override
                and self.database_password == _INSECURE_DEFAULT_PASSWORD
            ):
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            if self.email_backend == "console":
                msg = (
                    "EMAIL_BACKEND=console only logs codes and cannot be used "
                    "in production."
                )
                raise ValueError(msg)

        return self


settings = Settings()
