"""Tests for application configuration.

Settings for database, sessions, one-time codes and email delivery. Tests
cover defaults, URL building, and production security validation.
"""

import pytest
from pydantic import ValidationError

from tasktrack.core.config import _INSECURE_DEFAULT_PASSWORD, Settings

# Reusable test constants
_SECURE_DB_PASSWORD = "my-secure-production-password-123!"
_PRODUCTION = "production"


class TestAuthDefaults:
    """Auth settings have the documented defaults."""

    def test_cookie_name_defaults_to_auth_session(self):
        """Session cookie is named auth_session."""
        assert Settings().session_cookie_name == "auth_session"

    def test_session_lifetime_is_seven_days(self):
        """Sessions last seven days."""
        assert Settings().session_ttl_days == 7

    def test_codes_are_six_digits_valid_fifteen_minutes(self):
        """Codes are six digits and expire after fifteen minutes."""
        s = Settings()
        assert s.otp_length == 6
        assert s.otp_ttl_minutes == 15

    def test_cookie_is_secure_and_lax_by_default(self):
        """Secure flag on, SameSite=Lax."""
        s = Settings()
        assert s.session_cookie_secure is True
        assert s.session_cookie_samesite == "lax"

    def test_email_subject_default(self):
        """Login emails use a fixed subject line."""
        assert Settings().email_subject == "Your Login Code"


class TestDatabaseUrl:
    """Tests for the database_url property."""

    def test_builds_asyncpg_url_from_parts(self):
        """URL is assembled from host, port, name, user and password."""
        s = Settings(
            database_host="db",
            database_port=6543,
            database_name="auth",
            database_user="svc",
            database_password="pw",
            database_url_override="",
        )
        assert s.database_url == "postgresql+asyncpg://svc:pw@db:6543/auth"

    def test_override_wins(self):
        """A full URL override replaces the assembled URL."""
        s = Settings(database_url_override="sqlite+aiosqlite:///./auth.db")
        assert s.database_url == "sqlite+aiosqlite:///./auth.db"


class TestProductionSecurityValidation:
    """Tests for production security requirements."""

    def test_allows_default_password_in_development(self):
        """Default password is allowed in development environment."""
        s = Settings(
            environment="development",
            database_password=_INSECURE_DEFAULT_PASSWORD,
        )
        assert s.database_password == _INSECURE_DEFAULT_PASSWORD

    def test_rejects_default_password_in_production(self):
        """Default password is rejected in production environment."""
        with pytest.raises(ValidationError) as exc_info:
            Settings(
                environment=_PRODUCTION,
                database_password=_INSECURE_DEFAULT_PASSWORD,
                database_url_override="",
            )

        errors = exc_info.value.errors()
        assert len(errors) == 1
        assert "Cannot use default database password in production" in str(
            errors[0]["msg"]
        )

    def test_allows_custom_password_in_production(self):
        """Custom password is allowed in production environment."""
        s = Settings(
            environment=_PRODUCTION,
            database_password=_SECURE_DB_PASSWORD,
            email_backend="resend",
        )
        assert s.database_password == _SECURE_DB_PASSWORD

    def test_rejects_console_email_in_production(self):
        """The console sender only logs codes; production must not use it."""
        with pytest.raises(ValidationError, match="EMAIL_BACKEND=console"):
            Settings(
                environment=_PRODUCTION,
                database_password=_SECURE_DB_PASSWORD,
                email_backend="console",
            )

    def test_rejects_samesite_none_without_secure(self):
        """Browsers drop SameSite=None cookies that are not Secure."""
        with pytest.raises(ValidationError, match="SESSION_COOKIE_SECURE"):
            Settings(session_cookie_samesite="none", session_cookie_secure=False)

    def test_rejects_wildcard_origin(self):
        """Credentialed CORS cannot use a wildcard origin."""
        with pytest.raises(ValidationError, match="wildcard"):
            Settings(allowed_origins=["*"])

    def test_rejects_short_codes(self):
        """Codes shorter than four digits are too guessable."""
        with pytest.raises(ValidationError, match="OTP_LENGTH"):
            Settings(otp_length=3)

    @pytest.mark.parametrize(
        "overrides",
        [{"otp_ttl_minutes": 0}, {"session_ttl_days": -1}],
    )
    def test_rejects_non_positive_lifetimes(self, overrides):
        """Code and session lifetimes must be positive."""
        with pytest.raises(ValidationError, match="must be positive"):
            Settings(**overrides)
