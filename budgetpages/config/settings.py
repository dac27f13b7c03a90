"""
Configuration Management for Budget Pages

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Secrets (encryption key, cron bearer token, mail credentials) are read
from the environment only. Per-user AI provider keys are NOT configured
here; users supply those and they are stored encrypted on the user record.
"""

from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MongoSettings(BaseSettings):
    """MongoDB document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONGO_",
        extra="ignore"
    )

    uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    database_name: str = Field(
        default="budget_pages",
        description="Database holding users, folders, pages and summaries"
    )
    server_selection_timeout_ms: int = Field(
        default=5000,
        ge=100,
        description="How long to wait for a reachable server"
    )


class SecuritySettings(BaseSettings):
    """Secrets used by the web layer and the key encryption helper."""

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_",
        extra="ignore"
    )

    encryption_key: str = Field(
        ...,
        description="Fernet key used to encrypt AI provider keys at rest"
    )
    session_secret: str = Field(
        default="dev-session-secret-change-me",
        description="Secret used to sign the session cookie"
    )
    cron_secret: Optional[str] = Field(
        default=None,
        description="Bearer token required by the cron endpoint (open when unset)"
    )

    @field_validator('encryption_key')
    @classmethod
    def validate_encryption_key(cls, v: str) -> str:
        """Fail at startup rather than on the first decrypt."""
        try:
            Fernet(v.encode())
        except (ValueError, TypeError) as e:
            raise ValueError(
                "SECURITY_ENCRYPTION_KEY must be a urlsafe base64-encoded 32-byte key"
            ) from e
        return v


class MailSettings(BaseSettings):
    """Outbound SMTP configuration for weekly reports."""

    model_config = SettingsConfigDict(
        env_prefix="MAIL_",
        extra="ignore"
    )

    host: str = Field(
        ...,
        description="SMTP server host"
    )
    port: int = Field(
        default=587,
        description="SMTP port (465 uses implicit TLS, anything else STARTTLS)"
    )
    user: str = Field(
        ...,
        description="SMTP username, also used as the sender address"
    )
    password: str = Field(
        ...,
        description="SMTP password"
    )
    sender_name: str = Field(
        default="Budget Tracker",
        description="Display name on outgoing mail"
    )
    timeout: float = Field(
        default=30.0,
        description="Socket timeout for the SMTP connection"
    )


class AIModelSettings(BaseSettings):
    """Model names and endpoints for each AI provider."""

    model_config = SettingsConfigDict(
        env_prefix="AI_",
        extra="ignore"
    )

    openai_model: str = Field(default="gpt-4o-mini")
    google_model: str = Field(default="gemini-1.5-flash")
    anthropic_model: str = Field(default="claude-3-haiku-20240307")
    openrouter_model: str = Field(default="openai/gpt-4o-mini")
    huggingface_model: str = Field(default="microsoft/Phi-3-mini-4k-instruct")

    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1"
    )
    huggingface_base_url: str = Field(
        default="https://api-inference.huggingface.co/models"
    )

    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    request_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Timeout in seconds for the plain-HTTP providers"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # History listing
    default_daily_summary_limit: int = Field(default=7, ge=1)
    default_weekly_summary_limit: int = Field(default=4, ge=1)

    # Scopes
    report_window_days: int = Field(
        default=7,
        ge=1,
        description="Weekly email covers pages updated within this many days"
    )
    weekly_summary_window_days: Optional[int] = Field(
        default=None,
        ge=1,
        description="On-demand weekly summary scope; unset means all pages"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def mongo(self) -> MongoSettings:
        return MongoSettings()

    @property
    def security(self) -> SecuritySettings:
        return SecuritySettings()

    @property
    def mail(self) -> MailSettings:
        return MailSettings()

    @property
    def ai(self) -> AIModelSettings:
        return AIModelSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("mongo", "security", "mail", "ai", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
