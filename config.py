"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Verification policy constants are fixed when the settings object is built;
the store reads them once at construction and never re-reads them.
"""

from __future__ import annotations

import secrets
from datetime import timedelta
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class VerificationSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    verification_code_ttl_seconds: int = Field(default=300, gt=0)
    verification_max_attempts: int = Field(default=3, gt=0)
    verification_lock_duration_seconds: int = Field(default=900, gt=0)
    verification_resend_cooldown_seconds: int = Field(default=60, ge=0)
    verification_max_resends: int = Field(default=3, ge=0)
    verification_rate_limit_window_seconds: int = Field(default=600, gt=0)
    verification_max_requests_per_window: int = Field(default=5, gt=0)
    verification_sweep_interval_seconds: float = Field(default=300.0, gt=0)

    # Application-level salt mixed into every code hash. Empty means
    # "generate one per process", which is only acceptable in development.
    verification_code_salt: str = ""

    @property
    def code_ttl(self) -> timedelta:
        return timedelta(seconds=self.verification_code_ttl_seconds)

    @property
    def lock_duration(self) -> timedelta:
        return timedelta(seconds=self.verification_lock_duration_seconds)

    @property
    def resend_cooldown(self) -> timedelta:
        return timedelta(seconds=self.verification_resend_cooldown_seconds)

    @property
    def rate_limit_window(self) -> timedelta:
        return timedelta(seconds=self.verification_rate_limit_window_seconds)


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@devdiaries.app"
    zepto_from_name: str = "Dev Diaries"
    email_timeout_seconds: float = 10.0


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "development"
    app_url: str = "https://devdiaries.app"
    app_name: str = "Dev Diaries"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # GET /verification/status answers for any address without a login, so it
    # reveals which addresses have a verification pending. Off disables it.
    verification_status_enabled: bool = True

    # Sub-configs (composed via model_validator below)
    verification: Optional[VerificationSettings] = None
    email: Optional[EmailSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.verification is None:
            self.verification = VerificationSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        if not self.verification.verification_code_salt:
            if self.is_production:
                raise ValueError(
                    "VERIFICATION_CODE_SALT must be set when ENV=production"
                )
            self.verification.verification_code_salt = secrets.token_hex(16)

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
