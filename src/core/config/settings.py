# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the school
administration backend. Settings are loaded from environment variables with
sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-this-in-production-with-a-32-byte-key"


class DatabaseSettings(BaseSettings):
    """Relational store configuration.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        url_override: Full connection URL, used verbatim when set.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "schoolms"
    password: SecretStr = SecretStr("schoolms_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "schoolms"
    url_override: str | None = None
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Attributes:
        secret_key: Shared secret for signing access tokens.
        algorithm: JWT signing algorithm.
        issuer: Expected "iss" claim.
        audience: Expected "aud" claim.
        expiration_in_minutes: Access token lifetime.
        refresh_token_expiration_in_days: Refresh token lifetime.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    algorithm: str = "HS256"
    issuer: str = "schoolms"
    audience: str = "schoolms-clients"
    expiration_in_minutes: int = Field(default=60, ge=1)
    refresh_token_expiration_in_days: int = Field(default=7, ge=1)


class PasswordSettings(BaseSettings):
    """Password hashing configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PASSWORD_",
        extra="ignore",
    )

    bcrypt_rounds: int = Field(default=11, ge=4, le=31)


class EmailSettings(BaseSettings):
    """SMTP configuration for outbound notification emails.

    Email is treated as best-effort: when disabled, or when host or sender
    is missing, the notifier logs and skips instead of failing.
    """

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        extra="ignore",
    )

    enabled: bool = True
    host: str | None = None
    port: int = 587
    username: str | None = None
    password: SecretStr | None = None
    use_tls: bool = True
    sender_email: str | None = None
    sender_name: str = "School Management System"
    timeout_seconds: float = 10.0

    @property
    def is_configured(self) -> bool:
        """Check whether enough settings are present to send mail."""
        return bool(self.enabled and self.host and self.sender_email)


class StorageSettings(BaseSettings):
    """Local file storage configuration for uploaded submissions.

    Attributes:
        root_dir: Directory that backs the public upload URL prefix.
        public_prefix: URL prefix returned to clients.
        max_submission_bytes: Upload size limit for assignment files.
        allowed_submission_extensions: Accepted assignment file extensions.
    """

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore",
    )

    root_dir: str = "./wwwroot/uploads"
    public_prefix: str = "/uploads"
    max_submission_bytes: int = 10 * 1024 * 1024
    allowed_submission_extensions: list[str] = [
        ".pdf",
        ".doc",
        ".docx",
        ".txt",
        ".zip",
        ".rar",
    ]

    @field_validator("allowed_submission_extensions")
    @classmethod
    def normalize_extensions(cls, value: list[str]) -> list[str]:
        """Lower-case extensions and make sure each starts with a dot."""
        normalized = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext.startswith("."):
                ext = f".{ext}"
            normalized.append(ext)
        return normalized


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        db: Database settings.
        jwt: JWT authentication settings.
        password: Password hashing settings.
        email: SMTP notifier settings.
        storage: File storage settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    password: PasswordSettings = Field(default_factory=PasswordSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.jwt.secret_key.get_secret_value() == DEFAULT_JWT_SECRET:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
