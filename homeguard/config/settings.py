"""
Centralized Configuration Management for Homeguard

Uses Pydantic Settings for type-safe environment variable loading.
The signing secret must be provided via environment variables in production.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SHARED_SECRET = "dev-shared-secret-change-me"


class DeduplicationSettings(BaseSettings):
    """Deduplication gate configuration."""

    ttl_minutes: int = Field(
        default=10,
        ge=1,
        description="How long a processed event id is remembered"
    )
    sweep_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Cadence of the background TTL sweep"
    )

    model_config = SettingsConfigDict(
        env_prefix="DEDUP_",
        case_sensitive=False
    )


class CorrelationSettings(BaseSettings):
    """Correlation engine configuration."""

    window_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Width of the sliding correlation window"
    )

    model_config = SettingsConfigDict(
        env_prefix="CORRELATION_",
        case_sensitive=False
    )


class NotificationSettings(BaseSettings):
    """Notification orchestrator configuration."""

    channel_timeout_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Deadline shared by all attempts on one channel"
    )
    max_attempts: int = Field(
        default=2,
        ge=1,
        description="Attempts per channel (initial + retries)"
    )

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        case_sensitive=False
    )


class ValidationSettings(BaseSettings):
    """Ingest validator configuration."""

    timestamp_tolerance_minutes: int = Field(
        default=5,
        ge=0,
        description="Accepted clock skew in either direction"
    )
    shared_secret: str = Field(
        default=DEFAULT_SHARED_SECRET,
        description="HMAC secret used to sign sensor events"
    )

    model_config = SettingsConfigDict(
        env_prefix="VALIDATION_",
        case_sensitive=False
    )


class AuditSettings(BaseSettings):
    """Audit trail configuration."""

    log_path: Optional[str] = Field(
        default=None,
        description="JSONL file for the audit trail (memory only when unset)"
    )

    model_config = SettingsConfigDict(
        env_prefix="AUDIT_",
        case_sensitive=False
    )


class Config(BaseSettings):
    """Main application configuration."""

    environment: str = Field(
        default="development",
        description="Application environment: development, staging, production"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    deduplication: DeduplicationSettings = Field(default_factory=DeduplicationSettings)
    correlation: CorrelationSettings = Field(default_factory=CorrelationSettings)
    notification: NotificationSettings = Field(default_factory=NotificationSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = ["development", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def validate_required(self) -> None:
        """Validate that all required configuration is present for production."""
        if self.environment == "production":
            if self.validation.shared_secret == DEFAULT_SHARED_SECRET:
                raise ValueError("VALIDATION_SHARED_SECRET must be changed from default in production")


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
        _config.validate_required()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment (useful for testing)."""
    global _config
    _config = Config()
    _config.validate_required()
    return _config
