"""
StudyTrust Configuration

Centralized configuration using Pydantic Settings.
All configuration is loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """Analysis provider configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o", alias="OPENAI_MODEL")
    openai_base_url: str | None = Field(default=None, alias="OPENAI_BASE_URL")
    openai_max_tokens: int = Field(default=16000, ge=256, alias="OPENAI_MAX_TOKENS")
    openai_timeout: float = Field(default=240.0, gt=0, alias="OPENAI_TIMEOUT")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0, alias="STUDYTRUST_TEMPERATURE")

    @field_validator("openai_api_key", "openai_base_url", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat empty environment values as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class RetrySettings(BaseSettings):
    """Retry policy for provider calls."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    max_retries: int = Field(default=2, ge=0, le=10, alias="STUDYTRUST_MAX_RETRIES")
    base_delay: float = Field(default=0.5, ge=0.0, alias="STUDYTRUST_RETRY_BASE_DELAY")
    max_jitter: float = Field(default=1.0, ge=0.0, alias="STUDYTRUST_RETRY_JITTER")


class IngestionSettings(BaseSettings):
    """Document fetching and input limits."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    url_timeout: float = Field(default=30.0, gt=0, alias="STUDYTRUST_URL_TIMEOUT")
    max_redirects: int = Field(default=5, ge=0, alias="STUDYTRUST_MAX_REDIRECTS")
    doi_timeout: float = Field(default=15.0, gt=0, alias="STUDYTRUST_DOI_TIMEOUT")
    unpaywall_email: str = Field(default="studytrust@example.com", alias="UNPAYWALL_EMAIL")

    max_url_length: int = Field(default=2048, ge=1)
    max_doi_length: int = Field(default=256, ge=1)
    max_text_length: int = Field(default=500_000, ge=100)
    max_pdf_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    min_text_length: int = Field(default=100, ge=1)


class CacheSettings(BaseSettings):
    """Analysis cache configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    ttl_seconds: float = Field(default=24 * 60 * 60, gt=0, alias="STUDYTRUST_CACHE_TTL")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    log_format: Literal["json", "text"] = Field(default="json", alias="LOG_FORMAT")


class FeatureFlags(BaseSettings):
    """Feature flags for optional functionality."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    debug: bool = Field(default=False, alias="STUDYTRUST_DEBUG")


class Settings(BaseSettings):
    """
    Main StudyTrust settings aggregator.

    Usage:
        from studytrust.config import get_settings
        settings = get_settings()
        print(settings.llm.openai_model)
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    llm: LLMSettings = Field(default_factory=LLMSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    features: FeatureFlags = Field(default_factory=FeatureFlags)


# Singleton pattern for settings
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
