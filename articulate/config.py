"""Central configuration for the transfer articulation finder.

This module uses Pydantic Settings for validation and env management.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class AssistSettings(BaseSettings):
    """Upstream ASSIST catalog configuration."""
    model_config = SettingsConfigDict(env_prefix="ASSIST_", extra="ignore")

    base_url: str = Field(
        default="https://assist.org/api",
        description="Base URL of the transfer-agreement catalog API",
    )
    academic_year_id: int = Field(default=72, ge=1, description="Catalog academic year parameter")
    category_code: str = Field(default="major")
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    retry_attempts: int = Field(default=3, ge=1, le=10)
    retry_max_wait: float = Field(default=10.0, ge=0)


class JobSettings(BaseSettings):
    """In-memory job lifecycle configuration."""
    model_config = SettingsConfigDict(env_prefix="JOBS_", extra="ignore")

    retention_seconds: int = Field(default=3600, ge=1, description="Age after which jobs are swept")
    sweep_interval_seconds: int = Field(default=3600, ge=1)


class OCRSettings(BaseSettings):
    """OCR fallback configuration for scanned agreements."""
    model_config = SettingsConfigDict(env_prefix="OCR_", extra="ignore")

    enabled: bool = Field(default=False)
    tesseract_lang: str = Field(default="eng", description="Tesseract language codes")
    dpi: int = Field(default=300, ge=150, le=600)
    min_text_chars: int = Field(default=50, ge=0, description="Native text shorter than this triggers OCR")


class LoggingSettings(BaseSettings):
    """Logging configuration."""
    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file: str | None = Field(default=None)

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        v = v.lower()
        if v not in {"json", "text"}:
            raise ValueError("format must be 'json' or 'text'")
        return v


class Settings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(default=Environment.DEVELOPMENT)
    debug: bool = Field(default=False)
    app_name: str = Field(default="Transfer Articulation Finder")
    version: str = Field(default="0.1.0")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Sub-configs
    assist: AssistSettings = Field(default_factory=AssistSettings)
    jobs: JobSettings = Field(default_factory=JobSettings)
    ocr: OCRSettings = Field(default_factory=OCRSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
