"""Application configuration management."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AnyHttpUrl, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment or `.env`."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.0-flash", alias="GEMINI_MODEL")
    extractor_prompt_file: Optional[Path] = Field(
        default=None,
        alias="EXTRACTOR_PROMPT_FILE",
    )

    token_list_url: AnyHttpUrl = Field(
        default="https://token.jup.ag/all",
        alias="TOKEN_LIST_URL",
    )
    quote_api_url: AnyHttpUrl = Field(
        default="https://quote-api.jup.ag/v6/quote",
        alias="QUOTE_API_URL",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        alias="HTTP_TIMEOUT_SECONDS",
        gt=0,
        le=60,
    )
    registry_refresh_minutes: int = Field(
        default=60,
        alias="REGISTRY_REFRESH_MINUTES",
        ge=1,
        le=24 * 60,
    )

    cache_max_entries: int = Field(
        default=500, alias="CACHE_MAX_ENTRIES", ge=1, le=100_000
    )
    lite_cache_ttl_seconds: int = Field(
        default=300, alias="LITE_CACHE_TTL_SECONDS", ge=1
    )
    pro_cache_ttl_seconds: int = Field(default=60, alias="PRO_CACHE_TTL_SECONDS", ge=1)

    rate_limit_per_ip_per_min: int = Field(
        default=60,
        alias="RATE_LIMIT_PER_IP_PER_MIN",
        ge=0,
        le=10_000,
    )
    max_body_bytes: int = Field(default=10 * 1024, alias="MAX_BODY_BYTES", ge=256)

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT", ge=1, le=65535)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("gemini_api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Return cached Settings instance, raising a helpful message on failure."""
    try:
        return Settings()
    except (
        ValidationError
    ) as exc:  # pragma: no cover - configuration failure visible on boot
        raise RuntimeError(f"Invalid configuration: {exc}") from exc


__all__ = ["Settings", "load_settings"]
