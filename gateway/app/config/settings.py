from __future__ import annotations

import functools
import json
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_list(v: Any) -> List[str]:
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return [str(item).strip() for item in v if str(item).strip()]
    if isinstance(v, str):
        text = v.strip()
        if not text:
            return []
        try:
            parsed = json.loads(text)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except ValueError:
            pass
        return [item.strip() for item in text.split(",") if item.strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True, protected_namespaces=("settings_",)
    )

    # App / env
    app_env: str = Field("dev", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    request_id_header: str = Field("x-request-id", alias="REQUEST_ID_HEADER")
    gateway_path: str = Field("/api/gemini", alias="GATEWAY_PATH")

    # Origin guard
    cors_allowed_origins: Union[List[str], str] = Field(
        default_factory=lambda: ["https://translator-v2-0.pages.dev"], alias="CORS_ALLOWED_ORIGINS"
    )
    cors_trusted_suffixes: Union[List[str], str] = Field(
        default_factory=lambda: [".translator-v2-0.pages.dev"], alias="CORS_TRUSTED_SUFFIXES"
    )
    cors_max_age_seconds: int = Field(600, alias="CORS_MAX_AGE_SECONDS")

    # Abuse limiter
    rate_limit_capacity: int = Field(10, alias="RATE_LIMIT_CAPACITY")
    rate_limit_refill_per_minute: int = Field(10, alias="RATE_LIMIT_REFILL_PER_MINUTE")
    client_ip_header: str = Field("cf-connecting-ip", alias="CLIENT_IP_HEADER")

    # Request validation
    max_body_bytes: int = Field(16384, alias="MAX_BODY_BYTES")
    max_text_chars: int = Field(2000, alias="MAX_TEXT_CHARS")
    max_normalized_chars: int = Field(1800, alias="MAX_NORMALIZED_CHARS")
    default_source_language: str = Field("auto", alias="DEFAULT_SOURCE_LANGUAGE")
    default_target_language: str = Field("vi", alias="DEFAULT_TARGET_LANGUAGE")

    # Upstream
    gemini_api_key: Optional[str] = Field(None, alias="GEMINI_API_KEY")
    gemini_api_base: str = Field("https://generativelanguage.googleapis.com/v1beta", alias="GEMINI_API_BASE")
    gemini_models: Union[List[str], str] = Field(
        default_factory=lambda: ["gemini-2.5-flash", "gemini-2.0-flash", "gemini-pro-latest"],
        alias="GEMINI_MODELS",
    )
    model_timeout_seconds: float = Field(10.0, alias="MODEL_TIMEOUT_SECONDS")
    model_connect_timeout_seconds: float = Field(3.0, alias="MODEL_CONNECT_TIMEOUT_SECONDS")
    model_max_attempts: int = Field(3, alias="MODEL_MAX_ATTEMPTS")
    model_temperature: float = Field(0.3, alias="MODEL_TEMPERATURE")
    model_max_output_tokens: int = Field(1024, alias="MODEL_MAX_OUTPUT_TOKENS")
    retry_base_delay_ms: int = Field(250, alias="RETRY_BASE_DELAY_MS")
    retry_max_jitter_ms: int = Field(100, alias="RETRY_MAX_JITTER_MS")
    retry_max_delay_ms: int = Field(4000, alias="RETRY_MAX_DELAY_MS")

    @field_validator("cors_allowed_origins", "cors_trusted_suffixes", "gemini_models", mode="before")
    @classmethod
    def parse_csv(cls, v: Any) -> List[str]:
        return _parse_list(v)

    @field_validator(
        "rate_limit_capacity",
        "rate_limit_refill_per_minute",
        "max_body_bytes",
        "max_text_chars",
        "max_normalized_chars",
        "model_max_attempts",
        "model_max_output_tokens",
    )
    @classmethod
    def clamp_positive(cls, v: int) -> int:
        return max(1, v)

    @field_validator("retry_base_delay_ms", "retry_max_jitter_ms", "retry_max_delay_ms", "cors_max_age_seconds")
    @classmethod
    def clamp_non_negative(cls, v: int) -> int:
        return max(0, v)

    @field_validator("model_timeout_seconds", "model_connect_timeout_seconds")
    @classmethod
    def clamp_timeout(cls, v: float) -> float:
        return max(0.1, v)

    @field_validator("app_env")
    @classmethod
    def normalize_env(cls, v: str) -> str:
        return (v or "dev").lower()

    def is_configured(self) -> bool:
        return bool(self.gemini_api_key and self.gemini_api_key.strip())

    def normalized_ceiling(self) -> int:
        # post-normalization ceiling never exceeds the raw ceiling
        return min(self.max_normalized_chars, self.max_text_chars)


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def settings_public_summary(settings: Settings) -> Dict[str, Any]:
    """Non-secret view of the settings, safe for logs and /health."""
    return {
        "env": settings.app_env,
        "gateway_path": settings.gateway_path,
        "models": list(settings.gemini_models),
        "api_key_present": settings.is_configured(),
        "allowed_origins": len(settings.cors_allowed_origins),
        "trusted_suffixes": len(settings.cors_trusted_suffixes),
        "rate_limit": {
            "capacity": settings.rate_limit_capacity,
            "refill_per_minute": settings.rate_limit_refill_per_minute,
        },
        "timeouts": {
            "request": settings.model_timeout_seconds,
            "connect": settings.model_connect_timeout_seconds,
        },
        "max_attempts": settings.model_max_attempts,
    }


def validate_for_env(settings: Settings) -> Dict[str, Any]:
    summary = settings_public_summary(settings)
    issues: list[str] = []
    if not settings.is_configured():
        issues.append("GEMINI_API_KEY missing")
    if not settings.gemini_models:
        issues.append("GEMINI_MODELS empty")
    if not settings.cors_allowed_origins and not settings.cors_trusted_suffixes:
        issues.append("no cross-origin callers allowed")
    summary["issues"] = issues
    return summary
