"""
Application configuration via environment variables.
"""

import json
import os
from functools import lru_cache
from typing import Any, List, Literal, Optional

from pydantic import Field, computed_field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_CORS_ENV = "FITCHECK_CORS_ORIGINS"
_DEFAULT_CORS = ["http://localhost:3000"]
_DEFAULT_CORS_RAW = json.dumps(_DEFAULT_CORS)


def _parse_cors_origins(v: str) -> List[str]:
    """Parse CORS origins from env string (JSON or comma-separated). Never raises."""
    if not v or not isinstance(v, str):
        return list(_DEFAULT_CORS)
    v = v.strip()
    if not v:
        return list(_DEFAULT_CORS)
    # Try JSON (double-quoted only)
    try:
        parsed = json.loads(v)
        if isinstance(parsed, list):
            return [x.strip() for x in parsed if isinstance(x, str) and x.strip()]
    except (json.JSONDecodeError, TypeError):
        pass
    # Try single-quoted JSON
    try:
        parsed = json.loads(v.replace("'", '"'))
        if isinstance(parsed, list):
            return [x.strip() for x in parsed if isinstance(x, str) and x.strip()]
    except (json.JSONDecodeError, TypeError):
        pass
    # Comma-separated
    if "," in v:
        return [origin.strip() for origin in v.split(",") if origin.strip()]
    return [v]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FITCHECK_",
        env_file=".env",
        extra="ignore",
    )

    # App
    app_name: str = "FitCheck API"
    debug: bool = False
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Storage
    database_url: str = "postgresql://localhost/fitcheck"
    storage_backend: Literal["postgres", "memory"] = "postgres"  # memory for local dev

    # CORS: read FITCHECK_CORS_ORIGINS from os.environ in the validator so
    # pydantic-settings never tries to JSON-decode it.
    cors_origins_raw: str = Field(
        default=_DEFAULT_CORS_RAW,
        description="JSON array or comma-separated origins",
    )

    @model_validator(mode="before")
    @classmethod
    def inject_cors_from_env(cls, data: Any) -> Any:
        env_val = os.environ.get(_CORS_ENV)
        if env_val is not None and isinstance(data, dict):
            data["cors_origins_raw"] = env_val
        return data

    @computed_field
    @property
    def cors_origins_list(self) -> List[str]:
        """Parsed CORS origins (not named 'cors_origins' so the env var is never JSON-decoded)."""
        return _parse_cors_origins(self.cors_origins_raw)

    # Generation backend
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: Optional[str] = None
    generation_max_tokens: int = 1800
    generation_temperature: float = 0.2
    generation_timeout_s: float = 45.0

    # Usage metering
    free_daily_analysis_limit: int = 5

    @field_validator("free_daily_analysis_limit")
    @classmethod
    def check_free_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("free_daily_analysis_limit must be at least 1")
        return v

    # Supabase (Auth)
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    auth_timeout_s: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
