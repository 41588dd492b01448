"""Settings for the web API."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any, List, Literal, Optional

from pydantic import Field, PositiveInt, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class ApiSettings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    app_env: Literal["development", "production", "test"] = Field("development", alias="APP_ENV")
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["https://news-hub-app-six.vercel.app", "http://localhost:5173"],
        alias="CORS_ORIGINS",
    )
    cron_secret: Optional[SecretStr] = Field(None, alias="CRON_SECRET")
    news_cache_ttl_seconds: int = Field(60, ge=0, alias="NEWS_CACHE_TTL_SECONDS")
    news_cache_redis_url: Optional[str] = Field(None, alias="NEWS_CACHE_REDIS_URL")
    news_max_results: PositiveInt = Field(150, alias="NEWS_MAX_RESULTS")
    news_default_results: PositiveInt = Field(75, alias="NEWS_DEFAULT_RESULTS")
    news_default_query: str = Field("india news", alias="NEWS_DEFAULT_QUERY")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value: Any) -> List[str]:
        if value in (None, ""):
            return []
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    return json.loads(stripped)
                except json.JSONDecodeError as exc:
                    raise ValueError("CORS_ORIGINS must be a JSON array or comma separated list.") from exc
            return [item.strip() for item in stripped.split(",") if item.strip()]
        return value

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache()
def get_api_settings() -> ApiSettings:
    try:
        return ApiSettings()
    except ValidationError as exc:
        raise RuntimeError(f"API settings validation failed: {exc}") from exc


def reset_api_settings_cache() -> None:
    get_api_settings.cache_clear()  # type: ignore[attr-defined]
