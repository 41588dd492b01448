"""기사 스토리 생성(Gemini) 설정."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, PositiveFloat, PositiveInt, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GEMINI_API_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"
)


class StorySettings(BaseSettings):
    """스토리 생성용 환경 설정."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    gemini_api_key: Optional[SecretStr] = Field(None, alias="GEMINI_API_KEY", description="Gemini API key")
    gemini_api_url: str = Field(DEFAULT_GEMINI_API_URL, alias="GEMINI_API_URL", description="generateContent endpoint")
    story_temperature: PositiveFloat = Field(0.7, alias="STORY_TEMPERATURE", description="Sampling temperature")
    story_max_output_tokens: PositiveInt = Field(2048, alias="STORY_MAX_OUTPUT_TOKENS", description="Max output tokens")
    story_timeout_seconds: PositiveFloat = Field(15, alias="STORY_TIMEOUT_SECONDS", description="HTTP timeout in seconds")
    max_retries: int = Field(3, ge=0, alias="MAX_RETRIES", description="Retries after the first failed call")
    retry_backoff_seconds: float = Field(1.0, ge=0, alias="RETRY_BACKOFF_SECONDS", description="Linear backoff base")

    @field_validator("gemini_api_key")
    @classmethod
    def _blank_key_is_none(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        if v is not None and not v.get_secret_value().strip():
            return None
        return v

    @property
    def configured(self) -> bool:
        return self.gemini_api_key is not None


@lru_cache()
def get_story_settings() -> StorySettings:
    try:
        return StorySettings()
    except ValidationError as exc:
        raise RuntimeError(f"스토리 설정 검증 실패: {exc}") from exc


def reset_story_settings_cache() -> None:
    get_story_settings.cache_clear()  # type: ignore[attr-defined]
