"""수집(ingestion) 서비스 설정 모델."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, List, Optional, Set

from pydantic import (
    BaseModel,
    Field,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

NEWS_UPDATE_JOB = "news_update_job"


class UpdateCategory(BaseModel):
    """업데이트 작업이 갱신하는 검색 쿼리."""

    query: str = Field(..., description="검색 쿼리(각 기사에도 저장됨).")
    count: PositiveInt = Field(..., description="요청할 결과 수 (≤100).")

    @field_validator("query")
    @classmethod
    def _strip_query(cls, value: str) -> str:
        query = value.strip()
        if not query:
            raise ValueError("query는 공백일 수 없습니다.")
        return query

    @field_validator("count")
    @classmethod
    def _validate_count(cls, value: int) -> int:
        if value > 100:
            raise ValueError("count는 100 이하여야 합니다.")
        return value


DEFAULT_UPDATE_CATEGORIES = [
    UpdateCategory(query="india news", count=100),
    UpdateCategory(query="technology", count=75),
    UpdateCategory(query="business", count=75),
    UpdateCategory(query="sports", count=75),
]


class Settings(BaseSettings):
    """수집 및 스케줄링용 환경 설정."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    database_url: str = Field(..., alias="DATABASE_URL", description="기사/잠금 저장소 SQLAlchemy DSN.")
    redis_url: str = Field(..., alias="REDIS_URL", description="Celery 브로커/백엔드 Redis DSN.")
    serpapi_key: Optional[SecretStr] = Field(None, alias="SERPAPI_KEY", description="검색 API 인증 키.")
    serpapi_endpoint: str = Field(
        "https://serpapi.com/search.json",
        alias="SERPAPI_ENDPOINT",
        description="검색 API 엔드포인트",
    )
    serpapi_engine: str = Field("google_news", alias="SERPAPI_ENGINE", description="검색 엔진 파라미터")
    http_timeout_seconds: PositiveFloat = Field(15, alias="HTTP_TIMEOUT_SECONDS", description="외부 요청 타임아웃(초)")
    max_retries: int = Field(3, ge=0, alias="MAX_RETRIES", description="첫 실패 이후 최대 재시도")
    retry_backoff_seconds: float = Field(
        1.0,
        ge=0,
        alias="RETRY_BACKOFF_SECONDS",
        description="재시도 간 선형 백오프 기준(초)",
    )
    update_categories: List[UpdateCategory] = Field(
        default_factory=lambda: list(DEFAULT_UPDATE_CATEGORIES),
        alias="UPDATE_CATEGORIES",
        description="{query, count} 객체의 JSON 배열 형태의 갱신 카테고리.",
    )
    update_interval_minutes: PositiveInt = Field(30, alias="UPDATE_INTERVAL_MINUTES", description="갱신 주기 (분 단위).")
    update_enabled: bool = Field(True, alias="UPDATE_ENABLED", description="celery beat 스케줄 사용 여부.")
    lock_ttl_minutes: PositiveInt = Field(5, alias="LOCK_TTL_MINUTES", description="업데이트 잠금 TTL (분 단위).")
    instance_id: Optional[str] = Field(None, alias="INSTANCE_ID", description="잠금 소유자 식별자(명시 지정).")
    log_level: str = Field("INFO", alias="LOG_LEVEL", description="루트 로그 레벨.")
    log_json: bool = Field(False, alias="LOG_JSON", description="로그를 JSON 형식으로 출력할지 여부.")
    celery_task_soft_time_limit: PositiveInt = Field(
        600,
        alias="CELERY_TASK_SOFT_TIME_LIMIT",
        description="Celery 태스크 소프트 타임아웃 (초).",
    )

    @field_validator("update_categories", mode="before")
    @classmethod
    def _parse_update_categories(cls, value: Any) -> List[Any]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("UPDATE_CATEGORIES는 JSON 배열이어야 합니다.") from exc
            return parsed
        if isinstance(value, list):
            return value
        raise ValueError("UPDATE_CATEGORIES는 리스트 형태여야 합니다.")

    @field_validator("update_categories")
    @classmethod
    def _validate_unique_queries(cls, value: List[UpdateCategory]) -> List[UpdateCategory]:
        seen: Set[str] = set()
        for category in value:
            if category.query in seen:
                raise ValueError(f"중복된 갱신 카테고리: {category.query}")
            seen.add(category.query)
        return value

    @field_validator("database_url")
    @classmethod
    def _validate_database_url(cls, value: str) -> str:
        if "://" not in value:
            raise ValueError("DATABASE_URL은 유효한 DSN 문자열이어야 합니다.")
        return value


@lru_cache()
def get_settings() -> Settings:
    """환경 변수로부터 Settings 인스턴스를 생성해 반환한다."""
    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"환경 변수 검증 실패: {exc}") from exc


def reset_settings_cache() -> None:
    """Settings 캐시를 비운다(테스트용)."""
    get_settings.cache_clear()  # type: ignore[attr-defined]
