"""뉴스 갱신 파이프라인 도메인 DTO."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_HTTP_URL = re.compile(r"^https?://.+", re.IGNORECASE)

DEFAULT_TITLE = "No title available"
DEFAULT_SOURCE = "Unknown source"


def is_http_url(value: Optional[str]) -> bool:
    return bool(value) and bool(_HTTP_URL.match(value or ""))


class SearchResult(BaseModel):
    """검색 제공자가 반환한 원본 결과 1건."""

    title: Optional[str] = None
    snippet: Optional[str] = None
    link: str
    thumbnail: Optional[str] = None
    source_name: Optional[str] = None
    date: Optional[str] = None


class ArticleDTO(BaseModel):
    """저장소에 기록되는 정규화 기사 (``link`` 기준)."""

    title: str
    description: str = ""
    link: str = Field(..., min_length=1)
    image: Optional[str] = Field(None, description="있을 경우 절대 http(s) URL")
    source: str
    date: str
    query: str
    fetched_at: datetime

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        return value.strip()

    @field_validator("image")
    @classmethod
    def _validate_image(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not is_http_url(value):
            raise ValueError(f"{value} is not a valid image URL!")
        return value


class UpsertResult(BaseModel):
    inserted: int = 0
    modified: int = 0


class LockStatus(BaseModel):
    """작업 잠금 레코드 스냅샷."""

    model_config = ConfigDict(from_attributes=True)

    job_name: str
    locked_at: datetime
    locked_by: str
    expires_at: datetime

    @field_validator("locked_at", "expires_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # SQLite는 naive datetime을 반환한다. 저장 값은 모두 UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now
