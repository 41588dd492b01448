from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ArticleOut(CamelModel):
    title: str
    description: str = ""
    link: str
    image: Optional[str] = None
    source: str
    date: str
    query: str
    fetched_at: datetime


class NewsMeta(CamelModel):
    count: int
    last_updated: Optional[datetime] = None
    next_update: datetime


class NewsResponse(CamelModel):
    success: bool = True
    data: list[ArticleOut]
    meta: NewsMeta
    # Flat copies read by the web client.
    articles: list[ArticleOut]
    last_updated: Optional[datetime] = None
    next_update: datetime


class ArticleResponse(CamelModel):
    success: bool = True
    article: ArticleOut


class StoryRequest(CamelModel):
    title: Optional[str] = None
    source: Optional[str] = None
    image_url: Optional[str] = None


class StoryResponse(CamelModel):
    success: bool = True
    content: str


class UpdateResponse(CamelModel):
    success: bool = True
    message: str
    report: dict[str, Any] = Field(default_factory=dict)


class DatabaseHealth(CamelModel):
    status: str
    last_update: datetime | str
    document_count: int


class UpdateJobHealth(CamelModel):
    last_run: datetime | str
    locked_by: str
    expires_at: datetime | str


class HealthResponse(CamelModel):
    status: str
    timestamp: datetime
    database: DatabaseHealth
    update_job: UpdateJobHealth
    services: dict[str, str]
