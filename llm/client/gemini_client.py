"""Gemini generateContent 클라이언트 래퍼.

특징
- 공용 재시도 HTTP 클라이언트를 통해 요청
- 텍스트 반환 전 응답 구조 검증
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ingestion.services.http_client import FetchError, fetch_with_retry
from ingestion.utils.logging import get_logger
from llm.prompts import build_story_prompt
from llm.settings import StorySettings, get_story_settings

EMPTY_STORY = "No content was generated."

logger = get_logger(__name__)


class LLMError(Exception):
    """스토리 생성 관련 기본 오류."""


class TransientLLMError(LLMError):
    """일시 오류(재시도 후에도 실패, 이후 호출은 성공할 수 있음)."""


class PermanentLLMError(LLMError):
    """영구 오류(설정 누락, 잘못된 응답 구조)."""


def extract_text(response: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise PermanentLLMError."""
    try:
        text = response["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise PermanentLLMError("Invalid response structure from Gemini API") from exc
    if not isinstance(text, str) or not text:
        raise PermanentLLMError("Invalid response structure from Gemini API")
    return text


@dataclass(frozen=True)
class GeminiClient:
    settings: StorySettings
    sleep: Callable[[float], None] = field(default=time.sleep)

    @classmethod
    def from_env(cls) -> "GeminiClient":
        return cls(get_story_settings())

    @property
    def configured(self) -> bool:
        return self.settings.configured

    def _build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": float(self.settings.story_temperature),
                "maxOutputTokens": int(self.settings.story_max_output_tokens),
            },
        }

    def generate_story(self, title: str, source: str, image_url: Optional[str] = None) -> str:
        if self.settings.gemini_api_key is None:
            raise PermanentLLMError("GEMINI_API_KEY is not configured.")

        payload = self._build_payload(build_story_prompt(title, source, image_url))
        try:
            resp = fetch_with_retry(
                self.settings.gemini_api_url,
                method="POST",
                params={"key": self.settings.gemini_api_key.get_secret_value()},
                json=payload,
                timeout=float(self.settings.story_timeout_seconds),
                retries=int(self.settings.max_retries),
                backoff_seconds=float(self.settings.retry_backoff_seconds),
                sleep=self.sleep,
            )
        except FetchError as exc:
            raise TransientLLMError(f"story generation failed: {exc.cause}") from exc

        try:
            body = resp.json()
        except ValueError as exc:
            raise PermanentLLMError("Gemini response is not JSON") from exc
        content = extract_text(body).strip()
        logger.info("story.generated", extra={"title": title, "chars": len(content)})
        return content or EMPTY_STORY
