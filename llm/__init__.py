"""LLM module - Gemini story client and settings."""

from llm.client.gemini_client import (
    GeminiClient,
    LLMError,
    PermanentLLMError,
    TransientLLMError,
)
from llm.settings import StorySettings, get_story_settings

__all__ = [
    "GeminiClient",
    "LLMError",
    "PermanentLLMError",
    "TransientLLMError",
    "StorySettings",
    "get_story_settings",
]
