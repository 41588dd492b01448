"""LLM client module."""

from llm.client.gemini_client import (
    GeminiClient,
    LLMError,
    PermanentLLMError,
    TransientLLMError,
)

__all__ = [
    "GeminiClient",
    "LLMError",
    "PermanentLLMError",
    "TransientLLMError",
]
