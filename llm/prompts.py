"""Prompt templates for story generation."""

from __future__ import annotations

from typing import Optional

STORY_TEMPLATE = """As a journalist, write a detailed news article:

HEADLINE: {title}
SOURCE: {source}
{image_line}
ARTICLE REQUIREMENTS:
- 9-10 paragraphs (800-1000 words)
- Structured journalism format
"""


def build_story_prompt(title: str, source: str, image_url: Optional[str] = None) -> str:
    image_line = f"IMAGE: Consider this image: {image_url}\n" if image_url else ""
    return STORY_TEMPLATE.format(title=title.strip(), source=source.strip(), image_line=image_line)
