"""Prompt building for newspaper text and image generation."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from ..constants import ARTICLE_IMAGE_PROMPT_CONTENT_CHARS

if TYPE_CHECKING:
    from ..constants import NewspaperStyle
    from .models import Personalization


_WEEKDAYS = ["月", "火", "水", "木", "金", "土", "日"]

NEWSPAPER_SYSTEM_PROMPT = """You are a veteran Japanese newspaper journalist from the Showa and Heisei eras.
Write every article in Japanese, in the dignified "de aru" register of a printed broadsheet.

STYLE:
- Weighty but warm narration, generous use of kanji
- Vivid scene description and measured metaphors
- No bullet points, no emoji, no exclamation marks, no internet slang
- Never use casual endings such as "to omoimasu" or "desu ne"

FACTS:
- Base the paper on real events of the given date: domestic and world news,
  economy and markets, sports results, culture and entertainment, weather
- Keep invention to the minimum needed to fill the page"""

_ERA_IMAGE_PHRASES = {
    "showa": "1960s-1980s Japanese",
    "heisei": "1990s-2010s Japanese",
    "reiwa": "2020s Japanese with retro filter",
}

_CATEGORY_SUBJECTS = {
    "main": "important news scene, crowd of people, significant event",
    "politics": "government building, political figure silhouette, official ceremony",
    "economy": "stock market board, business district, factory",
    "society": "daily life scene, community gathering, urban landscape",
    "culture": "traditional arts, performance, cultural event",
    "sports": "athletic competition, sports venue, victory moment",
    "editorial": "thoughtful composition, symbolic imagery, contemplative scene",
}


def format_japanese_date(value: date) -> str:
    """Format a date as in a Japanese masthead, e.g. 1964年10月10日 土曜日."""
    return f"{value.year}年{value.month}月{value.day}日 {_WEEKDAYS[value.weekday()]}曜日"


def build_newspaper_prompt(
    target_date: date,
    style: "NewspaperStyle",
    personalization: "Personalization | None" = None,
) -> str:
    """Build the user prompt asking for one newspaper as JSON."""
    personal_block = ""
    if personalization is not None:
        personal_block = f"""
PERSONAL MESSAGE CORNER:
- Recipient: {personalization.recipient_name}
- Sender: {personalization.sender_name}
- Occasion: {personalization.occasion}
- Message: {personalization.message}
"""

    return f"""Create the front page of a newspaper.

DATE: {format_japanese_date(target_date)}
STYLE: {style.label}
{personal_block}
Return ONLY a JSON object with this exact structure:
{{
  "masthead": "newspaper name (may be invented)",
  "edition": "issue number and morning/evening edition",
  "weather": "estimated weather for the day",
  "mainArticle": {{
    "headline": "front-page headline",
    "subheadline": "sub-headline",
    "content": "body, 400-600 characters",
    "category": "main",
    "imagePrompt": "English prompt for a photo illustrating this article"
  }},
  "subArticles": [
    {{
      "headline": "headline",
      "content": "body, 200-300 characters",
      "category": "politics|economy|society|culture|sports",
      "imagePrompt": "English prompt for a photo illustrating this article"
    }}
  ],
  "editorial": {{
    "headline": "editorial headline",
    "content": "editorial body, 300-400 characters",
    "category": "editorial"
  }},
  "columnTitle": "title of the front-page column",
  "columnContent": "column body, about 200 characters, seasonal and tied to the date",
  "advertisements": [
    {{"title": "ad title", "content": "ad copy for a product of the era", "style": "vintage"}}
  ]
}}

"subArticles" must contain exactly 3 entries. Output valid JSON and nothing else."""


def build_article_image_prompt(
    article_content: str,
    era: "NewspaperStyle | str",
    category: str,
) -> str:
    """Derive an image prompt from an article body."""
    era_key = getattr(era, "value", era)
    era_phrase = _ERA_IMAGE_PHRASES.get(era_key, _ERA_IMAGE_PHRASES["showa"])
    subject = _CATEGORY_SUBJECTS.get(category, _CATEGORY_SUBJECTS["main"])
    excerpt = article_content[:ARTICLE_IMAGE_PROMPT_CONTENT_CHARS]
    return f"{era_phrase} era newspaper photo, {subject}, representing: {excerpt}"
