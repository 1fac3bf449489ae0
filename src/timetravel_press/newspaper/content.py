"""Newspaper content provider.

Turns a date, a style and an optional dedication into an ``ArticleBundle`` by
prompting the text provider once and validating the JSON it returns.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date
from typing import Any, TYPE_CHECKING

from pydantic import ValidationError as SchemaValidationError

from ..constants import SUB_ARTICLE_COUNT, NewspaperStyle
from ..errors import ProviderError
from .models import Advertisement, Article, ArticleBundle, Personalization
from .prompts import NEWSPAPER_SYSTEM_PROMPT, build_newspaper_prompt
from .responses import ArticleResponse, NewspaperResponse

if TYPE_CHECKING:
    from ..providers import TextProvider


_logger = logging.getLogger("ai_calls")

DEFAULT_MASTHEAD = "時空新報"
DEFAULT_EDITION = "第一号"
DEFAULT_WEATHER = "晴れ時々曇り"
DEFAULT_COLUMN_TITLE = "天声人語"


def extract_json(response: str) -> dict[str, Any]:
    """Extract a JSON object from AI response text.

    Tries a direct parse, then fenced code blocks, then the first balanced
    ``{...}`` span.

    Raises:
        ValueError: If no JSON object is found.
    """
    text = response.strip()

    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    for match in re.findall(r"```(?:json)?\s*([\s\S]*?)```", text):
        try:
            data = json.loads(match.strip())
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            continue

    brace_start = text.find("{")
    if brace_start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i, char in enumerate(text[brace_start:], brace_start):
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    try:
                        data = json.loads(text[brace_start:i + 1])
                    except json.JSONDecodeError:
                        break
                    if isinstance(data, dict):
                        return data
                    break

    raise ValueError("No JSON object found in response")


def _to_article(response: ArticleResponse, default_category: str | None = None) -> Article:
    return Article(
        headline=response.headline,
        subheadline=response.subheadline,
        content=response.content,
        category=default_category or response.category or "news",
        image_prompt=response.image_prompt,
    )


class NewspaperContentProvider:
    """Generates the text content of a newspaper.

    No retries happen here: a failed or malformed response surfaces as
    ``ProviderError`` for the user to see.

    Usage:
        provider = NewspaperContentProvider(TextProvider())
        bundle = await provider.generate(date(1964, 10, 10), NewspaperStyle.SHOWA)
    """

    def __init__(self, text_provider: "TextProvider"):
        self.text_provider = text_provider

    async def generate(
        self,
        target_date: date,
        style: NewspaperStyle,
        personalization: Personalization | None = None,
    ) -> ArticleBundle:
        """Generate an article bundle for a date.

        Raises:
            ProviderError: On transport failure or a malformed response.
        """
        prompt = build_newspaper_prompt(target_date, style, personalization)

        try:
            raw = await self.text_provider.generate(
                prompt=prompt,
                system=NEWSPAPER_SYSTEM_PROMPT,
                task="newspaper_content",
            )
        except Exception as e:
            _logger.warning(f"CONTENT_ERROR | date:{target_date} | error:{e}")
            raise ProviderError(f"Content generation failed: {e}") from e

        return self.parse_bundle(raw, target_date, personalization)

    def parse_bundle(
        self,
        raw: str,
        target_date: date,
        personalization: Personalization | None = None,
    ) -> ArticleBundle:
        """Validate raw model output into an ``ArticleBundle``.

        Raises:
            ProviderError: If the text is not the expected JSON shape.
        """
        try:
            data = extract_json(raw)
            response = NewspaperResponse.model_validate(data)
        except (ValueError, SchemaValidationError) as e:
            _logger.warning(f"CONTENT_MALFORMED | date:{target_date} | error:{e}")
            raise ProviderError(f"Malformed newspaper response: {e}") from e

        if len(response.sub_articles) < SUB_ARTICLE_COUNT:
            raise ProviderError(
                f"Newspaper response has {len(response.sub_articles)} sub-articles, "
                f"expected {SUB_ARTICLE_COUNT}"
            )

        advertisements = [
            Advertisement(
                title=ad.title,
                content=ad.content,
                style="modern-retro" if ad.style == "modern-retro" else "vintage",
            )
            for ad in response.advertisements
        ]

        return ArticleBundle(
            target_date=target_date,
            masthead=response.masthead or DEFAULT_MASTHEAD,
            edition=response.edition or DEFAULT_EDITION,
            weather=response.weather or DEFAULT_WEATHER,
            main_article=_to_article(response.main_article, default_category="main"),
            sub_articles=[_to_article(a) for a in response.sub_articles[:SUB_ARTICLE_COUNT]],
            editorial=_to_article(response.editorial, default_category="editorial"),
            column_title=response.column_title or DEFAULT_COLUMN_TITLE,
            column_content=response.column_content or "",
            advertisements=advertisements,
            personalization=personalization,
        )
