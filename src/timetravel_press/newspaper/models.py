"""Data models for newspaper generation."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ..constants import (
    PROGRESS_START,
    SUB_ARTICLE_COUNT,
    GenerationStage,
    NewspaperStyle,
)
from .prompts import build_article_image_prompt


class Article(BaseModel):
    """A single article unit."""

    headline: str
    subheadline: str | None = None
    content: str
    category: str = "news"
    image_prompt: str | None = None

    def resolve_image_prompt(self, style: NewspaperStyle) -> str:
        """Get the image prompt, deriving one from the body if the model gave none."""
        if self.image_prompt and self.image_prompt.strip():
            return self.image_prompt
        return build_article_image_prompt(self.content, style, self.category)


class Advertisement(BaseModel):
    """Era-flavored advertisement blurb."""

    title: str
    content: str
    style: Literal["vintage", "modern-retro"] = "vintage"


class Personalization(BaseModel):
    """Optional dedication printed in the newspaper."""

    recipient_name: str
    sender_name: str = "匿名"
    message: str = ""
    occasion: str = "記念日"

    @classmethod
    def from_fields(
        cls,
        recipient_name: str | None = None,
        sender_name: str | None = None,
        message: str | None = None,
        occasion: str | None = None,
    ) -> "Personalization | None":
        """Build from loose form fields. No recipient means no dedication."""
        if not recipient_name or not recipient_name.strip():
            return None
        data: dict[str, str] = {"recipient_name": recipient_name.strip()}
        if sender_name:
            data["sender_name"] = sender_name
        if message:
            data["message"] = message
        if occasion:
            data["occasion"] = occasion
        return cls(**data)


class ArticleBundle(BaseModel):
    """All text content of one newspaper."""

    target_date: date
    masthead: str
    edition: str
    weather: str
    main_article: Article
    sub_articles: list[Article]
    editorial: Article
    column_title: str
    column_content: str
    advertisements: list[Advertisement] = Field(default_factory=list)
    personalization: Personalization | None = None

    @field_validator("sub_articles")
    @classmethod
    def _exactly_three_sub_articles(cls, value: list[Article]) -> list[Article]:
        if len(value) != SUB_ARTICLE_COUNT:
            raise ValueError(
                f"expected {SUB_ARTICLE_COUNT} sub-articles, got {len(value)}"
            )
        return value

    @property
    def column(self) -> Article:
        """The short column as an article unit."""
        return Article(
            headline=self.column_title,
            content=self.column_content,
            category="column",
        )

    def image_prompts(self, style: NewspaperStyle) -> list[str]:
        """Prompts for every image slot, main article first."""
        articles = [self.main_article, *self.sub_articles]
        return [article.resolve_image_prompt(style) for article in articles]


class ImageSet(BaseModel):
    """Generated images aligned with the bundle's articles.

    ``None`` marks a slot that was never successfully generated.
    """

    main_image: str | None = None
    sub_images: list[str | None] = Field(
        default_factory=lambda: [None] * SUB_ARTICLE_COUNT
    )

    @field_validator("sub_images")
    @classmethod
    def _aligned_with_sub_articles(cls, value: list[str | None]) -> list[str | None]:
        if len(value) != SUB_ARTICLE_COUNT:
            raise ValueError(
                f"expected {SUB_ARTICLE_COUNT} sub-image slots, got {len(value)}"
            )
        return value

    @classmethod
    def from_slots(cls, slots: list[str | None]) -> "ImageSet":
        """Build from a flat slot vector (main first)."""
        if not slots:
            raise ValueError("slot vector is empty")
        return cls(main_image=slots[0], sub_images=list(slots[1:]))

    def slots(self) -> list[str | None]:
        """Flat slot vector, main image first."""
        return [self.main_image, *self.sub_images]

    def missing_indices(self) -> list[int]:
        """Indices of slots still absent."""
        return [i for i, value in enumerate(self.slots()) if value is None]

    @property
    def is_complete(self) -> bool:
        """True when every slot holds an image."""
        return not self.missing_indices()


class GenerationSession(BaseModel):
    """The single in-memory unit of generation state.

    Owned by ``GenerationOrchestrator``; nothing else writes to it.
    """

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    target_date: date | None = None
    style: NewspaperStyle = NewspaperStyle.SHOWA
    personalization: Personalization | None = None

    text_stage_paid: bool = False
    image_stage_paid: bool = False
    image_payment_confirmed: bool = False

    article_bundle: ArticleBundle | None = None
    image_set: ImageSet | None = None
    document_artifact: bytes | None = None

    current_stage: GenerationStage = GenerationStage.IDLE
    progress_percent: int = Field(default=PROGRESS_START, ge=0, le=100)
    last_error: str | None = None

    @property
    def document_filename(self) -> str | None:
        """Download filename for the rendered PDF."""
        if self.target_date is None:
            return None
        return f"timetravel-press-{self.target_date.isoformat()}.pdf"
