"""Pydantic response models for AI extraction.

These models define the JSON shape requested from the language model. They are
deliberately lenient (most fields optional) so that missing decoration is
filled with defaults instead of failing the whole bundle.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ArticleResponse(BaseModel):
    """Article as returned by the model."""

    headline: str = Field(min_length=1, description="Article headline")
    subheadline: str | None = Field(default=None, description="Optional sub-headline")
    content: str = Field(min_length=1, description="Article body")
    category: str = Field(default="news", description="Category tag")
    image_prompt: str | None = Field(
        default=None,
        alias="imagePrompt",
        description="English prompt for an illustrating photo",
    )

    model_config = {"populate_by_name": True}


class AdvertisementResponse(BaseModel):
    """Advertisement as returned by the model."""

    title: str
    content: str
    style: str = "vintage"


class NewspaperResponse(BaseModel):
    """Full newspaper payload as returned by the model."""

    masthead: str | None = None
    edition: str | None = None
    weather: str | None = None
    main_article: ArticleResponse = Field(alias="mainArticle")
    sub_articles: list[ArticleResponse] = Field(default_factory=list, alias="subArticles")
    editorial: ArticleResponse
    column_title: str | None = Field(default=None, alias="columnTitle")
    column_content: str | None = Field(default=None, alias="columnContent")
    advertisements: list[AdvertisementResponse] = Field(default_factory=list)

    model_config = {"populate_by_name": True}
