"""Tests for newspaper data models and prompt helpers."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError as SchemaValidationError

from timetravel_press.constants import GenerationStage, NewspaperStyle
from timetravel_press.newspaper.models import (
    Article,
    ArticleBundle,
    GenerationSession,
    ImageSet,
    Personalization,
)
from timetravel_press.newspaper.prompts import (
    build_article_image_prompt,
    build_newspaper_prompt,
    format_japanese_date,
)


class TestPersonalization:
    """Tests for Personalization defaults and form parsing."""

    def test_defaults(self):
        p = Personalization(recipient_name="花子")
        assert p.sender_name == "匿名"
        assert p.occasion == "記念日"
        assert p.message == ""

    def test_from_fields_without_recipient_is_none(self):
        assert Personalization.from_fields(recipient_name=None, message="hi") is None
        assert Personalization.from_fields(recipient_name="   ") is None

    def test_from_fields_keeps_defaults_for_blanks(self):
        p = Personalization.from_fields(recipient_name=" 太郎 ", sender_name="", occasion="誕生日")
        assert p.recipient_name == "太郎"
        assert p.sender_name == "匿名"
        assert p.occasion == "誕生日"


class TestArticleBundle:
    """Tests for ArticleBundle structure rules."""

    def test_requires_three_sub_articles(self, sample_bundle):
        data = sample_bundle.model_dump()
        data["sub_articles"] = data["sub_articles"][:2]
        with pytest.raises(SchemaValidationError):
            ArticleBundle.model_validate(data)

    def test_column_as_article(self, sample_bundle):
        column = sample_bundle.column
        assert column.headline == "天声人語"
        assert column.category == "column"

    def test_image_prompts_main_first(self, sample_bundle):
        prompts = sample_bundle.image_prompts(NewspaperStyle.SHOWA)
        assert len(prompts) == 4
        assert prompts[0] == "Opening ceremony at the National Stadium"
        assert all(prompts)

    def test_derived_prompt_uses_body_and_era(self):
        article = Article(headline="h", content="新幹線" * 60, category="economy")
        prompt = article.resolve_image_prompt(NewspaperStyle.HEISEI)
        assert prompt.startswith("1990s-2010s Japanese era newspaper photo")
        assert "stock market board" in prompt
        assert prompt.endswith(("新幹線" * 60)[:100])

    def test_blank_prompt_is_derived(self):
        article = Article(headline="h", content="body", image_prompt="  ")
        assert "representing: body" in article.resolve_image_prompt(NewspaperStyle.SHOWA)


class TestImageSet:
    """Tests for ImageSet slot handling."""

    def test_default_is_all_absent(self):
        images = ImageSet()
        assert images.slots() == [None, None, None, None]
        assert images.missing_indices() == [0, 1, 2, 3]
        assert not images.is_complete

    def test_from_slots_round_trip(self):
        images = ImageSet.from_slots(["a", None, "c", "d"])
        assert images.main_image == "a"
        assert images.sub_images == [None, "c", "d"]
        assert images.missing_indices() == [1]

    def test_sub_slot_count_enforced(self):
        with pytest.raises(SchemaValidationError):
            ImageSet(main_image="a", sub_images=["b", "c"])

    def test_empty_string_is_distinct_from_absent(self):
        images = ImageSet.from_slots(["", "b", "c", "d"])
        assert images.main_image == ""
        assert images.missing_indices() == []


class TestGenerationSession:
    """Tests for the session model."""

    def test_initial_state(self):
        session = GenerationSession()
        assert session.current_stage == GenerationStage.IDLE
        assert session.progress_percent == 0
        assert not session.text_stage_paid
        assert not session.image_stage_paid
        assert session.article_bundle is None
        assert session.document_filename is None
        assert len(session.session_id) == 12

    def test_document_filename(self):
        session = GenerationSession(target_date=date(1989, 1, 8))
        assert session.document_filename == "timetravel-press-1989-01-08.pdf"


class TestPrompts:
    """Tests for prompt builders."""

    def test_format_japanese_date(self):
        assert format_japanese_date(date(1964, 10, 10)) == "1964年10月10日 土曜日"

    def test_newspaper_prompt_contents(self):
        prompt = build_newspaper_prompt(
            date(1964, 10, 10),
            NewspaperStyle.SHOWA,
            Personalization(recipient_name="花子", occasion="誕生日"),
        )
        assert "1964年10月10日" in prompt
        assert NewspaperStyle.SHOWA.label in prompt
        assert "Recipient: 花子" in prompt
        assert "exactly 3" in prompt

    def test_prompt_without_personalization(self):
        prompt = build_newspaper_prompt(date(2001, 9, 1), NewspaperStyle.HEISEI)
        assert "PERSONAL MESSAGE" not in prompt

    def test_unknown_category_falls_back_to_main_subject(self):
        prompt = build_article_image_prompt("本文", "reiwa", "weather")
        assert "2020s Japanese with retro filter" in prompt
        assert "important news scene" in prompt
