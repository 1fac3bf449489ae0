"""Shared test fixtures and configuration.

Provides mocks and fixtures for testing the TimeTravel Press components.
Collaborator fixtures return async-compatible mocks so they can stand in
for the real providers with the async/await syntax.
"""

from __future__ import annotations

import base64
import io
from datetime import date
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from timetravel_press.newspaper import (
    Advertisement,
    Article,
    ArticleBundle,
    GenerationOrchestrator,
    ImageSet,
    Personalization,
)
from timetravel_press.payments import TestModePaymentGate
from timetravel_press.settings import PressSettings


def make_data_uri(color: tuple[int, int, int] = (120, 100, 80), size: tuple[int, int] = (64, 48)) -> str:
    """Build a small JPEG data URI."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG")
    return "data:image/jpeg;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def test_output_dir(tmp_path: Path) -> Path:
    """Create a test output directory.

    Returns:
        Path to temporary output directory.
    """
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir


@pytest.fixture
def settings(tmp_path: Path) -> PressSettings:
    """Settings with payments bypassed and no delay between image retries."""
    return PressSettings(
        _env_file=None,
        test_mode=True,
        image_retry_delay_seconds=0,
        output_dir=tmp_path / "output",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def paid_settings(settings: PressSettings) -> PressSettings:
    """Settings that require real payment verification."""
    return settings.model_copy(update={"test_mode": False})


@pytest.fixture
def data_uri() -> str:
    """A decodable image data URI."""
    return make_data_uri()


@pytest.fixture
def newspaper_json() -> dict[str, Any]:
    """Model output in the shape the content provider asks for."""
    return {
        "masthead": "昭和新報",
        "edition": "第一万二千号",
        "weather": "快晴",
        "mainArticle": {
            "headline": "東京五輪 きょう開幕",
            "subheadline": "九十四カ国 選手団が入場",
            "content": "アジアで初めてのオリンピックが国立競技場で開幕した。" * 4,
            "imagePrompt": "Opening ceremony at the National Stadium, athletes marching",
        },
        "subArticles": [
            {
                "headline": "新幹線 開業から十日",
                "content": "東海道新幹線は開業以来、満員の列車が続いている。",
                "category": "economy",
                "imagePrompt": "Shinkansen train at Tokyo station",
            },
            {
                "headline": "聖火 最終ランナーは十九歳",
                "content": "広島出身の青年が聖火台に火をともした。",
                "category": "sports",
            },
            {
                "headline": "銀座に人波",
                "content": "五輪見物の客で銀座の通りはにぎわった。",
                "category": "society",
                "imagePrompt": "Crowds on Ginza street",
            },
        ],
        "editorial": {
            "headline": "平和の祭典を迎えて",
            "content": "戦後十九年、日本は世界を迎える国となった。",
        },
        "columnTitle": "天声人語",
        "columnContent": "秋晴れの空に五つの輪が描かれた。",
        "advertisements": [
            {"title": "カラーテレビ", "content": "五輪は総天然色で", "style": "vintage"},
            {"title": "ミシン", "content": "家庭の味方", "style": "vintage"},
        ],
    }


@pytest.fixture
def sample_bundle() -> ArticleBundle:
    """A complete article bundle."""
    return ArticleBundle(
        target_date=date(1964, 10, 10),
        masthead="時空新報",
        edition="第一号",
        weather="晴れ",
        main_article=Article(
            headline="東京五輪 きょう開幕",
            content="アジアで初めてのオリンピックが開幕した。",
            category="main",
            image_prompt="Opening ceremony at the National Stadium",
        ),
        sub_articles=[
            Article(headline="新幹線 開業", content="東海道新幹線が走り出した。", category="economy"),
            Article(headline="聖火 到着", content="聖火が国立競技場に到着した。", category="sports"),
            Article(headline="銀座に人波", content="銀座の通りはにぎわった。", category="society"),
        ],
        editorial=Article(headline="平和の祭典", content="日本は世界を迎える。", category="editorial"),
        column_title="天声人語",
        column_content="秋晴れの空に五つの輪。",
        advertisements=[
            Advertisement(title="カラーテレビ", content="総天然色で"),
            Advertisement(title="ミシン", content="家庭の味方", style="modern-retro"),
        ],
        personalization=Personalization(recipient_name="花子", message="おめでとう"),
    )


@pytest.fixture
def full_image_set(data_uri: str) -> ImageSet:
    """An image set with every slot filled."""
    return ImageSet.from_slots([data_uri] * 4)


@pytest.fixture
def mock_content_provider(sample_bundle: ArticleBundle) -> AsyncMock:
    """Create a mock NewspaperContentProvider.

    Returns:
        AsyncMock whose generate() returns ``sample_bundle``.
    """
    provider = AsyncMock()
    provider.generate = AsyncMock(return_value=sample_bundle)
    return provider


@pytest.fixture
def mock_image_provider(data_uri: str) -> AsyncMock:
    """Create a mock ImageProvider.

    Returns:
        AsyncMock whose generate() always returns an image.
    """
    provider = AsyncMock()
    provider.generate = AsyncMock(return_value=data_uri)
    return provider


@pytest.fixture
def mock_renderer() -> MagicMock:
    """Create a mock document renderer.

    Returns:
        MagicMock whose render() returns fake PDF bytes.
    """
    renderer = MagicMock()
    renderer.render = MagicMock(return_value=b"%PDF-1.4 test document")
    return renderer


@pytest.fixture
def make_orchestrator(
    settings: PressSettings,
    mock_content_provider: AsyncMock,
    mock_image_provider: AsyncMock,
    mock_renderer: MagicMock,
):
    """Factory for orchestrators wired to the mock collaborators.

    Usage:
        def test_something(make_orchestrator):
            orchestrator = make_orchestrator(image_provider=flaky_provider)
    """
    def _make(**overrides: Any) -> GenerationOrchestrator:
        kwargs: dict[str, Any] = {
            "content_provider": mock_content_provider,
            "image_provider": mock_image_provider,
            "payment_gate": TestModePaymentGate(),
            "renderer": mock_renderer,
            "settings": settings,
        }
        kwargs.update(overrides)
        return GenerationOrchestrator(**kwargs)

    return _make
