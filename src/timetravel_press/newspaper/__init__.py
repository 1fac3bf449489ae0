"""Newspaper content, image batching and the generation pipeline."""

from .content import NewspaperContentProvider, extract_json
from .image_batch import ImageBatchGenerator, ImageBatchResult, RetryBatch
from .models import (
    Advertisement,
    Article,
    ArticleBundle,
    GenerationSession,
    ImageSet,
    Personalization,
)
from .orchestrator import GenerationOrchestrator, parse_style, parse_target_date

__all__ = [
    "Advertisement",
    "Article",
    "ArticleBundle",
    "GenerationOrchestrator",
    "GenerationSession",
    "ImageBatchGenerator",
    "ImageBatchResult",
    "ImageSet",
    "NewspaperContentProvider",
    "Personalization",
    "RetryBatch",
    "extract_json",
    "parse_style",
    "parse_target_date",
]
