"""Global constants package for TimeTravel Press.

PACKAGE STRUCTURE:
-----------------
- limits.py   : slot counts, retry budgets, date range defaults
- status.py   : pipeline stages, newspaper styles, purchase stages

USAGE EXAMPLES:
--------------
    from timetravel_press.constants import GenerationStage, MAX_IMAGE_RETRIES
"""

from .limits import (
    ARTICLE_IMAGE_PROMPT_CONTENT_CHARS,
    DEFAULT_MIN_YEAR,
    IMAGE_RETRY_DELAY_SECONDS,
    IMAGE_SLOT_COUNT,
    MAX_IMAGE_RETRIES,
    PROGRESS_COMPLETE,
    PROGRESS_START,
    SUB_ARTICLE_COUNT,
)
from .status import GenerationStage, NewspaperStyle, PurchaseStage

__all__ = [
    # Limits
    "ARTICLE_IMAGE_PROMPT_CONTENT_CHARS",
    "DEFAULT_MIN_YEAR",
    "IMAGE_RETRY_DELAY_SECONDS",
    "IMAGE_SLOT_COUNT",
    "MAX_IMAGE_RETRIES",
    "PROGRESS_COMPLETE",
    "PROGRESS_START",
    "SUB_ARTICLE_COUNT",
    # Status enums
    "GenerationStage",
    "NewspaperStyle",
    "PurchaseStage",
]
