"""Limit constants for TimeTravel Press.

These are the defaults behind ``PressSettings``. The orchestrator reads the
effective values from settings so deployments can tune them.

MODIFICATION GUIDE:
------------------
- SUB_ARTICLE_COUNT and IMAGE_SLOT_COUNT move together (1 main + N sub).
- MAX_IMAGE_RETRIES counts extra rounds after the initial attempt.
"""

from typing import Final

# =============================================================================
# NEWSPAPER LAYOUT
# =============================================================================

SUB_ARTICLE_COUNT: Final[int] = 3
"""Number of sub-articles in every bundle."""

IMAGE_SLOT_COUNT: Final[int] = 1 + SUB_ARTICLE_COUNT
"""Image slots per batch: the main article plus one per sub-article."""

ARTICLE_IMAGE_PROMPT_CONTENT_CHARS: Final[int] = 100
"""Characters of article body folded into a derived image prompt."""


# =============================================================================
# RETRY SETTINGS
# =============================================================================

MAX_IMAGE_RETRIES: Final[int] = 2
"""Retry rounds for missing image slots after the initial round."""

IMAGE_RETRY_DELAY_SECONDS: Final[float] = 1.0
"""Pause between image retry rounds."""


# =============================================================================
# INPUT VALIDATION
# =============================================================================

DEFAULT_MIN_YEAR: Final[int] = 1900
"""Earliest year a newspaper can be generated for."""


# =============================================================================
# PROGRESS
# =============================================================================

PROGRESS_START: Final[int] = 0
PROGRESS_COMPLETE: Final[int] = 100
