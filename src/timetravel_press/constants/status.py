"""Status enums for the generation pipeline.

Stage workflow:
    IDLE -> TEXT_STAGE -> TEXT_READY -> IMAGE_STAGE -> IMAGES_READY
         -> DOCUMENT_STAGE -> COMPLETE

A failed stage rolls back to the state it started from:
    TEXT_STAGE -> IDLE, IMAGE_STAGE -> TEXT_READY,
    DOCUMENT_STAGE -> IMAGES_READY
"""

from enum import Enum


class GenerationStage(str, Enum):
    """Where a session is in the generation pipeline."""

    IDLE = "idle"
    TEXT_STAGE = "text_stage"
    TEXT_READY = "text_ready"
    IMAGE_STAGE = "image_stage"
    IMAGES_READY = "images_ready"
    DOCUMENT_STAGE = "document_stage"
    COMPLETE = "complete"

    @property
    def is_in_flight(self) -> bool:
        """True while a stage call is running."""
        return self in (
            GenerationStage.TEXT_STAGE,
            GenerationStage.IMAGE_STAGE,
            GenerationStage.DOCUMENT_STAGE,
        )


class NewspaperStyle(str, Enum):
    """Presentation era of the generated newspaper."""

    SHOWA = "showa"
    HEISEI = "heisei"
    REIWA = "reiwa"

    @property
    def label(self) -> str:
        """Human-readable era description used in prompts."""
        return {
            NewspaperStyle.SHOWA: "昭和時代の重厚な新聞",
            NewspaperStyle.HEISEI: "平成初期の活字新聞",
            NewspaperStyle.REIWA: "令和のレトロ調新聞",
        }[self]


class PurchaseStage(str, Enum):
    """Priced steps a user pays for."""

    TEXT_ONLY = "text_only"
    ADD_IMAGES = "add_images"
