"""Stage progress tracking.

Progress is an advisory hint for the UI. Within a stage it never goes down;
it resets to 0 when a stage starts and reaches 100 when the stage succeeds.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from pydantic import BaseModel, Field

from ..constants import PROGRESS_COMPLETE, PROGRESS_START, GenerationStage

_logger = logging.getLogger("pipeline")


class StageProgress(BaseModel):
    """Advisory progress snapshot for the UI."""

    session_id: str
    stage: GenerationStage
    percent: int = Field(default=PROGRESS_START, ge=0, le=100)
    message: str = ""


# Type for progress callback
ProgressCallback = Callable[[StageProgress], Awaitable[None]]


class StageProgressTracker:
    """Tracks and reports progress of the current stage.

    Usage:
        tracker = StageProgressTracker(callback=display_progress)
        await tracker.start(session_id, GenerationStage.IMAGE_STAGE, "Generating images")
        await tracker.advance(50, "2 of 4 images ready")
        await tracker.complete()
    """

    def __init__(self, callback: ProgressCallback | None = None):
        """Initialize the tracker.

        Args:
            callback: Optional async callback receiving every snapshot.
        """
        self.callback = callback
        self._progress: StageProgress | None = None

    @property
    def percent(self) -> int:
        """Current stage percent (0 before any stage started)."""
        if self._progress is None:
            return PROGRESS_START
        return self._progress.percent

    @property
    def progress(self) -> StageProgress | None:
        """Latest snapshot."""
        return self._progress

    async def _emit(self) -> None:
        if self.callback and self._progress is not None:
            await self.callback(self._progress)

    async def start(self, session_id: str, stage: GenerationStage, message: str = "") -> None:
        """Begin a stage at 0%."""
        self._progress = StageProgress(
            session_id=session_id,
            stage=stage,
            percent=PROGRESS_START,
            message=message,
        )
        _logger.debug(f"SESSION:{session_id} | PROGRESS_START | stage:{stage.value}")
        await self._emit()

    async def advance(self, percent: int, message: str | None = None) -> None:
        """Move forward to ``percent``; lower values are ignored."""
        if self._progress is None:
            return
        percent = max(PROGRESS_START, min(PROGRESS_COMPLETE, int(percent)))
        if percent < self._progress.percent:
            percent = self._progress.percent
        update: dict[str, object] = {"percent": percent}
        if message is not None:
            update["message"] = message
        self._progress = self._progress.model_copy(update=update)
        await self._emit()

    async def complete(self, message: str = "Done") -> None:
        """Mark the stage finished at 100%."""
        await self.advance(PROGRESS_COMPLETE, message)
