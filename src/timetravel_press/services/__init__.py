"""Services module for cross-cutting concerns.

- StageProgressTracker: tracks and reports stage progress to the UI
"""

from .progress import ProgressCallback, StageProgress, StageProgressTracker

__all__ = [
    "ProgressCallback",
    "StageProgress",
    "StageProgressTracker",
]
