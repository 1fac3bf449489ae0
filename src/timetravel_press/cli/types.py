"""Result types returned by the CLI services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Generic, TypeVar, Union

from ..errors import PressError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """A service call that produced ``value``."""

    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False


@dataclass(frozen=True)
class Failure:
    """A service call that stopped with a user-facing message."""

    error: str
    details: dict[str, Any] | None = None

    @classmethod
    def from_error(cls, error: PressError, **details: Any) -> Failure:
        """Build a failure from a domain error, tagging its class name."""
        return cls(str(error), {"error_type": type(error).__name__, **details})

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True


Result = Union[Success[T], Failure]


@dataclass(frozen=True)
class GenerationResult:
    """A printed newspaper on disk."""

    output_path: Path
    target_date: date
    headline: str
    size_bytes: int
    image_attempts: int = 1
    duration_seconds: float | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def size_kb(self) -> float:
        return self.size_bytes / 1024
