"""Immutable parameter dataclasses for CLI commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..newspaper.models import Personalization


@dataclass(frozen=True)
class GenerateParams:
    """Immutable parameters for newspaper generation."""

    date_text: str
    style: str
    personalization: Optional[Personalization]
    quality: str
    output_path: Optional[Path]
    text_token: Optional[str]
    image_token: Optional[str]
    test_mode: bool
    image_attempts: int

    @classmethod
    def from_cli(
        cls,
        date_text: str,
        style: str = "showa",
        recipient: Optional[str] = None,
        sender: Optional[str] = None,
        message: Optional[str] = None,
        occasion: Optional[str] = None,
        quality: str = "standard",
        output: Optional[Path] = None,
        text_token: Optional[str] = None,
        image_token: Optional[str] = None,
        test_mode: bool = False,
        image_attempts: int = 3,
        **kwargs,
    ) -> "GenerateParams":
        """Create from CLI arguments with parsing and defaults."""
        return cls(
            date_text=date_text.strip(),
            style=style.strip().lower(),
            personalization=Personalization.from_fields(
                recipient_name=recipient,
                sender_name=sender,
                message=message,
                occasion=occasion,
            ),
            quality=quality.strip().lower(),
            output_path=output,
            text_token=text_token,
            image_token=image_token,
            test_mode=test_mode,
            image_attempts=image_attempts,
        )
