"""Pure validation functions for CLI arguments."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from ..constants import NewspaperStyle
from ..errors import ValidationError
from ..newspaper.orchestrator import parse_style, parse_target_date
from ..rendering import PDF_CONFIG
from ..settings import PressSettings
from .params import GenerateParams
from .types import Failure, Result, Success


def validate_generate_params(params: GenerateParams, settings: PressSettings) -> Result[GenerateParams]:
    """Validate all generation parameters.

    Returns Result with params if valid, or Failure with error.
    """
    try:
        target_date = parse_target_date(params.date_text, settings.timezone)
    except ValidationError as e:
        return Failure(str(e), {"hint": "Use YYYY-MM-DD, e.g. 1964-10-10"})

    current_year = datetime.now(ZoneInfo(settings.timezone)).year
    if not settings.min_year <= target_date.year <= current_year:
        return Failure(
            f"Date out of range: {target_date.isoformat()}",
            {"hint": f"Year must be between {settings.min_year} and {current_year}"},
        )

    try:
        parse_style(params.style)
    except ValidationError as e:
        return Failure(str(e), {"valid_styles": [s.value for s in NewspaperStyle]})

    if params.quality not in PDF_CONFIG:
        return Failure(
            f"Invalid quality: {params.quality}",
            {"valid_qualities": list(PDF_CONFIG)},
        )

    if params.image_attempts < 1:
        return Failure(
            f"Invalid image attempts: {params.image_attempts}",
            {"hint": "At least one attempt is required"},
        )

    test_mode = params.test_mode or settings.test_mode
    if not test_mode:
        if not params.text_token or not params.image_token:
            return Failure(
                "Payment tokens required",
                {"hint": "Pass --text-token and --image-token, or use --test-mode"},
            )
        if not settings.stripe_secret_key:
            return Failure(
                "Stripe is not configured",
                {"hint": "Set TIMETRAVEL_STRIPE_SECRET_KEY in .env"},
            )

    return Success(params)
