"""CLI commands - thin wrappers orchestrating params, validation, display, and service."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer

from ..settings import get_settings
from .console import console
from .display import (
    PipelineProgressDisplay,
    show_generate_config,
    show_generate_error,
    show_generate_result,
    show_payment_status,
    show_pricing,
)
from .params import GenerateParams
from .service import NewspaperService, PaymentService
from .types import Failure
from .validators import validate_generate_params


def generate(
    date_text: str = typer.Argument(..., metavar="DATE", help="Date to print, e.g. 1964-10-10"),
    style: str = typer.Option("showa", "--style", "-s", help="Era style: showa, heisei, reiwa"),
    recipient: Optional[str] = typer.Option(None, "--recipient", "-r", help="Dedication recipient name"),
    sender: Optional[str] = typer.Option(None, "--sender", help="Dedication sender name"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Personal message"),
    occasion: Optional[str] = typer.Option(None, "--occasion", help="Occasion label, e.g. 誕生日"),
    quality: str = typer.Option("standard", "--quality", "-q", help="PDF quality: standard, premium, deluxe"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="PDF output path"),
    text_token: Optional[str] = typer.Option(None, "--text-token", help="Paid payment intent for the text stage"),
    image_token: Optional[str] = typer.Option(None, "--image-token", help="Paid payment intent for the image stage"),
    test_mode: bool = typer.Option(False, "--test-mode", help="Skip payment verification"),
    image_attempts: int = typer.Option(3, "--image-attempts", help="Image stage attempts before giving up"),
) -> None:
    """Generate a vintage newspaper PDF for a date."""
    settings = get_settings()

    # Build immutable params from CLI args
    params = GenerateParams.from_cli(
        date_text=date_text,
        style=style,
        recipient=recipient,
        sender=sender,
        message=message,
        occasion=occasion,
        quality=quality,
        output=output,
        text_token=text_token,
        image_token=image_token,
        test_mode=test_mode,
        image_attempts=image_attempts,
    )

    # Validate params
    validation = validate_generate_params(params, settings)
    if isinstance(validation, Failure):
        show_generate_error(console, validation.error, validation.details)
        raise typer.Exit(1)

    show_generate_config(console, params, test_mode=params.test_mode or settings.test_mode)

    display = PipelineProgressDisplay(console)
    service = NewspaperService(settings)
    result = asyncio.run(service.generate(
        params,
        event_callback=display.handle_event,
        progress_callback=display.handle_progress,
    ))
    display.show_summary()

    if isinstance(result, Failure):
        show_generate_error(console, result.error, result.details)
        raise typer.Exit(1)

    show_generate_result(console, result.value)


def pricing() -> None:
    """Show stage prices."""
    settings = get_settings()
    show_pricing(console, settings.text_price, settings.image_price)


def verify_payment(
    token: str = typer.Argument(..., help="Payment intent id, e.g. pi_..."),
) -> None:
    """Check whether a payment has succeeded."""
    service = PaymentService(get_settings())
    result = asyncio.run(service.verify(token))

    if isinstance(result, Failure):
        show_generate_error(console, result.error, result.details)
        raise typer.Exit(1)

    show_payment_status(console, token, result.value)
    if not result.value:
        raise typer.Exit(1)
