"""Typer app configuration and logging setup."""

from __future__ import annotations

import logging

import typer

from ..settings import get_settings

# Create Typer app
app = typer.Typer(
    name="timetravel-press",
    help="Print an AI-written vintage Japanese newspaper for any date",
    add_completion=False,
)


def register_commands() -> None:
    """Register all commands."""
    from .commands import generate, pricing, verify_payment

    app.command(name="generate")(generate)
    app.command(name="pricing")(pricing)
    app.command(name="verify-payment")(verify_payment)


def setup_logging() -> None:
    """Configure logging for CLI.

    - Suppresses console output from libraries
    - Sets up file logging for AI calls, the pipeline and payments
    """
    log_dir = get_settings().log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    # Remove any default console handlers from root logger
    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(logging.CRITICAL)

    # Suppress loggers that might print to console
    for logger_name in ["httpx", "httpcore", "google_genai", "asyncio"]:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.WARNING)
        logger.propagate = False

    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    for logger_name in ["ai_calls", "pipeline", "payments"]:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        logger.handlers = []
        file_handler = logging.FileHandler(log_dir / f"{logger_name}.log", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


# Register all commands
register_commands()


def main() -> None:
    """CLI entry point."""
    setup_logging()
    app()
