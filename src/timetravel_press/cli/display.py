"""Display functions for CLI commands - pure functions for Rich output."""

from __future__ import annotations

from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..constants import NewspaperStyle
from ..payments import PRICING
from ..services import StageProgress
from .console import format_yen, status_tag
from .params import GenerateParams
from .types import GenerationResult


def show_generate_config(console: Console, params: GenerateParams, test_mode: bool) -> None:
    """Display generation configuration panel."""
    style = NewspaperStyle(params.style)
    dedication = "None"
    if params.personalization is not None:
        p = params.personalization
        dedication = f"{p.recipient_name} ({p.occasion}, from {p.sender_name})"
    mode = "[press.notice]TEST MODE[/press.notice]" if test_mode else "[press.ok]Live payments[/press.ok]"

    console.print(Panel(
        f"Generating newspaper for [cyan]{params.date_text}[/cyan]\n"
        f"Style: [green]{style.value}[/green] [press.muted]{style.label}[/press.muted]\n"
        f"Dedication: [press.notice]{dedication}[/press.notice]\n"
        f"Quality: [press.notice]{params.quality}[/press.notice]\n"
        f"Payments: {mode}",
        title="TimeTravel Press",
    ))


def show_generate_result(console: Console, result: GenerationResult) -> None:
    """Display successful generation result."""
    retries = ""
    if result.image_attempts > 1:
        retries = f"\n[bold]Image attempts:[/] {result.image_attempts}"

    console.print(Panel(
        f"[bold green]Newspaper printed successfully![/bold green]\n\n"
        f"[bold]Date:[/] {result.target_date.isoformat()}\n"
        f"[bold]Headline:[/] {result.headline}\n"
        f"[bold]Output:[/] {result.output_path}\n"
        f"[bold]Size:[/] {result.size_kb:.0f} KB"
        f"{retries}",
        title="Complete",
        border_style="green",
    ))


def show_generate_error(console: Console, error: str, details: Optional[dict] = None) -> None:
    """Display generation error."""
    console.print(f"\n[press.fail]Error: {error}[/press.fail]")
    if details:
        for key, value in details.items():
            console.print(f"  [press.muted]{key}:[/press.muted] {value}")


def show_pricing(console: Console, text_price: int, image_price: int) -> None:
    """Display the price table."""
    prices = {"text_only": text_price, "add_images": image_price}

    table = Table(title="Pricing")
    table.add_column("Stage", style="cyan", no_wrap=True)
    table.add_column("Product")
    table.add_column("Description", style="press.muted")
    table.add_column("Price", justify="right", style="press.price", no_wrap=True)

    for stage, product in PRICING.items():
        table.add_row(
            stage.value,
            product["name"],
            product["description"],
            format_yen(prices[stage.value]),
        )

    console.print(table)


def show_payment_status(console: Console, token: str, paid: bool) -> None:
    """Display the outcome of a payment check."""
    if paid:
        console.print(f"{status_tag(True)} {token}: payment succeeded")
    else:
        console.print(f"[press.fail]\\[UNPAID][/press.fail] {token}: payment not confirmed")


class PipelineProgressDisplay:
    """Prints AI call events and stage progress as they happen.

    Usage:
        display = PipelineProgressDisplay(console)
        text_provider = TextProvider(event_callback=display.handle_event)
        orchestrator = GenerationOrchestrator(..., progress_callback=display.handle_progress)
    """

    def __init__(self, console: Console, verbose: bool = True):
        self.console = console
        self.verbose = verbose
        self.total_calls = 0
        self.failed_calls = 0
        self.total_cost = 0.0
        self._last_stage: Optional[str] = None

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Handle an AI event from the text or image provider."""
        event_type = event.get("type", "")
        provider = event.get("provider", "unknown")

        if event_type in ("text_response", "image_response"):
            self.total_calls += 1
            self.total_cost += event.get("cost_usd", 0.0)
            if self.verbose:
                duration = event.get("duration_seconds", 0.0)
                kind = "text" if event_type == "text_response" else "image"
                self.console.print(
                    f"  {status_tag(True)} {kind} {provider}/{event.get('model', '')} - {duration:.1f}s"
                )
        elif event_type in ("text_error", "image_error"):
            self.failed_calls += 1
            self.console.print(f"  {status_tag(False)} {provider}: {event.get('error', 'unknown error')}")

    async def handle_progress(self, progress: StageProgress) -> None:
        """Handle a stage progress snapshot."""
        stage = progress.stage.value
        if stage != self._last_stage:
            self._last_stage = stage
            self.console.print(f"\n[press.stage]>>> {stage.replace('_', ' ').upper()}[/press.stage]")
        if progress.message:
            self.console.print(f"  [press.percent]{progress.percent:3d}%[/press.percent] {progress.message}")

    def show_summary(self) -> None:
        """Show summary of all AI calls."""
        if self.total_calls == 0 and self.failed_calls == 0:
            return
        cost = f" | est. ${self.total_cost:.4f}" if self.total_cost else ""
        self.console.print(
            f"\n[press.muted]AI calls: {self.total_calls} ok, {self.failed_calls} failed{cost}[/press.muted]"
        )
