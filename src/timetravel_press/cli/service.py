"""Services behind the CLI commands."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from ..errors import PartialFailureError, PressError
from ..newspaper import GenerationOrchestrator, NewspaperContentProvider
from ..payments import PaymentGate, create_payment_gate
from ..providers import ImageProvider, TextProvider, load_provider_config
from ..rendering import NewspaperPDFRenderer
from ..services import ProgressCallback
from ..settings import PressSettings
from .params import GenerateParams
from .types import Failure, GenerationResult, Result, Success

_logger = logging.getLogger("pipeline")

EventCallback = Optional[Callable[[dict[str, Any]], Awaitable[None]]]


def build_orchestrator(
    settings: PressSettings,
    payment_gate: PaymentGate,
    event_callback: EventCallback = None,
    progress_callback: ProgressCallback | None = None,
) -> GenerationOrchestrator:
    """Wire the providers, gate and renderer into an orchestrator."""
    provider_config = load_provider_config(settings.providers_config_path)
    text_provider = TextProvider(config=provider_config, event_callback=event_callback)
    image_provider = ImageProvider(config=provider_config, event_callback=event_callback)

    return GenerationOrchestrator(
        content_provider=NewspaperContentProvider(text_provider),
        image_provider=image_provider,
        payment_gate=payment_gate,
        renderer=NewspaperPDFRenderer(),
        settings=settings,
        progress_callback=progress_callback,
    )


class NewspaperService:
    """Runs a full newspaper generation for the CLI."""

    def __init__(self, settings: PressSettings):
        self.settings = settings

    async def generate(
        self,
        params: GenerateParams,
        event_callback: EventCallback = None,
        progress_callback: ProgressCallback | None = None,
    ) -> Result[GenerationResult]:
        """Run the text, image and document stages in order.

        A partial image failure re-runs the image stage, which only requests
        the missing slots, up to ``params.image_attempts`` times.

        Returns:
            Result containing GenerationResult or Failure
        """
        settings = self.settings
        if params.test_mode and not settings.test_mode:
            settings = settings.model_copy(update={"test_mode": True})

        start_time = time.time()
        gate: PaymentGate | None = None
        orchestrator: GenerationOrchestrator | None = None
        attempts = 0

        try:
            gate = create_payment_gate(
                test_mode=settings.test_mode,
                secret_key=settings.stripe_secret_key,
                api_base=settings.stripe_api_base,
                currency=settings.currency,
            )
            orchestrator = build_orchestrator(settings, gate, event_callback, progress_callback)

            bundle = await orchestrator.start_text_stage(
                params.date_text,
                params.style,
                params.personalization,
                payment_token=params.text_token,
            )

            while True:
                attempts += 1
                try:
                    await orchestrator.start_image_stage(payment_token=params.image_token)
                    break
                except PartialFailureError as e:
                    _logger.warning(f"IMAGE_ATTEMPT_FAILED | attempt:{attempts}/{params.image_attempts} | error:{e}")
                    if attempts >= params.image_attempts:
                        return Failure.from_error(e, missing_images=e.missing_count, attempts=attempts)

            pdf_bytes = await orchestrator.render_document(params.quality)

        except PressError as e:
            if orchestrator is None:
                return Failure.from_error(e)
            return Failure.from_error(e, stage=orchestrator.current_stage.value)
        finally:
            if gate is not None:
                await gate.close()

        session = orchestrator.session
        output_path = params.output_path or (settings.output_dir / session.document_filename)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(pdf_bytes)

        return Success(GenerationResult(
            output_path=output_path,
            target_date=bundle.target_date,
            headline=bundle.main_article.headline,
            size_bytes=len(pdf_bytes),
            image_attempts=attempts,
            duration_seconds=time.time() - start_time,
            metadata={"session_id": session.session_id, "style": session.style.value},
        ))


class PaymentService:
    """Payment lookups for the CLI."""

    def __init__(self, settings: PressSettings):
        self.settings = settings

    async def verify(self, token: str) -> Result[bool]:
        """Check whether a payment intent has succeeded."""
        gate: PaymentGate | None = None
        try:
            gate = create_payment_gate(
                test_mode=self.settings.test_mode,
                secret_key=self.settings.stripe_secret_key,
                api_base=self.settings.stripe_api_base,
                currency=self.settings.currency,
            )
            return Success(await gate.verify(token))
        except PressError as e:
            return Failure.from_error(e)
        finally:
            if gate is not None:
                await gate.close()
