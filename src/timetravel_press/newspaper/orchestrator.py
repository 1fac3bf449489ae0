"""Generation orchestrator.

Owns the single active ``GenerationSession`` and drives it through the
text, image and document stages. All session mutation goes through
``start_text_stage``, ``start_image_stage``, ``render_document`` and
``reset``.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from ..constants import PROGRESS_COMPLETE, GenerationStage, NewspaperStyle, PurchaseStage
from ..errors import (
    GenerationError,
    PartialFailureError,
    PaymentRequiredError,
    PressError,
    RenderError,
    SessionReplacedError,
    StateError,
    ValidationError,
)
from ..payments import PaymentGate, PaymentToken
from ..services import ProgressCallback, StageProgressTracker
from ..settings import PressSettings, get_settings
from .content import NewspaperContentProvider
from .image_batch import ImageBatchGenerator, SupportsImageGeneration
from .models import ArticleBundle, GenerationSession, ImageSet, Personalization

_logger = logging.getLogger("pipeline")


class DocumentRenderer(Protocol):
    """Turns finished content and images into document bytes."""

    def render(self, bundle: ArticleBundle, images: ImageSet, quality: str = "standard") -> bytes: ...


def parse_target_date(value: date | datetime | str, timezone: str = "Asia/Tokyo") -> date:
    """Normalize user input to a calendar date.

    Timezone-aware datetimes are converted into ``timezone`` first so that a
    UTC timestamp near midnight lands on the local day.

    Raises:
        ValidationError: If the value is not a date.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(timezone))
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return parse_target_date(datetime.fromisoformat(text), timezone)
        except ValueError:
            raise ValidationError(f"Invalid date: {value!r}") from None
    raise ValidationError(f"Invalid date: {value!r}")


def parse_style(value: NewspaperStyle | str) -> NewspaperStyle:
    """Resolve a style name.

    Raises:
        ValidationError: If the style is unknown.
    """
    try:
        return NewspaperStyle(value)
    except ValueError:
        choices = ", ".join(s.value for s in NewspaperStyle)
        raise ValidationError(f"Invalid style: {value!r} (choose from {choices})") from None


class GenerationOrchestrator:
    """Runs the three-stage newspaper pipeline for one session at a time.

    Usage:
        orchestrator = GenerationOrchestrator(
            content_provider=NewspaperContentProvider(TextProvider()),
            image_provider=ImageProvider(),
            payment_gate=TestModePaymentGate(),
            renderer=NewspaperPDFRenderer(),
        )
        await orchestrator.start_text_stage("1964-10-10", "showa")
        await orchestrator.start_image_stage()
        pdf = await orchestrator.render_document()
    """

    def __init__(
        self,
        content_provider: NewspaperContentProvider,
        image_provider: SupportsImageGeneration,
        payment_gate: PaymentGate,
        renderer: DocumentRenderer,
        settings: PressSettings | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            content_provider: Produces the article bundle.
            image_provider: Produces one image per prompt, or None.
            payment_gate: Verifies stage payments outside test mode.
            renderer: Builds the final document.
            settings: Runtime settings. Defaults to ``get_settings()``.
            progress_callback: Optional async callback for progress snapshots.
        """
        self.content_provider = content_provider
        self.payment_gate = payment_gate
        self.renderer = renderer
        self.settings = settings or get_settings()
        self.progress = StageProgressTracker(progress_callback)
        self.image_batch = ImageBatchGenerator(
            image_provider,
            max_retries=self.settings.max_image_retries,
            retry_delay_seconds=self.settings.image_retry_delay_seconds,
        )
        self._session = GenerationSession()

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def session(self) -> GenerationSession:
        """Snapshot of the active session. Changes to it are not applied."""
        return self._session.model_copy(deep=True)

    @property
    def current_stage(self) -> GenerationStage:
        return self._session.current_stage

    # =========================================================================
    # Stage operations
    # =========================================================================

    async def start_text_stage(
        self,
        target_date: date | datetime | str,
        style: NewspaperStyle | str = NewspaperStyle.SHOWA,
        personalization: Personalization | None = None,
        payment_token: PaymentToken | str | None = None,
    ) -> ArticleBundle:
        """Generate the newspaper text.

        Raises:
            ValidationError: Date outside the allowed range or unknown style.
            StateError: Session is not idle.
            PaymentRequiredError: Text payment not confirmed.
            GenerationError: Content provider failed (``ProviderError`` included).
            SessionReplacedError: ``reset()`` was called while generating.
        """
        session = self._session

        try:
            parsed_date = self._validate_date(target_date)
            parsed_style = parse_style(style)
            self._require_not_in_flight(session)
            if session.current_stage != GenerationStage.IDLE:
                raise StateError(
                    f"Text stage requires an idle session (current: {session.current_stage.value})"
                )
        except PressError as e:
            session.last_error = str(e)
            raise

        previous_inputs = (session.target_date, session.style, session.personalization)
        session.last_error = None
        session.current_stage = GenerationStage.TEXT_STAGE

        _logger.info(
            f"SESSION:{session.session_id} | TEXT_STAGE_START | "
            f"date:{parsed_date.isoformat()} | style:{parsed_style.value}"
        )

        try:
            await self._start_progress(session, GenerationStage.TEXT_STAGE, "Writing articles")

            if not self.settings.test_mode:
                await self._verify_payment(session, payment_token, PurchaseStage.TEXT_ONLY)
                self._ensure_current(session)

            try:
                bundle = await self.content_provider.generate(
                    parsed_date, parsed_style, personalization
                )
            except GenerationError:
                raise
            except Exception as e:
                raise GenerationError(f"Content generation failed: {e}") from e

            self._ensure_current(session)

            session.target_date = parsed_date
            session.style = parsed_style
            session.personalization = personalization
            session.article_bundle = bundle
            session.text_stage_paid = True
            session.current_stage = GenerationStage.TEXT_READY
            await self._complete_progress(session, "Articles ready")
        except SessionReplacedError:
            _logger.info(f"SESSION:{session.session_id} | TEXT_STAGE_DISCARDED")
            raise
        except PressError as e:
            self._rollback_text_stage(session, previous_inputs, e)
            raise
        except Exception as e:
            error = GenerationError(f"Text stage failed: {e}")
            self._rollback_text_stage(session, previous_inputs, error)
            raise error from e

        _logger.info(
            f"SESSION:{session.session_id} | TEXT_STAGE_COMPLETE | "
            f"headline:{bundle.main_article.headline[:40]}"
        )
        return bundle

    async def start_image_stage(self, payment_token: PaymentToken | str | None = None) -> ImageSet:
        """Generate one image per article slot.

        Slots already filled by an earlier attempt are kept and not
        requested again. Once every slot is filled, further calls return
        immediately without provider calls.

        Raises:
            StateError: Text stage has not succeeded, or a stage is running.
            PaymentRequiredError: Image payment not confirmed.
            PartialFailureError: Some slots are still missing after all retries.
            SessionReplacedError: ``reset()`` was called while generating.
        """
        session = self._session

        try:
            self._require_not_in_flight(session)
            if session.current_stage == GenerationStage.IDLE or session.article_bundle is None:
                raise StateError("Image stage requires generated articles")
        except PressError as e:
            session.last_error = str(e)
            raise

        if (
            session.current_stage in (GenerationStage.IMAGES_READY, GenerationStage.COMPLETE)
            and session.image_set is not None
            and session.image_set.is_complete
        ):
            _logger.info(f"SESSION:{session.session_id} | IMAGE_STAGE_SKIP | all slots filled")
            return session.image_set.model_copy(deep=True)

        bundle = session.article_bundle
        prompts = bundle.image_prompts(session.style)
        existing = session.image_set.slots() if session.image_set is not None else None

        session.last_error = None
        session.current_stage = GenerationStage.IMAGE_STAGE

        _logger.info(
            f"SESSION:{session.session_id} | IMAGE_STAGE_START | "
            f"slots:{len(prompts)} | existing:{0 if existing is None else sum(1 for s in existing if s)}"
        )

        async def on_progress(filled: int, total: int) -> None:
            await self._advance_progress(
                session, filled * PROGRESS_COMPLETE // total, f"{filled} of {total} images ready"
            )

        try:
            await self._start_progress(session, GenerationStage.IMAGE_STAGE, "Generating images")

            if len(prompts) != self.settings.image_slot_count:
                raise StateError(
                    f"Bundle provides {len(prompts)} image slots, "
                    f"expected {self.settings.image_slot_count}"
                )

            if not self.settings.test_mode and not session.image_payment_confirmed:
                await self._verify_payment(session, payment_token, PurchaseStage.ADD_IMAGES)
                self._ensure_current(session)
                session.image_payment_confirmed = True

            result = await self.image_batch.run(
                prompts,
                session.style,
                existing=existing,
                should_continue=lambda: self._session is session,
                on_progress=on_progress,
            )

            self._ensure_current(session)

            # Keep whatever succeeded so a retry only requests missing slots
            session.image_set = ImageSet.from_slots(result.images)

            if not result.success:
                raise PartialFailureError(result.missing_count, len(prompts))

            session.image_stage_paid = True
            session.current_stage = GenerationStage.IMAGES_READY
            await self._complete_progress(session, "Images ready")
        except SessionReplacedError:
            _logger.info(f"SESSION:{session.session_id} | IMAGE_STAGE_DISCARDED")
            raise
        except PressError as e:
            self._rollback_image_stage(session, e)
            raise
        except Exception as e:
            error = GenerationError(f"Image stage failed: {e}")
            self._rollback_image_stage(session, error)
            raise error from e

        _logger.info(
            f"SESSION:{session.session_id} | IMAGE_STAGE_COMPLETE | "
            f"rounds:{result.rounds} | calls:{result.calls_made}"
        )
        return session.image_set.model_copy(deep=True)

    async def render_document(self, quality: str = "standard") -> bytes:
        """Assemble the PDF from the bundle and the image set.

        Raises:
            PaymentRequiredError: Image stage has not been paid and completed.
            StateError: A stage is running.
            RenderError: The renderer failed.
            SessionReplacedError: ``reset()`` was called while rendering.
        """
        session = self._session

        try:
            self._require_not_in_flight(session)
            if not session.image_stage_paid:
                raise PaymentRequiredError("Document rendering requires a completed image purchase")
            if session.current_stage not in (GenerationStage.IMAGES_READY, GenerationStage.COMPLETE):
                raise StateError(
                    f"Document stage requires images (current: {session.current_stage.value})"
                )
        except PressError as e:
            session.last_error = str(e)
            raise

        bundle = session.article_bundle
        images = session.image_set
        previous_artifact = session.document_artifact

        session.last_error = None
        session.current_stage = GenerationStage.DOCUMENT_STAGE

        _logger.info(f"SESSION:{session.session_id} | DOCUMENT_STAGE_START | quality:{quality}")

        try:
            await self._start_progress(session, GenerationStage.DOCUMENT_STAGE, "Typesetting")

            try:
                artifact = await asyncio.to_thread(self.renderer.render, bundle, images, quality)
            except RenderError:
                raise
            except Exception as e:
                raise RenderError(f"Document rendering failed: {e}") from e

            self._ensure_current(session)

            session.document_artifact = artifact
            session.current_stage = GenerationStage.COMPLETE
            await self._complete_progress(session, "Newspaper ready")
        except SessionReplacedError:
            _logger.info(f"SESSION:{session.session_id} | DOCUMENT_STAGE_DISCARDED")
            raise
        except PressError as e:
            self._rollback_document_stage(session, previous_artifact, e)
            raise
        except Exception as e:
            error = RenderError(f"Document stage failed: {e}")
            self._rollback_document_stage(session, previous_artifact, error)
            raise error from e

        _logger.info(
            f"SESSION:{session.session_id} | DOCUMENT_STAGE_COMPLETE | bytes:{len(artifact)}"
        )
        return artifact

    def reset(self) -> GenerationSession:
        """Discard the session and start over.

        Calls still in flight for the old session finish, but their results
        are dropped.
        """
        old_id = self._session.session_id
        self._session = GenerationSession()
        _logger.info(f"SESSION:{old_id} | RESET | new:{self._session.session_id}")
        return self.session

    async def request_payment(
        self,
        stage: PurchaseStage | str,
        metadata: dict[str, str] | None = None,
    ) -> PaymentToken:
        """Create a payment for a priced stage at its configured price."""
        stage = PurchaseStage(stage)
        amount = self._price_for(stage)
        meta: dict[str, Any] = {"session_id": self._session.session_id}
        if self._session.target_date is not None:
            meta["target_date"] = self._session.target_date.isoformat()
        meta.update(metadata or {})
        return await self.payment_gate.confirm(stage, amount, meta)

    # =========================================================================
    # Internals
    # =========================================================================

    def _price_for(self, stage: PurchaseStage) -> int:
        if stage == PurchaseStage.TEXT_ONLY:
            return self.settings.text_price
        return self.settings.image_price

    def _validate_date(self, value: date | datetime | str) -> date:
        parsed = parse_target_date(value, self.settings.timezone)
        current_year = datetime.now(ZoneInfo(self.settings.timezone)).year
        if not self.settings.min_year <= parsed.year <= current_year:
            raise ValidationError(
                f"Date must be between {self.settings.min_year} and {current_year}"
            )
        return parsed

    def _require_not_in_flight(self, session: GenerationSession) -> None:
        if session.current_stage.is_in_flight:
            raise StateError(f"Stage already running: {session.current_stage.value}")

    def _ensure_current(self, session: GenerationSession) -> None:
        if self._session is not session:
            raise SessionReplacedError("Session was reset while this stage was running")

    async def _verify_payment(
        self,
        session: GenerationSession,
        token: PaymentToken | str | None,
        stage: PurchaseStage,
    ) -> None:
        if token is None:
            raise PaymentRequiredError(f"Payment required for {stage.value}")
        if isinstance(token, PaymentToken) and token.stage != stage:
            raise PaymentRequiredError(
                f"Payment {token.payment_intent_id} was made for {token.stage.value}, not {stage.value}"
            )
        if not await self.payment_gate.verify(token, stage, self._price_for(stage)):
            raise PaymentRequiredError(f"Payment for {stage.value} is not confirmed")
        _logger.info(f"SESSION:{session.session_id} | PAYMENT_CONFIRMED | stage:{stage.value}")

    def _rollback_text_stage(
        self,
        session: GenerationSession,
        previous_inputs: tuple[date | None, NewspaperStyle, Personalization | None],
        error: PressError,
    ) -> None:
        session.target_date, session.style, session.personalization = previous_inputs
        session.article_bundle = None
        session.text_stage_paid = False
        session.current_stage = GenerationStage.IDLE
        session.last_error = str(error)
        _logger.warning(f"SESSION:{session.session_id} | TEXT_STAGE_FAILED | error:{error}")

    def _rollback_image_stage(self, session: GenerationSession, error: PressError) -> None:
        # Filled slots in image_set are kept for the next attempt
        session.image_stage_paid = False
        session.current_stage = GenerationStage.TEXT_READY
        session.last_error = str(error)
        _logger.warning(f"SESSION:{session.session_id} | IMAGE_STAGE_FAILED | error:{error}")

    def _rollback_document_stage(
        self, session: GenerationSession, previous_artifact: bytes | None, error: PressError
    ) -> None:
        session.document_artifact = previous_artifact
        session.current_stage = GenerationStage.IMAGES_READY
        session.last_error = str(error)
        _logger.warning(f"SESSION:{session.session_id} | DOCUMENT_STAGE_FAILED | error:{error}")

    async def _start_progress(
        self, session: GenerationSession, stage: GenerationStage, message: str
    ) -> None:
        session.progress_percent = 0
        await self.progress.start(session.session_id, stage, message)

    async def _advance_progress(self, session: GenerationSession, percent: int, message: str) -> None:
        if self._session is not session:
            return
        await self.progress.advance(percent, message)
        session.progress_percent = self.progress.percent

    async def _complete_progress(self, session: GenerationSession, message: str) -> None:
        await self.progress.complete(message)
        session.progress_percent = PROGRESS_COMPLETE
