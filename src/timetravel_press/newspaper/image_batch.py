"""Image batch generation with partial-failure retry.

Every prompt must end up with exactly one image. Round 0 requests every
missing slot concurrently; each retry round re-requests only the slots that
are still missing. Slots keep their positional index no matter in which
order the calls complete, and filled slots are never requested again.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Protocol

from ..constants import IMAGE_RETRY_DELAY_SECONDS, MAX_IMAGE_RETRIES, NewspaperStyle

_logger = logging.getLogger("pipeline")

# (filled_slots, total_slots) -> None
SlotProgressCallback = Callable[[int, int], Awaitable[None]]


class SupportsImageGeneration(Protocol):
    """Anything that turns a prompt into an image data URI or None."""

    async def generate(self, prompt: str, era: NewspaperStyle | str) -> str | None: ...


class RetryBatch:
    """Original slot index -> current image value for one batch invocation."""

    def __init__(self, size: int, existing: list[str | None] | None = None):
        if existing is not None and len(existing) != size:
            raise ValueError(f"existing slots ({len(existing)}) do not match prompts ({size})")
        self._slots: dict[int, str | None] = {
            index: (existing[index] if existing is not None else None)
            for index in range(size)
        }

    def pending(self) -> list[int]:
        """Indices still absent, in original order."""
        return [index for index, value in self._slots.items() if value is None]

    def fill(self, index: int, value: str) -> None:
        self._slots[index] = value

    @property
    def filled_count(self) -> int:
        return sum(1 for value in self._slots.values() if value is not None)

    def to_list(self) -> list[str | None]:
        return [self._slots[index] for index in range(len(self._slots))]


@dataclass
class ImageBatchResult:
    """Outcome of one batch invocation."""

    images: list[str | None]
    rounds: int = 0
    calls_made: int = 0
    interrupted: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def missing_count(self) -> int:
        return sum(1 for image in self.images if image is None)

    @property
    def success(self) -> bool:
        return self.missing_count == 0


class ImageBatchGenerator:
    """Fans image prompts out to a provider with bounded per-slot retries.

    Usage:
        generator = ImageBatchGenerator(image_provider, max_retries=2)
        result = await generator.run(prompts, NewspaperStyle.SHOWA, existing=slots)
        if not result.success:
            ...  # result.images still holds every slot that succeeded
    """

    def __init__(
        self,
        provider: SupportsImageGeneration,
        max_retries: int = MAX_IMAGE_RETRIES,
        retry_delay_seconds: float = IMAGE_RETRY_DELAY_SECONDS,
    ):
        self.provider = provider
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds

    async def run(
        self,
        prompts: list[str],
        era: NewspaperStyle | str,
        existing: list[str | None] | None = None,
        should_continue: Callable[[], bool] | None = None,
        on_progress: SlotProgressCallback | None = None,
    ) -> ImageBatchResult:
        """Generate every missing slot.

        Args:
            prompts: One prompt per slot, in slot order.
            era: Newspaper style forwarded to the provider.
            existing: Slot values from a previous invocation; filled slots are kept.
            should_continue: Checked before each round; False stops the batch.
            on_progress: Called after each slot settles.

        Returns:
            ImageBatchResult with a slot vector the same length as ``prompts``.
        """
        batch = RetryBatch(len(prompts), existing)
        result = ImageBatchResult(images=batch.to_list())

        for round_number in range(self.max_retries + 1):
            pending = batch.pending()
            if not pending:
                break

            if should_continue is not None and not should_continue():
                _logger.info(f"IMAGE_BATCH_INTERRUPTED | round:{round_number} | pending:{len(pending)}")
                result.interrupted = True
                break

            if round_number > 0:
                _logger.info(
                    f"IMAGE_BATCH_RETRY | round:{round_number}/{self.max_retries} | "
                    f"pending:{pending}"
                )
                if self.retry_delay_seconds:
                    await asyncio.sleep(self.retry_delay_seconds)
            else:
                _logger.info(f"IMAGE_BATCH_START | slots:{len(prompts)} | pending:{len(pending)}")

            await self._run_round(batch, pending, prompts, era, result, on_progress)
            result.rounds += 1

        result.images = batch.to_list()

        if result.success:
            _logger.info(f"IMAGE_BATCH_COMPLETE | slots:{len(prompts)} | calls:{result.calls_made}")
        else:
            _logger.warning(
                f"IMAGE_BATCH_PARTIAL | missing:{result.missing_count}/{len(prompts)} | "
                f"rounds:{result.rounds}"
            )

        return result

    async def _run_round(
        self,
        batch: RetryBatch,
        pending: list[int],
        prompts: list[str],
        era: NewspaperStyle | str,
        result: ImageBatchResult,
        on_progress: SlotProgressCallback | None,
    ) -> None:
        """Issue one concurrent call per pending slot and wait for all of them."""

        async def _generate_slot(index: int) -> None:
            try:
                image = await self.provider.generate(prompts[index], era)
            except Exception as e:
                # Providers should report failure as None; isolate the slot regardless
                _logger.warning(f"IMAGE_SLOT_ERROR | slot:{index} | error:{e}")
                result.errors.append(f"slot {index}: {e}")
                image = None

            if isinstance(image, str) and image:
                batch.fill(index, image)

            if on_progress is not None:
                await on_progress(batch.filled_count, len(prompts))

        result.calls_made += len(pending)
        outcomes = await asyncio.gather(
            *(_generate_slot(index) for index in pending), return_exceptions=True
        )
        # Only on_progress can raise here; surface it once the whole round has settled
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
