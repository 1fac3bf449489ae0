"""Tests for image batch generation with partial-failure retry."""

from __future__ import annotations

import asyncio
import random
from unittest.mock import AsyncMock

import pytest

from timetravel_press.constants import NewspaperStyle
from timetravel_press.newspaper.image_batch import (
    ImageBatchGenerator,
    ImageBatchResult,
    RetryBatch,
)

PROMPTS = ["main", "sub-1", "sub-2", "sub-3"]


class ScriptedImageProvider:
    """Image provider whose answers per prompt are scripted call by call.

    ``script[prompt]`` is a list consumed one entry per call: a string is
    returned as the image, None means failure, an exception is raised.
    Prompts without a script always succeed.
    """

    def __init__(self, script: dict[str, list] | None = None, jitter: bool = False):
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.jitter = jitter
        self.calls: list[str] = []

    async def generate(self, prompt: str, era) -> str | None:
        self.calls.append(prompt)
        if self.jitter:
            await asyncio.sleep(random.uniform(0, 0.01))
        outcomes = self.script.get(prompt)
        outcome = outcomes.pop(0) if outcomes else f"img:{prompt}"
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _generator(provider, max_retries: int = 2) -> ImageBatchGenerator:
    return ImageBatchGenerator(provider, max_retries=max_retries, retry_delay_seconds=0)


class TestRetryBatch:
    """Tests for the index -> value tracking map."""

    def test_starts_all_pending(self):
        batch = RetryBatch(4)
        assert batch.pending() == [0, 1, 2, 3]
        assert batch.filled_count == 0

    def test_existing_slots_are_kept(self):
        batch = RetryBatch(4, ["a", None, "c", None])
        assert batch.pending() == [1, 3]
        assert batch.to_list() == ["a", None, "c", None]

    def test_fill_only_touches_its_index(self):
        batch = RetryBatch(3)
        batch.fill(1, "b")
        assert batch.to_list() == [None, "b", None]
        assert batch.filled_count == 1

    def test_existing_length_mismatch_raises(self):
        with pytest.raises(ValueError):
            RetryBatch(4, ["a", "b"])


class TestImageBatchGenerator:
    """Tests for ImageBatchGenerator.run()."""

    @pytest.mark.asyncio
    async def test_all_succeed_first_round(self):
        """Every slot fills in round 0 with one call per prompt."""
        provider = ScriptedImageProvider()
        result = await _generator(provider).run(PROMPTS, NewspaperStyle.SHOWA)

        assert result.success
        assert result.images == ["img:main", "img:sub-1", "img:sub-2", "img:sub-3"]
        assert result.rounds == 1
        assert result.calls_made == 4

    @pytest.mark.asyncio
    async def test_failed_slots_filled_on_retry(self):
        """Slots 1 and 3 fail in round 0 and succeed in round 1."""
        provider = ScriptedImageProvider({"sub-1": [None], "sub-3": [None]})
        result = await _generator(provider).run(PROMPTS, NewspaperStyle.SHOWA)

        assert result.success
        assert result.missing_count == 0
        assert result.images == ["img:main", "img:sub-1", "img:sub-2", "img:sub-3"]
        assert result.rounds == 2
        assert result.calls_made == 6

    @pytest.mark.asyncio
    async def test_retry_only_requests_missing_slots(self):
        """Successful slots are never requested again."""
        provider = ScriptedImageProvider({"sub-1": [None], "sub-3": [None]})
        await _generator(provider).run(PROMPTS, NewspaperStyle.SHOWA)

        assert provider.calls.count("main") == 1
        assert provider.calls.count("sub-2") == 1
        assert provider.calls.count("sub-1") == 2
        assert provider.calls.count("sub-3") == 2

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_successful_slots(self):
        """Round 0 gives [ok, absent, ok, absent]; index 1 recovers, index 3 never does."""
        provider = ScriptedImageProvider({
            "sub-1": [None, "img:sub-1-retry"],
            "sub-3": [None, None, None],
        })
        result = await _generator(provider).run(PROMPTS, NewspaperStyle.SHOWA)

        assert not result.success
        assert result.missing_count == 1
        assert result.images == ["img:main", "img:sub-1-retry", "img:sub-2", None]
        assert result.rounds == 3
        assert provider.calls.count("sub-3") == 3

    @pytest.mark.asyncio
    async def test_exception_is_isolated_to_its_slot(self):
        """A raising call does not abort its siblings and counts as absent."""
        provider = ScriptedImageProvider({"sub-2": [RuntimeError("boom")] * 3})
        result = await _generator(provider).run(PROMPTS, NewspaperStyle.SHOWA)

        assert result.images == ["img:main", "img:sub-1", None, "img:sub-3"]
        assert result.missing_count == 1
        assert any("boom" in error for error in result.errors)

    @pytest.mark.asyncio
    async def test_empty_string_is_not_an_image(self):
        """An empty string is treated as a failed slot, not a value."""
        provider = ScriptedImageProvider({"main": ["", "img:main"]})
        result = await _generator(provider).run(PROMPTS, NewspaperStyle.SHOWA)

        assert result.success
        assert result.images[0] == "img:main"

    @pytest.mark.asyncio
    async def test_slot_order_survives_completion_order(self):
        """Results stay positional when calls finish in random order."""
        random.seed(7)
        prompts = [f"p{i}" for i in range(4)]
        for _ in range(5):
            provider = ScriptedImageProvider(jitter=True)
            result = await _generator(provider).run(prompts, NewspaperStyle.HEISEI)
            assert len(result.images) == 4
            assert result.images == [f"img:p{i}" for i in range(4)]

    @pytest.mark.asyncio
    async def test_complete_existing_makes_no_calls(self):
        """Re-running a filled batch is an immediate success with zero calls."""
        provider = AsyncMock()
        existing = ["a", "b", "c", "d"]
        result = await _generator(provider).run(PROMPTS, NewspaperStyle.SHOWA, existing=existing)

        assert result.success
        assert result.images == existing
        assert result.calls_made == 0
        assert result.rounds == 0
        provider.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_existing_partial_only_requests_missing(self):
        """A second invocation continues from the previous slot vector."""
        provider = ScriptedImageProvider()
        existing = ["a", None, "c", None]
        result = await _generator(provider).run(PROMPTS, NewspaperStyle.SHOWA, existing=existing)

        assert result.images == ["a", "img:sub-1", "c", "img:sub-3"]
        assert sorted(provider.calls) == ["sub-1", "sub-3"]

    @pytest.mark.asyncio
    async def test_zero_retries_is_a_single_round(self):
        provider = ScriptedImageProvider({"main": [None]})
        result = await _generator(provider, max_retries=0).run(PROMPTS, NewspaperStyle.SHOWA)

        assert result.rounds == 1
        assert result.images[0] is None
        assert result.missing_count == 1

    @pytest.mark.asyncio
    async def test_should_continue_false_stops_before_next_round(self):
        """A stop signal between rounds leaves the batch interrupted."""
        provider = ScriptedImageProvider({"main": [None, None, None]})
        checks = iter([True, False])
        result = await _generator(provider).run(
            PROMPTS,
            NewspaperStyle.SHOWA,
            should_continue=lambda: next(checks),
        )

        assert result.interrupted
        assert result.rounds == 1
        assert provider.calls.count("main") == 1

    @pytest.mark.asyncio
    async def test_progress_reports_filled_count(self):
        """on_progress receives (filled, total) after each slot settles."""
        provider = ScriptedImageProvider({"sub-1": [None]})
        updates: list[tuple[int, int]] = []

        async def on_progress(filled: int, total: int) -> None:
            updates.append((filled, total))

        await _generator(provider).run(PROMPTS, NewspaperStyle.SHOWA, on_progress=on_progress)

        assert len(updates) == 5
        assert all(total == 4 for _, total in updates)
        assert updates[-1] == (4, 4)
        filled = [f for f, _ in updates]
        assert filled == sorted(filled)

    @pytest.mark.asyncio
    async def test_progress_error_raised_after_round_settles(self):
        """A raising on_progress does not cancel the other slots of the round."""
        provider = ScriptedImageProvider(jitter=True)
        settled: list[int] = []

        async def on_progress(filled: int, total: int) -> None:
            settled.append(filled)
            if filled == 1:
                raise RuntimeError("display crashed")

        with pytest.raises(RuntimeError, match="display crashed"):
            await _generator(provider).run(PROMPTS, NewspaperStyle.SHOWA, on_progress=on_progress)

        assert sorted(provider.calls) == sorted(PROMPTS)
        assert len(settled) == 4


class TestImageBatchResult:
    """Tests for the batch result value."""

    def test_missing_count_and_success(self):
        assert ImageBatchResult(images=["a", None, None]).missing_count == 2
        assert not ImageBatchResult(images=["a", None]).success
        assert ImageBatchResult(images=["a", "b"]).success
