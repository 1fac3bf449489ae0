"""Exception taxonomy for the generation pipeline.

Every stage operation stores the message of the error it raises on
``GenerationSession.last_error`` before re-raising.
"""

from __future__ import annotations


class PressError(Exception):
    """Base exception for TimeTravel Press."""

    pass


class ValidationError(PressError):
    """Bad user input (date, style). Never retried."""

    pass


class GenerationError(PressError):
    """Text generation failed. Surfaced to the user, not retried."""

    pass


class ProviderError(GenerationError):
    """Upstream content provider returned an unusable response."""

    pass


class PartialFailureError(PressError):
    """Image batch could not fill every slot within the retry budget."""

    def __init__(self, missing_count: int, total: int):
        self.missing_count = missing_count
        self.total = total
        super().__init__(
            f"{missing_count} of {total} images failed to generate. Please try again."
        )


class StateError(PressError):
    """Stage invoked out of order."""

    pass


class PaymentRequiredError(StateError):
    """Stage invoked before its payment was confirmed."""

    pass


class SessionReplacedError(StateError):
    """The session was reset while this stage was in flight."""

    pass


class RenderError(PressError):
    """Document assembly failed."""

    pass


class PaymentError(PressError):
    """Payment gate could not create or reach a payment."""

    pass
