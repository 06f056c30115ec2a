"""Exponential backoff for waiting on a condition to become true."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import structlog
from pydantic import BaseModel, Field

from sourceclone.core.exceptions import BackoffExhaustedError

logger = structlog.get_logger(__name__)


class Backoff(BaseModel):
    """Exponential backoff over a fixed number of condition checks.

    Attributes:
        duration: Delay in seconds after the first unsuccessful check.
        factor: Multiplier applied to the delay after every check.
        steps: Maximum number of times the condition is evaluated.
    """

    duration: float = Field(default=0.01, ge=0.0)
    factor: float = Field(default=2.0, ge=1.0)
    steps: int = Field(default=10, ge=1, le=100)

    def _compute_delay(self, attempt: int) -> float:
        """Delay after the given check (0-indexed): ``duration * factor^attempt``."""
        return self.duration * (self.factor ** attempt)

    async def wait_for(self, condition: Callable[[], Awaitable[bool]]) -> None:
        """Evaluate *condition* until it returns ``True``.

        An exception raised by *condition* stops the wait and propagates.
        Cancelling the awaiting task stops the wait at the next sleep.

        Raises:
            BackoffExhaustedError: If the condition is still false after
                ``steps`` evaluations.
        """
        for attempt in range(self.steps):
            if await condition():
                return
            if attempt == self.steps - 1:
                break
            delay = self._compute_delay(attempt)
            logger.debug("backoff.sleep", attempt=attempt + 1, delay=delay)
            await asyncio.sleep(delay)

        raise BackoffExhaustedError(
            "timed out waiting for the condition",
            code="BackoffExhausted",
            details={"steps": self.steps},
        )
