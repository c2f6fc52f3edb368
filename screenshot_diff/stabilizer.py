"""Stabilizer: re-captures a screenshot until rendering settles."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from screenshot_diff.capture.source import CaptureSource
from screenshot_diff.imaging.buffer import ImageBuffer
from screenshot_diff.imaging.diff_engine import DiffEngine
from screenshot_diff.models.config import StabilizationConfig, Thresholds
from screenshot_diff.models.verdict import StabilizationOutcome, StabilizationReport, VerdictStatus

logger = logging.getLogger(__name__)


class StabilizationResult:
    def __init__(
        self,
        buffer: ImageBuffer,
        outcome: StabilizationOutcome,
        captures: list[ImageBuffer],
        matched_reference: bool = False,
    ):
        self.buffer = buffer
        self.outcome = outcome
        self.captures = captures
        self.matched_reference = matched_reference

    @property
    def attempts(self) -> int:
        return len(self.captures)

    @property
    def intermediate(self) -> list[ImageBuffer]:
        """Every capture except the returned one."""
        return self.captures[:-1]

    def report(self) -> StabilizationReport:
        return StabilizationReport(
            outcome=self.outcome,
            attempts=self.attempts,
            matched_reference=self.matched_reference,
        )


class Stabilizer:
    """Bounded capture loop: ``capturing -> stable | exhausted | cancelled``.

    Two consecutive captures judged identical (with the stabilization
    thresholds) end the loop as stable. Running out of attempts or of the
    optional time budget, or an external cancellation, ends it with the last
    capture as a best-effort result. Capture failures are not retried.
    """

    def __init__(
        self,
        config: StabilizationConfig,
        engine: DiffEngine | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.engine = engine or DiffEngine()
        self._sleep = sleep
        self._clock = clock

    @property
    def thresholds(self) -> Thresholds:
        return self.config.thresholds or Thresholds()

    async def stabilize(
        self,
        source: CaptureSource,
        reference: ImageBuffer | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> StabilizationResult:
        """Capture until stable.

        If ``reference`` is given, a capture that exactly matches it ends the
        loop right away.
        """
        started = self._clock()
        captures: list[ImageBuffer] = []
        previous: ImageBuffer | None = None

        while True:
            current = await source.capture()
            captures.append(current)
            attempt = len(captures)

            if reference is not None and current.same_pixels(reference):
                logger.debug("Capture %d matches the reference image", attempt)
                return StabilizationResult(current, StabilizationOutcome.STABLE, captures, matched_reference=True)

            if previous is not None:
                verdict = self.engine.compare(previous, current, self.thresholds)
                if verdict.status == VerdictStatus.IDENTICAL:
                    logger.debug("Stable after %d captures", attempt)
                    return StabilizationResult(current, StabilizationOutcome.STABLE, captures)
                logger.debug(
                    "Capture %d still changing (area=%d, max_color_distance=%.1f)",
                    attempt, verdict.diff_area, verdict.max_color_distance,
                )

            if attempt >= self.config.max_attempts:
                logger.warning("No stable screenshot after %d attempts, using the last one", attempt)
                return StabilizationResult(current, StabilizationOutcome.EXHAUSTED, captures)

            timeout = self.config.timeout_seconds
            if timeout is not None and self._clock() - started >= timeout:
                logger.warning("No stable screenshot within %.1fs (%d attempts), using the last one",
                               timeout, attempt)
                return StabilizationResult(current, StabilizationOutcome.EXHAUSTED, captures)

            previous = current
            if self.config.interval_seconds:
                await self._sleep(self.config.interval_seconds)

            if cancel_event is not None and cancel_event.is_set():
                logger.warning("Stabilization cancelled after %d attempts, using the last capture", attempt)
                return StabilizationResult(current, StabilizationOutcome.CANCELLED, captures)
