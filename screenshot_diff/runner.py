"""Session runner: compares many identities concurrently."""

from __future__ import annotations

import asyncio
import logging
import time

from screenshot_diff.baseline.vcs import VersionControl
from screenshot_diff.capture.source import CaptureSource
from screenshot_diff.errors import ScreenshotDiffError
from screenshot_diff.models.config import DiffConfig, Thresholds
from screenshot_diff.models.identity import Identity, IdentityBuilder
from screenshot_diff.models.verdict import SessionOutcome
from screenshot_diff.session import ComparisonSession

logger = logging.getLogger(__name__)


class SessionRequest:
    def __init__(
        self,
        identity: Identity,
        capture_source: CaptureSource,
        thresholds: Thresholds | None = None,
        dimensions: tuple[int, int] | None = None,
        caller: str | None = None,
    ):
        self.identity = identity
        self.capture_source = capture_source
        self.thresholds = thresholds
        self.dimensions = dimensions
        self.caller = caller


class SessionRunner:
    """Runs comparison sessions in parallel, bounded by ``max_parallel_sessions``.

    Errors are isolated per identity: a capture or baseline failure becomes
    that identity's outcome and never aborts the other sessions.
    """

    def __init__(self, session: ComparisonSession, max_parallel_sessions: int = 3, enabled: bool = True):
        self.session = session
        self.max_parallel_sessions = max_parallel_sessions
        self.enabled = enabled

    @classmethod
    def from_config(cls, config: DiffConfig, vcs: VersionControl | None = None) -> "SessionRunner":
        return cls(
            ComparisonSession.from_config(config, vcs=vcs),
            max_parallel_sessions=config.max_parallel_sessions,
            enabled=config.enabled,
        )

    def start_group(self, builder: IdentityBuilder, group: str | None) -> IdentityBuilder:
        """Switch to ``group``: restart numbering and drop the group's old artifacts."""
        builder = builder.in_group(group)
        if self.enabled:
            self.session.store.purge_group(builder)
        return builder

    async def run_all(
        self, requests: list[SessionRequest], cancel_event: asyncio.Event | None = None
    ) -> list[SessionOutcome]:
        if not self.enabled:
            logger.info("Screenshots disabled, skipping %d comparisons", len(requests))
            return []

        names = [r.identity.name for r in requests]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate screenshot names in one run: {', '.join(duplicates)}")

        start = time.time()
        total = len(requests)
        semaphore = asyncio.Semaphore(self.max_parallel_sessions)

        async def _run_one(index: int, request: SessionRequest) -> SessionOutcome:
            async with semaphore:
                name = request.identity.name
                logger.debug("Comparing [%d/%d]: %s", index + 1, total, name)
                try:
                    verdict = await self.session.run(
                        request.identity,
                        request.capture_source,
                        thresholds=request.thresholds,
                        dimensions=request.dimensions,
                        cancel_event=cancel_event,
                    )
                except ScreenshotDiffError as e:
                    logger.error("Screenshot %s failed: %s", name, e)
                    return SessionOutcome(
                        name=name, error=str(e), error_type=type(e).__name__, caller=request.caller
                    )
                except Exception as e:
                    logger.exception("Unexpected error comparing screenshot %s", name)
                    return SessionOutcome(
                        name=name, error=str(e), error_type=type(e).__name__, caller=request.caller
                    )
                return SessionOutcome(name=name, verdict=verdict, caller=request.caller)

        outcomes = await asyncio.gather(*(_run_one(i, r) for i, r in enumerate(requests)))
        failed = sum(1 for o in outcomes if o.failed)
        logger.info("Compared %d screenshots in %.1fs, %d failed", total, time.time() - start, failed)
        return list(outcomes)

    def run_all_sync(self, requests: list[SessionRequest]) -> list[SessionOutcome]:
        """Blocking wrapper around ``run_all``."""
        return asyncio.run(self.run_all(requests))
