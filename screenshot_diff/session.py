"""Comparison session: resolve baseline, capture, compare and persist for one identity."""

from __future__ import annotations

import asyncio
import logging

from screenshot_diff.artifacts import ArtifactStore
from screenshot_diff.baseline.resolver import BaselineResolver
from screenshot_diff.baseline.vcs import VersionControl, make_vcs
from screenshot_diff.capture.source import CaptureSource
from screenshot_diff.errors import WindowSizeMismatch
from screenshot_diff.imaging.buffer import ImageBuffer
from screenshot_diff.imaging.diff_engine import DiffEngine
from screenshot_diff.models.config import DiffConfig, Thresholds
from screenshot_diff.models.identity import Identity
from screenshot_diff.models.verdict import (
    StabilizationOutcome,
    StabilizationReport,
    Verdict,
    VerdictStatus,
)
from screenshot_diff.stabilizer import Stabilizer

logger = logging.getLogger(__name__)


class _CroppedSource:
    """Crops every capture of the wrapped source to the expected dimensions."""

    def __init__(self, source: CaptureSource, dimensions: tuple[int, int]):
        self._source = source
        self._dimensions = dimensions
        self.capabilities = source.capabilities

    async def capture(self) -> ImageBuffer:
        return (await self._source.capture()).crop(*self._dimensions)

    async def viewport_size(self) -> tuple[int, int] | None:
        return await self._source.viewport_size()


class ComparisonSession:
    """Runs the comparison of one screenshot identity end to end.

    Sessions hold no per-identity state, so one instance can serve many
    identities concurrently as long as each uses its own capture source.
    """

    def __init__(
        self,
        resolver: BaselineResolver,
        store: ArtifactStore,
        stabilizer: Stabilizer,
        engine: DiffEngine | None = None,
        default_thresholds: Thresholds | None = None,
        dimensions: tuple[int, int] | None = None,
    ):
        self.resolver = resolver
        self.store = store
        self.stabilizer = stabilizer
        self.engine = engine or DiffEngine()
        self.default_thresholds = default_thresholds or Thresholds()
        self.dimensions = dimensions

    @classmethod
    def from_config(cls, config: DiffConfig, vcs: VersionControl | None = None) -> "ComparisonSession":
        store = ArtifactStore.from_config(config)
        vcs = vcs or make_vcs(config.vcs, config.repository_root, use_lfs=config.use_lfs)
        engine = DiffEngine()
        return cls(
            resolver=BaselineResolver(vcs, store),
            store=store,
            stabilizer=Stabilizer(config.stabilization, engine),
            engine=engine,
            default_thresholds=config.thresholds,
            dimensions=config.dimensions.as_tuple() if config.dimensions else None,
        )

    async def run(
        self,
        identity: Identity,
        capture_source: CaptureSource,
        thresholds: Thresholds | None = None,
        dimensions: tuple[int, int] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Verdict:
        """Compare a fresh capture of ``identity`` against its committed baseline.

        The capture is saved at its canonical path whatever the outcome, so it
        can be committed as the new baseline. CaptureFailure and
        BaselineDecodeFailure propagate to the caller.
        """
        thresholds = thresholds or self.default_thresholds
        dimensions = dimensions or self.dimensions

        baseline = self.resolver.resolve(identity)
        await self._check_viewport(capture_source, dimensions)
        source = _CroppedSource(capture_source, dimensions) if dimensions else capture_source

        if baseline is None:
            current = await source.capture()
            path = self.store.write_capture(identity, current)
            self.store.remove_diff(identity)
            self.store.clean_stabilization_images(identity)
            logger.info("New screenshot %s (%dx%d), no baseline yet",
                        identity.name, current.width, current.height)
            return Verdict(
                status=VerdictStatus.NO_BASELINE,
                name=identity.name,
                current_size=current.size,
                capture_path=str(path),
                stabilization=StabilizationReport(outcome=StabilizationOutcome.SKIPPED, attempts=1),
            )

        if dimensions:
            baseline = baseline.crop(*dimensions)

        result = await self.stabilizer.stabilize(source, reference=baseline, cancel_event=cancel_event)
        current = result.buffer
        verdict = self.engine.compare(baseline, current, thresholds)

        committed_bytes = baseline.source_bytes if current.same_pixels(baseline) else None
        capture_path = self.store.write_capture(identity, current, data=committed_bytes)

        diff_path = None
        if verdict.is_different:
            diff_path = str(self.engine.write_diff(
                baseline, current, self.store.diff_path(identity), thresholds.noise_floor
            ))
        else:
            self.store.remove_diff(identity)

        report = result.report()
        if report.is_best_effort:
            report.leftover_images = self.store.write_stabilization_images(identity, result.intermediate)
        else:
            self.store.clean_stabilization_images(identity)

        verdict = verdict.model_copy(update={
            "name": identity.name,
            "capture_path": str(capture_path),
            "diff_image_path": diff_path,
            "stabilization": report,
        })
        if verdict.is_different:
            logger.info("Screenshot %s differs: area=%dpx max_color_distance=%.1f",
                        identity.name, verdict.diff_area, verdict.rounded_max_color_distance)
        else:
            logger.info("Screenshot %s unchanged", identity.name)
        return verdict

    async def _check_viewport(self, source: CaptureSource, dimensions: tuple[int, int] | None) -> None:
        if not dimensions or not source.capabilities.viewport_check:
            return
        actual = await source.viewport_size()
        if actual is not None and tuple(actual) != tuple(dimensions):
            raise WindowSizeMismatch(tuple(dimensions), tuple(actual))
