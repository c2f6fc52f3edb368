"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from screenshot_diff.artifacts import ArtifactStore
from screenshot_diff.baseline.resolver import BaselineResolver
from screenshot_diff.capture.source import CaptureCapabilities
from screenshot_diff.errors import CaptureFailure
from screenshot_diff.imaging.buffer import ImageBuffer
from screenshot_diff.imaging.diff_engine import DiffEngine
from screenshot_diff.models.config import DiffConfig, StabilizationConfig, Thresholds
from screenshot_diff.session import ComparisonSession
from screenshot_diff.stabilizer import Stabilizer


GRAY = (100, 100, 100, 255)
# Distance 80 from GRAY: sqrt(80^2)
RED = (180, 100, 100, 255)


def with_square(buffer: ImageBuffer, left: int, top: int, size: int, color) -> ImageBuffer:
    """Copy of ``buffer`` with a ``size`` x ``size`` square painted at (left, top)."""
    return buffer.with_pixels({
        (x, y): color
        for x in range(left, left + size)
        for y in range(top, top + size)
    })


# ============================================================================
# Fakes
# ============================================================================


class FakeVcs:
    """In-memory version control: path -> committed bytes."""

    def __init__(self, committed: dict[str, bytes] | None = None):
        self.committed = dict(committed or {})
        self.reads: list[str] = []

    def read_committed(self, path: str) -> bytes | None:
        self.reads.append(path)
        return self.committed.get(path)


class SequenceCaptureSource:
    """Returns the given buffers in order, repeating the last one forever."""

    def __init__(self, *buffers: ImageBuffer, capabilities: CaptureCapabilities | None = None,
                 viewport: tuple[int, int] | None = None):
        self.buffers = list(buffers)
        self.calls = 0
        self.capabilities = capabilities or CaptureCapabilities()
        self.viewport = viewport

    async def capture(self) -> ImageBuffer:
        index = min(self.calls, len(self.buffers) - 1)
        self.calls += 1
        return self.buffers[index]

    async def viewport_size(self) -> tuple[int, int] | None:
        return self.viewport


class AlternatingCaptureSource(SequenceCaptureSource):
    """Cycles through the given buffers forever (a page that never settles)."""

    async def capture(self) -> ImageBuffer:
        buffer = self.buffers[self.calls % len(self.buffers)]
        self.calls += 1
        return buffer


class FailingCaptureSource(SequenceCaptureSource):
    def __init__(self, message: str = "driver disconnected"):
        super().__init__()
        self.message = message

    async def capture(self) -> ImageBuffer:
        self.calls += 1
        raise CaptureFailure(self.message)


# ============================================================================
# Image Fixtures
# ============================================================================


@pytest.fixture
def gray_image() -> ImageBuffer:
    """A solid gray 100x100 image."""
    return ImageBuffer.solid(100, 100, GRAY)


@pytest.fixture
def red_square_image(gray_image: ImageBuffer) -> ImageBuffer:
    """The gray image with a 5x5 square at distance 80 inserted."""
    return with_square(gray_image, 10, 20, 5, RED)


# ============================================================================
# Pipeline Fixtures
# ============================================================================


@pytest.fixture
def diff_config(tmp_path: Path) -> DiffConfig:
    """Config rooted in a temporary repository with fast stabilization."""
    return DiffConfig(
        repository_root=str(tmp_path),
        screenshot_area="doc/screenshots",
        stabilization=StabilizationConfig(max_attempts=3, interval_seconds=0),
    )


@pytest.fixture
def store(diff_config: DiffConfig) -> ArtifactStore:
    return ArtifactStore.from_config(diff_config)


@pytest.fixture
def fake_vcs() -> FakeVcs:
    return FakeVcs()


@pytest.fixture
def session(diff_config: DiffConfig, store: ArtifactStore, fake_vcs: FakeVcs) -> ComparisonSession:
    engine = DiffEngine()
    return ComparisonSession(
        resolver=BaselineResolver(fake_vcs, store),
        store=store,
        stabilizer=Stabilizer(diff_config.stabilization, engine),
        engine=engine,
        default_thresholds=Thresholds(),
    )
