"""Capture sources: where screenshots come from."""

from __future__ import annotations

import inspect
from pathlib import Path
from typing import Awaitable, Callable, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict

from screenshot_diff.errors import CaptureFailure, ImageDecodeError, ScreenshotDiffError
from screenshot_diff.imaging.buffer import ImageBuffer


class CaptureCapabilities(BaseModel):
    """What a capture source can do beyond taking a screenshot."""

    model_config = ConfigDict(frozen=True)

    # viewport_size() reports the real browser viewport
    viewport_check: bool = False
    # The source prepares the page (blur, caret, pending images) before capturing
    page_preparation: bool = False


@runtime_checkable
class CaptureSource(Protocol):
    capabilities: CaptureCapabilities

    async def capture(self) -> ImageBuffer:
        """Take one screenshot. Raises CaptureFailure if that is impossible."""
        ...

    async def viewport_size(self) -> tuple[int, int] | None:
        ...


CaptureFn = Callable[[], Union[ImageBuffer, bytes, Awaitable[Union[ImageBuffer, bytes]]]]


class CallableCaptureSource:
    """Wraps a plain or async function returning an ImageBuffer or encoded bytes."""

    def __init__(self, fn: CaptureFn, capabilities: CaptureCapabilities | None = None):
        self._fn = fn
        self.capabilities = capabilities or CaptureCapabilities()

    async def capture(self) -> ImageBuffer:
        try:
            result = self._fn()
            if inspect.isawaitable(result):
                result = await result
        except ScreenshotDiffError:
            raise
        except Exception as e:
            raise CaptureFailure(f"Capture function failed: {e}") from e
        if isinstance(result, ImageBuffer):
            return result
        try:
            return ImageBuffer.from_bytes(result)
        except ImageDecodeError as e:
            raise CaptureFailure(f"Capture returned undecodable data: {e}") from e

    async def viewport_size(self) -> tuple[int, int] | None:
        return None


class ImageFileCaptureSource:
    """Reads the "screenshot" from an image file, e.g. one rendered by another tool."""

    capabilities = CaptureCapabilities()

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def capture(self) -> ImageBuffer:
        try:
            return ImageBuffer.from_path(self.path)
        except FileNotFoundError as e:
            raise CaptureFailure(f"Image file not found: {self.path}") from e
        except OSError as e:
            raise CaptureFailure(f"Image file {self.path} cannot be read: {e}") from e
        except ImageDecodeError as e:
            raise CaptureFailure(f"Image file {self.path} is not readable: {e}") from e

    async def viewport_size(self) -> tuple[int, int] | None:
        return None
