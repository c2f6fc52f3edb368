"""Exception types raised by the comparison pipeline.

A missing baseline, a dimension mismatch and an unstable page are reported
through the verdict, not through exceptions.
"""

from __future__ import annotations


class ScreenshotDiffError(Exception):
    """Base class for all screenshot-diff errors."""


class CaptureFailure(ScreenshotDiffError):
    """The capture source could not produce a screenshot."""


class WindowSizeMismatch(CaptureFailure):
    """The browser viewport does not have the configured dimensions."""

    def __init__(self, expected: tuple[int, int], actual: tuple[int, int]):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Viewport is {actual[0]}x{actual[1]}, expected {expected[0]}x{expected[1]}"
        )


class ImageDecodeError(ScreenshotDiffError):
    """Bytes could not be decoded into an image."""


class BaselineDecodeFailure(ScreenshotDiffError):
    """The committed baseline exists but is not a readable image."""

    def __init__(self, identity_name: str, path: str, reason: str):
        self.identity_name = identity_name
        self.path = path
        super().__init__(
            f"Committed baseline for '{identity_name}' at {path} could not be decoded: {reason}"
        )


class VcsError(ScreenshotDiffError):
    """The version-control tooling is unavailable or misbehaving."""
