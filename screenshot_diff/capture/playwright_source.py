"""Playwright capture source: screenshots of a live browser page."""

from __future__ import annotations

import asyncio
import logging
import time

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from screenshot_diff.errors import CaptureFailure, ImageDecodeError
from screenshot_diff.imaging.buffer import ImageBuffer
from screenshot_diff.models.config import DiffConfig

from .source import CaptureCapabilities

logger = logging.getLogger(__name__)

# Returns the src of the first image that is still loading, or null
IMAGE_WAIT_SCRIPT = """() => {
  const pending = Array.from(document.images).find(img => !img.complete);
  return pending ? pending.src : null;
}"""

BLUR_SCRIPT = """() => {
  const ae = document.activeElement;
  if (ae && (ae.nodeName === "INPUT" || ae.nodeName === "TEXTAREA")) {
    ae.blur();
    return ae;
  }
  return null;
}"""


class PlaywrightCaptureSource:
    """Captures the viewport (or full page) of a Playwright page."""

    capabilities = CaptureCapabilities(viewport_check=True, page_preparation=True)

    def __init__(
        self,
        page: Page,
        full_page: bool = False,
        blur_active_element: bool = False,
        hide_caret: bool = False,
        image_load_timeout: float = 5.0,
    ):
        self.page = page
        self.full_page = full_page
        self.blur_active_element = blur_active_element
        self.hide_caret = hide_caret
        self.image_load_timeout = image_load_timeout

    @classmethod
    def from_config(cls, page: Page, config: DiffConfig, full_page: bool = False) -> "PlaywrightCaptureSource":
        return cls(
            page,
            full_page=full_page,
            blur_active_element=config.blur_active_element,
            hide_caret=config.hide_caret,
        )

    async def viewport_size(self) -> tuple[int, int] | None:
        size = self.page.viewport_size
        if not size:
            return None
        return (size["width"], size["height"])

    async def capture(self) -> ImageBuffer:
        try:
            await self._wait_for_images()
            blurred = await self._blur_active_element() if self.blur_active_element else None
            try:
                data = await self.page.screenshot(
                    full_page=self.full_page,
                    caret="hide" if self.hide_caret else "initial",
                )
            finally:
                if blurred is not None:
                    await blurred.focus()
        except PlaywrightError as e:
            raise CaptureFailure(f"Screenshot failed: {e}") from e

        try:
            return ImageBuffer.from_bytes(data)
        except ImageDecodeError as e:
            raise CaptureFailure(f"Browser returned an unreadable screenshot: {e}") from e

    async def _wait_for_images(self) -> None:
        start = time.monotonic()
        while True:
            pending = await self.page.evaluate(IMAGE_WAIT_SCRIPT)
            if not pending:
                return
            if time.monotonic() - start >= self.image_load_timeout:
                raise CaptureFailure(
                    f"Images not loaded after {self.image_load_timeout}s: {pending}"
                )
            logger.debug("Waiting for image %s", pending)
            await asyncio.sleep(0.1)

    async def _blur_active_element(self):
        handle = await self.page.evaluate_handle(BLUR_SCRIPT)
        element = handle.as_element()
        if element is None:
            await handle.dispose()
        return element
