"""Pixel diff engine: decides whether two screenshots are the same under tolerances."""

from __future__ import annotations

import logging
import math
from pathlib import Path

from PIL import Image, ImageDraw

from screenshot_diff.models.config import Thresholds
from screenshot_diff.models.verdict import DiffRegion, Verdict, VerdictStatus

from .buffer import Color, ImageBuffer

logger = logging.getLogger(__name__)

# Euclidean distance between transparent black and opaque white over RGBA
MAX_COLOR_DISTANCE = 510.0

HIGHLIGHT_COLOR = (255, 0, 255, 255)
REGION_COLOR = (255, 0, 0, 255)
SIDE_BY_SIDE_GAP = 4


def color_distance(c1: Color, c2: Color) -> float:
    """Euclidean distance over the RGBA channels, in ``[0, 510]``.

    The squared sum is an exact integer, so the result only depends on one
    correctly rounded square root.
    """
    return math.sqrt(sum((a - b) * (a - b) for a, b in zip(c1, c2)))


class _Scan:
    def __init__(self):
        self.max_distance = 0.0
        self.area = 0
        self.left = self.top = self.right = self.bottom = None
        self.points: list[tuple[int, int]] = []

    def add(self, x: int, y: int, distance: float, keep_point: bool) -> None:
        self.area += 1
        if distance > self.max_distance:
            self.max_distance = distance
        if self.left is None:
            self.left = self.right = x
            self.top = self.bottom = y
        else:
            self.left = min(self.left, x)
            self.right = max(self.right, x)
            self.top = min(self.top, y)
            self.bottom = max(self.bottom, y)
        if keep_point:
            self.points.append((x, y))

    @property
    def region(self) -> DiffRegion | None:
        if self.left is None:
            return None
        return DiffRegion(left=self.left, top=self.top, right=self.right, bottom=self.bottom)


def _scan(baseline: ImageBuffer, current: ImageBuffer, noise_floor: float, keep_points: bool = False) -> _Scan:
    scan = _Scan()
    box = baseline.changed_box(current)
    if box is None:
        return scan
    left, top, right, bottom = box
    for y in range(top, bottom):
        for x in range(left, right):
            old = baseline.pixel(x, y)
            new = current.pixel(x, y)
            if old == new:
                continue
            distance = color_distance(old, new)
            if distance > noise_floor:
                scan.add(x, y, distance, keep_points)
    return scan


class DiffEngine:
    """Compares two image buffers and renders diff visualizations."""

    def compare(self, baseline: ImageBuffer, current: ImageBuffer, thresholds: Thresholds) -> Verdict:
        """Compare ``current`` against ``baseline``.

        Different sizes are always reported as different, whatever the
        thresholds. Otherwise the images are identical when both the highest
        pixel distance and the number of differing pixels are within limits.
        """
        if baseline.size != current.size:
            width = max(baseline.width, current.width)
            height = max(baseline.height, current.height)
            logger.debug("Size changed: %s -> %s", baseline.size, current.size)
            return Verdict(
                status=VerdictStatus.DIFFERENT,
                max_color_distance=MAX_COLOR_DISTANCE,
                diff_area=max(baseline.pixel_count, current.pixel_count),
                diff_region=DiffRegion(left=0, top=0, right=width - 1, bottom=height - 1),
                baseline_size=baseline.size,
                current_size=current.size,
                dimension_mismatch=True,
            )

        scan = _scan(baseline, current, thresholds.noise_floor)
        identical = (
            scan.max_distance <= thresholds.color_distance_limit
            and scan.area <= thresholds.area_size_limit
        )
        logger.debug(
            "Compared %dx%d: area=%d max_color_distance=%.3f (limits %s/%s)",
            baseline.width, baseline.height, scan.area, scan.max_distance,
            thresholds.color_distance_limit, thresholds.area_size_limit,
        )
        return Verdict(
            status=VerdictStatus.IDENTICAL if identical else VerdictStatus.DIFFERENT,
            max_color_distance=scan.max_distance,
            diff_area=scan.area,
            diff_region=scan.region,
            baseline_size=baseline.size,
            current_size=current.size,
        )

    def render_diff(
        self, baseline: ImageBuffer, current: ImageBuffer, noise_floor: float = 0.0
    ) -> ImageBuffer:
        """Render a diff visualization; neither input is modified."""
        if baseline.size != current.size:
            return _side_by_side(baseline, current)

        scan = _scan(baseline, current, noise_floor, keep_points=True)
        white = Image.new("RGBA", current.size, (255, 255, 255, 255))
        canvas = Image.blend(current.image, white, 0.6)
        for point in scan.points:
            canvas.putpixel(point, HIGHLIGHT_COLOR)
        region = scan.region
        if region is not None:
            draw = ImageDraw.Draw(canvas)
            draw.rectangle(
                (
                    max(region.left - 1, 0),
                    max(region.top - 1, 0),
                    min(region.right + 1, current.width - 1),
                    min(region.bottom + 1, current.height - 1),
                ),
                outline=REGION_COLOR,
            )
        return ImageBuffer(canvas)

    def write_diff(
        self, baseline: ImageBuffer, current: ImageBuffer, path: Path, noise_floor: float = 0.0
    ) -> Path:
        """Write the diff visualization to ``path`` unless the same bytes are already there."""
        data = self.render_diff(baseline, current, noise_floor).to_png_bytes()
        if path.exists() and path.read_bytes() == data:
            logger.debug("Diff image unchanged: %s", path)
            return path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug("Wrote diff image %s", path)
        return path


def _side_by_side(baseline: ImageBuffer, current: ImageBuffer) -> ImageBuffer:
    width = baseline.width + SIDE_BY_SIDE_GAP + current.width
    height = max(baseline.height, current.height)
    canvas = Image.new("RGBA", (width, height), (255, 255, 255, 255))
    canvas.paste(baseline.image, (0, 0))
    offset = baseline.width + SIDE_BY_SIDE_GAP
    canvas.paste(current.image, (offset, 0))
    draw = ImageDraw.Draw(canvas)
    draw.rectangle((0, 0, baseline.width - 1, baseline.height - 1), outline=REGION_COLOR)
    draw.rectangle((offset, 0, offset + current.width - 1, current.height - 1), outline=REGION_COLOR)
    return ImageBuffer(canvas)
