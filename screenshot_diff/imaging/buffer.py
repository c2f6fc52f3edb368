"""In-memory RGBA raster backed by Pillow."""

from __future__ import annotations

import functools
import io
from pathlib import Path

from PIL import Image, ImageChops, UnidentifiedImageError

from screenshot_diff.errors import ImageDecodeError

Color = tuple[int, int, int, int]


class ImageBuffer:
    """An RGBA image with random pixel access.

    Buffers keep the encoded bytes they were decoded from (if any), so an
    unchanged image can be written back byte for byte.
    """

    def __init__(self, image: Image.Image, source_bytes: bytes | None = None):
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        self._image = image
        self._pixels = None
        self.source_bytes = source_bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImageBuffer":
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        # Pillow reports some broken PNG chunks as SyntaxError
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
            raise ImageDecodeError(f"Cannot decode image ({len(data)} bytes): {e}") from e
        return cls(image, source_bytes=data)

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageBuffer":
        return cls.from_bytes(Path(path).read_bytes())

    @classmethod
    def solid(cls, width: int, height: int, color: Color) -> "ImageBuffer":
        return cls(Image.new("RGBA", (width, height), color))

    @property
    def image(self) -> Image.Image:
        """A copy of the underlying Pillow image."""
        return self._image.copy()

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def size(self) -> tuple[int, int]:
        return self._image.size

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def pixel(self, x: int, y: int) -> Color:
        if self._pixels is None:
            self._pixels = self._image.load()
        return self._pixels[x, y]

    def crop(self, width: int, height: int) -> "ImageBuffer":
        """Top-left crop; returns ``self`` if already within the given size."""
        if self.width <= width and self.height <= height:
            return self
        box = (0, 0, min(self.width, width), min(self.height, height))
        return ImageBuffer(self._image.crop(box))

    def with_pixels(self, pixels: dict[tuple[int, int], Color]) -> "ImageBuffer":
        """Return a new buffer with the given pixels replaced."""
        image = self._image.copy()
        for (x, y), color in pixels.items():
            image.putpixel((x, y), color)
        return ImageBuffer(image)

    def same_pixels(self, other: "ImageBuffer") -> bool:
        if self.size != other.size:
            return False
        if self.source_bytes is not None and self.source_bytes == other.source_bytes:
            return True
        return self.changed_box(other) is None

    def changed_box(self, other: "ImageBuffer") -> tuple[int, int, int, int] | None:
        """Box (left, top, right, bottom; right/bottom exclusive) around changed pixels.

        Both buffers must have the same size. Returns ``None`` when every pixel
        is equal.
        """
        diff = ImageChops.difference(self._image, other._image)
        combined = functools.reduce(ImageChops.lighter, diff.split())
        return combined.getbbox()

    def to_png_bytes(self) -> bytes:
        output = io.BytesIO()
        self._image.save(output, format="PNG")
        return output.getvalue()

    def encoded(self) -> bytes:
        """Original bytes if known, else a fresh PNG encoding."""
        return self.source_bytes if self.source_bytes is not None else self.to_png_bytes()

    def __repr__(self) -> str:
        return f"ImageBuffer({self.width}x{self.height})"
