"""
RGBA8 pixel buffer used for captured screens and composited output.

Pixels are held in a numpy uint8 array of shape (height, width, 4), the
same layout QImage.Format_RGBA8888 uses. Single-pixel accessors are
bounds-checked: reads outside the buffer return None and writes outside
the buffer are dropped.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

Rgba = Tuple[int, int, int, int]


@dataclass(eq=False)
class ScreenCaptureBuffer:
    """A width x height RGBA8 image."""

    width: int
    height: int
    pixels: Optional[np.ndarray] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Invalid buffer size: {self.width}x{self.height}")
        shape = (self.height, self.width, 4)
        if self.pixels is None:
            self.pixels = np.zeros(shape, dtype=np.uint8)
            return

        if not isinstance(self.pixels, np.ndarray):
            # Raw RGBA8 bytes, row-major
            self.pixels = np.frombuffer(bytes(self.pixels), dtype=np.uint8)
        expected = self.width * self.height * 4
        if self.pixels.size != expected:
            raise ValueError(
                f"Pixel data has {self.pixels.size} bytes, expected {expected}"
            )
        self.pixels = np.array(self.pixels, dtype=np.uint8).reshape(shape)

    @classmethod
    def filled(cls, width: int, height: int, color: Rgba) -> "ScreenCaptureBuffer":
        """Create a buffer with every pixel set to color."""
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = color
        return cls(width, height, pixels)

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_pixel(self, x: int, y: int) -> Optional[Rgba]:
        if not self.in_bounds(x, y):
            return None
        r, g, b, a = self.pixels[y, x].tolist()
        return (r, g, b, a)

    def put_pixel(self, x: int, y: int, color: Rgba) -> None:
        if not self.in_bounds(x, y):
            return
        self.pixels[y, x] = color

    def to_bytes(self) -> bytes:
        """Row-major RGBA8 bytes with no row padding."""
        return self.pixels.tobytes()

    def crop(self, x: int, y: int, width: int, height: int) -> "ScreenCaptureBuffer":
        """
        Copy a width x height window starting at (x, y).

        Source pixels outside this buffer are skipped, leaving the
        destination pixel transparent.

        Args:
            x: Left edge of the window in this buffer.
            y: Top edge of the window in this buffer.
            width: Window width.
            height: Window height.

        Returns:
            A new buffer of exactly width x height pixels.
        """
        result = ScreenCaptureBuffer(max(width, 0), max(height, 0))
        if result.is_empty:
            return result

        # Intersection of the window with this buffer, in source coordinates
        src_x1, src_x2 = max(x, 0), min(x + width, self.width)
        src_y1, src_y2 = max(y, 0), min(y + height, self.height)
        if src_x1 >= src_x2 or src_y1 >= src_y2:
            return result

        result.pixels[src_y1 - y:src_y2 - y, src_x1 - x:src_x2 - x] = (
            self.pixels[src_y1:src_y2, src_x1:src_x2]
        )
        return result

    def copy(self) -> "ScreenCaptureBuffer":
        # The constructor copies the array
        return ScreenCaptureBuffer(self.width, self.height, self.pixels)


@dataclass
class CapturedScreen:
    """A captured display: its pixels and the DPI scale they were taken at."""

    buffer: ScreenCaptureBuffer
    scale_factor: float = 1.0
    name: Optional[str] = None

    @property
    def logical_size(self) -> Tuple[float, float]:
        """Screen size in logical pixels."""
        return (
            self.buffer.width / self.scale_factor,
            self.buffer.height / self.scale_factor,
        )
