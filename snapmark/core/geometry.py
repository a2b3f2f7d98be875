"""
Geometry and DPI scale utilities for SnapMark.

Coordinate systems:
- Logical pixels: UI coordinates, independent of display density.
- Physical pixels: actual framebuffer pixels of the captured image.
- scale_factor: physical / logical (e.g. 2.0 on a HiDPI display).

All annotation coordinates are stored in logical pixels and converted to
the cropped output buffer's physical space by CoordinateMapper.
"""

import math
from dataclasses import dataclass
from typing import Tuple

from PySide6.QtCore import QPointF, QRectF


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def normalized_rect(a: QPointF, b: QPointF) -> QRectF:
    """Build a normalized rectangle spanning two corner points."""
    left = min(a.x(), b.x())
    top = min(a.y(), b.y())
    right = max(a.x(), b.x())
    bottom = max(a.y(), b.y())
    return QRectF(left, top, right - left, bottom - top)


@dataclass(frozen=True)
class PhysicalRect:
    """Integer crop window in physical pixels: [x1, x2) x [y1, y2)."""
    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def width(self) -> int:
        return max(self.x2 - self.x1, 0)

    @property
    def height(self) -> int:
        return max(self.y2 - self.y1, 0)

    def as_tuple(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        return ((self.x1, self.y1), (self.x2, self.y2))


class CoordinateMapper:
    """
    Maps logical positions into the local physical space of a cropped
    selection.

    Stateless apart from the selection origin and scale factor it was
    built with.
    """

    def __init__(self, selection_logical_min: QPointF, scale_factor: float) -> None:
        """
        Args:
            selection_logical_min: Top-left of the selection in logical px.
            scale_factor: Physical / logical ratio of the captured display.
        """
        self._min_x = selection_logical_min.x()
        self._min_y = selection_logical_min.y()
        self._scale_factor = scale_factor

    @property
    def scale_factor(self) -> float:
        return self._scale_factor

    def to_physical(self, pos: QPointF) -> Tuple[int, int]:
        """Convert a logical position to selection-relative physical pixels."""
        relative_x = (pos.x() - self._min_x) * self._scale_factor
        relative_y = (pos.y() - self._min_y) * self._scale_factor
        return round_half_away(relative_x), round_half_away(relative_y)

    def scale(self, value: float) -> float:
        """Scale a length from logical to physical pixels."""
        return value * self._scale_factor
