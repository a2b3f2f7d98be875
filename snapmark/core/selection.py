"""
Selection model for screenshot region selection.

Tracks a mouse drag that defines a rectangular area in logical pixels.
Once finished, the selection can be resized by dragging one of its eight
handles.
"""

from enum import Enum, auto
from typing import Optional, Tuple

from PySide6.QtCore import QPointF, QRectF

from snapmark.core.geometry import PhysicalRect, normalized_rect

# Side length of the square hit area around each handle (logical px)
HANDLE_SIZE = 10.0


class HandlePosition(Enum):
    """The eight resize handles of a selection."""
    TOP_LEFT = auto()
    TOP_CENTER = auto()
    TOP_RIGHT = auto()
    MIDDLE_LEFT = auto()
    MIDDLE_RIGHT = auto()
    BOTTOM_LEFT = auto()
    BOTTOM_CENTER = auto()
    BOTTOM_RIGHT = auto()


class Selection:
    """
    A rectangular selection defined by a start and an end point.

    Lifecycle: empty -> in progress (start/update) -> completed (finish)
    -> empty (reset).
    """

    def __init__(self) -> None:
        self._start: Optional[QPointF] = None
        self._end: Optional[QPointF] = None
        self._completed = False

    def start(self, pos: QPointF) -> None:
        """Begin a new selection at pos."""
        self._start = QPointF(pos)
        self._end = QPointF(pos)
        self._completed = False

    def update(self, pos: QPointF) -> None:
        """Move the end point. Ignored unless a drag is in progress."""
        if self._start is not None and not self._completed:
            self._end = QPointF(pos)

    def finish(self) -> None:
        if self._start is not None and self._end is not None:
            self._completed = True

    def reset(self) -> None:
        self._start = None
        self._end = None
        self._completed = False

    def is_in_progress(self) -> bool:
        return self._start is not None and not self._completed

    def is_completed(self) -> bool:
        return self._completed

    def has_selection(self) -> bool:
        return self._start is not None and self._end is not None

    def bounds(self) -> Optional[QRectF]:
        """Normalized bounds in logical pixels, or None if there is no selection."""
        if self._start is None or self._end is None:
            return None
        return normalized_rect(self._start, self._end)

    def bounds_physical(self, scale: float) -> Optional[PhysicalRect]:
        """
        Bounds in physical pixels.

        Each edge is multiplied by scale and truncated toward zero.

        Args:
            scale: Physical / logical ratio.

        Returns:
            The physical rect, or None if there is no selection.
        """
        rect = self.bounds()
        if rect is None:
            return None
        return PhysicalRect(
            int(rect.left() * scale),
            int(rect.top() * scale),
            int(rect.right() * scale),
            int(rect.bottom() * scale),
        )

    def size(self) -> Optional[Tuple[float, float]]:
        rect = self.bounds()
        if rect is None:
            return None
        return rect.width(), rect.height()

    def size_physical(self, scale: float) -> Optional[Tuple[int, int]]:
        size = self.size()
        if size is None:
            return None
        return int(size[0] * scale), int(size[1] * scale)

    def contains(self, pos: QPointF) -> bool:
        """Whether pos lies inside the selection, edges included."""
        rect = self.bounds()
        if rect is None:
            return False
        return (
            rect.left() <= pos.x() <= rect.right()
            and rect.top() <= pos.y() <= rect.bottom()
        )

    # ─── Resize Handles ───────────────────────────────────────────────────

    def handle_center(self, handle: HandlePosition) -> Optional[QPointF]:
        rect = self.bounds()
        if rect is None:
            return None
        mid_x = rect.left() + rect.width() / 2
        mid_y = rect.top() + rect.height() / 2
        centers = {
            HandlePosition.TOP_LEFT: (rect.left(), rect.top()),
            HandlePosition.TOP_CENTER: (mid_x, rect.top()),
            HandlePosition.TOP_RIGHT: (rect.right(), rect.top()),
            HandlePosition.MIDDLE_LEFT: (rect.left(), mid_y),
            HandlePosition.MIDDLE_RIGHT: (rect.right(), mid_y),
            HandlePosition.BOTTOM_LEFT: (rect.left(), rect.bottom()),
            HandlePosition.BOTTOM_CENTER: (mid_x, rect.bottom()),
            HandlePosition.BOTTOM_RIGHT: (rect.right(), rect.bottom()),
        }
        x, y = centers[handle]
        return QPointF(x, y)

    def handle_at(self, pos: QPointF, handle_size: float = HANDLE_SIZE) -> Optional[HandlePosition]:
        """
        Find the handle under pos.

        Args:
            pos: Position in logical pixels.
            handle_size: Side of the square hit area centered on each handle.

        Returns:
            The first matching handle, or None. Only completed selections
            have handles.
        """
        if not self._completed:
            return None
        half = handle_size / 2
        for handle in HandlePosition:
            center = self.handle_center(handle)
            if center is None:
                return None
            if abs(pos.x() - center.x()) <= half and abs(pos.y() - center.y()) <= half:
                return handle
        return None

    def resize(self, handle: HandlePosition, pos: QPointF) -> None:
        """
        Move the edge(s) owned by handle to pos.

        Dragging an edge past its opposite edge flips the selection; the
        bounds stay normalized.
        """
        rect = self.bounds()
        if rect is None or not self._completed:
            return
        left, top, right, bottom = rect.left(), rect.top(), rect.right(), rect.bottom()

        if handle in (HandlePosition.TOP_LEFT, HandlePosition.MIDDLE_LEFT, HandlePosition.BOTTOM_LEFT):
            left = pos.x()
        if handle in (HandlePosition.TOP_RIGHT, HandlePosition.MIDDLE_RIGHT, HandlePosition.BOTTOM_RIGHT):
            right = pos.x()
        if handle in (HandlePosition.TOP_LEFT, HandlePosition.TOP_CENTER, HandlePosition.TOP_RIGHT):
            top = pos.y()
        if handle in (HandlePosition.BOTTOM_LEFT, HandlePosition.BOTTOM_CENTER, HandlePosition.BOTTOM_RIGHT):
            bottom = pos.y()

        self._start = QPointF(min(left, right), min(top, bottom))
        self._end = QPointF(max(left, right), max(top, bottom))
