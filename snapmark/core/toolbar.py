"""
Toolbar shown next to a finished selection.

Toolbar is the interface ScreenshotMode talks to; ActionBar is the default
single-row layout. Both only deal with geometry and hit-testing in logical
pixels. Drawing the toolbar is left to the UI layer.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from PySide6.QtCore import QPointF, QRectF

from snapmark.editor.tools import ActionInfo
from snapmark.services.logging_service import get_logger

BUTTON_SIZE = 28.0
BUTTON_SPACING = 2.0
BAR_PADDING = 6.0
# Gap between the selection and the toolbar
TOOLBAR_MARGIN = 8.0


class Toolbar(ABC):
    """Hit-testable toolbar bound to a selection."""

    @abstractmethod
    def bind(
        self,
        selection_bounds: QRectF,
        actions: Sequence[ActionInfo],
        screen_size: Tuple[float, float],
    ) -> None:
        """
        Lay the toolbar out for a selection.

        Args:
            selection_bounds: The finished selection in logical pixels.
            actions: Enabled actions, in button order.
            screen_size: Logical screen size (width, height).
        """
        pass

    @abstractmethod
    def contains(self, pos: QPointF) -> bool:
        """Whether pos is anywhere on the toolbar."""
        pass

    @abstractmethod
    def button_at(self, pos: QPointF) -> Optional[str]:
        """The id of the action whose button is under pos, if any."""
        pass

    def unbind(self) -> None:
        """Forget the current layout."""
        pass


class ActionBar(Toolbar):
    """
    One row of square buttons anchored below the selection.

    The bar's right edge lines up with the selection's right edge. If the
    bar would run past the bottom of the screen it is placed above the
    selection instead, and it never starts left of x = 0.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self._bounds: Optional[QRectF] = None
        self._buttons: List[Tuple[str, QRectF]] = []

    @property
    def bounds(self) -> Optional[QRectF]:
        return self._bounds

    @property
    def button_ids(self) -> List[str]:
        return [button_id for button_id, _ in self._buttons]

    def button_rect(self, action_id: str) -> Optional[QRectF]:
        for button_id, rect in self._buttons:
            if button_id == action_id:
                return rect
        return None

    def bind(
        self,
        selection_bounds: QRectF,
        actions: Sequence[ActionInfo],
        screen_size: Tuple[float, float],
    ) -> None:
        count = len(actions)
        width = 2 * BAR_PADDING + count * BUTTON_SIZE + max(count - 1, 0) * BUTTON_SPACING
        height = 2 * BAR_PADDING + BUTTON_SIZE

        x = selection_bounds.right() - width
        y = selection_bounds.bottom() + TOOLBAR_MARGIN
        if y + height > screen_size[1]:
            # Not enough room below; flip above the selection
            y = selection_bounds.top() - TOOLBAR_MARGIN - height
        x = max(x, 0.0)
        y = max(y, 0.0)

        self._bounds = QRectF(x, y, width, height)
        self._buttons = []
        button_x = x + BAR_PADDING
        for info in actions:
            rect = QRectF(button_x, y + BAR_PADDING, BUTTON_SIZE, BUTTON_SIZE)
            self._buttons.append((info.id, rect))
            button_x += BUTTON_SIZE + BUTTON_SPACING

        self._logger.debug(
            f"Toolbar bound at ({x:.0f}, {y:.0f}) size {width:.0f}x{height:.0f} "
            f"with {count} buttons"
        )

    def unbind(self) -> None:
        self._bounds = None
        self._buttons = []

    def contains(self, pos: QPointF) -> bool:
        if self._bounds is None:
            return False
        return _rect_contains(self._bounds, pos)

    def button_at(self, pos: QPointF) -> Optional[str]:
        for button_id, rect in self._buttons:
            if _rect_contains(rect, pos):
                return button_id
        return None


def _rect_contains(rect: QRectF, pos: QPointF) -> bool:
    # Edges count as inside
    return rect.left() <= pos.x() <= rect.right() and rect.top() <= pos.y() <= rect.bottom()
