"""
Action framework and default actions for SnapMark.

Every toolbar button is an action. Actions come in two categories:

- Drawing tools toggle on and off when clicked. While one is active, mouse
  input inside the selection is forwarded to its on_draw_* hooks, which
  create annotations through DrawingContext.
- Plain actions run once when clicked and report an ActionResult.

Default actions:
- RectangleTool, EllipseTool: Outlined shapes
- PolylineTool: Connected line segments
- ArrowTool: Arrows, with optional 45° snapping
- AnnotateTool: Freehand strokes
- HighlighterTool: Semi-transparent rectangles
- SequenceTool: Numbered markers
- UndoAction, RedoAction: History navigation
- CancelAction: Drop the current selection
- SaveAction, CopyAction: Export the composited image and exit
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import QPointF, QRectF

from snapmark.core.errors import ActionFailure
from snapmark.core.geometry import PhysicalRect
from snapmark.core.image_buffer import ScreenCaptureBuffer
from snapmark.editor.annotations import (
    DEFAULT_HIGHLIGHTER_COLOR,
    DEFAULT_MARKER_RADIUS,
    Annotations,
    Color,
    FillMode,
    ShapeType,
    StrokeSettings,
)
from snapmark.editor.compositor import composite_annotations
from snapmark.services.logging_service import get_logger


# ─── Results & Contexts ───────────────────────────────────────────────────


class ResultKind(Enum):
    CONTINUE = auto()
    EXIT = auto()
    SUCCESS = auto()
    FAILURE = auto()
    UNDO = auto()
    REDO = auto()


@dataclass(frozen=True)
class ActionResult:
    """
    Outcome of clicking an action.

    CONTINUE keeps the session going, EXIT ends it, FAILURE carries a
    message and leaves the session untouched, UNDO/REDO ask the session to
    step through its history.
    """
    kind: ResultKind
    message: str = ""

    @classmethod
    def continue_(cls) -> "ActionResult":
        return cls(ResultKind.CONTINUE)

    @classmethod
    def exit(cls) -> "ActionResult":
        return cls(ResultKind.EXIT)

    @classmethod
    def success(cls) -> "ActionResult":
        return cls(ResultKind.SUCCESS)

    @classmethod
    def failure(cls, message: str) -> "ActionResult":
        return cls(ResultKind.FAILURE, message)

    @classmethod
    def undo(cls) -> "ActionResult":
        return cls(ResultKind.UNDO)

    @classmethod
    def redo(cls) -> "ActionResult":
        return cls(ResultKind.REDO)

    @property
    def is_failure(self) -> bool:
        return self.kind == ResultKind.FAILURE


@dataclass
class ActionContext:
    """Everything a clicked action may need from the capture session."""
    selection_physical: Optional[PhysicalRect]
    selection_logical: Optional[QRectF]
    screenshot: Optional[ScreenCaptureBuffer]
    annotations: Optional[Annotations]
    scale_factor: float = 1.0
    save_folder: Optional[str] = None

    def selected_region(self) -> Optional[ScreenCaptureBuffer]:
        """The plain crop of the selection, or None without a usable selection."""
        if self.selection_physical is None or self.screenshot is None:
            return None
        rect = self.selection_physical
        if rect.width == 0 or rect.height == 0:
            return None
        return self.screenshot.crop(rect.x1, rect.y1, rect.width, rect.height)

    def composited_region(self) -> Optional[ScreenCaptureBuffer]:
        """
        The crop of the selection with all annotations painted on.

        Returns:
            The composited buffer, the plain crop when there are no
            annotations, or None without a usable selection.
        """
        if (
            self.selection_physical is None
            or self.selection_logical is None
            or self.screenshot is None
        ):
            return None
        if self.annotations is None or self.annotations.is_empty():
            return self.selected_region()
        return composite_annotations(
            self.screenshot,
            self.annotations,
            self.selection_physical,
            self.selection_logical.topLeft(),
            self.scale_factor,
        )


@dataclass
class DrawingContext:
    """State handed to drawing tools for each pointer event."""
    annotations: Annotations
    settings: StrokeSettings
    selection_bounds: Optional[QRectF] = None
    scale_factor: float = 1.0
    snap: bool = False
    highlighter_color: Color = DEFAULT_HIGHLIGHTER_COLOR
    marker_radius: float = DEFAULT_MARKER_RADIUS

    def is_in_bounds(self, pos: QPointF) -> bool:
        if self.selection_bounds is None:
            return True
        rect = self.selection_bounds
        return rect.left() <= pos.x() <= rect.right() and rect.top() <= pos.y() <= rect.bottom()

    def clamp_to_bounds(self, pos: QPointF) -> QPointF:
        """Clamp pos into the selection. Without a selection, pos is returned as-is."""
        if self.selection_bounds is None:
            return QPointF(pos)
        rect = self.selection_bounds
        return QPointF(
            min(max(pos.x(), rect.left()), rect.right()),
            min(max(pos.y(), rect.top()), rect.bottom()),
        )


class ToolCategory(Enum):
    DRAWING = auto()
    ACTION = auto()


@dataclass(frozen=True)
class ActionInfo:
    """Display data for one toolbar button."""
    id: str
    name: str
    category: ToolCategory = ToolCategory.ACTION


# ─── Base Classes ─────────────────────────────────────────────────────────


class ToolBase(ABC):
    """
    Base class for all toolbar actions.

    Plain actions only implement on_click(). Drawing tools also receive
    pointer events through the on_draw_* hooks while they are active.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    @property
    @abstractmethod
    def id(self) -> str:
        """Stable identifier used by the registry and configuration."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable name."""
        pass

    @property
    def category(self) -> ToolCategory:
        return ToolCategory.ACTION

    @property
    def is_drawing_tool(self) -> bool:
        return False

    @property
    def is_active(self) -> bool:
        return False

    def set_active(self, active: bool) -> None:
        pass

    @abstractmethod
    def on_click(self, ctx: ActionContext) -> ActionResult:
        """
        Handle a click on the action's toolbar button.

        Args:
            ctx: Snapshot of the session state.

        Returns:
            The outcome. Raising ActionFailure is equivalent to returning
            ActionResult.failure().
        """
        pass

    def on_draw_start(self, pos: QPointF, ctx: DrawingContext) -> None:
        """Handle a press inside the selection."""
        pass

    def on_draw_move(self, pos: QPointF, ctx: DrawingContext) -> None:
        """Handle pointer movement while the tool is active."""
        pass

    def on_draw_end(self, ctx: DrawingContext) -> None:
        """Handle the release that ends a drawing gesture."""
        pass

    def info(self) -> ActionInfo:
        return ActionInfo(self.id, self.name, self.category)


class DrawingToolBase(ToolBase):
    """
    Base class for tools that create annotations by dragging.

    Clicking the toolbar button toggles the tool. Subclasses implement
    _start() and may override _move() and _end().
    """

    def __init__(self) -> None:
        super().__init__()
        self._active = False
        self._is_drawing = False

    @property
    def category(self) -> ToolCategory:
        return ToolCategory.DRAWING

    @property
    def is_drawing_tool(self) -> bool:
        return True

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def is_drawing(self) -> bool:
        return self._is_drawing

    def set_active(self, active: bool) -> None:
        self._active = active
        if not active:
            self._is_drawing = False

    def on_click(self, ctx: ActionContext) -> ActionResult:
        self.set_active(not self._active)
        self._logger.debug(f"Tool '{self.id}' {'activated' if self._active else 'deactivated'}")
        return ActionResult.continue_()

    def on_draw_start(self, pos: QPointF, ctx: DrawingContext) -> None:
        self._start(ctx.clamp_to_bounds(pos), ctx)
        self._is_drawing = True

    def on_draw_move(self, pos: QPointF, ctx: DrawingContext) -> None:
        if not self._is_drawing:
            return
        self._move(ctx.clamp_to_bounds(pos), ctx)

    def on_draw_end(self, ctx: DrawingContext) -> None:
        if not self._is_drawing:
            return
        self._end(ctx)
        self._is_drawing = False

    @abstractmethod
    def _start(self, pos: QPointF, ctx: DrawingContext) -> None:
        pass

    def _move(self, pos: QPointF, ctx: DrawingContext) -> None:
        ctx.annotations.update_preview(pos)

    def _end(self, ctx: DrawingContext) -> None:
        ctx.annotations.finish()


# ─── Drawing Tools ────────────────────────────────────────────────────────


class ShapeTool(DrawingToolBase):
    """Draws a shape_type shape from a dragged bounding box."""

    shape_type: ShapeType

    def __init__(self, fill_mode: FillMode = FillMode.OUTLINE) -> None:
        super().__init__()
        self.fill_mode = fill_mode

    def _start(self, pos: QPointF, ctx: DrawingContext) -> None:
        ctx.annotations.start_shape(pos, self.shape_type, self.fill_mode, ctx.settings)


class RectangleTool(ShapeTool):
    id = "rectangle"
    name = "Rectangle"
    shape_type = ShapeType.RECTANGLE


class EllipseTool(ShapeTool):
    id = "ellipse"
    name = "Ellipse"
    shape_type = ShapeType.ELLIPSE


class PolylineTool(DrawingToolBase):
    """
    Draws connected segments.

    A press opens the polyline, dragging moves its trailing vertex and the
    release commits it.
    """

    id = "polyline"
    name = "Polyline"

    def _start(self, pos: QPointF, ctx: DrawingContext) -> None:
        ctx.annotations.start_polyline(pos, ctx.settings)


class ArrowTool(DrawingToolBase):
    """Draws arrows; holding shift snaps them to 45° increments."""

    id = "arrow"
    name = "Arrow"

    def _start(self, pos: QPointF, ctx: DrawingContext) -> None:
        ctx.annotations.start_arrow(pos, ctx.settings)

    def _move(self, pos: QPointF, ctx: DrawingContext) -> None:
        ctx.annotations.update_preview(pos, snap=ctx.snap)


class AnnotateTool(DrawingToolBase):
    """Freehand pen."""

    id = "annotate"
    name = "Annotate"

    def _start(self, pos: QPointF, ctx: DrawingContext) -> None:
        ctx.annotations.start_stroke(pos, ctx.settings)


class HighlighterTool(DrawingToolBase):
    id = "highlighter"
    name = "Highlighter"

    def _start(self, pos: QPointF, ctx: DrawingContext) -> None:
        ctx.annotations.start_highlighter(pos, ctx.highlighter_color)


class SequenceTool(DrawingToolBase):
    """Places a numbered marker on every press. Nothing happens on drag."""

    id = "sequence"
    name = "Sequence"

    def _start(self, pos: QPointF, ctx: DrawingContext) -> None:
        ctx.annotations.add_marker(pos, ctx.settings.color, ctx.marker_radius)

    def _move(self, pos: QPointF, ctx: DrawingContext) -> None:
        pass

    def _end(self, ctx: DrawingContext) -> None:
        pass


# ─── Plain Actions ────────────────────────────────────────────────────────


class UndoAction(ToolBase):
    id = "undo"
    name = "Undo"

    def on_click(self, ctx: ActionContext) -> ActionResult:
        return ActionResult.undo()


class RedoAction(ToolBase):
    id = "redo"
    name = "Redo"

    def on_click(self, ctx: ActionContext) -> ActionResult:
        return ActionResult.redo()


class CancelAction(ToolBase):
    """Drops the selection. The session resets itself on this action's result."""

    id = "cancel"
    name = "Cancel"

    def on_click(self, ctx: ActionContext) -> ActionResult:
        return ActionResult.continue_()


class SaveAction(ToolBase):
    """Saves the composited selection as a PNG and ends the session."""

    id = "save"
    name = "Save"

    def __init__(self, default_folder: Optional[str] = None) -> None:
        super().__init__()
        self._default_folder = default_folder

    def on_click(self, ctx: ActionContext) -> ActionResult:
        # Qt image support is only loaded when something is exported
        from snapmark.core.export_service import save_buffer

        region = ctx.composited_region()
        if region is None or region.is_empty:
            raise ActionFailure("Nothing selected to save")

        folder = ctx.save_folder or self._default_folder
        if not folder:
            raise ActionFailure("No save folder configured")

        path = save_buffer(region, Path(folder).expanduser())
        self._logger.info(f"Screenshot saved to {path}")
        return ActionResult.exit()


class CopyAction(ToolBase):
    """Copies the composited selection to the clipboard and ends the session."""

    id = "copy"
    name = "Copy"

    def on_click(self, ctx: ActionContext) -> ActionResult:
        from snapmark.core.export_service import copy_buffer_to_clipboard

        region = ctx.composited_region()
        if region is None or region.is_empty:
            raise ActionFailure("Nothing selected to copy")

        copy_buffer_to_clipboard(region)
        self._logger.info(f"Copied {region.width}x{region.height} image to clipboard")
        return ActionResult.exit()


def default_actions(save_folder: Optional[str] = None) -> List[ToolBase]:
    """Create one instance of every built-in action, in display order."""
    return [
        RectangleTool(),
        EllipseTool(),
        PolylineTool(),
        ArrowTool(),
        AnnotateTool(),
        HighlighterTool(),
        SequenceTool(),
        UndoAction(),
        RedoAction(),
        CancelAction(),
        SaveAction(save_folder),
        CopyAction(),
    ]
