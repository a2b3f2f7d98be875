"""
Screenshot mode for SnapMark.

ScreenshotMode drives one capture session: the user drags out a selection
over a frozen screenshot, a toolbar appears next to it, and the toolbar's
actions annotate, save or copy the selected region.

The states:

    IDLE --press--> SELECTING --release (> 5x5)--> TOOLBAR_VISIBLE
      ^                 |                              |
      +--release (small)+<----click outside / cancel---+

Escape moves any state to EXITING, as does an action returning EXIT.

Input arrives as logical positions through handle_mouse_press(),
handle_mouse_move(), handle_mouse_release() and handle_key_press(). The UI
layer is responsible for converting Qt events and for painting.
"""

from enum import Enum, auto
from typing import Callable, Iterable, Optional

from PySide6.QtCore import QPointF, QRectF, Qt

from snapmark.core.errors import CaptureUnavailable
from snapmark.core.image_buffer import CapturedScreen, ScreenCaptureBuffer
from snapmark.core.selection import HandlePosition, Selection
from snapmark.core.toolbar import ActionBar, Toolbar
from snapmark.editor.annotations import (
    DEFAULT_HIGHLIGHTER_COLOR,
    DEFAULT_MARKER_RADIUS,
    Annotations,
    StrokeSettings,
)
from snapmark.editor.history import DEFAULT_HISTORY_LIMIT, History
from snapmark.editor.registry import ActionRegistry, create_default_registry
from snapmark.editor.tools import (
    ActionContext,
    ActionResult,
    DrawingContext,
    ResultKind,
)
from snapmark.services.config_service import (
    DEFAULT_CONFIG,
    DEFAULT_ENABLED_ACTIONS,
    ConfigService,
)
from snapmark.services.logging_service import get_logger

# A released selection must be larger than this in both dimensions (logical px)
MIN_SELECTION_SIZE = 5.0

CANCEL_ACTION_ID = "cancel"


class ModeState(Enum):
    """States of a capture session."""
    IDLE = auto()
    SELECTING = auto()
    TOOLBAR_VISIBLE = auto()
    EXITING = auto()


class ScreenshotMode:
    """
    State machine for one capture session.

    The screenshot is taken once, at construction. Everything after that
    works on the frozen image.
    """

    def __init__(
        self,
        capture: Callable[[], CapturedScreen],
        enabled_actions: Optional[Iterable[str]] = None,
        *,
        config: Optional[ConfigService] = None,
        registry: Optional[ActionRegistry] = None,
        toolbar: Optional[Toolbar] = None,
    ) -> None:
        """
        Capture the screen and set up the session.

        Args:
            capture: Returns the captured screen, e.g. capture_primary_screen.
            enabled_actions: Toolbar action ids, in order. Defaults to the
                configured list.
            config: Settings source. Built-in defaults are used without one.
            registry: Action registry. A default one is built if omitted.
            toolbar: Toolbar layout. Defaults to an ActionBar.

        Raises:
            CaptureUnavailable: If the capture fails or returns no pixels.
        """
        self._logger = get_logger(__name__)

        self._screenshot = self._capture(capture)
        self._scale_factor = self._screenshot.scale_factor

        if config is not None:
            self._settings = config.stroke_settings()
            self._highlighter_color = config.highlighter_color
            self._marker_radius = config.marker_radius
            history_limit = config.history_limit
            save_folder = config.default_save_folder
            configured_actions = config.enabled_actions
        else:
            self._settings = StrokeSettings()
            self._highlighter_color = DEFAULT_HIGHLIGHTER_COLOR
            self._marker_radius = DEFAULT_MARKER_RADIUS
            history_limit = DEFAULT_HISTORY_LIMIT
            save_folder = DEFAULT_CONFIG["default_save_folder"]
            configured_actions = list(DEFAULT_ENABLED_ACTIONS)

        actions = list(enabled_actions) if enabled_actions is not None else configured_actions
        if registry is None:
            registry = create_default_registry(actions, save_folder)
        elif enabled_actions is not None:
            registry.enable_all(actions)
        self._registry = registry
        self._save_folder = save_folder

        self._toolbar = toolbar if toolbar is not None else ActionBar()
        self._selection = Selection()
        self._annotations = Annotations()
        if config is not None:
            self._annotations.set_label_style(config.marker_label_style)
        self._history = History(self._annotations, history_limit)

        self._state = ModeState.IDLE
        self._dragging_handle: Optional[HandlePosition] = None

        self._logger.info(
            f"Screenshot mode started: {self._screenshot.buffer.width}x"
            f"{self._screenshot.buffer.height} at scale {self._scale_factor}"
        )

    def _capture(self, capture: Callable[[], CapturedScreen]) -> CapturedScreen:
        try:
            screenshot = capture()
        except CaptureUnavailable:
            self._logger.error("Screen capture unavailable")
            raise
        except Exception as e:
            self._logger.error(f"Screen capture failed: {e}")
            raise CaptureUnavailable(f"Screen capture failed: {e}") from e

        if screenshot is None or screenshot.buffer.is_empty:
            self._logger.error("Screen capture returned no image")
            raise CaptureUnavailable("Screen capture returned no image")
        return screenshot

    # ─── Accessors ────────────────────────────────────────────────────────

    @property
    def state(self) -> ModeState:
        return self._state

    def should_exit(self) -> bool:
        return self._state == ModeState.EXITING

    @property
    def screenshot(self) -> CapturedScreen:
        return self._screenshot

    @property
    def scale_factor(self) -> float:
        return self._scale_factor

    @property
    def selection(self) -> Selection:
        return self._selection

    def selection_bounds(self) -> Optional[QRectF]:
        return self._selection.bounds()

    @property
    def annotations(self) -> Annotations:
        return self._annotations

    @property
    def history(self) -> History:
        return self._history

    @property
    def registry(self) -> ActionRegistry:
        return self._registry

    @property
    def toolbar(self) -> Toolbar:
        return self._toolbar

    @property
    def settings(self) -> StrokeSettings:
        """Pen used for new annotations. Mutable by the UI."""
        return self._settings

    def composite(self) -> Optional[ScreenCaptureBuffer]:
        """The selected region with annotations, or None without a selection."""
        return self._action_context().composited_region()

    # ─── State Transitions ────────────────────────────────────────────────

    def _set_state(self, state: ModeState) -> None:
        if state != self._state:
            self._logger.debug(f"State {self._state.name} -> {state.name}")
            self._state = state

    def _reset_to_idle(self) -> None:
        self._selection.reset()
        self._toolbar.unbind()
        self._annotations.cancel_current()
        self._registry.deactivate_all()
        self._dragging_handle = None
        self._set_state(ModeState.IDLE)

    def _bind_toolbar(self) -> None:
        bounds = self._selection.bounds()
        if bounds is None:
            return
        self._toolbar.bind(
            bounds, self._registry.get_enabled(), self._screenshot.logical_size
        )

    # ─── Input Handling ───────────────────────────────────────────────────

    def handle_mouse_press(
        self,
        pos: QPointF,
        button: Qt.MouseButton = Qt.MouseButton.LeftButton,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> Optional[ActionResult]:
        """
        Handle a mouse press at a logical position.

        Returns:
            The result of a toolbar action if one was clicked, else None.
        """
        if button != Qt.MouseButton.LeftButton:
            return None

        if self._state == ModeState.IDLE:
            self._selection.start(pos)
            self._set_state(ModeState.SELECTING)
            return None

        if self._state != ModeState.TOOLBAR_VISIBLE:
            return None

        handle = self._selection.handle_at(pos)
        if handle is not None and not self._annotations.is_any_drawing():
            self._dragging_handle = handle
            return None

        action_id = self._toolbar.button_at(pos)
        if action_id is not None:
            return self.execute_action(action_id)

        inside_selection = self._selection.contains(pos)

        if self._registry.has_active_drawing_tool() and inside_selection:
            if self._annotations.is_any_drawing():
                return None
            self._history.record(self._annotations.snapshot())
            self._registry.on_draw_start(pos, self._drawing_context(modifiers))
            return None

        if not inside_selection and not self._toolbar.contains(pos):
            self._reset_to_idle()
        return None

    def handle_mouse_move(
        self,
        pos: QPointF,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        """Handle pointer movement at a logical position."""
        if self._state == ModeState.SELECTING:
            self._selection.update(pos)
        elif self._state == ModeState.TOOLBAR_VISIBLE:
            if self._dragging_handle is not None:
                self._selection.resize(self._dragging_handle, pos)
                return
            if self._registry.has_active_drawing_tool():
                self._registry.on_draw_move(pos, self._drawing_context(modifiers))

    def handle_mouse_release(
        self,
        pos: QPointF,
        button: Qt.MouseButton = Qt.MouseButton.LeftButton,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        """Handle a mouse release at a logical position."""
        if button != Qt.MouseButton.LeftButton:
            return

        if self._state == ModeState.SELECTING:
            self._selection.update(pos)
            self._selection.finish()
            size = self._selection.size()
            if size is not None and size[0] > MIN_SELECTION_SIZE and size[1] > MIN_SELECTION_SIZE:
                self._bind_toolbar()
                self._set_state(ModeState.TOOLBAR_VISIBLE)
            else:
                self._logger.debug("Selection too small, discarded")
                self._reset_to_idle()
            return

        if self._state != ModeState.TOOLBAR_VISIBLE:
            return

        if self._dragging_handle is not None:
            self._dragging_handle = None
            self._bind_toolbar()
            return

        if self._registry.has_active_drawing_tool():
            self._registry.on_draw_end(self._drawing_context(modifiers))

    def handle_key_press(self, key: Qt.Key) -> Optional[ActionResult]:
        """Escape ends the session from any state."""
        if key == Qt.Key.Key_Escape:
            self._annotations.cancel_current()
            self._set_state(ModeState.EXITING)
            return ActionResult.exit()
        return None

    # ─── Actions ──────────────────────────────────────────────────────────

    def execute_action(self, action_id: str) -> ActionResult:
        """
        Run a toolbar action and apply its result to the session.

        Failures are logged and leave the session unchanged.
        """
        if not self._registry.is_enabled(action_id):
            result = ActionResult.failure(f"Action not enabled: {action_id}")
            self._logger.warning(result.message)
            return result

        result = self._registry.execute(action_id, self._action_context())

        if result.kind == ResultKind.EXIT:
            self._set_state(ModeState.EXITING)
        elif result.kind == ResultKind.UNDO:
            self.undo()
        elif result.kind == ResultKind.REDO:
            self.redo()
        elif result.kind == ResultKind.CONTINUE:
            if action_id == CANCEL_ACTION_ID:
                self._reset_to_idle()
        elif result.kind == ResultKind.FAILURE:
            self._logger.warning(f"Action '{action_id}' failed: {result.message}")

        return result

    def undo(self) -> bool:
        """Restore the state before the last edit. Returns False if there is none."""
        if not self._history.undo():
            return False
        self._logger.info("Undo performed")
        return True

    def redo(self) -> bool:
        if not self._history.redo():
            return False
        self._logger.info("Redo performed")
        return True

    # ─── Contexts ─────────────────────────────────────────────────────────

    def _action_context(self) -> ActionContext:
        return ActionContext(
            selection_physical=self._selection.bounds_physical(self._scale_factor),
            selection_logical=self._selection.bounds(),
            screenshot=self._screenshot.buffer,
            annotations=self._annotations,
            scale_factor=self._scale_factor,
            save_folder=self._save_folder,
        )

    def _drawing_context(self, modifiers: Qt.KeyboardModifier) -> DrawingContext:
        return DrawingContext(
            annotations=self._annotations,
            settings=self._settings,
            selection_bounds=self._selection.bounds(),
            scale_factor=self._scale_factor,
            snap=bool(modifiers & Qt.KeyboardModifier.ShiftModifier),
            highlighter_color=self._highlighter_color,
            marker_radius=self._marker_radius,
        )
