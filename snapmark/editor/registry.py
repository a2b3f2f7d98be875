"""
Action registry for SnapMark.

Owns every action instance, tracks which ones are enabled on the toolbar
and routes clicks and drawing events to them. Only one drawing tool can be
active at a time.
"""

from typing import Dict, Iterable, List, Optional

from PySide6.QtCore import QPointF

from snapmark.core.errors import ActionFailure
from snapmark.editor.tools import (
    ActionContext,
    ActionInfo,
    ActionResult,
    DrawingContext,
    ToolBase,
    ToolCategory,
    default_actions,
)
from snapmark.services.logging_service import get_logger

# Order used by get_all(); unknown ids follow in registration order
DISPLAY_ORDER = (
    "rectangle",
    "ellipse",
    "polyline",
    "arrow",
    "annotate",
    "highlighter",
    "sequence",
    "undo",
    "redo",
    "cancel",
    "save",
    "copy",
)


class ActionRegistry:
    """Registry of toolbar actions."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self._actions: Dict[str, ToolBase] = {}
        self._enabled_ids: List[str] = []

    def register(self, action: ToolBase) -> None:
        """Add an action, replacing any action with the same id."""
        self._actions[action.id] = action

    def get(self, action_id: str) -> Optional[ToolBase]:
        return self._actions.get(action_id)

    # ─── Enabled Actions ──────────────────────────────────────────────────

    def enable(self, action_id: str) -> None:
        """Enable a registered action. Unknown ids are ignored with a warning."""
        if action_id not in self._actions:
            self._logger.warning(f"Cannot enable unknown action '{action_id}'")
            return
        if action_id not in self._enabled_ids:
            self._enabled_ids.append(action_id)

    def disable(self, action_id: str) -> None:
        if action_id in self._enabled_ids:
            self._enabled_ids.remove(action_id)

    def enable_all(self, action_ids: Iterable[str]) -> None:
        for action_id in action_ids:
            self.enable(action_id)

    def is_enabled(self, action_id: str) -> bool:
        return action_id in self._enabled_ids

    @property
    def enabled_ids(self) -> List[str]:
        return list(self._enabled_ids)

    def get_enabled(self) -> List[ActionInfo]:
        """Info for enabled actions, in the order they were enabled."""
        return [self._actions[i].info() for i in self._enabled_ids]

    def get_all(self) -> List[ActionInfo]:
        """Info for every registered action, in display order."""
        ordered = [self._actions[i].info() for i in DISPLAY_ORDER if i in self._actions]
        ordered.extend(
            action.info()
            for action_id, action in self._actions.items()
            if action_id not in DISPLAY_ORDER
        )
        return ordered

    # ─── Execution ────────────────────────────────────────────────────────

    def execute(self, action_id: str, ctx: ActionContext) -> ActionResult:
        """
        Run an action's click handler.

        Activating a drawing tool deactivates every other tool of the same
        category. Errors raised by the action are returned as failures.

        Args:
            action_id: The action to run.
            ctx: Session state passed to the action.

        Returns:
            The action's result, or a failure for unknown ids and errors.
        """
        action = self._actions.get(action_id)
        if action is None:
            return ActionResult.failure(f"Action not found: {action_id}")

        try:
            result = action.on_click(ctx)
        except ActionFailure as e:
            self._logger.warning(f"Action '{action_id}' failed: {e.message}")
            return ActionResult.failure(e.message)
        except Exception as e:
            self._logger.exception(f"Action '{action_id}' raised an error")
            return ActionResult.failure(f"{action_id}: {e}")

        if action.category != ToolCategory.ACTION and action.is_active:
            self._deactivate_category_except(action.category, action_id)

        return result

    def _deactivate_category_except(self, category: ToolCategory, except_id: str) -> None:
        for action_id, action in self._actions.items():
            if action_id != except_id and action.category == category:
                action.set_active(False)

    def deactivate_all(self) -> None:
        for action in self._actions.values():
            action.set_active(False)

    # ─── Drawing Tools ────────────────────────────────────────────────────

    def get_active_tool(self, category: ToolCategory = ToolCategory.DRAWING) -> Optional[str]:
        for action_id, action in self._actions.items():
            if action.category == category and action.is_active:
                return action_id
        return None

    def is_tool_active(self, action_id: str) -> bool:
        action = self._actions.get(action_id)
        return action is not None and action.is_active

    def has_active_drawing_tool(self) -> bool:
        return self._active_drawing_tool() is not None

    def _active_drawing_tool(self) -> Optional[ToolBase]:
        active_id = self.get_active_tool(ToolCategory.DRAWING)
        if active_id is None:
            return None
        action = self._actions[active_id]
        return action if action.is_drawing_tool else None

    def on_draw_start(self, pos: QPointF, ctx: DrawingContext) -> bool:
        """Forward a press to the active drawing tool. Returns False if there is none."""
        tool = self._active_drawing_tool()
        if tool is None:
            return False
        tool.on_draw_start(pos, ctx)
        return True

    def on_draw_move(self, pos: QPointF, ctx: DrawingContext) -> bool:
        tool = self._active_drawing_tool()
        if tool is None:
            return False
        tool.on_draw_move(pos, ctx)
        return True

    def on_draw_end(self, ctx: DrawingContext) -> bool:
        tool = self._active_drawing_tool()
        if tool is None:
            return False
        tool.on_draw_end(ctx)
        return True


def create_default_registry(
    enabled_actions: Optional[Iterable[str]] = None,
    save_folder: Optional[str] = None,
) -> ActionRegistry:
    """
    Build a registry holding every built-in action.

    Args:
        enabled_actions: Ids to enable, in toolbar order. Defaults to all
            built-in actions in display order.
        save_folder: Folder used by the save action.

    Returns:
        The populated registry.
    """
    registry = ActionRegistry()
    for action in default_actions(save_folder):
        registry.register(action)

    registry.enable_all(DISPLAY_ORDER if enabled_actions is None else enabled_actions)
    return registry
