"""
Undo/redo history for annotations, backed by QUndoStack.

Each edit pushes a SnapshotCommand carrying the annotations state from
before the edit. The state after the edit is captured the first time the
command is undone, so redo can bring it back.
"""

from typing import Optional

from PySide6.QtGui import QUndoCommand, QUndoStack

from snapmark.editor.annotations import Annotations, AnnotationsSnapshot
from snapmark.services.logging_service import get_logger

DEFAULT_HISTORY_LIMIT = 50


# ─── Undo Commands ────────────────────────────────────────────────────────


class SnapshotCommand(QUndoCommand):
    """Command that swaps the annotations between their before and after states."""

    def __init__(self, annotations: Annotations, before: AnnotationsSnapshot) -> None:
        super().__init__("Edit Annotations")
        self._annotations = annotations
        self._before = before
        self._after: Optional[AnnotationsSnapshot] = None
        self._applied = True

    def redo(self) -> None:
        # push() calls redo() once; the edit itself is already applied
        if self._applied:
            return
        if self._after is not None:
            self._annotations.restore(self._after)
        self._applied = True

    def undo(self) -> None:
        self._after = self._annotations.snapshot()
        self._annotations.restore(self._before)
        self._applied = False


# ─── History ──────────────────────────────────────────────────────────────


class History:
    """Bounded undo stack over an Annotations container."""

    def __init__(self, annotations: Annotations, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        """
        Initialize the history.

        Args:
            annotations: The container that undo and redo restore into.
            limit: Maximum number of undo steps kept. Older ones are dropped.
        """
        self._logger = get_logger(__name__)
        self._annotations = annotations
        self._undo_stack = QUndoStack()
        # The limit can only be set while the stack is empty
        self._undo_stack.setUndoLimit(max(int(limit), 1))

    @property
    def limit(self) -> int:
        return self._undo_stack.undoLimit()

    @property
    def undo_count(self) -> int:
        return self._undo_stack.index()

    @property
    def redo_count(self) -> int:
        return self._undo_stack.count() - self._undo_stack.index()

    def record(self, before: AnnotationsSnapshot) -> None:
        """
        Save the state from before an edit.

        Pushing discards any redoable steps, since a new edit starts a new
        branch.
        """
        self._undo_stack.push(SnapshotCommand(self._annotations, before))
        self._logger.debug(f"History recorded ({self.undo_count} undo steps)")

    def undo(self) -> bool:
        """Step back one edit. Returns False if there is nothing to undo."""
        if not self._undo_stack.canUndo():
            return False
        self._undo_stack.undo()
        return True

    def redo(self) -> bool:
        """Re-apply the last undone edit. Returns False if there is nothing to redo."""
        if not self._undo_stack.canRedo():
            return False
        self._undo_stack.redo()
        return True

    def can_undo(self) -> bool:
        return self._undo_stack.canUndo()

    def can_redo(self) -> bool:
        return self._undo_stack.canRedo()

    def clear(self) -> None:
        self._undo_stack.clear()
