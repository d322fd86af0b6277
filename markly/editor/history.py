"""
Snapshot-based undo/redo for the Markly editor.

Every entry on either stack is a full copy of the shape list. Shapes are
cloned on the way in and again on the way out, so nothing stored here is
ever the same object as a live shape or an entry on the other stack.
"""

from collections import deque
from typing import Deque, List, Optional, Sequence

from markly.editor.shapes import ShapeBase
from markly.services.logging_service import get_logger

DEFAULT_HISTORY_LIMIT = 20

Snapshot = List[ShapeBase]


def clone_shapes(shapes: Sequence[ShapeBase]) -> Snapshot:
    """Deep-copy a shape sequence."""
    return [shape.clone() for shape in shapes]


class HistoryManager:
    """
    Bounded linear undo/redo history.

    The caller pushes the current state *before* it mutates the scene, so
    undo restores the state immediately preceding the action. Only the undo
    stack is bounded; the oldest snapshot is dropped once `limit` is
    exceeded.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError(f"History limit must be at least 1, got {limit}")

        self._logger = get_logger(__name__)
        self._limit = limit
        self._undo_stack: Deque[Snapshot] = deque(maxlen=limit)
        self._redo_stack: List[Snapshot] = []

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def undo_count(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_count(self) -> int:
        return len(self._redo_stack)

    def push(self, state: Sequence[ShapeBase]) -> None:
        """
        Record a snapshot of `state` and invalidate forward history.

        Args:
            state: The live shape list, about to be mutated.
        """
        if len(self._undo_stack) == self._limit:
            self._logger.debug("History full, dropping oldest snapshot")
        self._undo_stack.append(clone_shapes(state))
        self._redo_stack.clear()
        self._logger.debug(
            f"Snapshot pushed ({len(state)} shapes, {len(self._undo_stack)} undo levels)"
        )

    def undo(self, current: Sequence[ShapeBase]) -> Optional[Snapshot]:
        """
        Step back one snapshot.

        Args:
            current: The live shape list; saved so redo can restore it.

        Returns:
            A fresh copy of the previous state, or None if there is nothing
            to undo (the caller must leave its scene untouched).
        """
        if not self._undo_stack:
            return None

        self._redo_stack.append(clone_shapes(current))
        previous = self._undo_stack.pop()
        self._logger.debug(f"Undo ({len(self._undo_stack)} levels left)")
        return clone_shapes(previous)

    def redo(self, current: Sequence[ShapeBase]) -> Optional[Snapshot]:
        """
        Step forward one snapshot.

        Returns:
            A fresh copy of the next state, or None if there is nothing to
            redo.
        """
        if not self._redo_stack:
            return None

        self._undo_stack.append(clone_shapes(current))
        following = self._redo_stack.pop()
        self._logger.debug(f"Redo ({len(self._redo_stack)} levels left)")
        return clone_shapes(following)

    def clear(self) -> None:
        """Drop all undo and redo history."""
        self._undo_stack.clear()
        self._redo_stack.clear()
