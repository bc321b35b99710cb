from __future__ import annotations

from .schedule_models import HistoryAction


class HistoryStack:
    """
    Session-local undo/redo log of committed schedule edits.

    `undo` and `redo` only move actions between the two stacks and return
    the action to replay; applying it is the caller's job.
    """

    def __init__(self) -> None:
        self._past: list[HistoryAction] = []
        self._future: list[HistoryAction] = []

    def record_action(self, action: HistoryAction) -> None:
        self._past.append(action)
        # A new edit invalidates any redo path.
        self._future.clear()

    def undo(self) -> HistoryAction | None:
        """Move the latest action to the redo stack; replay its `previous_data`."""
        if not self._past:
            return None
        action = self._past.pop()
        self._future.append(action)
        return action

    def redo(self) -> HistoryAction | None:
        """Move the latest undone action back; replay its `new_data`."""
        if not self._future:
            return None
        action = self._future.pop()
        self._past.append(action)
        return action

    def clear_history(self) -> None:
        self._past.clear()
        self._future.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    @property
    def past(self) -> tuple[HistoryAction, ...]:
        return tuple(self._past)

    @property
    def future(self) -> tuple[HistoryAction, ...]:
        return tuple(self._future)
