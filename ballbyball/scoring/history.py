"""
Undo history.

A bounded stack of deep MatchState snapshots, one pushed before every
mutation. Undo restores the most recent snapshot verbatim.
"""

from __future__ import annotations

import copy
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ballbyball.errors import ReasonCode, StateConflictError
from ballbyball.state.match_state import MatchState

logger = logging.getLogger(__name__)


@dataclass
class UndoSnapshot:
    match_id: str
    state: MatchState
    label: str = ""
    taken_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class UndoHistory:
    """Snapshot stack bounded to ``depth`` entries; the oldest are discarded."""

    def __init__(self, depth: int = 10):
        self._stack: deque[UndoSnapshot] = deque(maxlen=depth)

    def __len__(self) -> int:
        return len(self._stack)

    @property
    def depth(self) -> int:
        return self._stack.maxlen

    def push(self, state: MatchState, label: str = "") -> None:
        self._stack.append(UndoSnapshot(
            match_id=state.match_id,
            state=copy.deepcopy(state),
            label=label,
        ))

    def peek(self) -> Optional[UndoSnapshot]:
        return self._stack[-1] if self._stack else None

    def pop(self, active_match_id: str) -> MatchState:
        """Return the snapshot to restore for ``active_match_id``.

        Raises:
            StateConflictError: NothingToUndo when the stack is empty,
                StaleUndo when the top snapshot belongs to another match.
                The stack is left as it was in both cases.
        """
        if not self._stack:
            raise StateConflictError(ReasonCode.NOTHING_TO_UNDO, "Nothing to undo")
        top = self._stack[-1]
        if top.match_id != active_match_id:
            raise StateConflictError(
                ReasonCode.STALE_UNDO,
                f"Undo snapshot belongs to match {top.match_id}, "
                f"not the active match {active_match_id}",
                field="match_id",
            )
        self._stack.pop()
        logger.debug("Popped snapshot %r for match %s", top.label, top.match_id)
        return top.state

    def clear(self) -> None:
        self._stack.clear()
