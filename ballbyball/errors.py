"""
Error types raised by the scoring engine.

Every rejection carries a machine-checkable ``code`` and a human-readable
message. Validation errors are always raised before any state is touched,
so a rejected call leaves the match exactly as it was.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ReasonCode(str, Enum):
    # Validation
    INVALID_LINEUP = "InvalidLineup"
    OVERS_EXCEEDED = "OversExceeded"
    DISALLOWED_FREE_HIT_DISMISSAL = "DisallowedFreeHitDismissal"
    DUPLICATE_STRIKER_NON_STRIKER = "DuplicateStrikerNonStriker"
    MISSING_DISMISSED_PLAYER = "MissingDismissedPlayer"
    INVALID_DELIVERY = "InvalidDelivery"
    DISALLOWED_DISMISSAL = "DisallowedDismissal"
    CONSECUTIVE_OVER = "ConsecutiveOver"
    MATCH_NOT_LIVE = "MatchNotLive"
    # State conflicts
    STALE_UNDO = "StaleUndo"
    NOTHING_TO_UNDO = "NothingToUndo"


class ScoringError(Exception):
    """Base class for every error raised by the engine."""

    def __init__(
        self,
        code: ReasonCode,
        message: str,
        field: Optional[str] = None,
        details: Optional[list[str]] = None,
    ):
        self.code = code
        self.message = message
        self.field = field
        self.details = details or []
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "field": self.field,
            "details": list(self.details),
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


class ValidationError(ScoringError):
    """The requested mutation breaks a scoring rule and was not applied."""


class StateConflictError(ScoringError):
    """The request does not match the engine's current match or history."""


class PersistenceError(Exception):
    """Raised by the enclosing application's storage layer.

    The engine never raises this itself; it is declared here so callers
    can catch storage failures alongside scoring errors.
    """
