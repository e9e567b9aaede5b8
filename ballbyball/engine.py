"""
Scoring engine.

``apply_delivery`` and the selection functions are pure reducers: they take
a MatchState and return a new one, raising a ValidationError (and leaving
the input untouched) when the request breaks a rule. ``ScoringEngine``
wraps them for one live match: it holds the current state, brackets every
mutation with an undo snapshot and notifies subscribers after each
successful change. Persistence and transport belong to the caller.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from ballbyball.config import ScoringConfig
from ballbyball.data.ball_event import BallEvent, DeliveryEvent, MatchInfo
from ballbyball.errors import ReasonCode, ScoringError, ValidationError
from ballbyball.scoring import transitions
from ballbyball.scoring.history import UndoHistory
from ballbyball.scoring.processor import process_ball
from ballbyball.state.match_state import LineupEntry, MatchPhase, MatchState, PlayerStatus

if TYPE_CHECKING:
    from ballbyball.data.delivery_loader import DeliveryRow

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    state: MatchState
    ball: BallEvent
    over_complete: bool
    innings_closed: Optional[transitions.ClosureReason] = None


# ----------------------------------------------------------------------
# Reducers
# ----------------------------------------------------------------------

def apply_delivery(
    state: MatchState,
    event: DeliveryEvent,
    config: Optional[ScoringConfig] = None,
) -> DeliveryResult:
    """(MatchState, DeliveryEvent) -> next MatchState plus the emitted ball."""
    outcome = process_ball(state, event, config)
    closed = transitions.advance(outcome.state)
    return DeliveryResult(
        state=outcome.state,
        ball=outcome.ball,
        over_complete=outcome.over_complete,
        innings_closed=closed,
    )


def _batter(state: MatchState, player_id: str, field: str) -> LineupEntry:
    entry = state.batting_lineup.get(player_id)
    if entry is None:
        raise ValidationError(
            ReasonCode.INVALID_LINEUP,
            f"{player_id} is not in the {state.batting_team} XI",
            field=field,
        )
    if entry.on_crease or entry.status not in (PlayerStatus.PENDING, PlayerStatus.RETIRED):
        raise ValidationError(
            ReasonCode.INVALID_LINEUP,
            f"{entry.name} is {entry.status.value} and cannot come in to bat",
            field=field,
        )
    return entry


def _bowler(state: MatchState, player_id: str) -> LineupEntry:
    entry = state.bowling_lineup.get(player_id)
    if entry is None:
        raise ValidationError(
            ReasonCode.INVALID_LINEUP,
            f"{player_id} is not in the {state.bowling_team} XI",
            field="bowler_id",
        )
    if player_id == state.last_over_bowler_id:
        raise ValidationError(
            ReasonCode.CONSECUTIVE_OVER,
            f"{entry.name} bowled the previous over and cannot bowl consecutive overs",
            field="bowler_id",
        )
    return entry


def _take_guard(new: MatchState, player_id: str) -> None:
    entry = new.batting_lineup[player_id]
    entry.status = PlayerStatus.BATTING
    entry.on_crease = True
    entry.dismissal = None


def _set_bowler(new: MatchState, player_id: str) -> None:
    for entry in new.bowling_lineup.values():
        entry.bowling_active = entry.player_id == player_id
    new.bowler_id = player_id
    new.pending_bowler_change = False


def _sync_strike(new: MatchState) -> None:
    for entry in new.batting_lineup.values():
        entry.on_strike = entry.on_crease and entry.player_id == new.striker_id


def start_innings(
    state: MatchState,
    striker_id: str,
    non_striker_id: str,
    bowler_id: str,
) -> MatchState:
    """Put the opening pair and opening bowler on the field.

    Starts the match from UPCOMING, or opens the second innings after the
    automatic changeover.
    """
    inn = state.current_innings
    ready_for_second = (
        state.phase == MatchPhase.SECOND_INNINGS
        and state.striker_id is None
        and state.non_striker_id is None
        and inn.runs == 0
        and inn.legal_balls == 0
        and inn.wickets == 0
    )
    if state.phase != MatchPhase.UPCOMING and not ready_for_second:
        raise ValidationError(
            ReasonCode.MATCH_NOT_LIVE,
            f"Cannot open an innings in phase {state.phase.value} once play has started",
        )
    if striker_id == non_striker_id:
        raise ValidationError(
            ReasonCode.DUPLICATE_STRIKER_NON_STRIKER,
            "Striker and non-striker cannot be the same player",
            field="non_striker_id",
        )

    new = copy.deepcopy(state)
    if new.phase == MatchPhase.UPCOMING:
        new.phase = MatchPhase.FIRST_INNINGS
    _batter(new, striker_id, "striker_id")
    _batter(new, non_striker_id, "non_striker_id")
    _bowler(new, bowler_id)

    _take_guard(new, striker_id)
    _take_guard(new, non_striker_id)
    new.striker_id = striker_id
    new.non_striker_id = non_striker_id
    _sync_strike(new)
    _set_bowler(new, bowler_id)
    logger.info(
        "%s innings under way: %s and %s to face %s",
        new.batting_team,
        new.player_name(striker_id),
        new.player_name(non_striker_id),
        new.player_name(bowler_id),
    )
    return new


def select_batter(state: MatchState, player_id: str) -> MatchState:
    """Send in a new batter to fill the vacant end after a wicket."""
    if not state.phase.is_live:
        raise ValidationError(
            ReasonCode.MATCH_NOT_LIVE, f"Match is {state.phase.value}"
        )
    if state.striker_id and state.non_striker_id:
        raise ValidationError(
            ReasonCode.INVALID_LINEUP,
            "Both ends are occupied; no batter is needed",
            field="batter_id",
        )
    if state.striker_id is None and state.non_striker_id is None:
        raise ValidationError(
            ReasonCode.INVALID_LINEUP,
            "No batters at the crease; open the innings first",
            field="batter_id",
        )
    _batter(state, player_id, "batter_id")

    new = copy.deepcopy(state)
    _take_guard(new, player_id)
    if new.striker_id is None:
        new.striker_id = player_id
    else:
        new.non_striker_id = player_id
    _sync_strike(new)
    logger.info("New batter: %s", new.player_name(player_id))
    return new


def select_bowler(state: MatchState, player_id: str) -> MatchState:
    """Choose the bowler for the next over (or replace one mid-over)."""
    if not state.phase.is_live:
        raise ValidationError(
            ReasonCode.MATCH_NOT_LIVE, f"Match is {state.phase.value}"
        )
    _bowler(state, player_id)
    new = copy.deepcopy(state)
    _set_bowler(new, player_id)
    if new.current_over_bowlers and player_id not in new.current_over_bowlers:
        logger.info(
            "%s to finish the over (shared, no maiden possible)", new.player_name(player_id)
        )
    else:
        logger.info("%s to bowl", new.player_name(player_id))
    return new


# ----------------------------------------------------------------------
# Engine
# ----------------------------------------------------------------------

class ScoringEngine:
    """Single-writer scoring session for one match.

    Every mutating call pushes a deep snapshot before the new state is
    swapped in, so ``undo`` is an exact inverse of the last mutation.
    """

    def __init__(self, state: MatchState, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig(overs_limit=state.overs_limit)
        self.config.validate()
        self._state = state
        self._history = UndoHistory(depth=self.config.history_depth)
        self._callbacks: list[Callable[[MatchState], None]] = []

    @classmethod
    def new_match(cls, match_info: MatchInfo, config: Optional[ScoringConfig] = None) -> "ScoringEngine":
        config = config or ScoringConfig()
        state = MatchState.new(
            match_info,
            overs_limit=config.overs_limit,
            max_wickets=config.max_wickets,
            recent_balls_capacity=config.recent_balls_capacity,
        )
        return cls(state, config)

    @property
    def state(self) -> MatchState:
        return self._state

    @property
    def match_id(self) -> str:
        return self._state.match_id

    @property
    def history(self) -> UndoHistory:
        return self._history

    def on_update(self, callback: Callable[[MatchState], None]) -> None:
        """Register a callback for every successful mutation."""
        self._callbacks.append(callback)

    def _commit(self, new_state: MatchState, label: str) -> None:
        self._history.push(self._state, label)
        self._state = new_state
        for cb in self._callbacks:
            cb(new_state)

    def _run(self, label: str, reducer: Callable[[], MatchState]) -> MatchState:
        try:
            new_state = reducer()
        except ScoringError as e:
            logger.warning("Rejected %s on match %s: %s", label, self.match_id, e)
            raise
        self._commit(new_state, label)
        return new_state

    def start_innings(self, striker_id: str, non_striker_id: str, bowler_id: str) -> MatchState:
        return self._run(
            "start_innings",
            lambda: start_innings(self._state, striker_id, non_striker_id, bowler_id),
        )

    def select_batter(self, player_id: str) -> MatchState:
        return self._run("select_batter", lambda: select_batter(self._state, player_id))

    def select_bowler(self, player_id: str) -> MatchState:
        return self._run("select_bowler", lambda: select_bowler(self._state, player_id))

    def apply_delivery(self, event: DeliveryEvent) -> DeliveryResult:
        try:
            result = apply_delivery(self._state, event, self.config)
        except ScoringError as e:
            logger.warning("Rejected delivery on match %s: %s", self.match_id, e)
            raise
        self._commit(result.state, "delivery")
        return result

    def undo(self) -> MatchState:
        """Restore the state from before the last mutation."""
        try:
            restored = self._history.pop(self.match_id)
        except ScoringError as e:
            logger.warning("Undo rejected on match %s: %s", self.match_id, e)
            raise
        self._state = restored
        logger.info("Undo on match %s: back to %s", self.match_id, restored.summary())
        for cb in self._callbacks:
            cb(restored)
        return restored

    def replay(self, rows: Iterable["DeliveryRow"]) -> list[BallEvent]:
        """Rebuild a match from a delivery log.

        Each row names the striker, non-striker and bowler it was bowled
        with; openers, incoming batters and bowling changes are selected
        from those names as the log moves on.
        """
        balls = []
        for row in rows:
            self._align_selections(row)
            balls.append(self.apply_delivery(row.event).ball)
            if self._state.is_complete:
                break
        return balls

    def _align_selections(self, row: "DeliveryRow") -> None:
        state = self._state
        if state.striker_id is None and state.non_striker_id is None:
            self.start_innings(row.striker, row.non_striker, row.bowler)
            return
        for player_id in (row.striker, row.non_striker):
            if player_id and player_id not in (state.striker_id, state.non_striker_id):
                self.select_batter(player_id)
                state = self._state
        if row.bowler != state.bowler_id:
            self.select_bowler(row.bowler)
        if row.striker != self._state.striker_id:
            logger.warning(
                "Log has %s on strike but the engine has %s; keeping the engine's ends",
                row.striker, self._state.striker_id,
            )

