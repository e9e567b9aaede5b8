"""
Innings and match transition controller.

Phase machine:
    UPCOMING -> FIRST_INNINGS -> SECOND_INNINGS -> COMPLETED

The first innings closes on all out or when the overs run out, and the
second innings starts straight away with target = runs + 1. The second
innings also closes the moment the target is reached. Only a second
innings closure produces a result.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from ballbyball.state.match_state import (
    MatchPhase,
    MatchResult,
    MatchState,
    PartnershipState,
    ResultType,
)

logger = logging.getLogger(__name__)


class ClosureReason(Enum):
    ALL_OUT = "all_out"
    OVERS_COMPLETE = "overs_complete"
    TARGET_REACHED = "target_reached"


def closure_reason(state: MatchState) -> Optional[ClosureReason]:
    """Why the current innings is over, or None if play continues."""
    if not state.phase.is_live:
        return None
    inn = state.current_innings
    if (
        state.phase == MatchPhase.SECOND_INNINGS
        and state.target_runs is not None
        and inn.runs >= state.target_runs
    ):
        return ClosureReason.TARGET_REACHED
    if inn.wickets >= state.wicket_limit:
        return ClosureReason.ALL_OUT
    if inn.legal_balls >= state.overs_limit * 6:
        return ClosureReason.OVERS_COMPLETE
    return None


def compute_result(
    target: int,
    runs: int,
    wickets: int,
    chasing_team: str,
    defending_team: str,
    max_wickets: int = 10,
) -> MatchResult:
    """Result of a closed second innings chasing ``target``."""
    if runs >= target:
        margin = max(1, max_wickets - wickets)
        unit = "wicket" if margin == 1 else "wickets"
        return MatchResult(
            result_type=ResultType.CHASE_WIN,
            winner=chasing_team,
            margin=margin,
            text=f"{chasing_team} won by {margin} {unit}",
        )
    if runs == target - 1:
        return MatchResult(result_type=ResultType.TIE, winner=None, text="Match tied")
    margin = target - 1 - runs
    unit = "run" if margin == 1 else "runs"
    return MatchResult(
        result_type=ResultType.DEFEND_WIN,
        winner=defending_team,
        margin=margin,
        text=f"{defending_team} won by {margin} {unit}",
    )


def _clear_field(state: MatchState) -> None:
    state.striker_id = None
    state.non_striker_id = None
    state.bowler_id = None
    state.last_over_bowler_id = None
    state.pending_bowler_change = False
    state.current_over_bowler_runs = 0
    state.current_over_bowlers = []
    state.free_hit = False
    state.partnership = PartnershipState()
    for lineup in state.lineups.values():
        for entry in lineup.values():
            entry.on_crease = False
            entry.on_strike = False
            entry.bowling_active = False


def close_innings(state: MatchState, reason: ClosureReason) -> None:
    """Close the current innings in place and move the phase on."""
    inn = state.current_innings
    if state.phase == MatchPhase.FIRST_INNINGS:
        state.target_runs = inn.runs + 1
        _clear_field(state)
        state.phase = MatchPhase.SECOND_INNINGS
        logger.info(
            "Innings closed (%s): %s %s in %s overs. %s need %d to win",
            reason.value, inn.batting_team, inn.score_str, inn.overs,
            inn.bowling_team, state.target_runs,
        )
        return

    if state.phase != MatchPhase.SECOND_INNINGS:
        raise ValueError(f"Cannot close an innings in phase {state.phase.value}")

    state.result = compute_result(
        target=state.target_runs,
        runs=inn.runs,
        wickets=inn.wickets,
        chasing_team=inn.batting_team,
        defending_team=inn.bowling_team,
        max_wickets=state.wicket_limit,
    )
    _clear_field(state)
    state.phase = MatchPhase.COMPLETED
    logger.info(
        "Match %s completed (%s): %s", state.match_id, reason.value, state.result.text
    )


def advance(state: MatchState) -> Optional[ClosureReason]:
    """Close the innings in place if it is over. Returns the reason, if any."""
    reason = closure_reason(state)
    if reason is not None:
        close_innings(state, reason)
    return reason
