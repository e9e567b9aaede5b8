"""
Ball outcome processor.

The state-transition function for a single delivery: validates the
delivery against the current match state, then works on a deep copy to
produce the next state and the BallEvent that describes it. All guards run
before the copy is touched, so a rejected delivery never leaves a partial
update behind.

Innings closure and the match result are not decided here; see
``ballbyball.scoring.transitions``.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Optional

from ballbyball.config import ScoringConfig
from ballbyball.data.ball_event import BallEvent, DeliveryEvent, WicketType
from ballbyball.errors import ReasonCode, ValidationError
from ballbyball.scoring import ledger
from ballbyball.scoring.classifier import Delivery, classify
from ballbyball.scoring.commentary import ball_badge, ball_text
from ballbyball.scoring.free_hit import check_free_hit, next_free_hit
from ballbyball.state.match_state import (
    FallOfWicket,
    LineupEntry,
    MatchPhase,
    MatchState,
    PartnershipState,
    PlayerStatus,
)

logger = logging.getLogger(__name__)

# Dismissals in which the non-striker can be the one out
EITHER_END_DISMISSALS = frozenset({WicketType.RUN_OUT, WicketType.RETIRED_HURT})


@dataclass
class BallOutcome:
    state: MatchState
    ball: BallEvent
    over_complete: bool


@dataclass(frozen=True)
class _Dismissal:
    player_id: str
    was_on_strike: bool
    replacement_id: Optional[str]


# ----------------------------------------------------------------------
# Guards
# ----------------------------------------------------------------------

def _require_live(state: MatchState) -> None:
    if not state.phase.is_live:
        raise ValidationError(
            ReasonCode.MATCH_NOT_LIVE,
            f"Match {state.match_id} is {state.phase.value}; deliveries cannot be recorded",
        )


def _check_lineup(state: MatchState) -> tuple[LineupEntry, LineupEntry, LineupEntry]:
    """Resolve striker, non-striker and bowler against the correct XIs."""
    batting = state.batting_lineup
    bowling = state.bowling_lineup

    if state.striker_id and state.striker_id == state.non_striker_id:
        raise ValidationError(
            ReasonCode.DUPLICATE_STRIKER_NON_STRIKER,
            "Striker and non-striker cannot be the same player",
            field="non_striker_id",
        )

    resolved = []
    for role, player_id, lineup, team in (
        ("striker", state.striker_id, batting, state.batting_team),
        ("non_striker", state.non_striker_id, batting, state.batting_team),
        ("bowler", state.bowler_id, bowling, state.bowling_team),
    ):
        if not player_id:
            if role == "bowler" and state.pending_bowler_change:
                message = "Over complete: select a bowler for the next over"
            else:
                message = f"No {role.replace('_', '-')} selected"
            raise ValidationError(ReasonCode.INVALID_LINEUP, message, field=f"{role}_id")
        entry = lineup.get(player_id)
        if entry is None:
            raise ValidationError(
                ReasonCode.INVALID_LINEUP,
                f"{role.replace('_', '-').capitalize()} {player_id} is not in the {team} XI",
                field=f"{role}_id",
            )
        if role != "bowler" and entry.status != PlayerStatus.BATTING:
            raise ValidationError(
                ReasonCode.INVALID_LINEUP,
                f"{entry.name} is {entry.status.value} and cannot be at the crease",
                field=f"{role}_id",
            )
        resolved.append(entry)
    return resolved[0], resolved[1], resolved[2]


def _check_overs(state: MatchState, delivery: Delivery) -> None:
    limit = state.overs_limit * 6
    balls = state.current_innings.legal_balls
    if balls >= limit or (delivery.counts_ball and balls + 1 > limit):
        raise ValidationError(
            ReasonCode.OVERS_EXCEEDED,
            f"Innings limit of {state.overs_limit} overs already reached",
        )


def _ends_innings(state: MatchState, delivery: Delivery) -> bool:
    """Whether this delivery closes the innings: last wicket, last ball or target reached."""
    inn = state.current_innings
    if (
        delivery.is_wicket
        and delivery.wicket_type.is_dismissal
        and inn.wickets + 1 >= state.wicket_limit
    ):
        return True
    if delivery.counts_ball and inn.legal_balls + 1 >= state.overs_limit * 6:
        return True
    return (
        state.phase == MatchPhase.SECOND_INNINGS
        and state.target_runs is not None
        and inn.runs + delivery.total_runs >= state.target_runs
    )


def _resolve_dismissal(state: MatchState, delivery: Delivery) -> Optional[_Dismissal]:
    if not delivery.is_wicket:
        return None

    wicket_type = delivery.wicket_type
    dismissed = delivery.dismissed_player_id
    if wicket_type in EITHER_END_DISMISSALS:
        if dismissed not in (state.striker_id, state.non_striker_id) or not dismissed:
            raise ValidationError(
                ReasonCode.MISSING_DISMISSED_PLAYER,
                f"{wicket_type.value}: choose the striker or the non-striker as the batter out",
                field="dismissed_player_id",
            )
    else:
        if dismissed and dismissed != state.striker_id:
            raise ValidationError(
                ReasonCode.DISALLOWED_DISMISSAL,
                f"Only the striker can be out {wicket_type.value}",
                field="dismissed_player_id",
            )
        dismissed = state.striker_id

    batting = state.batting_lineup
    replacement = delivery.replacement_batter_id
    if replacement:
        entry = batting.get(replacement)
        if entry is None:
            raise ValidationError(
                ReasonCode.INVALID_LINEUP,
                f"Replacement {replacement} is not in the {state.batting_team} XI",
                field="replacement_batter_id",
            )
        if entry.on_crease or entry.status not in (PlayerStatus.PENDING, PlayerStatus.RETIRED):
            raise ValidationError(
                ReasonCode.INVALID_LINEUP,
                f"{entry.name} is {entry.status.value} and cannot come in to bat",
                field="replacement_batter_id",
            )

    if delivery.assist_player_id and delivery.assist_player_id not in state.bowling_lineup:
        raise ValidationError(
            ReasonCode.INVALID_LINEUP,
            f"Fielder {delivery.assist_player_id} is not in the {state.bowling_team} XI",
            field="assist_player_id",
        )

    if _ends_innings(state, delivery):
        # Nobody comes in once the innings is over
        replacement = None

    return _Dismissal(
        player_id=dismissed,
        was_on_strike=dismissed == state.striker_id,
        replacement_id=replacement or None,
    )


# ----------------------------------------------------------------------
# Mutation helpers (operate on the working copy only)
# ----------------------------------------------------------------------

def _sync_crease_flags(state: MatchState) -> None:
    for entry in state.batting_lineup.values():
        entry.on_strike = entry.player_id == state.striker_id and entry.on_crease


def _swap_ends(state: MatchState) -> None:
    state.striker_id, state.non_striker_id = state.non_striker_id, state.striker_id
    _sync_crease_flags(state)


def _apply_dismissal(
    state: MatchState,
    delivery: Delivery,
    dismissal: _Dismissal,
    bowler: LineupEntry,
) -> str:
    batting = state.batting_lineup
    out = batting[dismissal.player_id]
    fielder = state.player_name(delivery.assist_player_id) or None
    text = ledger.dismissal_text(delivery.wicket_type, bowler.name, fielder)

    out.status = (
        PlayerStatus.OUT if delivery.wicket_type.is_dismissal else PlayerStatus.RETIRED
    )
    out.on_crease = False
    out.on_strike = False
    out.dismissal = text

    new_id = dismissal.replacement_id
    if new_id:
        incoming = batting[new_id]
        incoming.status = PlayerStatus.BATTING
        incoming.on_crease = True
        incoming.dismissal = None

    if dismissal.was_on_strike:
        state.striker_id = new_id
    else:
        state.non_striker_id = new_id
    _sync_crease_flags(state)
    return text


def _complete_over(state: MatchState, bowler: LineupEntry) -> None:
    # A maiden needs one bowler for the whole over
    if state.current_over_bowler_runs == 0 and state.current_over_bowlers == [bowler.player_id]:
        bowler.bowling.maidens += 1
    state.current_over_bowler_runs = 0
    state.current_over_bowlers = []
    _swap_ends(state)
    bowler.bowling_active = False
    state.last_over_bowler_id = bowler.player_id
    state.bowler_id = None
    state.pending_bowler_change = True
    logger.info(
        "End of over %s: %s, %s finished the over",
        state.current_innings.overs, state.current_innings.score_str, bowler.name,
    )


# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------

def process_ball(
    state: MatchState,
    event: DeliveryEvent,
    config: Optional[ScoringConfig] = None,
) -> BallOutcome:
    """Apply one delivery to ``state`` without mutating it.

    Returns the next state, the emitted BallEvent and whether the delivery
    completed an over.

    Raises:
        ValidationError: if any guard fails; ``state`` is left untouched.
    """
    config = config or ScoringConfig(overs_limit=state.overs_limit)

    _require_live(state)
    delivery = classify(event)
    _check_lineup(state)
    _check_overs(state, delivery)
    check_free_hit(state.free_hit, delivery.wicket_type)
    dismissal = _resolve_dismissal(state, delivery)

    new = copy.deepcopy(state)
    innings = new.current_innings
    batting = new.batting_lineup
    bowling = new.bowling_lineup
    striker = batting[new.striker_id]
    non_striker_id = new.non_striker_id
    bowler = bowling[new.bowler_id]
    balls_before = innings.legal_balls
    was_free_hit = new.free_hit

    # Wicket first: the replacement takes over the dismissed batter's end
    dismissal_str = None
    if dismissal is not None:
        dismissal_str = _apply_dismissal(new, delivery, dismissal, bowler)

    ledger.credit_batter(striker, delivery)
    ledger.credit_bowler(bowler, delivery)
    ledger.add_to_innings(innings, delivery)
    ledger.add_to_partnership(new.partnership, delivery)
    new.current_over_bowler_runs += delivery.bowler_runs
    if bowler.player_id not in new.current_over_bowlers:
        new.current_over_bowlers.append(bowler.player_id)

    if dismissal is not None and delivery.wicket_type.is_dismissal:
        innings.wickets += 1
        out = batting[dismissal.player_id]
        innings.fall_of_wickets.append(FallOfWicket(
            wicket=innings.wickets,
            runs=innings.runs,
            over=innings.overs,
            player_id=out.player_id,
            player_name=out.name,
            dismissal=dismissal_str,
        ))
        new.partnership = PartnershipState()
        logger.info(
            "WICKET %s %s %s at %s (%s ov)",
            out.name, dismissal_str, innings.batting_team, innings.score_str, innings.overs,
        )
    elif delivery.rotates_strike:
        _swap_ends(new)

    over_complete = delivery.counts_ball and innings.legal_balls % 6 == 0
    if over_complete:
        _complete_over(new, bowler)

    new.free_hit = next_free_hit(
        was_free_hit, delivery.extra_type, config.free_hit_survives_wide
    )

    new.event_count += 1
    ball = BallEvent(
        sequence=new.event_count,
        over=innings.overs,
        over_number=balls_before // 6 + 1,
        ball=balls_before % 6 + (1 if delivery.counts_ball else 0),
        team=innings.batting_team,
        match_phase=new.phase.value,
        batsman=striker.player_id,
        non_striker=non_striker_id or "",
        bowler=bowler.player_id,
        runs=delivery.total_runs,
        bat_runs=delivery.bat_runs,
        extra_type=delivery.extra_type,
        counts_ball=delivery.counts_ball,
        is_wicket=delivery.is_wicket,
        is_boundary=delivery.is_boundary,
        free_hit=was_free_hit,
        wicket_type=delivery.wicket_type,
        player_dismissed=dismissal.player_id if dismissal else None,
        dismissal=dismissal_str,
        badge=ball_badge(delivery),
        text=ball_text(bowler.name, striker.name, delivery, dismissal_str, was_free_hit),
    )
    new.recent_balls.appendleft(ball)

    logger.debug("Ball %d: %s -> %s", ball.sequence, ball.text, innings.score_str)
    return BallOutcome(state=new, ball=ball, over_complete=over_complete)
