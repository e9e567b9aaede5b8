"""Tests for the scoring engine: deliveries, selections, transitions and undo."""

from __future__ import annotations

import pytest

from ballbyball.config import ScoringConfig
from ballbyball.data.ball_event import DeliveryEvent, ExtrasType, WicketType
from ballbyball.engine import ScoringEngine, select_bowler, start_innings
from ballbyball.errors import ReasonCode, StateConflictError, ValidationError
from ballbyball.scoring import ledger
from ballbyball.scoring.transitions import ClosureReason
from ballbyball.state.match_state import MatchPhase, PlayerStatus, ResultType
from ballbyball.tests.conftest import make_match_info


class TestOpeningDeliveries:
    def test_boundary_off_first_ball(self, live_engine: ScoringEngine, deliver):
        result = deliver(live_engine, runs=4)
        state = result.state

        inn = state.current_innings
        assert inn.score_str == "4/0"
        assert inn.legal_balls == 1
        assert inn.overs == "0.1"
        assert state.striker_id == "T1"
        assert state.batting_lineup["T1"].batting.runs == 4
        assert state.batting_lineup["T1"].batting.fours == 1
        assert state.bowling_lineup["S11"].bowling.runs_conceded == 4
        assert result.ball.badge == "4"
        assert result.ball.is_boundary

    def test_wide_does_not_count_as_ball(self, live_engine: ScoringEngine, deliver):
        deliver(live_engine, runs=4)
        result = deliver(live_engine, extra_type=ExtrasType.WIDE)
        state = result.state

        assert state.current_innings.runs == 5
        assert state.current_innings.legal_balls == 1
        assert state.current_innings.extras.wides == 1
        assert state.batting_lineup["T1"].batting.balls == 1
        assert state.bowling_lineup["S11"].bowling.runs_conceded == 5
        assert result.ball.badge == "Wd"
        assert not result.ball.is_legal_delivery

    def test_no_ball_arms_free_hit(self, live_engine: ScoringEngine, deliver):
        deliver(live_engine, runs=4)
        deliver(live_engine, extra_type=ExtrasType.WIDE)
        result = deliver(live_engine, extra_type=ExtrasType.NO_BALL)
        state = result.state

        assert state.current_innings.runs == 6
        assert state.current_innings.legal_balls == 1
        assert state.free_hit
        assert state.batting_lineup["T1"].batting.balls == 2
        assert state.current_innings.extras.no_balls == 1

    def test_free_hit_blocks_bowled(self, live_engine: ScoringEngine, deliver):
        deliver(live_engine, runs=4)
        deliver(live_engine, extra_type=ExtrasType.WIDE)
        deliver(live_engine, extra_type=ExtrasType.NO_BALL)
        before = live_engine.state

        with pytest.raises(ValidationError) as exc_info:
            deliver(live_engine, is_wicket=True, wicket_type=WicketType.BOWLED,
                    replacement_batter_id="T3")
        assert exc_info.value.code == ReasonCode.DISALLOWED_FREE_HIT_DISMISSAL
        assert live_engine.state is before
        assert live_engine.state.free_hit

    def test_free_hit_allows_run_out(self, live_engine: ScoringEngine, deliver):
        deliver(live_engine, runs=4)
        deliver(live_engine, extra_type=ExtrasType.WIDE)
        deliver(live_engine, extra_type=ExtrasType.NO_BALL)
        result = deliver(
            live_engine,
            is_wicket=True,
            wicket_type=WicketType.RUN_OUT,
            dismissed_player_id="T1",
            replacement_batter_id="T3",
        )
        state = result.state

        assert state.current_innings.score_str == "6/1"
        assert state.striker_id == "T3"
        assert state.non_striker_id == "T2"
        assert state.batting_lineup["T1"].status == PlayerStatus.OUT
        assert state.batting_lineup["T1"].dismissal == "run out"
        assert not state.free_hit
        fow = state.fall_of_wickets[0]
        assert fow.wicket == 1
        assert fow.runs == 6
        assert fow.over == "0.2"
        assert fow.player_id == "T1"
        assert result.ball.free_hit
        assert result.ball.text.startswith("FREE HIT: ")


class TestStrikeAndOvers:
    def test_single_rotates_strike(self, live_engine: ScoringEngine, deliver):
        state = deliver(live_engine, runs=1).state
        assert state.striker_id == "T2"
        assert state.non_striker_id == "T1"
        assert state.batting_lineup["T2"].on_strike
        assert not state.batting_lineup["T1"].on_strike

    def test_leg_bye_rotates_without_crediting_batter(self, live_engine: ScoringEngine, deliver):
        state = deliver(live_engine, runs=1, extra_type=ExtrasType.LEG_BYE).state
        assert state.striker_id == "T2"
        assert state.batting_lineup["T1"].batting.runs == 0
        assert state.batting_lineup["T1"].batting.balls == 1
        assert state.current_innings.extras.leg_byes == 1
        assert state.bowling_lineup["S11"].bowling.runs_conceded == 0

    def test_wide_with_a_run_rotates(self, live_engine: ScoringEngine, deliver):
        state = deliver(live_engine, runs=1, extra_type=ExtrasType.WIDE).state
        assert state.current_innings.runs == 2
        assert state.current_innings.extras.wides == 2
        assert state.striker_id == "T2"

    def test_over_completion(self, live_engine: ScoringEngine, deliver):
        for _ in range(5):
            deliver(live_engine)
        result = deliver(live_engine)
        state = result.state

        assert result.over_complete
        assert state.current_innings.overs == "1.0"
        assert state.striker_id == "T2"
        assert state.bowler_id is None
        assert state.pending_bowler_change
        assert state.last_over_bowler_id == "S11"
        assert state.bowling_lineup["S11"].bowling.maidens == 1
        assert not state.bowling_lineup["S11"].bowling_active

    def test_wide_spoils_maiden(self, live_engine: ScoringEngine, deliver):
        deliver(live_engine, extra_type=ExtrasType.WIDE)
        for _ in range(6):
            deliver(live_engine)
        assert live_engine.state.bowling_lineup["S11"].bowling.maidens == 0

    def test_byes_keep_maiden(self, live_engine: ScoringEngine, deliver):
        deliver(live_engine, runs=4, extra_type=ExtrasType.BYE)
        for _ in range(5):
            deliver(live_engine)
        state = live_engine.state
        assert state.bowling_lineup["S11"].bowling.maidens == 1
        assert state.current_innings.extras.byes == 4

    def test_delivery_needs_new_bowler_after_over(self, live_engine: ScoringEngine, deliver):
        for _ in range(6):
            deliver(live_engine)
        with pytest.raises(ValidationError) as exc_info:
            live_engine.apply_delivery(DeliveryEvent(runs=1))
        assert exc_info.value.code == ReasonCode.INVALID_LINEUP
        assert exc_info.value.message.startswith("Over complete")

    def test_consecutive_over_rejected(self, live_engine: ScoringEngine, deliver):
        for _ in range(6):
            deliver(live_engine)
        with pytest.raises(ValidationError) as exc_info:
            live_engine.select_bowler("S11")
        assert exc_info.value.code == ReasonCode.CONSECUTIVE_OVER

        state = live_engine.select_bowler("S10")
        assert state.bowler_id == "S10"
        assert state.bowling_lineup["S10"].bowling_active
        assert not state.pending_bowler_change

    def test_ball_numbering(self, live_engine: ScoringEngine, deliver):
        first = deliver(live_engine).ball
        wide = deliver(live_engine, extra_type=ExtrasType.WIDE).ball
        second = deliver(live_engine).ball
        assert (first.over_number, first.ball) == (1, 1)
        assert (wide.over_number, wide.ball) == (1, 1)
        assert (second.over_number, second.ball) == (1, 2)
        assert [b.sequence for b in live_engine.state.recent_balls] == [3, 2, 1]
        assert live_engine.state.last_ball is second

    def test_shared_over_is_no_maiden(self, live_engine: ScoringEngine, deliver):
        for _ in range(3):
            deliver(live_engine)
        live_engine.select_bowler("S10")
        for _ in range(3):
            deliver(live_engine)
        state = live_engine.state

        assert state.bowling_lineup["S11"].bowling.maidens == 0
        assert state.bowling_lineup["S10"].bowling.maidens == 0
        assert state.last_over_bowler_id == "S10"
        assert state.current_over_bowlers == []


class TestDismissals:
    def test_non_striker_run_out(self, live_engine: ScoringEngine, deliver):
        state = deliver(
            live_engine,
            runs=1,
            is_wicket=True,
            wicket_type=WicketType.RUN_OUT,
            dismissed_player_id="T2",
            replacement_batter_id="T3",
            assist_player_id="S4",
        ).state

        assert state.striker_id == "T1"
        assert state.non_striker_id == "T3"
        assert state.batting_lineup["T1"].batting.runs == 1
        assert state.batting_lineup["T2"].dismissal == "run out (Strikers_4)"
        assert state.current_innings.score_str == "1/1"
        assert state.partnership.runs == 0

    def test_run_out_needs_a_batter_on_the_crease(self, live_engine: ScoringEngine, deliver):
        with pytest.raises(ValidationError) as exc_info:
            deliver(live_engine, is_wicket=True, wicket_type=WicketType.RUN_OUT,
                    replacement_batter_id="T3")
        assert exc_info.value.code == ReasonCode.MISSING_DISMISSED_PLAYER

    def test_bowled_non_striker_rejected(self, live_engine: ScoringEngine, deliver):
        with pytest.raises(ValidationError) as exc_info:
            deliver(live_engine, is_wicket=True, wicket_type=WicketType.BOWLED,
                    dismissed_player_id="T2", replacement_batter_id="T3")
        assert exc_info.value.code == ReasonCode.DISALLOWED_DISMISSAL

    def test_replacement_must_be_waiting(self, live_engine: ScoringEngine, deliver):
        with pytest.raises(ValidationError) as exc_info:
            deliver(live_engine, is_wicket=True, wicket_type=WicketType.BOWLED,
                    replacement_batter_id="T2")
        assert exc_info.value.code == ReasonCode.INVALID_LINEUP

    def test_caught_credits_bowler(self, live_engine: ScoringEngine, deliver):
        state = deliver(
            live_engine,
            is_wicket=True,
            wicket_type=WicketType.CAUGHT,
            replacement_batter_id="T3",
            assist_player_id="S2",
        ).state
        assert state.batting_lineup["T1"].dismissal == "c Strikers_2 b Strikers_11"
        assert state.bowling_lineup["S11"].bowling.wickets == 1
        assert state.last_ball.badge == "W"

    def test_run_out_not_credited_to_bowler(self, live_engine: ScoringEngine, deliver):
        state = deliver(
            live_engine,
            is_wicket=True,
            wicket_type=WicketType.RUN_OUT,
            dismissed_player_id="T1",
            replacement_batter_id="T3",
        ).state
        assert state.bowling_lineup["S11"].bowling.wickets == 0

    def test_retired_hurt_is_not_a_wicket(self, live_engine: ScoringEngine, deliver):
        state = deliver(
            live_engine,
            is_wicket=True,
            wicket_type=WicketType.RETIRED_HURT,
            dismissed_player_id="T1",
            replacement_batter_id="T3",
        ).state

        assert state.current_innings.wickets == 0
        assert state.fall_of_wickets == []
        assert state.batting_lineup["T1"].status == PlayerStatus.RETIRED
        assert state.striker_id == "T3"

    def test_retired_batter_can_resume(self, live_engine: ScoringEngine, deliver):
        deliver(
            live_engine,
            is_wicket=True,
            wicket_type=WicketType.RETIRED_HURT,
            dismissed_player_id="T1",
            replacement_batter_id="T3",
        )
        deliver(
            live_engine,
            is_wicket=True,
            wicket_type=WicketType.BOWLED,
        )
        state = live_engine.select_batter("T1")
        assert state.striker_id == "T1"
        assert state.batting_lineup["T1"].status == PlayerStatus.BATTING

    def test_wicket_without_replacement_leaves_end_empty(self, live_engine: ScoringEngine, deliver):
        state = deliver(live_engine, is_wicket=True, wicket_type=WicketType.LBW).state
        assert state.striker_id is None
        with pytest.raises(ValidationError) as exc_info:
            live_engine.apply_delivery(DeliveryEvent(runs=1))
        assert exc_info.value.code == ReasonCode.INVALID_LINEUP

        state = live_engine.select_batter("T5")
        assert state.striker_id == "T5"
        assert state.batting_lineup["T5"].on_strike

    def test_short_squad_all_out(self, scoring_config: ScoringConfig, deliver, bowled):
        engine = ScoringEngine.new_match(make_match_info(players=3), scoring_config)
        engine.start_innings("T1", "T2", "S3")
        assert engine.state.wicket_limit == 2

        deliver(engine, bowled(engine.state))
        result = deliver(engine, DeliveryEvent(is_wicket=True, wicket_type=WicketType.BOWLED))

        assert result.innings_closed == ClosureReason.ALL_OUT
        assert result.state.phase == MatchPhase.SECOND_INNINGS
        assert result.state.target_runs == 1
        assert result.state.first_innings.score_str == "0/2"

    def test_runs_off_bowled_rejected(self, live_engine: ScoringEngine, deliver):
        before = live_engine.state
        with pytest.raises(ValidationError) as exc_info:
            deliver(live_engine, runs=4, is_wicket=True, wicket_type=WicketType.BOWLED,
                    replacement_batter_id="T3")
        assert exc_info.value.code == ReasonCode.INVALID_DELIVERY
        assert live_engine.state is before
        assert before.current_innings.runs == 0

    def test_wicket_off_last_ball_brings_nobody_in(self, match_info, deliver):
        engine = ScoringEngine.new_match(match_info, ScoringConfig(overs_limit=1))
        engine.start_innings("T1", "T2", "S11")
        for _ in range(5):
            deliver(engine)
        result = deliver(engine, is_wicket=True, wicket_type=WicketType.BOWLED,
                         replacement_batter_id="T3")

        assert result.innings_closed == ClosureReason.OVERS_COMPLETE
        thunder = result.state.lineups["Thunder"]
        assert thunder["T3"].status == PlayerStatus.PENDING
        assert not thunder["T3"].on_crease
        assert "Thunder_3" in ledger.yet_to_bat(result.state, "Thunder")
        card = ledger.batting_card(result.state, "Thunder")
        assert [(r.player_id, r.dismissal) for r in card] == [
            ("T1", "b Strikers_11"), ("T2", "not out"),
        ]

    def test_wicket_reaching_target_brings_nobody_in(self, match_info, deliver):
        engine = ScoringEngine.new_match(match_info, ScoringConfig(overs_limit=1))
        engine.start_innings("T1", "T2", "S11")
        for _ in range(6):
            deliver(engine, runs=1)
        engine.start_innings("S1", "S2", "T11")
        deliver(engine, runs=6)
        result = deliver(engine, runs=1, is_wicket=True, wicket_type=WicketType.RUN_OUT,
                         dismissed_player_id="S1", replacement_batter_id="S3")

        assert result.innings_closed == ClosureReason.TARGET_REACHED
        assert result.state.phase == MatchPhase.COMPLETED
        assert result.state.lineups["Strikers"]["S3"].status == PlayerStatus.PENDING
        assert result.state.second_innings.score_str == "7/1"


class TestInningsTransitions:
    def _first_innings_all_out(self, engine: ScoringEngine, deliver, bowled) -> None:
        engine.start_innings("T1", "T2", "S11")
        for _ in range(25):
            deliver(engine, runs=6)
        for _ in range(48):
            deliver(engine)
        for _ in range(10):
            deliver(engine, bowled(engine.state))

    def test_all_out_sets_target(self, engine: ScoringEngine, deliver, bowled):
        self._first_innings_all_out(engine, deliver, bowled)
        state = engine.state

        first = state.first_innings
        assert first.score_str == "150/10"
        assert first.overs == "13.5"
        assert state.target_runs == 151
        assert state.phase == MatchPhase.SECOND_INNINGS
        assert state.result is None
        assert state.batting_team == "Strikers"
        assert state.striker_id is None and state.bowler_id is None
        assert state.summary() == "Strikers 0/0 (0.0 ov), need 151 from 120 balls"

    def test_chase_win(self, engine: ScoringEngine, deliver, bowled):
        self._first_innings_all_out(engine, deliver, bowled)
        engine.start_innings("S1", "S2", "T11")
        for _ in range(25):
            deliver(engine, runs=6)
        for _ in range(4):
            deliver(engine, bowled(engine.state))
        result = deliver(engine, runs=1)
        state = result.state

        assert result.innings_closed == ClosureReason.TARGET_REACHED
        assert state.second_innings.score_str == "151/4"
        assert state.phase == MatchPhase.COMPLETED
        assert state.result.result_type == ResultType.CHASE_WIN
        assert state.result.winner == "Strikers"
        assert state.result.margin == 6
        assert state.result.text == "Strikers won by 6 wickets"

        with pytest.raises(ValidationError) as exc_info:
            engine.apply_delivery(DeliveryEvent(runs=1))
        assert exc_info.value.code == ReasonCode.MATCH_NOT_LIVE

    def test_tie_and_defend_win(self, match_info, deliver):
        config = ScoringConfig(overs_limit=1)

        tied = ScoringEngine.new_match(match_info, config)
        tied.start_innings("T1", "T2", "S11")
        for _ in range(6):
            deliver(tied, runs=2)
        assert tied.state.target_runs == 13
        tied.start_innings("S1", "S2", "T11")
        for _ in range(6):
            deliver(tied, runs=2)
        assert tied.state.result.result_type == ResultType.TIE
        assert tied.state.result.winner is None
        assert tied.state.result.text == "Match tied"

        defended = ScoringEngine.new_match(match_info, config)
        defended.start_innings("T1", "T2", "S11")
        for _ in range(6):
            deliver(defended, runs=2)
        defended.start_innings("S1", "S2", "T11")
        for _ in range(6):
            deliver(defended)
        assert defended.state.result.result_type == ResultType.DEFEND_WIN
        assert defended.state.result.winner == "Thunder"
        assert defended.state.result.text == "Thunder won by 12 runs"

    def test_cannot_reopen_live_innings(self, live_engine: ScoringEngine, deliver):
        deliver(live_engine, runs=1)
        with pytest.raises(ValidationError) as exc_info:
            live_engine.start_innings("T3", "T4", "S10")
        assert exc_info.value.code == ReasonCode.MATCH_NOT_LIVE


class TestSelections:
    def test_start_innings_duplicate_openers(self, engine: ScoringEngine):
        with pytest.raises(ValidationError) as exc_info:
            engine.start_innings("T1", "T1", "S11")
        assert exc_info.value.code == ReasonCode.DUPLICATE_STRIKER_NON_STRIKER
        assert engine.state.phase == MatchPhase.UPCOMING

    def test_start_innings_wrong_team(self, engine: ScoringEngine):
        with pytest.raises(ValidationError) as exc_info:
            engine.start_innings("S1", "T2", "S11")
        assert exc_info.value.code == ReasonCode.INVALID_LINEUP
        assert exc_info.value.field == "striker_id"

    def test_start_innings_bowler_from_batting_side(self, engine: ScoringEngine):
        with pytest.raises(ValidationError) as exc_info:
            engine.start_innings("T1", "T2", "T3")
        assert exc_info.value.code == ReasonCode.INVALID_LINEUP
        assert exc_info.value.field == "bowler_id"

    def test_start_innings_sets_flags(self, live_engine: ScoringEngine):
        state = live_engine.state
        assert state.phase == MatchPhase.FIRST_INNINGS
        assert state.batting_lineup["T1"].on_strike
        assert state.batting_lineup["T2"].on_crease
        assert not state.batting_lineup["T2"].on_strike
        assert state.bowling_lineup["S11"].bowling_active

    def test_select_batter_with_both_ends_filled(self, live_engine: ScoringEngine):
        with pytest.raises(ValidationError) as exc_info:
            live_engine.select_batter("T3")
        assert exc_info.value.code == ReasonCode.INVALID_LINEUP

    def test_select_batter_already_out(self, live_engine: ScoringEngine, deliver):
        deliver(live_engine, is_wicket=True, wicket_type=WicketType.BOWLED)
        with pytest.raises(ValidationError) as exc_info:
            live_engine.select_batter("T1")
        assert exc_info.value.code == ReasonCode.INVALID_LINEUP

    def test_reducers_leave_input_untouched(self, match_info, scoring_config):
        engine = ScoringEngine.new_match(match_info, scoring_config)
        initial = engine.state
        opened = start_innings(initial, "T1", "T2", "S11")
        assert initial.phase == MatchPhase.UPCOMING
        assert initial.striker_id is None

        changed = select_bowler(opened, "S10")
        assert opened.bowler_id == "S11"
        assert changed.bowler_id == "S10"


class TestFreeHitOption:
    def test_wide_clears_free_hit_by_default(self, live_engine: ScoringEngine, deliver):
        deliver(live_engine, extra_type=ExtrasType.NO_BALL)
        state = deliver(live_engine, extra_type=ExtrasType.WIDE).state
        assert not state.free_hit

    def test_free_hit_survives_wide_when_enabled(self, match_info, deliver):
        engine = ScoringEngine.new_match(
            match_info, ScoringConfig(overs_limit=20, free_hit_survives_wide=True)
        )
        engine.start_innings("T1", "T2", "S11")
        deliver(engine, extra_type=ExtrasType.NO_BALL)
        assert deliver(engine, extra_type=ExtrasType.WIDE).state.free_hit
        assert not deliver(engine).state.free_hit

    def test_no_ball_on_free_hit_rearms(self, live_engine: ScoringEngine, deliver):
        deliver(live_engine, extra_type=ExtrasType.NO_BALL)
        state = deliver(live_engine, runs=4, extra_type=ExtrasType.NO_BALL).state
        assert state.free_hit
        assert state.current_innings.runs == 6
        assert state.batting_lineup["T1"].batting.runs == 4


class TestUndo:
    def test_undo_restores_previous_state(self, live_engine: ScoringEngine, deliver):
        before = live_engine.state
        deliver(live_engine, runs=4)
        restored = live_engine.undo()

        assert restored == before
        assert live_engine.state.current_innings.runs == 0
        assert len(live_engine.state.recent_balls) == 0

    def test_undo_crosses_innings_boundary(self, match_info, deliver):
        engine = ScoringEngine.new_match(match_info, ScoringConfig(overs_limit=1))
        engine.start_innings("T1", "T2", "S11")
        for _ in range(5):
            deliver(engine, runs=1)
        before = engine.state
        deliver(engine, runs=1)
        assert engine.state.phase == MatchPhase.SECOND_INNINGS

        engine.undo()
        assert engine.state == before
        assert engine.state.phase == MatchPhase.FIRST_INNINGS
        assert engine.state.target_runs is None

    def test_undo_selection(self, live_engine: ScoringEngine, deliver):
        for _ in range(6):
            deliver(live_engine)
        live_engine.select_bowler("S10")
        state = live_engine.undo()
        assert state.bowler_id is None
        assert state.pending_bowler_change

    def test_nothing_to_undo(self, engine: ScoringEngine):
        with pytest.raises(StateConflictError) as exc_info:
            engine.undo()
        assert exc_info.value.code == ReasonCode.NOTHING_TO_UNDO

    def test_stale_undo(self, live_engine: ScoringEngine, match_info, scoring_config):
        other = ScoringEngine.new_match(make_match_info("other_match"), scoring_config)
        live_engine.history.push(other.state, "foreign")
        depth = len(live_engine.history)

        with pytest.raises(StateConflictError) as exc_info:
            live_engine.undo()
        assert exc_info.value.code == ReasonCode.STALE_UNDO
        assert len(live_engine.history) == depth
        assert live_engine.state.match_id == "test_001"

    def test_history_is_bounded(self, match_info, deliver):
        engine = ScoringEngine.new_match(match_info, ScoringConfig(history_depth=3))
        engine.start_innings("T1", "T2", "S11")
        for _ in range(5):
            deliver(engine, runs=1)
        assert len(engine.history) == 3
        for _ in range(3):
            engine.undo()
        assert engine.state.current_innings.runs == 2
        with pytest.raises(StateConflictError):
            engine.undo()

    def test_rejected_delivery_not_recorded(self, live_engine: ScoringEngine):
        depth = len(live_engine.history)
        with pytest.raises(ValidationError):
            live_engine.apply_delivery(DeliveryEvent(runs=-1))
        assert len(live_engine.history) == depth


class TestSubscribers:
    def test_callbacks_fire_on_commit_and_undo(self, live_engine: ScoringEngine, deliver):
        seen = []
        live_engine.on_update(lambda s: seen.append(s.current_innings.runs))

        deliver(live_engine, runs=2)
        live_engine.undo()
        assert seen == [2, 0]

    def test_callbacks_skip_rejections(self, live_engine: ScoringEngine):
        seen = []
        live_engine.on_update(seen.append)
        with pytest.raises(ValidationError):
            live_engine.select_batter("T3")
        assert seen == []
