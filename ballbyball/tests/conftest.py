"""Shared test fixtures for scoring engine tests."""

from __future__ import annotations

from typing import Callable, Optional

import pytest

from ballbyball.config import ScoringConfig
from ballbyball.data.ball_event import DeliveryEvent, LineupPlayer, MatchInfo, WicketType
from ballbyball.engine import DeliveryResult, ScoringEngine
from ballbyball.state.match_state import MatchState, PlayerStatus


def make_match_info(match_id: str = "test_001", players: int = 11) -> MatchInfo:
    return MatchInfo(
        match_id=match_id,
        team_a="Thunder",
        team_b="Strikers",
        batting_first="Thunder",
        team_a_players=[LineupPlayer(f"T{i}", f"Thunder_{i}") for i in range(1, players + 1)],
        team_b_players=[LineupPlayer(f"S{i}", f"Strikers_{i}") for i in range(1, players + 1)],
        venue="Test Ground",
    )


def next_pending(state: MatchState) -> Optional[str]:
    for entry in state.batting_lineup.values():
        if entry.status == PlayerStatus.PENDING:
            return entry.player_id
    return None


@pytest.fixture
def match_info() -> MatchInfo:
    return make_match_info()


@pytest.fixture
def scoring_config() -> ScoringConfig:
    """Standard T20 rules."""
    return ScoringConfig(overs_limit=20)


@pytest.fixture
def engine(match_info: MatchInfo, scoring_config: ScoringConfig) -> ScoringEngine:
    return ScoringEngine.new_match(match_info, scoring_config)


@pytest.fixture
def live_engine(engine: ScoringEngine) -> ScoringEngine:
    """First innings under way: T1 on strike, T2 non-striker, S11 bowling."""
    engine.start_innings("T1", "T2", "S11")
    return engine


@pytest.fixture
def deliver() -> Callable[..., DeliveryResult]:
    """Apply a delivery, choosing a fresh bowler first if the over has just ended."""

    def _deliver(engine: ScoringEngine, event: Optional[DeliveryEvent] = None, **kwargs) -> DeliveryResult:
        state = engine.state
        if state.phase.is_live and state.striker_id and state.bowler_id is None:
            for bowler in list(state.bowling_lineup)[-2:]:
                if bowler != state.last_over_bowler_id:
                    engine.select_bowler(bowler)
                    break
        return engine.apply_delivery(event or DeliveryEvent(**kwargs))

    return _deliver


@pytest.fixture
def bowled() -> Callable[[MatchState], DeliveryEvent]:
    """Bowled dismissal of the striker with the next batter in the order walking in."""

    def _bowled(state: MatchState) -> DeliveryEvent:
        return DeliveryEvent(
            is_wicket=True,
            wicket_type=WicketType.BOWLED,
            replacement_batter_id=next_pending(state),
        )

    return _bowled
