"""
Match state model.

Holds the complete scoring state of a limited-overs match: both innings,
both lineups with per-player figures, the players on the field, the
current partnership and the recent-ball feed. The engine owns the live
instance; once the match is completed it is read-only.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ballbyball.data.ball_event import BallEvent, MatchInfo

logger = logging.getLogger(__name__)


class MatchPhase(Enum):
    UPCOMING = "upcoming"
    FIRST_INNINGS = "first_innings"
    SECOND_INNINGS = "second_innings"
    COMPLETED = "completed"

    @property
    def is_live(self) -> bool:
        return self in (MatchPhase.FIRST_INNINGS, MatchPhase.SECOND_INNINGS)


class PlayerStatus(Enum):
    PENDING = "pending"
    BATTING = "batting"
    OUT = "out"
    RETIRED = "retired"


class ResultType(Enum):
    CHASE_WIN = "chase_win"
    DEFEND_WIN = "defend_win"
    TIE = "tie"


def format_overs(legal_balls: int) -> str:
    """Overs display string, e.g. 33 balls -> '5.3'."""
    return f"{legal_balls // 6}.{legal_balls % 6}"


@dataclass
class BattingFigures:
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0


@dataclass
class BowlingFigures:
    balls: int = 0
    runs_conceded: int = 0
    wickets: int = 0
    maidens: int = 0


@dataclass
class LineupEntry:
    """One player in a team's XI with running batting and bowling figures."""

    player_id: str
    name: str
    batting: BattingFigures = field(default_factory=BattingFigures)
    bowling: BowlingFigures = field(default_factory=BowlingFigures)
    status: PlayerStatus = PlayerStatus.PENDING
    on_crease: bool = False
    on_strike: bool = False
    bowling_active: bool = False
    dismissal: Optional[str] = None


@dataclass
class Extras:
    wides: int = 0
    no_balls: int = 0
    byes: int = 0
    leg_byes: int = 0

    @property
    def total(self) -> int:
        return self.wides + self.no_balls + self.byes + self.leg_byes


@dataclass
class FallOfWicket:
    wicket: int
    runs: int
    over: str
    player_id: str
    player_name: str
    dismissal: str


@dataclass
class InningsScore:
    """Score for one team's innings. Overs are derived from legal_balls."""

    batting_team: str
    bowling_team: str
    runs: int = 0
    wickets: int = 0
    legal_balls: int = 0
    extras: Extras = field(default_factory=Extras)
    fall_of_wickets: list[FallOfWicket] = field(default_factory=list)

    @property
    def overs(self) -> str:
        return format_overs(self.legal_balls)

    @property
    def score_str(self) -> str:
        return f"{self.runs}/{self.wickets}"


@dataclass
class PartnershipState:
    """Current batting partnership."""
    runs: int = 0
    balls: int = 0

    @property
    def strike_rate(self) -> float:
        return (self.runs / self.balls * 100) if self.balls > 0 else 0.0


@dataclass
class MatchResult:
    result_type: ResultType
    winner: Optional[str]
    margin: int = 0
    text: str = ""


@dataclass
class MatchState:
    """Complete match state at any point during the game.

    Updated delivery by delivery through the ScoringEngine. Exactly one
    InningsScore exists per team; ``lineups`` maps team name to the XI
    keyed by player id.
    """

    match_info: MatchInfo
    overs_limit: int
    max_wickets: int = 10
    phase: MatchPhase = MatchPhase.UPCOMING
    innings: dict[str, InningsScore] = field(default_factory=dict)
    lineups: dict[str, dict[str, LineupEntry]] = field(default_factory=dict)

    target_runs: Optional[int] = None
    free_hit: bool = False

    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    bowler_id: Optional[str] = None
    last_over_bowler_id: Optional[str] = None
    pending_bowler_change: bool = False
    current_over_bowler_runs: int = 0  # For maiden detection
    current_over_bowlers: list[str] = field(default_factory=list)

    partnership: PartnershipState = field(default_factory=PartnershipState)
    recent_balls: deque = field(default_factory=lambda: deque(maxlen=36))
    event_count: int = 0
    result: Optional[MatchResult] = None

    @classmethod
    def new(
        cls,
        match_info: MatchInfo,
        overs_limit: int,
        max_wickets: int = 10,
        recent_balls_capacity: int = 36,
    ) -> "MatchState":
        """Create an upcoming match with both innings and lineups seeded."""
        first = match_info.batting_first
        second = match_info.bowling_first
        if first not in (match_info.team_a, match_info.team_b):
            raise ValueError(f"batting_first must be one of the two teams, got {first!r}")

        lineups: dict[str, dict[str, LineupEntry]] = {}
        for team in (match_info.team_a, match_info.team_b):
            players = match_info.players_for(team)
            ids = [p.player_id for p in players]
            if len(set(ids)) != len(ids):
                raise ValueError(f"Duplicate player ids in {team} lineup")
            lineups[team] = {
                p.player_id: LineupEntry(player_id=p.player_id, name=p.name)
                for p in players
            }

        logger.debug(
            "New match %s: %s vs %s, %d overs, %d wickets",
            match_info.match_id, first, second, overs_limit, max_wickets,
        )
        return cls(
            match_info=match_info,
            overs_limit=overs_limit,
            max_wickets=max_wickets,
            innings={
                first: InningsScore(batting_team=first, bowling_team=second),
                second: InningsScore(batting_team=second, bowling_team=first),
            },
            lineups=lineups,
            recent_balls=deque(maxlen=recent_balls_capacity),
        )

    @property
    def match_id(self) -> str:
        return self.match_info.match_id

    @property
    def batting_team(self) -> str:
        if self.phase in (MatchPhase.SECOND_INNINGS, MatchPhase.COMPLETED):
            return self.match_info.bowling_first
        return self.match_info.batting_first

    @property
    def bowling_team(self) -> str:
        return self.current_innings.bowling_team

    @property
    def current_innings(self) -> InningsScore:
        return self.innings[self.batting_team]

    @property
    def first_innings(self) -> InningsScore:
        return self.innings[self.match_info.batting_first]

    @property
    def second_innings(self) -> InningsScore:
        return self.innings[self.match_info.bowling_first]

    @property
    def batting_lineup(self) -> dict[str, LineupEntry]:
        return self.lineups[self.batting_team]

    @property
    def bowling_lineup(self) -> dict[str, LineupEntry]:
        return self.lineups[self.bowling_team]

    @property
    def wicket_limit(self) -> int:
        """Wickets that end the batting side's innings (one batter left standing)."""
        squad = len(self.batting_lineup)
        if squad < 2:
            return self.max_wickets
        return min(self.max_wickets, squad - 1)

    @property
    def fall_of_wickets(self) -> list[FallOfWicket]:
        return self.current_innings.fall_of_wickets

    @property
    def balls_remaining(self) -> int:
        return max(0, self.overs_limit * 6 - self.current_innings.legal_balls)

    @property
    def runs_needed(self) -> Optional[int]:
        if self.target_runs is None:
            return None
        return max(0, self.target_runs - self.second_innings.runs)

    @property
    def last_ball(self) -> Optional[BallEvent]:
        return self.recent_balls[0] if self.recent_balls else None

    @property
    def is_complete(self) -> bool:
        return self.phase == MatchPhase.COMPLETED

    def player_name(self, player_id: Optional[str]) -> str:
        if not player_id:
            return ""
        for lineup in self.lineups.values():
            entry = lineup.get(player_id)
            if entry is not None:
                return entry.name
        return player_id

    def summary(self) -> str:
        inn = self.current_innings
        line = f"{inn.batting_team} {inn.score_str} ({inn.overs} ov)"
        if self.target_runs is not None and not self.is_complete:
            line += f", need {self.runs_needed} from {self.balls_remaining} balls"
        if self.result is not None:
            line += f" - {self.result.text}"
        return line
