"""
Ball-by-ball event data model.

Defines the operator input (DeliveryEvent) that enters the engine and the
canonical BallEvent it emits for each accepted delivery.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class WicketType(Enum):
    BOWLED = "bowled"
    CAUGHT = "caught"
    CAUGHT_AND_BOWLED = "caught_and_bowled"
    LBW = "lbw"
    RUN_OUT = "run_out"
    STUMPED = "stumped"
    HIT_WICKET = "hit_wicket"
    OBSTRUCTING = "obstructing_the_field"
    RETIRED_HURT = "retired_hurt"

    @property
    def credited_to_bowler(self) -> bool:
        return self in BOWLER_WICKETS

    @property
    def is_dismissal(self) -> bool:
        """Retirement takes a batter off without costing a wicket."""
        return self is not WicketType.RETIRED_HURT


BOWLER_WICKETS = frozenset({
    WicketType.BOWLED,
    WicketType.CAUGHT,
    WicketType.CAUGHT_AND_BOWLED,
    WicketType.LBW,
    WicketType.STUMPED,
    WicketType.HIT_WICKET,
})


class ExtrasType(Enum):
    NONE = "none"
    WIDE = "wide"
    NO_BALL = "no_ball"
    BYE = "bye"
    LEG_BYE = "leg_bye"


@dataclass(frozen=True)
class DeliveryEvent:
    """One scoring action as entered on the operator console.

    ``runs`` are the runs completed on the delivery (including boundaries)
    and exclude the one-run wide/no-ball penalty. ``bat_runs`` is the part
    of ``runs`` struck off the bat; when omitted it defaults to ``runs``
    for legal deliveries and no-balls and to 0 otherwise.
    """

    runs: int = 0
    bat_runs: Optional[int] = None
    extra_type: ExtrasType = ExtrasType.NONE

    is_wicket: bool = False
    wicket_type: Optional[WicketType] = None
    dismissed_player_id: Optional[str] = None
    replacement_batter_id: Optional[str] = None
    assist_player_id: Optional[str] = None  # Catcher, keeper or run-out fielder


@dataclass
class BallEvent:
    """A single accepted delivery, as broadcast to spectators."""

    sequence: int  # Engine-assigned, strictly increasing per match
    over: str  # Innings overs after this ball, e.g. "5.3"
    over_number: int  # 1-indexed over this delivery belongs to
    ball: int  # Legal balls bowled in this over so far (0-6)
    team: str
    match_phase: str
    batsman: str
    non_striker: str
    bowler: str

    runs: int = 0  # Everything added to the team total
    bat_runs: int = 0
    extra_type: ExtrasType = ExtrasType.NONE
    counts_ball: bool = True
    is_wicket: bool = False
    is_boundary: bool = False
    free_hit: bool = False  # This delivery was a free hit

    wicket_type: Optional[WicketType] = None
    player_dismissed: Optional[str] = None
    dismissal: Optional[str] = None
    badge: str = ""
    text: str = ""

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_legal_delivery(self) -> bool:
        return self.extra_type not in (ExtrasType.WIDE, ExtrasType.NO_BALL)

    @property
    def is_dot_ball(self) -> bool:
        return self.runs == 0 and not self.is_wicket

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form for subscribers."""
        d = asdict(self)
        d["extra_type"] = self.extra_type.value
        d["wicket_type"] = self.wicket_type.value if self.wicket_type else None
        d["timestamp"] = self.timestamp.isoformat()
        return d


@dataclass
class LineupPlayer:
    """Pre-match squad entry."""

    player_id: str
    name: str


@dataclass
class MatchInfo:
    """Pre-match metadata."""

    match_id: str
    team_a: str
    team_b: str
    batting_first: str  # Name of team_a or team_b
    team_a_players: list[LineupPlayer] = field(default_factory=list)
    team_b_players: list[LineupPlayer] = field(default_factory=list)
    venue: str = ""
    date: str = ""
    toss_winner: str = ""
    toss_decision: str = ""  # bat / field
    competition: str = ""

    @property
    def bowling_first(self) -> str:
        return self.team_b if self.batting_first == self.team_a else self.team_a

    def players_for(self, team: str) -> list[LineupPlayer]:
        if team == self.team_a:
            return self.team_a_players
        if team == self.team_b:
            return self.team_b_players
        raise ValueError(f"Unknown team: {team}")
