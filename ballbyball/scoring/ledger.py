"""
Score ledger.

Accrues per-batter, per-bowler, partnership and extras figures for each
delivery, and derives the display figures built on them (strike rates,
economy, run rates, dismissal text, scorecard rows).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from ballbyball.data.ball_event import BallEvent, WicketType
from ballbyball.scoring.classifier import Delivery
from ballbyball.state.match_state import (
    InningsScore,
    LineupEntry,
    MatchState,
    PartnershipState,
    PlayerStatus,
    format_overs,
)

# ----------------------------------------------------------------------
# Derived figures
# ----------------------------------------------------------------------

def parse_overs(overs: str) -> int:
    """'5.3' -> 33 legal balls."""
    whole, _, part = overs.partition(".")
    balls = int(part) if part else 0
    if not 0 <= balls <= 5:
        raise ValueError(f"Invalid overs value: {overs!r}")
    return int(whole or 0) * 6 + balls


def strike_rate(runs: int, balls: int) -> float:
    """Runs per 100 balls faced."""
    return runs / balls * 100 if balls > 0 else 0.0


def economy(runs_conceded: int, balls: int) -> float:
    """Runs conceded per six legal balls."""
    return runs_conceded / (balls / 6) if balls > 0 else 0.0


def run_rate(runs: int, legal_balls: int) -> float:
    return runs / legal_balls * 6 if legal_balls > 0 else 0.0


def required_run_rate(runs_needed: int, balls_remaining: int) -> Optional[float]:
    if balls_remaining <= 0:
        return None
    return runs_needed / balls_remaining * 6


def projected_score(runs: int, legal_balls: int, overs_limit: int) -> int:
    """Final total if the current run rate holds for the full quota."""
    if legal_balls == 0:
        return 0
    return round(run_rate(runs, legal_balls) * overs_limit)


def bowling_average(runs_conceded: int, wickets: int) -> Optional[float]:
    return runs_conceded / wickets if wickets > 0 else None


def bowling_strike_rate(balls: int, wickets: int) -> Optional[float]:
    return balls / wickets if wickets > 0 else None


def dismissal_text(
    wicket_type: WicketType,
    bowler: str,
    fielder: Optional[str] = None,
) -> str:
    """Scorecard dismissal description, e.g. 'c Smith b Jones'."""
    if wicket_type == WicketType.BOWLED:
        return f"b {bowler}"
    if wicket_type == WicketType.CAUGHT:
        if fielder and fielder != bowler:
            return f"c {fielder} b {bowler}"
        return f"c & b {bowler}"
    if wicket_type == WicketType.CAUGHT_AND_BOWLED:
        return f"c & b {bowler}"
    if wicket_type == WicketType.LBW:
        return f"lbw {bowler}"
    if wicket_type == WicketType.RUN_OUT:
        return f"run out ({fielder})" if fielder else "run out"
    if wicket_type == WicketType.STUMPED:
        return f"st {fielder} b {bowler}" if fielder else f"st b {bowler}"
    if wicket_type == WicketType.HIT_WICKET:
        return f"hit wicket b {bowler}"
    if wicket_type == WicketType.OBSTRUCTING:
        return "obstructing the field"
    if wicket_type == WicketType.RETIRED_HURT:
        return "retired hurt"
    raise ValueError(f"Unhandled wicket type: {wicket_type}")


# ----------------------------------------------------------------------
# Accrual
# ----------------------------------------------------------------------

def credit_batter(entry: LineupEntry, delivery: Delivery) -> None:
    figures = entry.batting
    figures.runs += delivery.bat_runs
    if delivery.adds_ball_faced:
        figures.balls += 1
    if delivery.bat_runs == 4:
        figures.fours += 1
    elif delivery.bat_runs == 6:
        figures.sixes += 1


def credit_bowler(entry: LineupEntry, delivery: Delivery) -> None:
    figures = entry.bowling
    if delivery.counts_ball:
        figures.balls += 1
    figures.runs_conceded += delivery.bowler_runs
    if delivery.wicket_type is not None and delivery.wicket_type.credited_to_bowler:
        figures.wickets += 1


def add_to_innings(innings: InningsScore, delivery: Delivery) -> None:
    innings.runs += delivery.total_runs
    if delivery.counts_ball:
        innings.legal_balls += 1
    for name, value in delivery.extras_breakdown().items():
        setattr(innings.extras, name, getattr(innings.extras, name) + value)


def add_to_partnership(partnership: PartnershipState, delivery: Delivery) -> None:
    partnership.runs += delivery.total_runs
    if delivery.counts_ball:
        partnership.balls += 1


# ----------------------------------------------------------------------
# Scorecards
# ----------------------------------------------------------------------

@dataclass
class BattingRow:
    player_id: str
    name: str
    dismissal: str
    runs: int
    balls: int
    fours: int
    sixes: int
    strike_rate: float


@dataclass
class BowlingRow:
    player_id: str
    name: str
    overs: str
    maidens: int
    runs: int
    wickets: int
    economy: float
    average: Optional[float]
    strike_rate: Optional[float]


def batting_card(state: MatchState, team: str) -> list[BattingRow]:
    """Rows for every batter who has come to the crease, in lineup order."""
    rows = []
    for entry in state.lineups[team].values():
        if entry.status == PlayerStatus.PENDING:
            continue
        if entry.status == PlayerStatus.BATTING:
            dismissal = "not out"
        else:
            dismissal = entry.dismissal or ""
        b = entry.batting
        rows.append(BattingRow(
            player_id=entry.player_id,
            name=entry.name,
            dismissal=dismissal,
            runs=b.runs,
            balls=b.balls,
            fours=b.fours,
            sixes=b.sixes,
            strike_rate=round(strike_rate(b.runs, b.balls), 2),
        ))
    return rows


def bowling_card(state: MatchState, team: str) -> list[BowlingRow]:
    """Rows for every bowler on ``team`` who has delivered at least once."""
    rows = []
    for entry in state.lineups[team].values():
        b = entry.bowling
        if b.balls == 0 and b.runs_conceded == 0:
            continue
        avg = bowling_average(b.runs_conceded, b.wickets)
        sr = bowling_strike_rate(b.balls, b.wickets)
        rows.append(BowlingRow(
            player_id=entry.player_id,
            name=entry.name,
            overs=format_overs(b.balls),
            maidens=b.maidens,
            runs=b.runs_conceded,
            wickets=b.wickets,
            economy=round(economy(b.runs_conceded, b.balls), 2),
            average=round(avg, 2) if avg is not None else None,
            strike_rate=round(sr, 2) if sr is not None else None,
        ))
    return rows


def yet_to_bat(state: MatchState, team: str) -> list[str]:
    return [
        e.name for e in state.lineups[team].values()
        if e.status == PlayerStatus.PENDING
    ]


def over_summaries(balls: Iterable[BallEvent]) -> list[dict]:
    """Group ball events (newest first, as in the feed) by innings and over.

    Overs come back in the order they were bowled, so a feed spanning the
    innings break lists the first innings' overs before the second's.
    """
    overs: dict[tuple[str, int], dict] = {}
    for ball in sorted(balls, key=lambda b: b.sequence):
        summary = overs.setdefault(
            (ball.team, ball.over_number),
            {
                "team": ball.team,
                "over_number": ball.over_number,
                "badges": [],
                "runs": 0,
                "wickets": 0,
                "dots": 0,
            },
        )
        summary["badges"].append(ball.badge)
        summary["runs"] += ball.runs
        if ball.is_wicket:
            summary["wickets"] += 1
        if ball.is_legal_delivery and ball.is_dot_ball:
            summary["dots"] += 1
    return list(overs.values())


def innings_summary(state: MatchState, team: str) -> dict:
    """Headline figures for one innings, including live-chase numbers."""
    inn = state.innings[team]
    summary = {
        "team": team,
        "runs": inn.runs,
        "wickets": inn.wickets,
        "overs": inn.overs,
        "run_rate": round(run_rate(inn.runs, inn.legal_balls), 2),
        "extras": inn.extras.total,
        "projected": projected_score(inn.runs, inn.legal_balls, state.overs_limit),
    }
    if state.target_runs is not None and team == state.match_info.bowling_first:
        needed = max(0, state.target_runs - inn.runs)
        remaining = max(0, state.overs_limit * 6 - inn.legal_balls)
        rrr = required_run_rate(needed, remaining)
        summary["target"] = state.target_runs
        summary["runs_needed"] = needed
        summary["balls_remaining"] = remaining
        summary["required_run_rate"] = (
            round(rrr, 2) if rrr is not None and math.isfinite(rrr) else None
        )
    return summary
