"""
Delivery log loader.

Loads a match setup (teams and XIs) from JSON and an operator delivery log
from CSV so a match can be replayed through the engine.

CSV columns:
    striker, non_striker, bowler, extra_type, runs, bat_runs,
    wicket_type, player_dismissed, replacement, fielder

Only striker, non_striker, bowler and runs are required; bat_runs may be
left blank to take the default for the delivery type.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ballbyball.data.ball_event import (
    DeliveryEvent,
    ExtrasType,
    LineupPlayer,
    MatchInfo,
    WicketType,
)

logger = logging.getLogger(__name__)

EXTRAS_MAP = {
    "": ExtrasType.NONE,
    "none": ExtrasType.NONE,
    "wide": ExtrasType.WIDE,
    "wides": ExtrasType.WIDE,
    "no_ball": ExtrasType.NO_BALL,
    "noball": ExtrasType.NO_BALL,
    "noballs": ExtrasType.NO_BALL,
    "no-ball": ExtrasType.NO_BALL,
    "bye": ExtrasType.BYE,
    "byes": ExtrasType.BYE,
    "leg_bye": ExtrasType.LEG_BYE,
    "legbye": ExtrasType.LEG_BYE,
    "legbyes": ExtrasType.LEG_BYE,
    "leg-bye": ExtrasType.LEG_BYE,
}

WICKET_MAP = {
    "bowled": WicketType.BOWLED,
    "caught": WicketType.CAUGHT,
    "caught and bowled": WicketType.CAUGHT_AND_BOWLED,
    "lbw": WicketType.LBW,
    "run out": WicketType.RUN_OUT,
    "stumped": WicketType.STUMPED,
    "hit wicket": WicketType.HIT_WICKET,
    "obstructing the field": WicketType.OBSTRUCTING,
    "retired hurt": WicketType.RETIRED_HURT,
    "retired": WicketType.RETIRED_HURT,
}


@dataclass
class DeliveryRow:
    """One logged delivery plus the players it was bowled with."""

    striker: str
    non_striker: str
    bowler: str
    event: DeliveryEvent


def _players(raw: list[dict]) -> list[LineupPlayer]:
    return [LineupPlayer(player_id=str(p["id"]), name=p.get("name", str(p["id"]))) for p in raw]


def load_match_setup(json_path: Path) -> tuple[MatchInfo, Optional[int]]:
    """Load teams and XIs from a setup file.

    Returns:
        Tuple of (MatchInfo, overs limit from the file or None)
    """
    with open(json_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    team_a = data["team_a"]
    team_b = data["team_b"]
    info = MatchInfo(
        match_id=str(data.get("match_id", Path(json_path).stem)),
        team_a=team_a["name"],
        team_b=team_b["name"],
        batting_first=data.get("batting_first", team_a["name"]),
        team_a_players=_players(team_a.get("players", [])),
        team_b_players=_players(team_b.get("players", [])),
        venue=data.get("venue", ""),
        date=data.get("date", ""),
        toss_winner=data.get("toss_winner", ""),
        toss_decision=data.get("toss_decision", ""),
        competition=data.get("competition", ""),
    )
    overs = data.get("overs_limit")
    return info, int(overs) if overs is not None else None


def _parse_wicket(raw: str) -> Optional[WicketType]:
    key = raw.strip().lower().replace("_", " ")
    if not key:
        return None
    if key not in WICKET_MAP:
        raise ValueError(f"Unknown wicket type: {raw!r}")
    return WICKET_MAP[key]


def _parse_extra(raw: str) -> ExtrasType:
    key = raw.strip().lower()
    if key not in EXTRAS_MAP:
        raise ValueError(f"Unknown extra type: {raw!r}")
    return EXTRAS_MAP[key]


def parse_row(row: dict[str, str]) -> DeliveryRow:
    """Turn one CSV row into a DeliveryRow."""
    wicket_type = _parse_wicket(row.get("wicket_type") or "")
    bat_runs_raw = (row.get("bat_runs") or "").strip()
    event = DeliveryEvent(
        runs=int(row.get("runs") or 0),
        bat_runs=int(bat_runs_raw) if bat_runs_raw else None,
        extra_type=_parse_extra(row.get("extra_type") or ""),
        is_wicket=wicket_type is not None,
        wicket_type=wicket_type,
        dismissed_player_id=(row.get("player_dismissed") or "").strip() or None,
        replacement_batter_id=(row.get("replacement") or "").strip() or None,
        assist_player_id=(row.get("fielder") or "").strip() or None,
    )
    return DeliveryRow(
        striker=row["striker"].strip(),
        non_striker=row["non_striker"].strip(),
        bowler=row["bowler"].strip(),
        event=event,
    )


def load_deliveries_from_csv(csv_path: Path) -> list[DeliveryRow]:
    """Load a delivery log in the order it was entered."""
    with open(csv_path, "r", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        rows = list(reader)

    if not rows:
        raise ValueError(f"Empty CSV file: {csv_path}")

    deliveries = []
    for line_no, row in enumerate(rows, start=2):
        try:
            deliveries.append(parse_row(row))
        except (KeyError, ValueError) as e:
            raise ValueError(f"{csv_path}:{line_no}: {e}") from e

    logger.info("Loaded %d deliveries from %s", len(deliveries), csv_path)
    return deliveries
