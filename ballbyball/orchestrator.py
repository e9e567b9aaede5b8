"""
Scoring Engine command line.

Drives the engine end to end, either on a synthetic match or by replaying
an operator delivery log, and prints the scorecards and result.

Usage:
    python -m ballbyball.orchestrator --demo
    python -m ballbyball.orchestrator --replay --setup match.json --deliveries balls.csv
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from ballbyball.config import EngineConfig
from ballbyball.data.ball_event import DeliveryEvent, ExtrasType, LineupPlayer, MatchInfo, WicketType
from ballbyball.engine import ScoringEngine
from ballbyball.errors import ScoringError
from ballbyball.scoring import ledger
from ballbyball.state.match_state import MatchState, PlayerStatus

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("ballbyball.orchestrator")


def print_scorecard(state: MatchState) -> None:
    for team in (state.match_info.batting_first, state.match_info.bowling_first):
        inn = state.innings[team]
        print("\n" + "=" * 60)
        print(f"{team}: {inn.score_str} ({inn.overs} ov)")
        print("=" * 60)
        for row in ledger.batting_card(state, team):
            print(
                f"  {row.name:<18} {row.dismissal:<28} "
                f"{row.runs:>3} ({row.balls}) 4s:{row.fours} 6s:{row.sixes} SR:{row.strike_rate:.1f}"
            )
        e = inn.extras
        print(f"  Extras: {e.total} (w {e.wides}, nb {e.no_balls}, b {e.byes}, lb {e.leg_byes})")
        remaining = ledger.yet_to_bat(state, team)
        if remaining:
            print(f"  Yet to bat: {', '.join(remaining)}")
        if inn.fall_of_wickets:
            fow = ", ".join(
                f"{f.wicket}-{f.runs} ({f.player_name}, {f.over})" for f in inn.fall_of_wickets
            )
            print(f"  Fall of wickets: {fow}")
        print("  Bowling:")
        for row in ledger.bowling_card(state, inn.bowling_team):
            print(
                f"    {row.name:<18} {row.overs:>5}-{row.maidens}-{row.runs}-{row.wickets} "
                f"Econ:{row.economy:.2f}"
            )
    print()
    if state.result is not None:
        print(f"Result: {state.result.text}")
    else:
        print(f"In progress: {state.summary()}")


# ----------------------------------------------------------------------
# Demo
# ----------------------------------------------------------------------

def _demo_match_info() -> MatchInfo:
    return MatchInfo(
        match_id="demo_001",
        team_a="Thunder",
        team_b="Strikers",
        batting_first="Thunder",
        team_a_players=[LineupPlayer(f"T{i}", f"Thunder_{i}") for i in range(1, 12)],
        team_b_players=[LineupPlayer(f"S{i}", f"Strikers_{i}") for i in range(1, 12)],
        venue="Demo Stadium",
    )


def _random_delivery(rng: random.Random, state: MatchState) -> DeliveryEvent:
    r = rng.random()
    if r < 0.04:
        return DeliveryEvent(extra_type=ExtrasType.WIDE)
    if r < 0.06:
        return DeliveryEvent(extra_type=ExtrasType.NO_BALL, runs=rng.choice([0, 1, 4]))
    if r < 0.08:
        return DeliveryEvent(extra_type=ExtrasType.LEG_BYE, runs=1)
    if r < 0.13:
        if state.free_hit:
            wicket = WicketType.RUN_OUT
        else:
            wicket = rng.choice([WicketType.BOWLED, WicketType.CAUGHT, WicketType.LBW])
        fielder = rng.choice(list(state.bowling_lineup)) if wicket != WicketType.BOWLED else None
        return DeliveryEvent(
            is_wicket=True,
            wicket_type=wicket,
            dismissed_player_id=state.striker_id,
            assist_player_id=fielder,
        )
    runs = rng.choices([0, 1, 2, 3, 4, 6], weights=[35, 30, 10, 2, 14, 6])[0]
    return DeliveryEvent(runs=runs)


def _next_batter(state: MatchState) -> Optional[str]:
    for entry in state.batting_lineup.values():
        if entry.status == PlayerStatus.PENDING:
            return entry.player_id
    return None


def _next_bowler(state: MatchState, order: list[str]) -> str:
    over = state.current_innings.legal_balls // 6
    for i in range(len(order)):
        candidate = order[(over + i) % len(order)]
        if candidate != state.last_over_bowler_id:
            return candidate
    return order[0]


def run_demo(config: EngineConfig, seed: Optional[int] = None) -> MatchState:
    """Score a synthetic match with random outcomes."""
    rng = random.Random(seed)
    engine = ScoringEngine.new_match(_demo_match_info(), config.scoring)

    logger.info("=" * 60)
    logger.info("SCORING ENGINE - DEMO MODE")
    logger.info("=" * 60)

    while not engine.state.is_complete:
        state = engine.state
        bowlers = list(state.bowling_lineup)[-5:]
        if state.striker_id is None and state.non_striker_id is None:
            pending = [e.player_id for e in state.batting_lineup.values()]
            engine.start_innings(pending[0], pending[1], _next_bowler(state, bowlers))
            continue
        if state.striker_id is None or state.non_striker_id is None:
            engine.select_batter(_next_batter(state))
            continue
        if state.bowler_id is None:
            engine.select_bowler(_next_bowler(state, bowlers))
            continue
        try:
            result = engine.apply_delivery(_random_delivery(rng, state))
        except ScoringError as e:
            logger.debug("Demo delivery rejected: %s", e)
            continue
        if result.ball.is_wicket or result.over_complete:
            logger.info("  %s | %s", result.ball.text, engine.state.summary())

    print_scorecard(engine.state)
    return engine.state


# ----------------------------------------------------------------------
# Replay
# ----------------------------------------------------------------------

def run_replay(config: EngineConfig, setup_path: str, deliveries_path: str) -> MatchState:
    """Replay a delivery log through the engine."""
    from ballbyball.data.delivery_loader import load_deliveries_from_csv, load_match_setup

    match_info, overs = load_match_setup(Path(setup_path))
    scoring = config.scoring
    if overs is not None:
        scoring = replace(scoring, overs_limit=overs)
    rows = load_deliveries_from_csv(Path(deliveries_path))

    logger.info("=" * 60)
    logger.info("SCORING ENGINE - REPLAY MODE")
    logger.info("=" * 60)
    logger.info("Setup: %s | Deliveries: %s (%d rows)", setup_path, deliveries_path, len(rows))

    engine = ScoringEngine.new_match(match_info, scoring)
    engine.replay(rows)
    print_scorecard(engine.state)
    return engine.state


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Ball-by-ball limited-overs scoring engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m ballbyball.orchestrator --demo --seed 7
  python -m ballbyball.orchestrator --replay --setup match.json --deliveries balls.csv
        """,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--demo", action="store_true", help="Score a synthetic match")
    mode.add_argument("--replay", action="store_true", help="Replay a delivery log")

    parser.add_argument("--setup", type=str, help="Match setup JSON (teams and XIs)")
    parser.add_argument("--deliveries", type=str, help="Delivery log CSV")
    parser.add_argument("--overs", type=int, help="Overs per innings")
    parser.add_argument("--seed", type=int, help="Random seed for --demo")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    config = EngineConfig.from_env()
    logging.getLogger().setLevel(logging.DEBUG if args.verbose else config.log_level)

    if args.overs:
        config = replace(config, scoring=replace(config.scoring, overs_limit=args.overs))

    if args.demo:
        run_demo(config, seed=args.seed)
    elif args.replay:
        if not args.setup or not args.deliveries:
            logger.error("--replay needs both --setup and --deliveries")
            sys.exit(2)
        try:
            run_replay(config, args.setup, args.deliveries)
        except ScoringError as e:
            logger.error("Replay stopped: %s", e)
            sys.exit(1)


if __name__ == "__main__":
    main()
