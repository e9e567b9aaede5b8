"""
Deterministic ball text and over-strip badges.
"""

from __future__ import annotations

from typing import Optional

from ballbyball.data.ball_event import ExtrasType
from ballbyball.scoring.classifier import Delivery


def ball_badge(delivery: Delivery) -> str:
    """Short label for an over strip: W, 4, 6, Wd2, Nb5, 1lb, 2b, 0, 3."""
    if delivery.is_wicket and delivery.wicket_type.is_dismissal:
        return "W"
    if delivery.extra_type == ExtrasType.WIDE:
        return f"Wd{delivery.total_runs}" if delivery.total_runs > 1 else "Wd"
    if delivery.extra_type == ExtrasType.NO_BALL:
        return f"Nb{delivery.total_runs}" if delivery.total_runs > 1 else "Nb"
    if delivery.bat_runs in (4, 6):
        return str(delivery.bat_runs)
    if delivery.extra_type == ExtrasType.LEG_BYE and delivery.running_extras:
        return f"{delivery.running_extras}lb"
    if delivery.extra_type == ExtrasType.BYE and delivery.running_extras:
        return f"{delivery.running_extras}b"
    return str(delivery.bat_runs)


def _runs_phrase(runs: int) -> str:
    if runs == 0:
        return "no run"
    return "1 run" if runs == 1 else f"{runs} runs"


def ball_text(
    bowler: str,
    batter: str,
    delivery: Delivery,
    dismissal: Optional[str] = None,
    free_hit: bool = False,
) -> str:
    """One-line commentary, e.g. 'Jones to Smith, FOUR'."""
    if delivery.extra_type == ExtrasType.WIDE:
        outcome = f"wide, {_runs_phrase(delivery.total_runs)}"
    elif delivery.extra_type == ExtrasType.NO_BALL:
        outcome = f"no ball, {_runs_phrase(delivery.total_runs)}"
        if delivery.bat_runs in (4, 6):
            outcome += ", FOUR" if delivery.bat_runs == 4 else ", SIX"
    elif delivery.extra_type == ExtrasType.LEG_BYE:
        outcome = f"leg bye, {_runs_phrase(delivery.running_extras)}"
    elif delivery.extra_type == ExtrasType.BYE:
        outcome = f"bye, {_runs_phrase(delivery.running_extras)}"
    elif delivery.bat_runs == 4:
        outcome = "FOUR"
    elif delivery.bat_runs == 6:
        outcome = "SIX"
    else:
        outcome = _runs_phrase(delivery.bat_runs)

    if delivery.is_wicket:
        if delivery.wicket_type.is_dismissal:
            outcome = f"OUT! {dismissal}" if delivery.total_runs == 0 else f"{outcome}, OUT! {dismissal}"
        else:
            outcome = f"{outcome}, {dismissal}"

    text = f"{bowler} to {batter}, {outcome}"
    return f"FREE HIT: {text}" if free_hit else text
