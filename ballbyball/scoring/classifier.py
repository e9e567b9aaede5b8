"""
Delivery classifier.

Normalizes a raw operator action into a canonical Delivery: how many runs
go to the team, the batter and the bowler, whether the ball counts towards
the over, whether the batter faced it, and how many runs were run between
the wickets (which decides strike rotation).

Law summary:
    wide      +1 penalty, extra runs are wides too; not a ball, not faced
    no-ball   +1 penalty, bat runs or leg-byes on top; not a ball, faced
    bye/lb    counts as a ball and as faced; not the batter's or bowler's
    legal     counts, faced, full credit to batter and bowler
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ballbyball.data.ball_event import DeliveryEvent, ExtrasType, WicketType
from ballbyball.errors import ReasonCode, ValidationError
from ballbyball.scoring.free_hit import check_dismissal_allowed

logger = logging.getLogger(__name__)

PENALTY_EXTRAS = (ExtrasType.WIDE, ExtrasType.NO_BALL)
BOUNDARY_RUNS = (4, 6)

# The ball is dead the moment these dismissals happen
DEAD_BALL_DISMISSALS = frozenset({
    WicketType.BOWLED,
    WicketType.CAUGHT,
    WicketType.CAUGHT_AND_BOWLED,
    WicketType.LBW,
    WicketType.STUMPED,
    WicketType.HIT_WICKET,
})


@dataclass(frozen=True)
class Delivery:
    """Canonical, validated delivery record."""

    extra_type: ExtrasType
    total_runs: int  # Added to the team total
    bat_runs: int  # Credited to the striker
    running_extras: int  # Byes, leg-byes or wide runs completed
    counts_ball: bool
    adds_ball_faced: bool
    bowler_runs: int  # Charged to the bowler

    wicket_type: Optional[WicketType] = None
    dismissed_player_id: Optional[str] = None
    replacement_batter_id: Optional[str] = None
    assist_player_id: Optional[str] = None

    @property
    def penalty_runs(self) -> int:
        return 1 if self.extra_type in PENALTY_EXTRAS else 0

    @property
    def is_wicket(self) -> bool:
        return self.wicket_type is not None

    @property
    def is_boundary(self) -> bool:
        return self.bat_runs in BOUNDARY_RUNS

    @property
    def rotation_runs(self) -> int:
        """Runs completed by running; the penalty run never moves the batters."""
        return self.bat_runs + self.running_extras

    @property
    def rotates_strike(self) -> bool:
        # On a wicket the replacement takes the dismissed batter's end
        if self.is_wicket:
            return False
        return self.rotation_runs % 2 == 1

    def extras_breakdown(self) -> dict[str, int]:
        """Contribution of this delivery to the innings extras."""
        breakdown = {"wides": 0, "no_balls": 0, "byes": 0, "leg_byes": 0}
        if self.extra_type == ExtrasType.WIDE:
            breakdown["wides"] = 1 + self.running_extras
        elif self.extra_type == ExtrasType.NO_BALL:
            breakdown["no_balls"] = 1
            breakdown["leg_byes"] = self.running_extras
        elif self.extra_type == ExtrasType.BYE:
            breakdown["byes"] = self.running_extras
        elif self.extra_type == ExtrasType.LEG_BYE:
            breakdown["leg_byes"] = self.running_extras
        return breakdown


def _invalid(message: str, field: str) -> ValidationError:
    return ValidationError(ReasonCode.INVALID_DELIVERY, message, field=field)


def classify(event: DeliveryEvent) -> Delivery:
    """Validate an operator action and turn it into a canonical Delivery.

    Raises:
        ValidationError: for negative or inconsistent run components, a
            wicket flag without a type (or vice versa), or a dismissal that
            cannot happen off this kind of delivery.
    """
    extra = event.extra_type
    runs = event.runs

    if runs < 0:
        raise _invalid("Runs cannot be negative", "runs")

    if event.bat_runs is None:
        bat_runs = runs if extra in (ExtrasType.NONE, ExtrasType.NO_BALL) else 0
    else:
        bat_runs = event.bat_runs

    if bat_runs < 0:
        raise _invalid("Bat runs cannot be negative", "bat_runs")
    if bat_runs > runs:
        raise _invalid(
            f"Bat runs ({bat_runs}) exceed runs on the delivery ({runs})", "bat_runs"
        )
    if extra in (ExtrasType.WIDE, ExtrasType.BYE, ExtrasType.LEG_BYE) and bat_runs:
        raise _invalid(f"No runs can come off the bat on a {extra.value}", "bat_runs")
    if extra == ExtrasType.NONE and bat_runs != runs:
        raise _invalid(
            "A legal delivery without extras credits every run to the batter",
            "bat_runs",
        )

    if event.is_wicket and event.wicket_type is None:
        raise _invalid("A wicket needs a dismissal type", "wicket_type")
    if event.wicket_type is not None and not event.is_wicket:
        raise _invalid("Dismissal type given but the delivery is not a wicket", "is_wicket")
    if event.wicket_type is not None:
        check_dismissal_allowed(extra, event.wicket_type)
        if event.wicket_type in DEAD_BALL_DISMISSALS and runs:
            raise _invalid(
                f"No runs can be completed when the batter is out {event.wicket_type.value}",
                "runs",
            )

    running_extras = runs - bat_runs
    penalty = 1 if extra in PENALTY_EXTRAS else 0

    if extra == ExtrasType.WIDE:
        bowler_runs = penalty + running_extras
    elif extra == ExtrasType.NO_BALL:
        bowler_runs = penalty + bat_runs
    elif extra in (ExtrasType.BYE, ExtrasType.LEG_BYE):
        bowler_runs = 0
    else:
        bowler_runs = bat_runs

    delivery = Delivery(
        extra_type=extra,
        total_runs=runs + penalty,
        bat_runs=bat_runs,
        running_extras=running_extras,
        counts_ball=extra not in PENALTY_EXTRAS,
        adds_ball_faced=extra != ExtrasType.WIDE,
        bowler_runs=bowler_runs,
        wicket_type=event.wicket_type,
        dismissed_player_id=event.dismissed_player_id,
        replacement_batter_id=event.replacement_batter_id,
        assist_player_id=event.assist_player_id,
    )
    logger.debug("Classified %s -> %s", event, delivery)
    return delivery
