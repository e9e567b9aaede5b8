"""
Free-hit guard and dismissal legality.

After a no-ball the next delivery is a free hit: the batter can only be out
in ways that do not involve the bowler beating the bat. Independently of
free hits, some dismissals are impossible off certain deliveries (nobody
is bowled off a wide), and those combinations are rejected up front.
"""

from __future__ import annotations

from typing import Optional

from ballbyball.data.ball_event import ExtrasType, WicketType
from ballbyball.errors import ReasonCode, ValidationError

FREE_HIT_DISMISSALS = frozenset({
    WicketType.RUN_OUT,
    WicketType.STUMPED,
    WicketType.HIT_WICKET,
    WicketType.OBSTRUCTING,
})

_ANY = frozenset(WicketType)

ALLOWED_DISMISSALS: dict[ExtrasType, frozenset[WicketType]] = {
    ExtrasType.NONE: _ANY,
    ExtrasType.WIDE: frozenset({
        WicketType.STUMPED,
        WicketType.RUN_OUT,
        WicketType.HIT_WICKET,
        WicketType.OBSTRUCTING,
        WicketType.RETIRED_HURT,
    }),
    ExtrasType.NO_BALL: frozenset({
        WicketType.RUN_OUT,
        WicketType.OBSTRUCTING,
        WicketType.RETIRED_HURT,
    }),
    ExtrasType.BYE: frozenset({
        WicketType.RUN_OUT,
        WicketType.OBSTRUCTING,
        WicketType.RETIRED_HURT,
    }),
    ExtrasType.LEG_BYE: frozenset({
        WicketType.RUN_OUT,
        WicketType.OBSTRUCTING,
        WicketType.RETIRED_HURT,
    }),
}


def check_dismissal_allowed(extra_type: ExtrasType, wicket_type: WicketType) -> None:
    """Reject dismissals that cannot happen off this kind of delivery."""
    if wicket_type not in ALLOWED_DISMISSALS[extra_type]:
        raise ValidationError(
            ReasonCode.DISALLOWED_DISMISSAL,
            f"{wicket_type.value} is not possible off a {extra_type.value} delivery",
            field="wicket_type",
        )


def check_free_hit(free_hit: bool, wicket_type: Optional[WicketType]) -> None:
    """Reject a dismissal the free-hit law suspends.

    Retirement is not a dismissal and is always accepted.
    """
    if not free_hit or wicket_type is None:
        return
    if wicket_type is WicketType.RETIRED_HURT or wicket_type in FREE_HIT_DISMISSALS:
        return
    allowed = ", ".join(sorted(w.value for w in FREE_HIT_DISMISSALS))
    raise ValidationError(
        ReasonCode.DISALLOWED_FREE_HIT_DISMISSAL,
        f"Free hit: {wicket_type.value} is not a valid dismissal (allowed: {allowed})",
        field="wicket_type",
    )


def next_free_hit(current: bool, extra_type: ExtrasType, survives_wide: bool = False) -> bool:
    """Whether the delivery after this one is a free hit."""
    if extra_type == ExtrasType.NO_BALL:
        return True
    if extra_type == ExtrasType.WIDE and survives_wide:
        return current
    return False
