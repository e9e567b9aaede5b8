"""
Configuration management for the scoring engine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

from dotenv import load_dotenv

load_dotenv()


class MatchFormat(Enum):
    T10 = "t10"
    T20 = "t20"
    ODI = "odi"


@dataclass(frozen=True)
class ScoringConfig:
    """Rules and limits applied by the scoring engine."""
    overs_limit: int = 20
    max_wickets: int = 10  # Reduced automatically for short squads
    history_depth: int = 10  # Undo snapshots kept per engine
    recent_balls_capacity: int = 36  # Six overs of ball events
    free_hit_survives_wide: bool = False

    @property
    def balls_limit(self) -> int:
        return self.overs_limit * 6

    def validate(self) -> None:
        if self.overs_limit <= 0:
            raise ValueError("overs_limit must be positive")
        if not 1 <= self.max_wickets <= 10:
            raise ValueError("max_wickets must be between 1 and 10")
        if self.history_depth <= 0:
            raise ValueError("history_depth must be positive")
        if self.recent_balls_capacity <= 0:
            raise ValueError("recent_balls_capacity must be positive")


@dataclass
class EngineConfig:
    """Top-level engine configuration."""
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    match_format: MatchFormat = MatchFormat.T20
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load configuration from environment variables."""
        fmt = MatchFormat(os.getenv("BALLBYBALL_MATCH_FORMAT", "t20").lower())
        overs = os.getenv("BALLBYBALL_OVERS_LIMIT", "")
        scoring = ScoringConfig(
            overs_limit=int(overs) if overs else FORMAT_OVERS[fmt],
            max_wickets=int(os.getenv("BALLBYBALL_MAX_WICKETS", "10")),
            history_depth=int(os.getenv("BALLBYBALL_HISTORY_DEPTH", "10")),
            recent_balls_capacity=int(os.getenv("BALLBYBALL_RECENT_BALLS", "36")),
            free_hit_survives_wide=(
                os.getenv("BALLBYBALL_FREE_HIT_SURVIVES_WIDE", "").lower() == "true"
            ),
        )
        scoring.validate()
        return cls(
            scoring=scoring,
            match_format=fmt,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


# Format-specific constants
FORMAT_OVERS: dict[MatchFormat, int] = {
    MatchFormat.T10: 10,
    MatchFormat.T20: 20,
    MatchFormat.ODI: 50,
}


def scoring_config_for(fmt: MatchFormat, **overrides) -> ScoringConfig:
    """Build a ScoringConfig with the standard overs for a format."""
    params = {"overs_limit": FORMAT_OVERS[fmt]}
    params.update(overrides)
    config = ScoringConfig(**params)
    config.validate()
    return config
