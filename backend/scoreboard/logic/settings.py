"""Scoreboard domain constants and per-session configuration."""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MAX_ROUNDS = 8
DEFAULT_REFRESH_TIMEOUT_SECONDS = 10.0

# Shorter display names are shown as-is on the leaderboard
LEADERBOARD_FULL_NAME_LENGTH = 10
SHORT_ID_LENGTH = 8
LEADERBOARD_LIMIT = 100


class SessionConfig(BaseModel):
    """Tunables for one scoreboard session."""

    model_config = ConfigDict(frozen=True)

    # Used when the game record carries no max_rounds of its own
    max_rounds: int = Field(default=DEFAULT_MAX_ROUNDS, ge=1)
    refresh_timeout_seconds: float = Field(default=DEFAULT_REFRESH_TIMEOUT_SECONDS, gt=0)
