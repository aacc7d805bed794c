"""Persistence models for the record store."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(UTC)


def score_record_id(game_id: str, player_id: str, round_number: int) -> str:
    """Derive the deterministic id of the score record for one scoreboard cell."""
    return f"{game_id}-{player_id}-{round_number}"


class GameStatus(StrEnum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class WinCondition(StrEnum):
    HIGHEST_SCORE = "HIGHEST_SCORE"
    LOWEST_SCORE = "LOWEST_SCORE"


class GameRecord(BaseModel, frozen=True):
    """A multiplayer match and its scoreboard shape."""

    id: str
    host_user_id: str
    game_name: str | None = None
    player_ids: list[str] = Field(default_factory=list)
    rounds: int = Field(default=1, ge=1)
    max_rounds: int | None = None  # None falls back to the configured default
    game_status: GameStatus = GameStatus.ACTIVE
    win_condition: WinCondition = WinCondition.HIGHEST_SCORE
    custom_rules: str | None = None  # JSON list of {"letter", "value"} objects
    # parent player id -> child player ids (team play)
    player_hierarchy: dict[str, list[str]] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    owner: str | None = None


class ScoreRecord(BaseModel, frozen=True):
    """One explicitly entered score for a (game, player, round) cell.

    A missing record means "not entered yet", which is distinct from a stored zero.
    """

    id: str
    game_id: str
    player_id: str
    round_number: int = Field(ge=1)
    score: int
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    owner: str | None = None

    @classmethod
    def for_cell(cls, game_id: str, player_id: str, round_number: int, score: int, owner: str | None = None) -> "ScoreRecord":
        """Build a fresh record whose id is derived from its cell coordinates."""
        return cls(
            id=score_record_id(game_id, player_id, round_number),
            game_id=game_id,
            player_id=player_id,
            round_number=round_number,
            score=score,
            owner=owner,
        )


class UserRecord(BaseModel, frozen=True):
    """Registered user, used to resolve display names for non-anonymous players."""

    id: str
    username: str
    email: str = ""
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
