"""Game completion and winner resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from shared.dal.models import WinCondition

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from scoreboard.logic.projection import PlayerRow


class WinnerResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    winners: tuple[str, ...] = ()
    winning_score: int | None = None

    @property
    def has_winner(self) -> bool:
        return bool(self.winners)

    @property
    def is_tie(self) -> bool:
        return len(self.winners) > 1


class GameOutcome(BaseModel):
    """Result of completing a game."""

    model_config = ConfigDict(frozen=True)

    winner: WinnerResult
    # True only the first time a given game is completed on this device
    celebrate: bool = False


def is_complete(player_ids: Sequence[str], rounds: int, entered: Collection[tuple[str, int]]) -> bool:
    """Every scoring player has an explicitly entered score for every round.

    A cell that merely shows a value does not count; only entered cells do.
    """
    if not player_ids or rounds <= 0:
        return False
    return all((player_id, rnd) in entered for player_id in player_ids for rnd in range(1, rounds + 1))


def resolve_winner(rows: Sequence[PlayerRow], win_condition: WinCondition) -> WinnerResult:
    """Find the player(s) with the best total; several players sharing it is a tie."""
    if not rows:
        return WinnerResult()
    lowest_wins = win_condition == WinCondition.LOWEST_SCORE
    ranked = sorted(rows, key=lambda row: row.total, reverse=not lowest_wins)
    winning_score = ranked[0].total
    winners = tuple(row.player_id for row in ranked if row.total == winning_score)
    return WinnerResult(winners=winners, winning_score=winning_score)
