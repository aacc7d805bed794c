"""Score ledger projection: the rows shown on the scoreboard.

Persisted score records are laid out into per-player round arrays and
pending edits are overlaid cell by cell. Child players in a hierarchy
get no row of their own, but their arrays mirror the parent's.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from scoreboard.logic.grid import Row, resize_row, row_total
from scoreboard.logic.hierarchy import Hierarchy, scoring_players

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from shared.dal.models import ScoreRecord


class PlayerRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_id: str
    name: str
    scores: tuple[int | None, ...]

    @property
    def total(self) -> int:
        return row_total(self.scores)


class Projection(BaseModel):
    model_config = ConfigDict(frozen=True)

    rounds: int
    rows: tuple[PlayerRow, ...] = ()
    # child player id -> copy of the parent's scores
    child_scores: dict[str, tuple[int | None, ...]] = {}

    def row(self, player_id: str) -> PlayerRow | None:
        return next((row for row in self.rows if row.player_id == player_id), None)

    def value(self, player_id: str, round_number: int) -> int | None:
        row = self.row(player_id)
        if row is None or not 1 <= round_number <= len(row.scores):
            return None
        return row.scores[round_number - 1]

    @property
    def player_ids(self) -> list[str]:
        """Row player ids in display order."""
        return [row.player_id for row in self.rows]


def layout_records(records: Iterable[ScoreRecord], rounds: int) -> dict[str, Row]:
    """Group score records into per-player arrays of `rounds` cells.

    Records for rounds beyond the current dimension are left out.
    """
    grid: dict[str, Row] = {}
    for record in records:
        if record.round_number > rounds:
            continue
        row = grid.setdefault(record.player_id, [None] * rounds)
        row[record.round_number - 1] = record.score
    return grid


def project(
    *,
    player_ids: list[str],
    hierarchy: Hierarchy,
    saved: Mapping[str, Row],
    pending: Mapping[tuple[str, int], int | None],
    rounds: int,
    names: Mapping[str, str],
) -> Projection:
    """Merge the last-saved arrays with pending cell edits.

    Rows are sorted by display name, with the player id breaking ties.
    """
    rows = []
    for player_id in scoring_players(player_ids, hierarchy):
        values = resize_row(saved.get(player_id, ()), rounds)
        for round_number in range(1, rounds + 1):
            key = (player_id, round_number)
            if key in pending:
                values[round_number - 1] = pending[key]
        rows.append(PlayerRow(player_id=player_id, name=names.get(player_id, player_id), scores=tuple(values)))
    rows.sort(key=lambda row: (row.name.casefold(), row.player_id))

    by_id = {row.player_id: row for row in rows}
    child_scores = {
        child: by_id[parent].scores
        for parent, children in hierarchy.items()
        if parent in by_id
        for child in children
    }
    return Projection(rounds=rounds, rows=tuple(rows), child_scores=child_scores)
