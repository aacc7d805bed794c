"""Mutable per-game scoreboard state owned by a session."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from scoreboard.logic.custom_rules import CustomRule, rules_from_json
from scoreboard.logic.edit_buffer import EditBuffer
from scoreboard.logic.grid import Row, resize_row
from scoreboard.logic.hierarchy import hierarchy_display_name, participating_players, scoring_players
from scoreboard.logic.identity import parse_player_identity, resolve_display_name
from scoreboard.logic.projection import Projection, layout_records, project

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from shared.dal.models import GameRecord, ScoreRecord


@dataclass
class ScoreboardState:
    """Everything a scoreboard knows about one game.

    Refresh builds a fresh instance and swaps it in whole, so readers never
    see a half-replaced mix of old and new maps.
    """

    game: GameRecord
    # last confirmed persisted value per player and round
    saved: dict[str, Row] = field(default_factory=dict)
    # cells that have a persisted record
    persisted: set[tuple[str, int]] = field(default_factory=set)
    buffer: EditBuffer = field(default_factory=EditBuffer)
    names: dict[str, str] = field(default_factory=dict)
    custom_rules: list[CustomRule] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        game: GameRecord,
        records: Iterable[ScoreRecord],
        usernames: Mapping[str, str],
        buffer: EditBuffer | None = None,
    ) -> ScoreboardState:
        """Lay out persisted records and carry over still-pending edits."""
        records = list(records)
        saved = layout_records(records, game.rounds)
        persisted = {
            (record.player_id, record.round_number) for record in records if record.round_number <= game.rounds
        }
        state = cls(
            game=game,
            saved=saved,
            persisted=persisted,
            names={},
            custom_rules=rules_from_json(game.custom_rules),
        )
        if buffer is not None:
            carried = buffer.copy()
            carried.resize(game.rounds)
            carried.discard({cell for cell in carried.touched if cell[0] not in state.scoring_players})
            state.buffer = carried
        state.refresh_names(usernames)
        return state

    @property
    def rounds(self) -> int:
        return self.game.rounds

    @property
    def scoring_players(self) -> list[str]:
        return scoring_players(self.game.player_ids, self.game.player_hierarchy)

    def refresh_names(self, usernames: Mapping[str, str]) -> None:
        """Resolve a display name for every participant, team members included."""
        self.names = {
            player_id: resolve_display_name(parse_player_identity(player_id), usernames)
            for player_id in participating_players(self.game.player_ids, self.game.player_hierarchy)
        }

    def column_title(self, player_id: str) -> str:
        return hierarchy_display_name(self.game.player_hierarchy, player_id, self.names.get(player_id, player_id))

    @property
    def entered(self) -> set[tuple[str, int]]:
        """Cells holding an explicitly entered score: persisted cells, adjusted by pending edits."""
        cells = set(self.persisted)
        for cell, value in self.buffer.overrides().items():
            if value is None:
                cells.discard(cell)
            else:
                cells.add(cell)
        return cells

    def projection(self) -> Projection:
        return project(
            player_ids=self.game.player_ids,
            hierarchy=self.game.player_hierarchy,
            saved=self.saved,
            pending=self.buffer.overrides(),
            rounds=self.rounds,
            names=self.names,
        )

    def saved_row(self, player_id: str) -> Row:
        return resize_row(self.saved.get(player_id, ()), self.rounds)

    def current_rows(self) -> dict[str, Row]:
        """Saved values overlaid with pending edits, per scoring player."""
        rows = {player_id: self.saved_row(player_id) for player_id in self.scoring_players}
        for (player_id, round_number), value in self.buffer.overrides().items():
            if player_id in rows:
                rows[player_id][round_number - 1] = value
        return rows

    def changed_cells(self) -> set[tuple[str, int]]:
        """Pending cells whose value differs from the last-saved baseline."""
        changed = set()
        for (player_id, round_number), value in self.buffer.overrides().items():
            if self.saved_row(player_id)[round_number - 1] != value:
                changed.add((player_id, round_number))
        return changed
