"""Uncommitted per-cell score edits."""

from __future__ import annotations

from typing import TYPE_CHECKING

from scoreboard.logic.grid import Row, rename_cells, resize_row, shift_cells_after_removal, splice_row

if TYPE_CHECKING:
    from collections.abc import Sequence


class EditBuffer:
    """Pending score edits for one scoreboard.

    Each edited player gets a full round array seeded from the row the user
    was looking at, so writing one cell never blanks its neighbours. Only the
    cells actually written are tracked as overrides; untouched cells keep
    following the saved state underneath.
    """

    def __init__(self) -> None:
        self._rows: dict[str, Row] = {}
        self._touched: set[tuple[str, int]] = set()

    def set_cell(
        self,
        player_id: str,
        round_number: int,
        value: int | None,
        *,
        seed: Sequence[int | None],
        rounds: int,
    ) -> None:
        """Record `value` for one cell; None clears it."""
        row = self._rows.get(player_id)
        if row is None:
            row = list(seed)
        row = resize_row(row, rounds)
        row[round_number - 1] = value
        self._rows[player_id] = row
        self._touched.add((player_id, round_number))

    def get(self, player_id: str, round_number: int) -> tuple[bool, int | None]:
        """Return (is_pending, value) for one cell."""
        if (player_id, round_number) not in self._touched:
            return False, None
        return True, self._rows[player_id][round_number - 1]

    def overrides(self) -> dict[tuple[str, int], int | None]:
        return {(player_id, rnd): self._rows[player_id][rnd - 1] for player_id, rnd in self._touched}

    @property
    def touched(self) -> frozenset[tuple[str, int]]:
        return frozenset(self._touched)

    @property
    def is_dirty(self) -> bool:
        return bool(self._touched)

    def player_ids(self) -> set[str]:
        return {player_id for player_id, _ in self._touched}

    def clear(self) -> None:
        self._rows.clear()
        self._touched.clear()

    def discard(self, cells: set[tuple[str, int]]) -> None:
        """Forget the given cells, dropping rows left with no pending cell."""
        self._touched -= cells
        pending_players = self.player_ids()
        for player_id in list(self._rows):
            if player_id not in pending_players:
                del self._rows[player_id]

    def resize(self, rounds: int) -> None:
        """Align every row to a new round count; pending cells past the end are dropped."""
        for player_id, row in self._rows.items():
            self._rows[player_id] = resize_row(row, rounds)
        self.discard({cell for cell in self._touched if cell[1] > rounds})

    def remove_round(self, round_number: int) -> None:
        """Excise one round from every row and shift later pending cells down."""
        for player_id, row in self._rows.items():
            self._rows[player_id] = splice_row(row, round_number)
        self._touched = shift_cells_after_removal(self._touched, round_number)
        self.discard(set())

    def rename(self, old_id: str, new_id: str) -> None:
        if old_id in self._rows:
            self._rows[new_id] = self._rows.pop(old_id)
        self._touched = rename_cells(self._touched, old_id, new_id)

    def drop_player(self, player_id: str) -> None:
        self.discard({cell for cell in self._touched if cell[0] == player_id})

    def copy(self) -> EditBuffer:
        clone = EditBuffer()
        clone._rows = {player_id: list(row) for player_id, row in self._rows.items()}
        clone._touched = set(self._touched)
        return clone
