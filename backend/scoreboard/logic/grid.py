"""Per-player round arrays.

A row holds one slot per round; None marks a cell with no entered score.
Zero is a real score and is never used as a placeholder.
"""

from collections.abc import Sequence

Row = list[int | None]


def resize_row(values: Sequence[int | None], rounds: int) -> Row:
    """Pad with empty cells at the end, or drop trailing cells, to exactly `rounds` slots."""
    row = list(values[:rounds])
    row.extend([None] * (rounds - len(row)))
    return row


def splice_row(values: Sequence[int | None], round_number: int) -> Row:
    """Remove the cell for one round so later rounds shift down by one."""
    row = list(values)
    index = round_number - 1
    if 0 <= index < len(row):
        del row[index]
    return row


def row_total(values: Sequence[int | None]) -> int:
    """Sum of entered cells; empty cells are skipped, not counted as zero."""
    return sum(value for value in values if value is not None)


def shift_cells_after_removal(cells: set[tuple[str, int]], round_number: int) -> set[tuple[str, int]]:
    """Drop cells in the removed round and move later rounds down by one."""
    shifted: set[tuple[str, int]] = set()
    for player_id, cell_round in cells:
        if cell_round < round_number:
            shifted.add((player_id, cell_round))
        elif cell_round > round_number:
            shifted.add((player_id, cell_round - 1))
    return shifted


def rename_cells(cells: set[tuple[str, int]], old_id: str, new_id: str) -> set[tuple[str, int]]:
    return {(new_id if player_id == old_id else player_id, cell_round) for player_id, cell_round in cells}
