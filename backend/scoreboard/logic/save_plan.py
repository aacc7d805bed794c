"""Save reconciliation: decide the minimal record writes for a scoreboard.

The plan is computed from the current cell values, the last-saved
baseline and the records the store actually holds. Executing it is the
session's job; this module only decides.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from shared.dal.models import ScoreRecord

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence


class SaveMode(StrEnum):
    SILENT = "silent"  # autosave on blur / next cell, log only
    INTERACTIVE = "interactive"  # explicit save, user sees the outcome


class WriteAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    # stored record already holds the value; only the baseline catches up
    SYNC = "sync"


class PlannedWrite(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: WriteAction
    player_id: str
    round_number: int
    value: int | None = None
    # Existing record for UPDATE and DELETE
    record: ScoreRecord | None = None


class CellFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_id: str
    round_number: int
    action: WriteAction
    reason: str


class SaveReport(BaseModel):
    """Outcome of one save invocation.

    Per-record failures do not undo sibling writes that already succeeded.
    """

    model_config = ConfigDict(frozen=True)

    mode: SaveMode
    created: int = 0
    updated: int = 0
    deleted: int = 0
    failures: tuple[CellFailure, ...] = ()
    # The store could not be read, so nothing was attempted
    aborted: bool = False
    error: str | None = None

    @property
    def mutations(self) -> int:
        return self.created + self.updated + self.deleted

    @property
    def ok(self) -> bool:
        return not self.aborted and not self.failures


def index_records(records: Iterable[ScoreRecord]) -> dict[tuple[str, int], ScoreRecord]:
    return {(record.player_id, record.round_number): record for record in records}


def plan_writes(
    *,
    player_ids: Sequence[str],
    rounds: int,
    current: Mapping[str, Sequence[int | None]],
    saved: Mapping[str, Sequence[int | None]],
    existing: Mapping[tuple[str, int], ScoreRecord],
) -> list[PlannedWrite]:
    """Compare every (player, round) cell and list the writes it needs.

    - empty cell with a record: delete
    - value with no record: create
    - value that differs from the baseline and the record: update
    - value that differs from the baseline but matches the record: sync
    - anything else is left alone
    """
    writes = []
    for player_id in player_ids:
        values = current.get(player_id, ())
        baseline = saved.get(player_id, ())
        for round_number in range(1, rounds + 1):
            index = round_number - 1
            value = values[index] if index < len(values) else None
            saved_value = baseline[index] if index < len(baseline) else None
            record = existing.get((player_id, round_number))

            if value is None:
                if record is not None:
                    writes.append(
                        PlannedWrite(action=WriteAction.DELETE, player_id=player_id, round_number=round_number, record=record)
                    )
            elif record is None:
                writes.append(
                    PlannedWrite(action=WriteAction.CREATE, player_id=player_id, round_number=round_number, value=value)
                )
            elif value != saved_value and value != record.score:
                writes.append(
                    PlannedWrite(
                        action=WriteAction.UPDATE,
                        player_id=player_id,
                        round_number=round_number,
                        value=value,
                        record=record,
                    )
                )
            elif value != saved_value:
                writes.append(
                    PlannedWrite(action=WriteAction.SYNC, player_id=player_id, round_number=round_number, value=value)
                )
    return writes
