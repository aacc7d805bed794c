"""Shared test helpers: a failure-injecting SQLite store and game seeding."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from shared.dal.errors import RecordRejectedError, StoreUnavailableError
from shared.dal.models import GameRecord, ScoreRecord
from shared.db.record_store import SqliteRecordStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from shared.dal.models import UserRecord
    from shared.db.connection import Database

HOST = "host-user"

_MUTATIONS = {"create_game", "update_game", "delete_game", "create_score", "update_score", "delete_score"}


class FlakyRecordStore(SqliteRecordStore):
    """SQLite store that records calls and fails on demand.

    `fail(method, ...)` arms a failure for every later call of that method
    whose record matches `when` (all calls when omitted).
    """

    def __init__(self, db: Database) -> None:
        super().__init__(db)
        self.calls: list[str] = []
        self.get_game_delay = 0.0
        self._failures: dict[str, tuple[Exception, Callable[[object], bool] | None]] = {}

    def fail(
        self,
        method: str,
        exc: Exception | None = None,
        when: Callable[[object], bool] | None = None,
    ) -> None:
        self._failures[method] = (exc or StoreUnavailableError(f"{method} unavailable"), when)

    def reject(self, method: str, when: Callable[[object], bool] | None = None) -> None:
        self.fail(method, RecordRejectedError(f"{method} rejected"), when)

    def heal(self) -> None:
        self._failures.clear()

    def reset_calls(self) -> None:
        self.calls.clear()

    @property
    def mutations(self) -> list[str]:
        return [call for call in self.calls if call in _MUTATIONS]

    def _check(self, method: str, arg: object = None) -> None:
        self.calls.append(method)
        armed = self._failures.get(method)
        if armed is None:
            return
        exc, when = armed
        if when is None or when(arg):
            raise exc

    async def get_game(self, game_id: str) -> GameRecord | None:
        self._check("get_game", game_id)
        if self.get_game_delay:
            await asyncio.sleep(self.get_game_delay)
        return await super().get_game(game_id)

    async def update_game(self, game: GameRecord) -> GameRecord:
        self._check("update_game", game)
        return await super().update_game(game)

    async def delete_game(self, game: GameRecord) -> GameRecord:
        self._check("delete_game", game)
        return await super().delete_game(game)

    async def list_scores(self, game_id: str, player_id: str | None = None) -> list[ScoreRecord]:
        self._check("list_scores", player_id)
        return await super().list_scores(game_id, player_id)

    async def create_score(self, score: ScoreRecord) -> ScoreRecord:
        self._check("create_score", score)
        return await super().create_score(score)

    async def update_score(self, score: ScoreRecord) -> ScoreRecord:
        self._check("update_score", score)
        return await super().update_score(score)

    async def delete_score(self, score: ScoreRecord) -> ScoreRecord:
        self._check("delete_score", score)
        return await super().delete_score(score)

    async def list_users(self) -> list[UserRecord]:
        self._check("list_users")
        return await super().list_users()


async def seed_game(
    store: SqliteRecordStore,
    *,
    game_id: str = "g1",
    players: tuple[str, ...] = ("Alice", "Bob"),
    rounds: int = 2,
    scores: dict[tuple[str, int], int] | None = None,
    **overrides: object,
) -> GameRecord:
    """Create a game owned by HOST plus score records for the given cells."""
    game = GameRecord(id=game_id, host_user_id=HOST, player_ids=list(players), rounds=rounds, **overrides)
    await store.create_game(game)
    for (player_id, round_number), value in (scores or {}).items():
        await store.create_score(ScoreRecord.for_cell(game_id, player_id, round_number, value))
    return game


async def stored_cells(store: SqliteRecordStore, game_id: str = "g1") -> dict[tuple[str, int], int]:
    return {(s.player_id, s.round_number): s.score for s in await store.list_scores(game_id)}
