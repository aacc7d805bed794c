"""SQLite-backed record store."""

from __future__ import annotations

import asyncio
import contextlib
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog

from shared.dal.errors import RecordRejectedError, StoreUnavailableError
from shared.dal.models import GameRecord, ScoreRecord, UserRecord
from shared.dal.record_store import RecordStore

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()


@contextmanager
def _translate_errors(conn: sqlite3.Connection, operation: str) -> Iterator[None]:
    """Map sqlite failures onto the record store failure taxonomy, rolling back the write."""
    try:
        yield
    except sqlite3.IntegrityError as exc:
        conn.rollback()
        logger.debug("record operation rejected", operation=operation, error=str(exc))
        raise RecordRejectedError(f"{operation} rejected: {exc}") from exc
    except sqlite3.OperationalError as exc:
        with contextlib.suppress(sqlite3.Error):
            conn.rollback()
        raise StoreUnavailableError(f"{operation} failed: {exc}") from exc


class SqliteRecordStore(RecordStore):
    """SQLite implementation of RecordStore.

    Stores full record snapshots as JSON with indexed columns for queries.
    The (game_id, player_id, round_number) triple is unique across scores,
    so an update that would collide with another cell is rejected.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    @property
    def _conn(self) -> sqlite3.Connection:
        try:
            return self._db.connection
        except RuntimeError as exc:
            raise StoreUnavailableError(str(exc)) from exc

    # -- games --

    async def get_game(self, game_id: str) -> GameRecord | None:
        """Retrieve a single game by its id."""
        conn = self._conn
        with _translate_errors(conn, "get_game"):
            row = conn.execute("SELECT data FROM games WHERE id = ?", (game_id,)).fetchone()
        if row is None:
            return None
        return GameRecord.model_validate_json(row[0])

    async def create_game(self, game: GameRecord) -> GameRecord:
        """Insert a game record. Raises RecordRejectedError on a duplicate id."""
        async with self._lock:
            conn = self._conn
            with _translate_errors(conn, "create_game"):
                conn.execute(
                    "INSERT INTO games (id, host_user_id, data) VALUES (?, ?, ?)",
                    (game.id, game.host_user_id, game.model_dump_json()),
                )
                conn.commit()
        return game

    async def update_game(self, game: GameRecord) -> GameRecord:
        """Replace an existing game snapshot. Raises RecordRejectedError if it does not exist."""
        async with self._lock:
            conn = self._conn
            with _translate_errors(conn, "update_game"):
                cursor = conn.execute(
                    "UPDATE games SET host_user_id = ?, data = ? WHERE id = ?",
                    (game.host_user_id, game.model_dump_json(), game.id),
                )
                conn.commit()
            if cursor.rowcount == 0:
                raise RecordRejectedError(f"game '{game.id}' does not exist")
        return game

    async def delete_game(self, game: GameRecord) -> GameRecord:
        """Delete a game record. Score records are deleted separately by the caller."""
        async with self._lock:
            conn = self._conn
            with _translate_errors(conn, "delete_game"):
                cursor = conn.execute("DELETE FROM games WHERE id = ?", (game.id,))
                conn.commit()
            if cursor.rowcount == 0:
                raise RecordRejectedError(f"game '{game.id}' does not exist")
        return game

    # -- scores --

    async def list_scores(self, game_id: str, player_id: str | None = None) -> list[ScoreRecord]:
        """List score records for a game, optionally narrowed to one player."""
        conn = self._conn
        with _translate_errors(conn, "list_scores"):
            if player_id is None:
                rows = conn.execute(
                    "SELECT data FROM scores WHERE game_id = ? ORDER BY player_id, round_number",
                    (game_id,),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT data FROM scores WHERE game_id = ? AND player_id = ? ORDER BY round_number",
                    (game_id, player_id),
                ).fetchall()
        return [ScoreRecord.model_validate_json(row[0]) for row in rows]

    async def create_score(self, score: ScoreRecord) -> ScoreRecord:
        """Insert a score record. Raises RecordRejectedError if the id or cell is taken."""
        async with self._lock:
            conn = self._conn
            with _translate_errors(conn, "create_score"):
                conn.execute(
                    "INSERT INTO scores (id, game_id, player_id, round_number, data) VALUES (?, ?, ?, ?, ?)",
                    (score.id, score.game_id, score.player_id, score.round_number, score.model_dump_json()),
                )
                conn.commit()
        return score

    async def update_score(self, score: ScoreRecord) -> ScoreRecord:
        """Replace a score record by id. Raises RecordRejectedError if missing or colliding."""
        async with self._lock:
            conn = self._conn
            with _translate_errors(conn, "update_score"):
                cursor = conn.execute(
                    "UPDATE scores SET game_id = ?, player_id = ?, round_number = ?, data = ? WHERE id = ?",
                    (score.game_id, score.player_id, score.round_number, score.model_dump_json(), score.id),
                )
                conn.commit()
            if cursor.rowcount == 0:
                raise RecordRejectedError(f"score '{score.id}' does not exist")
        return score

    async def delete_score(self, score: ScoreRecord) -> ScoreRecord:
        """Delete a score record by id. Raises RecordRejectedError if missing."""
        async with self._lock:
            conn = self._conn
            with _translate_errors(conn, "delete_score"):
                cursor = conn.execute("DELETE FROM scores WHERE id = ?", (score.id,))
                conn.commit()
            if cursor.rowcount == 0:
                raise RecordRejectedError(f"score '{score.id}' does not exist")
        return score

    # -- users --

    async def list_users(self) -> list[UserRecord]:
        conn = self._conn
        with _translate_errors(conn, "list_users"):
            rows = conn.execute("SELECT data FROM users ORDER BY username").fetchall()
        return [UserRecord.model_validate_json(row[0]) for row in rows]

    async def create_user(self, user: UserRecord) -> UserRecord:
        """Insert a user record. Raises RecordRejectedError on a duplicate id."""
        async with self._lock:
            conn = self._conn
            with _translate_errors(conn, "create_user"):
                conn.execute(
                    "INSERT INTO users (id, username, data) VALUES (?, ?, ?)",
                    (user.id, user.username, user.model_dump_json()),
                )
                conn.commit()
        return user
