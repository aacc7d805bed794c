"""Scoreboard session: the stateful editing engine for one game.

The session owns the edit buffer, the last-saved baseline, the entered
cells and the projection for a single game. All state changes happen on
the event loop thread; record store calls are the only suspension points.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from scoreboard.logic.completion import GameOutcome, WinnerResult, is_complete, resolve_winner
from scoreboard.logic.custom_rules import parse_score_input, rules_to_json, score_display, validate_rules
from scoreboard.logic.exceptions import (
    DuplicatePlayerError,
    GameGoneError,
    GameIncompleteError,
    GameNotActiveError,
    GamePersistError,
    InvalidPlayerNameError,
    InvalidRoundError,
    LastPlayerError,
    NotEditorError,
    RefreshTimeoutError,
    RenameFailedError,
    RenameNotAllowedError,
    RoundLimitReachedError,
    SessionNotLoadedError,
    UnknownPlayerError,
)
from scoreboard.logic.grid import rename_cells, resize_row, shift_cells_after_removal, splice_row
from scoreboard.logic.hierarchy import all_children, participating_players, remove_from_hierarchy, rename_in_hierarchy
from scoreboard.logic.identity import (
    AnonymousPlayer,
    is_rename_eligible,
    needs_directory_lookup,
    parse_player_identity,
    usernames_by_id,
)
from scoreboard.logic.save_plan import (
    CellFailure,
    SaveMode,
    SaveReport,
    WriteAction,
    index_records,
    plan_writes,
)
from scoreboard.logic.settings import SessionConfig
from scoreboard.session.notices import Notice, NoticeKind
from scoreboard.session.state import ScoreboardState
from shared.dal.errors import RecordRejectedError, RecordStoreError
from shared.dal.models import GameStatus, ScoreRecord
from shared.logging import game_log_context

if TYPE_CHECKING:
    from scoreboard.logic.custom_rules import CustomRule
    from scoreboard.logic.projection import Projection
    from scoreboard.session.leaderboard import ScoreFeed
    from scoreboard.session.notices import NoticeCallback
    from shared.auth.provider import CurrentUserProvider
    from shared.dal.models import GameRecord
    from shared.dal.record_store import RecordStore
    from shared.storage import CelebrationStore

logger = structlog.get_logger()


class RenameResult(BaseModel):
    """Outcome of renaming a player and migrating its score records."""

    model_config = ConfigDict(frozen=True)

    old_id: str
    new_id: str
    migrated: int = 0
    # records moved by delete + create after an in-place update was rejected
    recreated: int = 0
    failed: int = 0


class ScoreboardSession:
    """Editing engine for one game's scoreboard.

    Call load() before anything else. Edit operations check that the current
    user hosts the game and that it is still active, and raise a
    PreconditionError before touching any state when they do not.
    """

    def __init__(
        self,
        game_id: str,
        store: RecordStore,
        users: CurrentUserProvider,
        *,
        config: SessionConfig | None = None,
        celebrations: CelebrationStore | None = None,
        feed: ScoreFeed | None = None,
        on_notice: NoticeCallback | None = None,
    ) -> None:
        self.game_id = game_id
        self._store = store
        self._users = users
        self._config = config or SessionConfig()
        self._celebrations = celebrations
        self._feed = feed
        self._on_notice = on_notice
        self._state: ScoreboardState | None = None
        self._refresh_task: asyncio.Task[Projection] | None = None

    # -- state access --

    @property
    def is_loaded(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> ScoreboardState:
        if self._state is None:
            raise SessionNotLoadedError(f"scoreboard for game '{self.game_id}' is not loaded")
        return self._state

    @property
    def game(self) -> GameRecord:
        return self.state.game

    @property
    def rounds(self) -> int:
        return self.state.rounds

    @property
    def max_rounds(self) -> int:
        return self.state.game.max_rounds or self._config.max_rounds

    @property
    def custom_rules(self) -> list[CustomRule]:
        return list(self.state.custom_rules)

    @property
    def projection(self) -> Projection:
        return self.state.projection()

    @property
    def entered(self) -> frozenset[tuple[str, int]]:
        return frozenset(self.state.entered)

    @property
    def saved(self) -> dict[str, list[int | None]]:
        """Copy of the last-saved baseline."""
        return {player_id: list(row) for player_id, row in self.state.saved.items()}

    def value(self, player_id: str, round_number: int) -> int | None:
        return self.projection.value(player_id, round_number)

    def is_entered(self, player_id: str, round_number: int) -> bool:
        return (player_id, round_number) in self.state.entered

    def display_name(self, player_id: str) -> str:
        return self.state.names.get(player_id, player_id)

    def column_title(self, player_id: str) -> str:
        """Display name, with the team size appended for a parent player."""
        return self.state.column_title(player_id)

    def cell_text(self, player_id: str, round_number: int) -> str | None:
        """Cell value as shown on the board: a rule letter where one matches, None when empty."""
        return score_display(self.value(player_id, round_number), self.state.custom_rules)

    # -- pending change introspection --

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self.state.changed_cells())

    def changed_cell_count(self) -> int:
        return len(self.state.changed_cells())

    def player_has_changes(self, player_id: str) -> bool:
        return any(cell[0] == player_id for cell in self.state.changed_cells())

    # -- completion --

    def is_complete(self) -> bool:
        state = self.state
        return is_complete(state.scoring_players, state.rounds, state.entered)

    def resolve_winner(self) -> WinnerResult:
        """Winner(s) of a complete game; an empty result while scoring is incomplete."""
        if not self.is_complete():
            return WinnerResult()
        return resolve_winner(self.projection.rows, self.state.game.win_condition)

    # -- loading --

    async def load(self) -> Projection:
        """Initial load; same as refresh."""
        return await self.refresh()

    async def refresh(self) -> Projection:
        """Reload the game from the store, keeping pending edits.

        The new state is built completely before it replaces the old one, so
        a timeout or cancellation leaves the previous state intact.
        """
        with game_log_context(self.game_id):
            try:
                async with asyncio.timeout(self._config.refresh_timeout_seconds):
                    state, records = await self._fetch_state()
            except TimeoutError as exc:
                logger.warning("scoreboard refresh timed out", timeout=self._config.refresh_timeout_seconds)
                self._notify(NoticeKind.REFRESH_TIMEOUT, "Refreshing the scoreboard took too long.")
                raise RefreshTimeoutError(
                    f"refresh of game '{self.game_id}' exceeded {self._config.refresh_timeout_seconds}s"
                ) from exc
            self._state = state
            if self._feed is not None:
                self._feed.on_game_loaded(self.game_id, records)
            logger.debug("scoreboard refreshed", rounds=state.rounds, players=len(state.game.player_ids))
            return state.projection()

    def request_refresh(self) -> asyncio.Task[Projection]:
        """Start a refresh in the background, cancelling one already in flight."""
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        task = asyncio.create_task(self.refresh())
        task.add_done_callback(self._on_refresh_done)
        self._refresh_task = task
        return task

    def _on_refresh_done(self, task: asyncio.Task[Projection]) -> None:
        if task.cancelled():
            logger.debug("scoreboard refresh cancelled", game_id=self.game_id)
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("background refresh failed", game_id=self.game_id, error=str(exc))

    async def _fetch_state(self) -> tuple[ScoreboardState, list[ScoreRecord]]:
        game = await self._store.get_game(self.game_id)
        if game is None:
            self._state = None
            logger.warning("game no longer exists")
            self._notify(NoticeKind.GAME_GONE, "This game has been deleted.")
            raise GameGoneError(self.game_id)

        records = await self._store.list_scores(self.game_id)
        usernames: dict[str, str] = {}
        participants = participating_players(game.player_ids, game.player_hierarchy)
        if any(needs_directory_lookup(parse_player_identity(player_id)) for player_id in participants):
            try:
                usernames = usernames_by_id(await self._store.list_users())
            except RecordStoreError as exc:
                logger.warning("user directory unavailable, using short ids", error=str(exc))

        pending = self._state.buffer if self._state is not None else None
        return ScoreboardState.build(game, records, usernames, buffer=pending), records

    # -- permissions --

    async def can_edit(self) -> bool:
        """Whether the current user may edit this game right now."""
        if self._state is None:
            return False
        user_id = await self._users.current_user_id()
        return user_id is not None and user_id == self._state.game.host_user_id and self._is_active()

    def _is_active(self) -> bool:
        return self.state.game.game_status == GameStatus.ACTIVE

    async def _require_host(self) -> None:
        user_id = await self._users.current_user_id()
        if user_id is None or user_id != self.state.game.host_user_id:
            raise NotEditorError(f"only the host can edit game '{self.game_id}'")

    async def _require_editor(self) -> None:
        await self._require_host()
        if not self._is_active():
            raise GameNotActiveError(f"game '{self.game_id}' is {self.state.game.game_status.value.lower()}")

    def _require_scoring_player(self, player_id: str) -> None:
        if player_id not in self.state.scoring_players:
            raise UnknownPlayerError(f"'{player_id}' is not a scoring player in game '{self.game_id}'")

    def _require_round(self, round_number: int) -> None:
        if not 1 <= round_number <= self.state.rounds:
            raise InvalidRoundError(f"round {round_number} is outside 1..{self.state.rounds}")

    # -- cell editing --

    async def set_cell(self, player_id: str, round_number: int, value: int | None) -> None:
        """Record a pending value for one cell. None clears the cell."""
        state = self.state
        await self._require_editor()
        self._require_scoring_player(player_id)
        self._require_round(round_number)

        seed = self.projection.row(player_id)
        state.buffer.set_cell(
            player_id,
            round_number,
            value,
            seed=seed.scores if seed is not None else (),
            rounds=state.rounds,
        )

    async def enter_score(self, player_id: str, round_number: int, text: str) -> int | None:
        """Parse typed input (a rule letter or an integer, blank clears) into the cell."""
        value = parse_score_input(text, self.state.custom_rules)
        await self.set_cell(player_id, round_number, value)
        return value

    def undo(self) -> Projection:
        """Drop every pending edit and fall back to the last-saved values."""
        state = self.state
        discarded = len(state.buffer.touched)
        state.buffer.clear()
        logger.debug("pending edits discarded", game_id=self.game_id, cells=discarded)
        return state.projection()

    def next_empty_cell(self, player_id: str, round_number: int) -> str | None:
        """Next player after `player_id` (display order, wrapping) with an empty cell in this round."""
        order = self.projection.player_ids
        if player_id not in order:
            return None
        start = order.index(player_id)
        projection = self.projection
        for offset in range(1, len(order)):
            candidate = order[(start + offset) % len(order)]
            if projection.value(candidate, round_number) is None:
                return candidate
        return None

    # -- saving --

    async def save(self, mode: SaveMode = SaveMode.INTERACTIVE) -> SaveReport:
        """Reconcile the scoreboard with the record store using the fewest writes.

        Existing records are read first; if that read fails nothing is written.
        A failed record write is logged and skipped without undoing the others.
        The pending buffer is cleared only when every write succeeded.
        """
        state = self.state
        with game_log_context(self.game_id):
            try:
                records = await self._store.list_scores(self.game_id)
            except RecordStoreError as exc:
                logger.warning("save aborted, existing scores unavailable", mode=mode, error=str(exc))
                report = SaveReport(mode=mode, aborted=True, error=str(exc))
                if mode == SaveMode.INTERACTIVE:
                    self._notify(NoticeKind.SAVE_FAILED, "Scores could not be saved. Check your connection.")
                return report

            writes = plan_writes(
                player_ids=state.scoring_players,
                rounds=state.rounds,
                current=state.current_rows(),
                saved=state.saved,
                existing=index_records(records),
            )

            counts = dict.fromkeys(WriteAction, 0)
            failures: list[CellFailure] = []
            written: list[ScoreRecord] = []
            removed: list[ScoreRecord] = []
            for write in writes:
                cell = (write.player_id, write.round_number)
                try:
                    if write.action == WriteAction.SYNC:
                        state.persisted.add(cell)
                    elif write.action == WriteAction.DELETE:
                        removed.append(await self._store.delete_score(write.record))
                        state.persisted.discard(cell)
                    elif write.action == WriteAction.CREATE:
                        written.append(await self._create_score(write.player_id, write.round_number, write.value))
                        state.persisted.add(cell)
                    else:
                        record = write.record.model_copy(
                            update={"score": write.value, "updated_at": datetime.now(UTC)},
                        )
                        written.append(await self._store.update_score(record))
                except RecordStoreError as exc:
                    logger.warning(
                        "score write failed",
                        action=write.action,
                        player_id=write.player_id,
                        round_number=write.round_number,
                        error=str(exc),
                    )
                    failures.append(
                        CellFailure(
                            player_id=write.player_id,
                            round_number=write.round_number,
                            action=write.action,
                            reason=str(exc),
                        )
                    )
                    continue
                counts[write.action] += 1
                row = state.saved_row(write.player_id)
                row[write.round_number - 1] = write.value
                state.saved[write.player_id] = row

            if not failures:
                state.buffer.clear()

            report = SaveReport(
                mode=mode,
                created=counts[WriteAction.CREATE],
                updated=counts[WriteAction.UPDATE],
                deleted=counts[WriteAction.DELETE],
                failures=tuple(failures),
            )
            self._publish(written, removed)
            logger.info(
                "scores saved",
                mode=mode,
                created=report.created,
                updated=report.updated,
                deleted=report.deleted,
                failed=len(failures),
            )
            if mode == SaveMode.INTERACTIVE:
                if report.ok:
                    self._notify(NoticeKind.SAVED, "Scores saved.")
                else:
                    self._notify(NoticeKind.SAVE_FAILED, f"{len(failures)} score(s) could not be saved.")
            return report

    async def _create_score(self, player_id: str, round_number: int, value: int) -> ScoreRecord:
        record = ScoreRecord.for_cell(self.game_id, player_id, round_number, value)
        try:
            return await self._store.create_score(record)
        except RecordRejectedError as exc:
            # a migrated record of a renamed player can still hold the derived id
            logger.debug("derived score id taken, using a fresh id", record_id=record.id, error=str(exc))
        return await self._store.create_score(record.model_copy(update={"id": uuid.uuid4().hex}))

    # -- round dimension --

    async def add_round(self) -> bool:
        """Append an empty round to every player.

        Raises RoundLimitReachedError without changing anything when the game
        is already at its maximum. Returns False if the new round count could
        not be persisted; the local round is kept either way.
        """
        state = self.state
        await self._require_editor()
        limit = self.max_rounds
        if state.rounds >= limit:
            self._notify(NoticeKind.ROUND_LIMIT, f"This game is limited to {limit} rounds.")
            raise RoundLimitReachedError(limit)

        with game_log_context(self.game_id):
            rounds = state.rounds + 1
            state.game = state.game.model_copy(update={"rounds": rounds, "updated_at": datetime.now(UTC)})
            state.saved = {player_id: resize_row(row, rounds) for player_id, row in state.saved.items()}
            state.buffer.resize(rounds)

            if state.buffer.is_dirty:
                report = await self.save(SaveMode.SILENT)
                if not report.ok:
                    logger.warning("pending scores not fully flushed before round change")

            persisted = await self._persist_round_count()
            logger.info("round added", rounds=rounds, persisted=persisted)
            return persisted

    async def remove_round(self, round_number: int) -> bool:
        """Excise one round so later rounds shift down by one.

        Persisted records of the removed round are deleted. Records of later
        rounds keep their stored round numbers. Returns False if the game
        record or any removed-round record could not be written.
        """
        state = self.state
        await self._require_editor()
        if state.rounds <= 1:
            raise InvalidRoundError("a game must keep at least one round")
        self._require_round(round_number)

        with game_log_context(self.game_id):
            rounds = state.rounds - 1
            state.game = state.game.model_copy(update={"rounds": rounds, "updated_at": datetime.now(UTC)})
            state.saved = {
                player_id: resize_row(splice_row(row, round_number), rounds) for player_id, row in state.saved.items()
            }
            state.persisted = shift_cells_after_removal(state.persisted, round_number)
            state.buffer.remove_round(round_number)

            persisted = await self._persist_round_count()
            deleted, failed = await self._delete_round_records(round_number)
            logger.info("round removed", round_number=round_number, rounds=rounds, deleted=deleted, failed=failed)
            return persisted and failed == 0

    async def _persist_round_count(self) -> bool:
        try:
            await self._store.update_game(self.state.game)
        except RecordStoreError as exc:
            logger.warning("round count not persisted", rounds=self.state.rounds, error=str(exc))
            self._notify(NoticeKind.ROUND_PERSIST_FAILED, "The round change could not be saved.")
            return False
        return True

    async def _delete_round_records(self, round_number: int) -> tuple[int, int]:
        try:
            records = await self._store.list_scores(self.game_id)
        except RecordStoreError as exc:
            logger.warning("removed round scores not listed", round_number=round_number, error=str(exc))
            return 0, 1
        deleted: list[ScoreRecord] = []
        failed = 0
        for record in records:
            if record.round_number != round_number:
                continue
            try:
                deleted.append(await self._store.delete_score(record))
            except RecordStoreError as exc:
                failed += 1
                logger.warning("removed round score not deleted", player_id=record.player_id, error=str(exc))
        self._publish([], deleted)
        return len(deleted), failed

    # -- custom rules --

    async def set_custom_rules(self, rules: list[CustomRule]) -> None:
        """Replace the game's letter rules. Invalid sets are rejected before anything changes."""
        state = self.state
        await self._require_editor()
        validate_rules(rules)

        with game_log_context(self.game_id):
            previous = state.game
            state.game = previous.model_copy(
                update={"custom_rules": rules_to_json(rules) if rules else None, "updated_at": datetime.now(UTC)}
            )
            try:
                await self._store.update_game(state.game)
            except RecordStoreError as exc:
                state.game = previous
                logger.warning("custom rules not saved", error=str(exc))
                raise GamePersistError(f"saving custom rules for game '{self.game_id}' failed: {exc}") from exc
            state.custom_rules = list(rules)
            logger.info("custom rules updated", letters=[rule.letter for rule in rules])

    # -- players --

    async def rename_player(self, old_id: str, new_name: str) -> RenameResult:
        """Rename an anonymous player and carry its scores over to the new name.

        Every in-memory key is rewritten first and the game record persisted.
        If that fails, the rewrite is undone and RenameFailedError raised.
        Score records are then moved one by one; a rejected in-place update
        falls back to deleting the old record and creating a new one.
        """
        state = self.state
        await self._require_editor()
        if old_id not in state.game.player_ids:
            raise UnknownPlayerError(f"'{old_id}' is not a player in game '{self.game_id}'")
        if not is_rename_eligible(parse_player_identity(old_id)):
            raise RenameNotAllowedError(f"'{old_id}' is a registered identity and cannot be renamed")
        new_id = new_name.strip()
        if not new_id:
            raise InvalidPlayerNameError("player name must not be blank")
        if new_id == old_id:
            return RenameResult(old_id=old_id, new_id=new_id)
        if not isinstance(parse_player_identity(new_id), AnonymousPlayer):
            raise InvalidPlayerNameError(f"'{new_id}' looks like a registered identity")
        if new_id in state.game.player_ids or new_id in all_children(state.game.player_hierarchy):
            raise DuplicatePlayerError(f"'{new_id}' is already a player in this game")

        with game_log_context(self.game_id):
            snapshot = self._snapshot()
            self._rekey_player(old_id, new_id)
            try:
                await self._store.update_game(state.game)
            except RecordStoreError as exc:
                self._restore(snapshot)
                logger.warning("rename rolled back", old_id=old_id, new_id=new_id, error=str(exc))
                self._notify(NoticeKind.RENAME_FAILED, f"Could not rename {old_id}.")
                raise RenameFailedError(f"renaming '{old_id}' to '{new_id}' failed: {exc}") from exc

            result = await self._migrate_scores(old_id, new_id)
            stale = self.identity_inconsistencies(old_id, new_id)
            if stale:
                logger.error("player rename left stale keys", old_id=old_id, new_id=new_id, maps=stale)
            logger.info(
                "player renamed",
                old_id=old_id,
                new_id=new_id,
                migrated=result.migrated,
                recreated=result.recreated,
                failed=result.failed,
            )
            if result.failed:
                self._notify(NoticeKind.MIGRATION_INCOMPLETE, f"Some scores for {new_id} could not be moved.")
            return result

    def _rekey_player(self, old_id: str, new_id: str) -> None:
        state = self.state
        game = state.game
        state.game = game.model_copy(
            update={
                "player_ids": [new_id if player_id == old_id else player_id for player_id in game.player_ids],
                "player_hierarchy": rename_in_hierarchy(game.player_hierarchy, old_id, new_id),
                "updated_at": datetime.now(UTC),
            }
        )
        if old_id in state.saved:
            state.saved[new_id] = state.saved.pop(old_id)
        if old_id in state.names:
            state.names.pop(old_id)
            state.names[new_id] = new_id
        state.persisted = rename_cells(state.persisted, old_id, new_id)
        state.buffer.rename(old_id, new_id)

    async def _migrate_scores(self, old_id: str, new_id: str) -> RenameResult:
        try:
            records = await self._store.list_scores(self.game_id, player_id=old_id)
        except RecordStoreError as exc:
            logger.warning("score migration skipped, records unavailable", old_id=old_id, error=str(exc))
            return RenameResult(old_id=old_id, new_id=new_id, failed=1)

        migrated = recreated = failed = 0
        written: list[ScoreRecord] = []
        removed: list[ScoreRecord] = []
        for record in records:
            moved = record.model_copy(update={"player_id": new_id, "updated_at": datetime.now(UTC)})
            try:
                written.append(await self._store.update_score(moved))
                migrated += 1
                continue
            except RecordRejectedError as exc:
                logger.debug("in-place migration rejected, recreating", round_number=record.round_number, error=str(exc))
            except RecordStoreError as exc:
                failed += 1
                logger.warning("score migration failed", round_number=record.round_number, error=str(exc))
                continue

            replacement = ScoreRecord.for_cell(self.game_id, new_id, record.round_number, record.score, owner=record.owner)
            try:
                removed.append(await self._store.delete_score(record))
                written.append(await self._store.create_score(replacement))
                recreated += 1
            except RecordStoreError as exc:
                failed += 1
                logger.warning("score recreation failed", round_number=record.round_number, error=str(exc))
        self._publish(written, removed)
        return RenameResult(old_id=old_id, new_id=new_id, migrated=migrated, recreated=recreated, failed=failed)

    def identity_inconsistencies(self, old_id: str, new_id: str) -> list[str]:
        """Names of state maps that still hold old_id, or lack new_id where it belongs."""
        state = self.state
        problems = []
        if old_id in state.game.player_ids or new_id not in state.game.player_ids:
            problems.append("player_ids")
        if old_id in state.game.player_hierarchy or old_id in all_children(state.game.player_hierarchy):
            problems.append("hierarchy")
        if old_id in state.saved:
            problems.append("saved")
        if old_id in state.names or new_id not in state.names:
            problems.append("names")
        if any(player_id == old_id for player_id, _ in state.persisted):
            problems.append("persisted")
        if old_id in state.buffer.player_ids():
            problems.append("buffer")
        return problems

    async def delete_player(self, player_id: str) -> int:
        """Remove a player and their score records. Returns how many records were deleted."""
        state = self.state
        await self._require_editor()
        if player_id not in state.game.player_ids:
            raise UnknownPlayerError(f"'{player_id}' is not a player in game '{self.game_id}'")
        if len(state.game.player_ids) <= 1:
            raise LastPlayerError("a game must keep at least one player")

        with game_log_context(self.game_id, player_id=player_id):
            snapshot = self._snapshot()
            game = state.game
            state.game = game.model_copy(
                update={
                    "player_ids": [pid for pid in game.player_ids if pid != player_id],
                    "player_hierarchy": remove_from_hierarchy(game.player_hierarchy, player_id),
                    "updated_at": datetime.now(UTC),
                }
            )
            state.saved.pop(player_id, None)
            participants = set(participating_players(state.game.player_ids, state.game.player_hierarchy))
            state.names = {pid: name for pid, name in state.names.items() if pid in participants}
            state.persisted = {cell for cell in state.persisted if cell[0] != player_id}
            state.buffer.drop_player(player_id)
            try:
                await self._store.update_game(state.game)
            except RecordStoreError as exc:
                self._restore(snapshot)
                logger.warning("player removal rolled back", error=str(exc))
                raise GamePersistError(f"removing '{player_id}' failed: {exc}") from exc

            deleted: list[ScoreRecord] = []
            try:
                records = await self._store.list_scores(self.game_id, player_id=player_id)
            except RecordStoreError as exc:
                logger.warning("removed player scores not listed", error=str(exc))
                records = []
            for record in records:
                try:
                    deleted.append(await self._store.delete_score(record))
                except RecordStoreError as exc:
                    logger.warning("removed player score not deleted", round_number=record.round_number, error=str(exc))
            self._publish([], deleted)
            logger.info("player removed", deleted=len(deleted))
            return len(deleted)

    # -- game lifecycle --

    async def delete_game(self) -> int:
        """Delete every score record, then the game itself, and drop local state.

        Individual score deletions that fail are logged and skipped. Raises
        GamePersistError if the game record itself could not be deleted.
        """
        state = self.state
        await self._require_host()
        with game_log_context(self.game_id):
            records = await self._store.list_scores(self.game_id)
            deleted = 0
            for record in records:
                try:
                    await self._store.delete_score(record)
                    deleted += 1
                except RecordStoreError as exc:
                    logger.warning("score not deleted with game", record_id=record.id, error=str(exc))
            try:
                await self._store.delete_game(state.game)
            except RecordStoreError as exc:
                logger.warning("game not deleted", error=str(exc))
                raise GamePersistError(f"deleting game '{self.game_id}' failed: {exc}") from exc

            self._state = None
            if self._feed is not None:
                self._feed.on_game_deleted(self.game_id)
            logger.info("game deleted", scores_deleted=deleted, scores_failed=len(records) - deleted)
            return deleted

    async def complete_game(self) -> GameOutcome:
        """Mark a fully scored game completed and work out the winner.

        Pending edits are flushed first; if any of them cannot be saved the
        game stays active and GamePersistError is raised. The celebration flag
        is set the first time a game is completed, so `celebrate` is True only
        once per game.
        """
        state = self.state
        await self._require_editor()
        if not self.is_complete():
            raise GameIncompleteError("every player needs a score for every round")

        with game_log_context(self.game_id):
            if state.buffer.is_dirty:
                report = await self.save(SaveMode.SILENT)
                if not report.ok:
                    logger.warning("game completion aborted, scores not saved", failed=len(report.failures))
                    self._notify(NoticeKind.SAVE_FAILED, "Scores could not be saved, so the game was not completed.")
                    raise GamePersistError(
                        f"completing game '{self.game_id}' failed: pending scores not saved"
                        f" ({report.error or f'{len(report.failures)} write(s) failed'})"
                    )

            previous = state.game
            state.game = previous.model_copy(
                update={"game_status": GameStatus.COMPLETED, "updated_at": datetime.now(UTC)}
            )
            try:
                await self._store.update_game(state.game)
            except RecordStoreError as exc:
                state.game = previous
                logger.warning("game completion rolled back", error=str(exc))
                raise GamePersistError(f"completing game '{self.game_id}' failed: {exc}") from exc

            winner = resolve_winner(self.projection.rows, state.game.win_condition)
            celebrate = self._claim_celebration()
            logger.info("game completed", winners=list(winner.winners), is_tie=winner.is_tie, celebrate=celebrate)
            self._notify(NoticeKind.GAME_COMPLETED, "Game completed.")
            return GameOutcome(winner=winner, celebrate=celebrate)

    def _claim_celebration(self) -> bool:
        if self._celebrations is None:
            return False
        try:
            if self._celebrations.has_shown(self.game_id):
                return False
            self._celebrations.mark_shown(self.game_id)
        except OSError:
            logger.exception("failed to persist celebration flag")
            return False
        return True

    # -- helpers --

    def _snapshot(self) -> ScoreboardState:
        state = self.state
        return ScoreboardState(
            game=state.game,
            saved={player_id: list(row) for player_id, row in state.saved.items()},
            persisted=set(state.persisted),
            buffer=state.buffer.copy(),
            names=dict(state.names),
            custom_rules=list(state.custom_rules),
        )

    def _restore(self, snapshot: ScoreboardState) -> None:
        self._state = snapshot

    def _publish(self, written: list[ScoreRecord], removed: list[ScoreRecord]) -> None:
        if self._feed is None:
            return
        if written:
            self._feed.on_scores_updated(written)
        if removed:
            self._feed.on_scores_deleted(removed)

    def _notify(self, kind: NoticeKind, message: str) -> None:
        if self._on_notice is None:
            return
        try:
            self._on_notice(Notice(kind=kind, message=message))
        except Exception:
            logger.exception("notice callback failed", kind=kind)
