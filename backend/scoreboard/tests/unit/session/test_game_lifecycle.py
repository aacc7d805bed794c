"""Completion, winner resolution, player removal and game deletion."""

import pytest

from scoreboard.logic.exceptions import (
    GameIncompleteError,
    GamePersistError,
    LastPlayerError,
    NotEditorError,
    SessionNotLoadedError,
)
from scoreboard.session.notices import NoticeKind
from scoreboard.tests.helpers import seed_game, stored_cells
from shared.dal.models import GameStatus, WinCondition


def _full(a, b):
    """Two rounds for Alice and Bob summing to the given totals."""
    return {("Alice", 1): a - 1, ("Alice", 2): 1, ("Bob", 1): b, ("Bob", 2): 0}


async def _loaded(store, make_session, **seed):
    await seed_game(store, **seed)
    session = make_session()
    await session.load()
    return session


class TestCompletion:
    async def test_highest_score_wins(self, store, make_session):
        session = await _loaded(store, make_session, scores=_full(10, 7))

        assert session.is_complete()
        result = session.resolve_winner()
        assert result.winners == ("Alice",)
        assert result.winning_score == 10
        assert not result.is_tie

    async def test_tie(self, store, make_session):
        session = await _loaded(store, make_session, scores=_full(10, 10))

        result = session.resolve_winner()

        assert set(result.winners) == {"Alice", "Bob"}
        assert result.is_tie

    async def test_lowest_score_wins(self, store, make_session):
        session = await _loaded(store, make_session, scores=_full(10, 7), win_condition=WinCondition.LOWEST_SCORE)

        assert session.resolve_winner().winners == ("Bob",)

    async def test_missing_entry_is_incomplete(self, store, make_session):
        scores = _full(50, 1)
        del scores[("Bob", 2)]
        session = await _loaded(store, make_session, scores=scores)

        assert not session.is_complete()
        assert not session.resolve_winner().has_winner

    async def test_pending_entries_count(self, store, make_session):
        scores = _full(10, 7)
        del scores[("Bob", 2)]
        session = await _loaded(store, make_session, scores=scores)

        await session.set_cell("Bob", 2, 0)

        assert session.is_complete()

    async def test_cleared_entry_is_incomplete(self, store, make_session):
        session = await _loaded(store, make_session, scores=_full(10, 7))

        await session.set_cell("Alice", 1, None)

        assert not session.is_complete()

    async def test_new_round_makes_game_incomplete(self, store, make_session):
        session = await _loaded(store, make_session, scores=_full(10, 7))

        await session.add_round()

        assert not session.is_complete()


class TestCompleteGame:
    async def test_marks_completed_and_celebrates_once(self, store, make_session, celebrations):
        session = await _loaded(store, make_session, scores=_full(10, 7))

        outcome = await session.complete_game()

        assert outcome.winner.winners == ("Alice",)
        assert outcome.celebrate
        assert celebrations.has_shown("g1")
        assert (await store.get_game("g1")).game_status == GameStatus.COMPLETED
        assert not await session.can_edit()

    async def test_second_device_completion_does_not_celebrate_again(self, store, make_session, celebrations):
        celebrations.mark_shown("g1")
        session = await _loaded(store, make_session, scores=_full(10, 7))

        outcome = await session.complete_game()

        assert not outcome.celebrate

    async def test_flushes_pending_entries(self, store, make_session):
        scores = _full(10, 7)
        del scores[("Bob", 2)]
        session = await _loaded(store, make_session, scores=scores)
        await session.set_cell("Bob", 2, 5)

        await session.complete_game()

        assert (await stored_cells(store))[("Bob", 2)] == 5

    async def test_incomplete_game_rejected(self, store, make_session):
        session = await _loaded(store, make_session)

        with pytest.raises(GameIncompleteError):
            await session.complete_game()
        assert session.game.game_status == GameStatus.ACTIVE

    async def test_persist_failure_reverts_status(self, store, make_session, celebrations):
        session = await _loaded(store, make_session, scores=_full(10, 7))
        store.fail("update_game")

        with pytest.raises(GamePersistError):
            await session.complete_game()

        assert session.game.game_status == GameStatus.ACTIVE
        assert not celebrations.has_shown("g1")

    async def test_unsaved_scores_keep_the_game_active(self, store, make_session, celebrations, notices):
        scores = _full(10, 7)
        del scores[("Bob", 2)]
        session = await _loaded(store, make_session, scores=scores)
        await session.set_cell("Bob", 2, 5)
        store.fail("list_scores")

        with pytest.raises(GamePersistError):
            await session.complete_game()

        assert session.game.game_status == GameStatus.ACTIVE
        assert (await store.get_game("g1")).game_status == GameStatus.ACTIVE
        assert session.value("Bob", 2) == 5
        assert session.has_unsaved_changes
        assert not celebrations.has_shown("g1")
        assert notices[-1].kind == NoticeKind.SAVE_FAILED

    async def test_partially_saved_scores_keep_the_game_active(self, store, make_session):
        scores = _full(10, 7)
        del scores[("Bob", 2)]
        session = await _loaded(store, make_session, scores=scores)
        await session.set_cell("Alice", 1, 12)
        await session.set_cell("Bob", 2, 5)
        store.fail("create_score")

        with pytest.raises(GamePersistError):
            await session.complete_game()

        assert (await store.get_game("g1")).game_status == GameStatus.ACTIVE
        assert (await stored_cells(store))[("Alice", 1)] == 12
        assert ("Bob", 2) not in await stored_cells(store)
        assert await session.can_edit()


class TestDeletePlayer:
    async def test_removes_player_and_their_records(self, store, make_session):
        session = await _loaded(store, make_session, players=("Alice", "Bob", "Cara"), scores=_full(3, 4))

        deleted = await session.delete_player("Alice")

        assert deleted == 2
        assert session.projection.player_ids == ["Bob", "Cara"]
        assert "Alice" not in session.saved
        assert not session.is_entered("Alice", 1)
        assert (await store.get_game("g1")).player_ids == ["Bob", "Cara"]
        assert await stored_cells(store) == {("Bob", 1): 4, ("Bob", 2): 0}

    async def test_parent_removal_drops_team(self, store, make_session):
        session = await _loaded(store, make_session, players=("Red", "kid", "Blue"), player_hierarchy={"Red": ["kid"]})

        await session.delete_player("Red")

        assert session.game.player_hierarchy == {}

    async def test_last_player_cannot_be_removed(self, store, make_session):
        session = await _loaded(store, make_session, players=("Alice",))

        with pytest.raises(LastPlayerError):
            await session.delete_player("Alice")

    async def test_persist_failure_restores_player(self, store, make_session):
        session = await _loaded(store, make_session, scores=_full(3, 4))
        store.fail("update_game")

        with pytest.raises(GamePersistError):
            await session.delete_player("Alice")

        assert session.game.player_ids == ["Alice", "Bob"]
        assert session.value("Alice", 1) == 2
        assert len(await store.list_scores("g1", player_id="Alice")) == 2


class TestDeleteGame:
    async def test_cascades_to_scores(self, store, make_session, feed):
        session = await _loaded(store, make_session, scores=_full(3, 4))
        await session.set_cell("Alice", 1, 9)
        await session.save()

        deleted = await session.delete_game()

        assert deleted == 4
        assert await store.get_game("g1") is None
        assert await store.list_scores("g1") == []
        assert feed.scores_for_game("g1") == []
        assert not session.is_loaded
        with pytest.raises(SessionNotLoadedError):
            _ = session.projection

    async def test_score_delete_failures_are_skipped(self, store, make_session):
        session = await _loaded(store, make_session, scores=_full(3, 4))
        store.fail("delete_score", when=lambda record: record.player_id == "Bob")

        deleted = await session.delete_game()

        assert deleted == 2
        assert await store.get_game("g1") is None

    async def test_completed_game_can_still_be_deleted_by_host(self, store, make_session):
        session = await _loaded(store, make_session, game_status=GameStatus.COMPLETED)

        await session.delete_game()

        assert await store.get_game("g1") is None

    async def test_non_host_rejected(self, store, make_session):
        await seed_game(store)
        session = make_session(user_id="other")
        await session.load()

        with pytest.raises(NotEditorError):
            await session.delete_game()
        assert await store.get_game("g1") is not None

    async def test_game_delete_failure_keeps_session(self, store, make_session):
        session = await _loaded(store, make_session)
        store.fail("delete_game")

        with pytest.raises(GamePersistError):
            await session.delete_game()
        assert session.is_loaded
