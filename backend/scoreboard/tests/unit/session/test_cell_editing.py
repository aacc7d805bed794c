"""Cell edits, save reconciliation and undo."""

import pytest

from scoreboard.logic.custom_rules import CustomRule, rules_from_json, rules_to_json
from scoreboard.logic.exceptions import (
    GameNotActiveError,
    GamePersistError,
    InvalidCustomRulesError,
    InvalidRoundError,
    InvalidScoreInputError,
    NotEditorError,
    SessionNotLoadedError,
    UnknownPlayerError,
)
from scoreboard.logic.save_plan import SaveMode
from scoreboard.session.notices import NoticeKind
from scoreboard.tests.helpers import seed_game, stored_cells
from shared.dal.errors import RecordRejectedError
from shared.dal.models import GameStatus


class TestEmptyVersusZero:
    async def test_untouched_cell_is_empty_and_not_entered(self, store, make_session):
        await seed_game(store)
        session = make_session()
        await session.load()

        assert session.value("Alice", 1) is None
        assert not session.is_entered("Alice", 1)

    async def test_zero_is_a_real_entered_score(self, store, make_session):
        await seed_game(store)
        session = make_session()
        await session.load()

        await session.set_cell("Alice", 1, 0)

        assert session.value("Alice", 1) == 0
        assert session.is_entered("Alice", 1)
        assert session.projection.row("Alice").total == 0

    async def test_persisted_zero_is_entered_after_load(self, store, make_session):
        await seed_game(store, scores={("Alice", 1): 0})
        session = make_session()
        await session.load()

        assert session.value("Alice", 1) == 0
        assert session.is_entered("Alice", 1)

    async def test_clearing_cell_removes_entry(self, store, make_session):
        await seed_game(store, scores={("Alice", 1): 4})
        session = make_session()
        await session.load()

        await session.set_cell("Alice", 1, None)

        assert session.value("Alice", 1) is None
        assert not session.is_entered("Alice", 1)


class TestSetCell:
    async def test_does_not_touch_neighbouring_cells(self, store, make_session):
        await seed_game(store, scores={("Alice", 1): 5, ("Alice", 2): 6})
        session = make_session()
        await session.load()

        await session.set_cell("Alice", 2, 9)

        assert session.projection.row("Alice").scores == (5, 9)

    async def test_repeated_set_is_idempotent(self, store, make_session):
        await seed_game(store)
        session = make_session()
        await session.load()

        await session.set_cell("Bob", 1, 3)
        await session.set_cell("Bob", 1, 3)

        assert session.value("Bob", 1) == 3
        assert session.changed_cell_count() == 1

    async def test_non_host_rejected(self, store, make_session):
        await seed_game(store)
        session = make_session(user_id="someone-else")
        await session.load()

        with pytest.raises(NotEditorError):
            await session.set_cell("Alice", 1, 1)
        assert not session.has_unsaved_changes

    async def test_signed_out_rejected(self, store, make_session):
        await seed_game(store)
        session = make_session(user_id=None)
        await session.load()

        assert not await session.can_edit()
        with pytest.raises(NotEditorError):
            await session.set_cell("Alice", 1, 1)

    async def test_completed_game_rejected(self, store, make_session):
        await seed_game(store, game_status=GameStatus.COMPLETED)
        session = make_session()
        await session.load()

        with pytest.raises(GameNotActiveError):
            await session.set_cell("Alice", 1, 1)

    async def test_out_of_range_round_rejected(self, store, make_session):
        await seed_game(store, rounds=2)
        session = make_session()
        await session.load()

        with pytest.raises(InvalidRoundError):
            await session.set_cell("Alice", 3, 1)
        with pytest.raises(InvalidRoundError):
            await session.set_cell("Alice", 0, 1)

    async def test_child_player_has_no_cells(self, store, make_session):
        await seed_game(store, players=("Red", "kid"), player_hierarchy={"Red": ["kid"]})
        session = make_session()
        await session.load()

        with pytest.raises(UnknownPlayerError):
            await session.set_cell("kid", 1, 1)

    async def test_requires_load(self, make_session):
        session = make_session()

        with pytest.raises(SessionNotLoadedError):
            await session.set_cell("Alice", 1, 1)


class TestSave:
    async def test_creates_updates_and_deletes(self, store, make_session):
        await seed_game(store, scores={("Alice", 1): 5, ("Bob", 1): 2})
        session = make_session()
        await session.load()

        await session.set_cell("Alice", 1, 6)
        await session.set_cell("Bob", 1, None)
        await session.set_cell("Bob", 2, 0)
        report = await session.save()

        assert report.ok
        assert (report.created, report.updated, report.deleted) == (1, 1, 1)
        assert await stored_cells(store) == {("Alice", 1): 6, ("Bob", 2): 0}
        assert not session.has_unsaved_changes

    async def test_second_save_writes_nothing(self, store, make_session):
        await seed_game(store)
        session = make_session()
        await session.load()
        await session.set_cell("Alice", 1, 4)
        await session.save()
        store.reset_calls()

        report = await session.save()

        assert report.mutations == 0
        assert store.mutations == []
        assert store.calls == ["list_scores"]

    async def test_update_keeps_created_at_and_derived_id(self, store, make_session):
        await seed_game(store, scores={("Alice", 1): 5})
        original = (await store.list_scores("g1"))[0]
        session = make_session()
        await session.load()

        await session.set_cell("Alice", 1, 8)
        await session.save()

        updated = (await store.list_scores("g1"))[0]
        assert updated.id == "g1-Alice-1"
        assert updated.created_at == original.created_at
        assert updated.updated_at > original.updated_at

    @pytest.mark.parametrize("value", [0, 7, -1, -25])
    async def test_value_survives_save_and_reload(self, store, make_session, value):
        await seed_game(store)
        session = make_session()
        await session.load()

        await session.set_cell("Alice", 2, value)
        await session.save()
        reloaded = make_session()
        await reloaded.load()

        assert reloaded.value("Alice", 2) == value
        assert reloaded.is_entered("Alice", 2)

    async def test_unreachable_store_aborts_before_writing(self, store, make_session, notices):
        await seed_game(store)
        session = make_session()
        await session.load()
        await session.set_cell("Alice", 1, 4)
        store.fail("list_scores")
        store.reset_calls()

        report = await session.save()

        assert report.aborted
        assert not report.ok
        assert store.mutations == []
        assert session.has_unsaved_changes
        assert notices[-1].kind == NoticeKind.SAVE_FAILED

    async def test_record_failure_skips_and_keeps_siblings(self, store, make_session, notices):
        await seed_game(store)
        session = make_session()
        await session.load()
        await session.set_cell("Alice", 1, 1)
        await session.set_cell("Bob", 1, 2)
        store.reject("create_score", when=lambda record: record.player_id == "Bob")

        report = await session.save()

        assert report.created == 1
        assert [(f.player_id, f.round_number) for f in report.failures] == [("Bob", 1)]
        assert await stored_cells(store) == {("Alice", 1): 1}
        assert session.has_unsaved_changes
        assert session.player_has_changes("Bob")
        assert not session.player_has_changes("Alice")
        assert notices[-1].kind == NoticeKind.SAVE_FAILED

    async def test_retry_after_partial_failure_converges(self, store, make_session):
        await seed_game(store)
        session = make_session()
        await session.load()
        await session.set_cell("Alice", 1, 1)
        await session.set_cell("Bob", 1, 2)
        store.fail("create_score", RecordRejectedError("nope"), when=lambda record: record.player_id == "Bob")
        await session.save()
        store.heal()
        store.reset_calls()

        report = await session.save()

        assert report.ok
        assert store.mutations == ["create_score"]
        assert await stored_cells(store) == {("Alice", 1): 1, ("Bob", 1): 2}

    async def test_silent_save_emits_no_notice(self, store, make_session, notices):
        await seed_game(store)
        session = make_session()
        await session.load()
        await session.set_cell("Alice", 1, 1)
        store.fail("list_scores")

        report = await session.save(SaveMode.SILENT)

        assert report.aborted
        assert notices == []

    async def test_interactive_success_notice(self, store, make_session, notices):
        await seed_game(store)
        session = make_session()
        await session.load()
        await session.set_cell("Alice", 1, 1)

        await session.save(SaveMode.INTERACTIVE)

        assert [n.kind for n in notices] == [NoticeKind.SAVED]

    async def test_children_never_persist(self, store, make_session):
        await seed_game(store, players=("Red", "kid"), player_hierarchy={"Red": ["kid"]})
        session = make_session()
        await session.load()

        await session.set_cell("Red", 1, 3)
        await session.save()

        assert await stored_cells(store) == {("Red", 1): 3}
        assert session.projection.child_scores == {"kid": (3, None)}

    async def test_saves_feed_leaderboard(self, store, make_session, feed):
        await seed_game(store)
        session = make_session()
        await session.load()

        await session.set_cell("Alice", 1, 4)
        await session.save()

        assert [s.score for s in feed.scores_for_game("g1")] == [4]


class TestUndo:
    async def test_reverts_to_saved_values(self, store, make_session):
        await seed_game(store, scores={("Alice", 1): 5})
        session = make_session()
        await session.load()
        await session.set_cell("Alice", 1, 9)
        await session.set_cell("Bob", 2, 0)

        projection = session.undo()

        assert projection.value("Alice", 1) == 5
        assert projection.value("Bob", 2) is None
        assert session.is_entered("Alice", 1)
        assert not session.is_entered("Bob", 2)
        assert not session.has_unsaved_changes


class TestNextEmptyCell:
    async def test_finds_next_empty_player_in_round(self, store, make_session):
        await seed_game(store, players=("Alice", "Bob", "Cara"), scores={("Bob", 1): 3})
        session = make_session()
        await session.load()

        assert session.next_empty_cell("Alice", 1) == "Cara"

    async def test_wraps_around(self, store, make_session):
        await seed_game(store, players=("Alice", "Bob", "Cara"), scores={("Bob", 1): 3})
        session = make_session()
        await session.load()

        assert session.next_empty_cell("Cara", 1) == "Alice"

    async def test_pending_values_count_as_filled(self, store, make_session):
        await seed_game(store)
        session = make_session()
        await session.load()
        await session.set_cell("Bob", 1, 0)

        assert session.next_empty_cell("Alice", 1) is None


class TestCustomRules:
    RULES = [CustomRule(letter="X", value=50), CustomRule(letter="Z", value=0)]

    async def _loaded(self, store, make_session):
        await seed_game(store, custom_rules=rules_to_json(self.RULES))
        session = make_session()
        await session.load()
        return session

    async def test_rule_letter_enters_its_value(self, store, make_session):
        session = await self._loaded(store, make_session)

        assert await session.enter_score("Alice", 1, " x ") == 50

        assert session.value("Alice", 1) == 50
        assert session.cell_text("Alice", 1) == "X"

    async def test_blank_input_clears_and_plain_numbers_pass_through(self, store, make_session):
        session = await self._loaded(store, make_session)
        await session.enter_score("Alice", 1, "-3")
        await session.enter_score("Bob", 1, "7")

        await session.enter_score("Bob", 1, "  ")

        assert session.cell_text("Alice", 1) == "-3"
        assert session.cell_text("Bob", 1) is None
        assert not session.is_entered("Bob", 1)

    async def test_garbage_input_changes_nothing(self, store, make_session):
        session = await self._loaded(store, make_session)

        with pytest.raises(InvalidScoreInputError):
            await session.enter_score("Alice", 1, "abc")

        assert not session.has_unsaved_changes

    async def test_replacing_rules_persists_them(self, store, make_session):
        session = await self._loaded(store, make_session)
        await session.set_cell("Alice", 1, 25)

        await session.set_custom_rules([CustomRule(letter="q", value=25)])

        assert session.cell_text("Alice", 1) == "Q"
        assert rules_from_json((await store.get_game("g1")).custom_rules) == [CustomRule(letter="Q", value=25)]

    async def test_invalid_rules_rejected_before_writing(self, store, make_session):
        session = await self._loaded(store, make_session)
        store.reset_calls()

        with pytest.raises(InvalidCustomRulesError):
            await session.set_custom_rules([CustomRule(letter="A", value=1), CustomRule(letter="B", value=1)])

        assert store.mutations == []
        assert session.custom_rules == self.RULES

    async def test_persist_failure_keeps_previous_rules(self, store, make_session):
        session = await self._loaded(store, make_session)
        store.fail("update_game")

        with pytest.raises(GamePersistError):
            await session.set_custom_rules([])

        assert session.custom_rules == self.RULES
        assert session.game.custom_rules == rules_to_json(self.RULES)
