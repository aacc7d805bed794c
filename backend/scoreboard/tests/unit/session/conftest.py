import pytest

from scoreboard.logic.settings import SessionConfig
from scoreboard.session.leaderboard import ScoreFeed
from scoreboard.session.scoreboard import ScoreboardSession
from scoreboard.tests.helpers import HOST, FlakyRecordStore
from shared.auth import StaticUserProvider
from shared.db.connection import Database
from shared.storage import InMemoryCelebrationStore


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "scoreboard.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def store(db):
    return FlakyRecordStore(db)


@pytest.fixture
def notices():
    return []


@pytest.fixture
def feed():
    return ScoreFeed()


@pytest.fixture
def celebrations():
    return InMemoryCelebrationStore()


@pytest.fixture
def make_session(store, notices, feed, celebrations):
    def _make(game_id="g1", user_id=HOST, config=None):
        return ScoreboardSession(
            game_id,
            store,
            StaticUserProvider(user_id),
            config=config or SessionConfig(),
            celebrations=celebrations,
            feed=feed,
            on_notice=notices.append,
        )

    return _make
