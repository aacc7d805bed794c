"""Wiring: build the record store, celebration store and score feed from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from scoreboard.session.leaderboard import ScoreFeed
from scoreboard.session.scoreboard import ScoreboardSession
from scoreboard.settings import ScoreboardSettings
from shared.db import Database, SqliteRecordStore
from shared.logging import setup_logging
from shared.storage import LocalCelebrationStore

if TYPE_CHECKING:
    from scoreboard.session.notices import NoticeCallback
    from shared.auth.provider import CurrentUserProvider

logger = structlog.get_logger()


class ScoreboardApp:
    """Process-wide collaborators shared by every open scoreboard."""

    def __init__(self, settings: ScoreboardSettings, users: CurrentUserProvider) -> None:
        self.settings = settings
        self.users = users
        self.db = Database(settings.database_path)
        self.store = SqliteRecordStore(self.db)
        self.celebrations = LocalCelebrationStore(settings.celebration_file)
        self.feed = ScoreFeed()
        self._session_config = settings.session_config()

    def start(self) -> None:
        self.db.connect()
        logger.info("scoreboard app started", database=self.settings.database_path)

    def close(self) -> None:
        self.db.close()
        logger.info("scoreboard app stopped")

    def open_session(self, game_id: str, on_notice: NoticeCallback | None = None) -> ScoreboardSession:
        """Create a session for one game; call its load() before use."""
        return ScoreboardSession(
            game_id,
            self.store,
            self.users,
            config=self._session_config,
            celebrations=self.celebrations,
            feed=self.feed,
            on_notice=on_notice,
        )


def create_app(
    users: CurrentUserProvider,
    settings: ScoreboardSettings | None = None,
) -> ScoreboardApp:
    if settings is None:  # pragma: no cover
        settings = ScoreboardSettings()

    log_file = setup_logging(log_dir=settings.log_dir, name="scoreboard")
    if log_file is not None:
        logger.info("logging to file", path=str(log_file))

    app = ScoreboardApp(settings, users)
    app.start()
    return app
