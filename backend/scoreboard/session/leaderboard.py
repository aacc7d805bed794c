"""Cross-game score feed and leaderboard.

One ScoreFeed is built per process and handed to every session that
should report its writes. Sessions push created, updated and deleted
records into it; subscribers are told when the feed changed.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from scoreboard.logic.identity import leaderboard_name, usernames_by_id
from scoreboard.logic.settings import LEADERBOARD_LIMIT

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from shared.dal.models import GameRecord, ScoreRecord, UserRecord

logger = structlog.get_logger()


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_id: str
    nickname: str
    points: int
    games: tuple[str, ...] = ()


class ScoreFeed:
    def __init__(self, scores: Iterable[ScoreRecord] = ()) -> None:
        self._scores: dict[str, ScoreRecord] = {score.id: score for score in scores}
        self._subscribers: list[Callable[[], None]] = []

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a change callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback()
            except Exception:
                logger.exception("score feed subscriber failed")

    def on_scores_updated(self, scores: Iterable[ScoreRecord]) -> None:
        """Insert or replace records by id."""
        changed = False
        for score in scores:
            self._scores[score.id] = score
            changed = True
        if changed:
            self._notify()

    def on_scores_deleted(self, scores: Iterable[ScoreRecord]) -> None:
        removed = [self._scores.pop(score.id) for score in scores if score.id in self._scores]
        if removed:
            self._notify()

    def on_game_loaded(self, game_id: str, scores: Iterable[ScoreRecord]) -> None:
        """Replace everything held for one game with a freshly read set of records."""
        fresh = {score.id: score for score in scores if score.game_id == game_id}
        stale = [
            score_id
            for score_id, score in self._scores.items()
            if score.game_id == game_id and score_id not in fresh
        ]
        if not stale and all(self._scores.get(score_id) == score for score_id, score in fresh.items()):
            return
        for score_id in stale:
            del self._scores[score_id]
        self._scores.update(fresh)
        self._notify()

    def on_game_deleted(self, game_id: str) -> None:
        stale = [score_id for score_id, score in self._scores.items() if score.game_id == game_id]
        for score_id in stale:
            del self._scores[score_id]
        logger.debug("game scores dropped from feed", game_id=game_id, count=len(stale))
        self._notify()

    def scores_for_game(self, game_id: str) -> list[ScoreRecord]:
        return [score for score in self._scores.values() if score.game_id == game_id]

    def scores_for_player(self, player_id: str) -> list[ScoreRecord]:
        return [score for score in self._scores.values() if score.player_id == player_id]

    def leaderboard(
        self,
        users: Iterable[UserRecord],
        games: Iterable[GameRecord],
        limit: int = LEADERBOARD_LIMIT,
    ) -> list[LeaderboardEntry]:
        """Total points per player across all games, best first."""
        points: dict[str, int] = defaultdict(int)
        played: dict[str, set[str]] = defaultdict(set)
        for score in self._scores.values():
            points[score.player_id] += score.score
            played[score.player_id].add(score.game_id)

        usernames = usernames_by_id(users)
        game_names = {game.id: game.game_name or "None" for game in games}
        entries = [
            LeaderboardEntry(
                player_id=player_id,
                nickname=leaderboard_name(player_id, usernames),
                points=total,
                games=tuple(sorted(game_names[game_id] for game_id in played[player_id] if game_id in game_names)),
            )
            for player_id, total in points.items()
        ]
        entries.sort(key=lambda entry: (-entry.points, entry.nickname))
        return entries[:limit]
