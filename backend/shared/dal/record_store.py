"""Abstract interface for the remote record store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import GameRecord, ScoreRecord, UserRecord


class RecordStore(ABC):
    """CRUD and filtered-list operations over Game, Score and User records.

    Implementations raise StoreUnavailableError on transport failures and
    RecordRejectedError when a single record operation is refused.
    """

    @abstractmethod
    async def get_game(self, game_id: str) -> GameRecord | None: ...

    @abstractmethod
    async def create_game(self, game: GameRecord) -> GameRecord: ...

    @abstractmethod
    async def update_game(self, game: GameRecord) -> GameRecord: ...

    @abstractmethod
    async def delete_game(self, game: GameRecord) -> GameRecord: ...

    @abstractmethod
    async def list_scores(self, game_id: str, player_id: str | None = None) -> list[ScoreRecord]: ...

    @abstractmethod
    async def create_score(self, score: ScoreRecord) -> ScoreRecord: ...

    @abstractmethod
    async def update_score(self, score: ScoreRecord) -> ScoreRecord: ...

    @abstractmethod
    async def delete_score(self, score: ScoreRecord) -> ScoreRecord: ...

    @abstractmethod
    async def list_users(self) -> list[UserRecord]: ...

    @abstractmethod
    async def create_user(self, user: UserRecord) -> UserRecord: ...
