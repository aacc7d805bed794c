"""Data access layer: record store interface, failure types and persistence models."""

from shared.dal.errors import RecordRejectedError, RecordStoreError, StoreUnavailableError
from shared.dal.models import GameRecord, GameStatus, ScoreRecord, UserRecord, WinCondition, score_record_id
from shared.dal.record_store import RecordStore

__all__ = [
    "GameRecord",
    "GameStatus",
    "RecordRejectedError",
    "RecordStore",
    "RecordStoreError",
    "ScoreRecord",
    "StoreUnavailableError",
    "UserRecord",
    "WinCondition",
    "score_record_id",
]
