"""User-facing feedback emitted by a scoreboard session.

How a notice is shown (toast, banner, nothing) is up to the caller.
"""

from collections.abc import Callable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class NoticeKind(StrEnum):
    SAVED = "saved"
    SAVE_FAILED = "save_failed"
    ROUND_LIMIT = "round_limit"
    ROUND_PERSIST_FAILED = "round_persist_failed"
    RENAME_FAILED = "rename_failed"
    MIGRATION_INCOMPLETE = "migration_incomplete"
    REFRESH_TIMEOUT = "refresh_timeout"
    GAME_GONE = "game_gone"
    GAME_COMPLETED = "game_completed"


class Notice(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: NoticeKind
    message: str


NoticeCallback = Callable[[Notice], None]
