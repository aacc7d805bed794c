"""Scoreboard configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings

from scoreboard.logic.settings import DEFAULT_MAX_ROUNDS, DEFAULT_REFRESH_TIMEOUT_SECONDS, SessionConfig


class ScoreboardSettings(BaseSettings):
    model_config = {"env_prefix": "SCOREBOARD_"}

    database_path: str = Field(default="backend/data/scoreboard.db", min_length=1)
    celebration_file: str = Field(default="backend/data/celebrations.json", min_length=1)
    log_dir: str | None = None
    default_max_rounds: int = Field(default=DEFAULT_MAX_ROUNDS, ge=1)
    refresh_timeout_seconds: float = Field(default=DEFAULT_REFRESH_TIMEOUT_SECONDS, gt=0)

    def session_config(self) -> SessionConfig:
        return SessionConfig(
            max_rounds=self.default_max_rounds,
            refresh_timeout_seconds=self.refresh_timeout_seconds,
        )
