import pytest
from pydantic import ValidationError

from scoreboard.logic.settings import DEFAULT_MAX_ROUNDS, SessionConfig
from scoreboard.settings import ScoreboardSettings


class TestScoreboardSettings:
    def test_defaults(self, monkeypatch):
        for name in ("DATABASE_PATH", "CELEBRATION_FILE", "LOG_DIR", "DEFAULT_MAX_ROUNDS", "REFRESH_TIMEOUT_SECONDS"):
            monkeypatch.delenv(f"SCOREBOARD_{name}", raising=False)

        settings = ScoreboardSettings()

        assert settings.default_max_rounds == DEFAULT_MAX_ROUNDS == 8
        assert settings.refresh_timeout_seconds == 10.0
        assert settings.log_dir is None

    def test_reads_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("SCOREBOARD_DEFAULT_MAX_ROUNDS", "12")
        monkeypatch.setenv("SCOREBOARD_REFRESH_TIMEOUT_SECONDS", "2.5")

        settings = ScoreboardSettings()

        assert settings.session_config() == SessionConfig(max_rounds=12, refresh_timeout_seconds=2.5)

    @pytest.mark.parametrize(
        ("field", "value"),
        [("default_max_rounds", 0), ("refresh_timeout_seconds", 0), ("database_path", "")],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            ScoreboardSettings(**{field: value})


class TestSessionConfig:
    def test_frozen(self):
        config = SessionConfig()

        with pytest.raises(ValidationError):
            config.max_rounds = 3  # type: ignore[misc]
