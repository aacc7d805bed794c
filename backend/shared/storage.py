"""Owned per-game flag storage for the one-time completion celebration.

The flag set is kept as a small JSON object ({game_id: true}) written with
owner-only permissions (0o600) inside an owner-only directory (0o700).
"""

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

# Owner-only directory permissions for the flag file's parent.
_STORE_DIR_MODE = 0o700

# Owner-only file permissions for the flag file.
_STORE_FILE_MODE = 0o600


class CelebrationStore(Protocol):
    """Protocol for remembering which games already showed their celebration."""

    def has_shown(self, game_id: str) -> bool: ...

    def mark_shown(self, game_id: str) -> None: ...


class InMemoryCelebrationStore:
    """Process-lifetime celebration flags."""

    def __init__(self) -> None:
        self._shown: set[str] = set()

    def has_shown(self, game_id: str) -> bool:
        return game_id in self._shown

    def mark_shown(self, game_id: str) -> None:
        self._shown.add(game_id)


class LocalCelebrationStore:
    """Celebration flags persisted to a JSON file on the local filesystem.

    Loads lazily on first access and writes the whole file back on every
    mutation via temp-file-then-rename, so readers never see a partial file.
    """

    def __init__(self, file_path: str | Path) -> None:
        self._file_path = Path(file_path)
        self._shown: set[str] | None = None

    def has_shown(self, game_id: str) -> bool:
        return game_id in self._load()

    def mark_shown(self, game_id: str) -> None:
        """Record that the celebration for a game was shown. Idempotent."""
        shown = self._load()
        if game_id in shown:
            return
        shown.add(game_id)
        try:
            self._save(shown)
        except OSError:
            shown.discard(game_id)
            raise
        logger.info("marked celebration shown", game_id=game_id)

    def _load(self) -> set[str]:
        """Load flags from disk once.

        Starts empty when the file does not exist yet. Raises on read/parse
        failures for an existing file to avoid overwriting data we could not read.
        """
        if self._shown is not None:
            return self._shown

        if not self._file_path.exists():
            self._shown = set()
            return self._shown

        try:
            data = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            msg = f"Failed to load celebration flags from {self._file_path}"
            raise OSError(msg) from exc

        if not isinstance(data, dict):
            msg = f"Expected JSON object at root in {self._file_path}"
            raise OSError(msg)

        self._shown = {game_id for game_id, shown in data.items() if shown is True}
        return self._shown

    def _save(self, shown: set[str]) -> None:
        directory = self._file_path.parent
        directory.mkdir(mode=_STORE_DIR_MODE, parents=True, exist_ok=True)

        content = json.dumps(dict.fromkeys(sorted(shown), True), indent=2).encode("utf-8")

        fd, tmp_path = tempfile.mkstemp(dir=str(directory), suffix=".tmp", prefix=".celebrations_")
        fd_owned = True
        try:
            with os.fdopen(fd, "wb") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _STORE_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(self._file_path)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
