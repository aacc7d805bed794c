"""Typed domain exceptions for scoreboard operations.

Precondition violations are raised before any state mutation or record
store call, so catching a PreconditionError means nothing changed.
Multi-record writes never raise for individual record failures; those
are reported through SaveReport instead.
"""


class ScoreboardError(Exception):
    """Base exception for scoreboard engine failures."""


class SessionNotLoadedError(ScoreboardError):
    """The session has no game loaded (never loaded, or the game is gone)."""


class PreconditionError(ScoreboardError):
    """A user-initiated action was rejected before anything was mutated."""


class NotEditorError(PreconditionError):
    """The current user is not the game's host and cannot edit it."""


class GameNotActiveError(PreconditionError):
    """The game is completed or cancelled and no longer accepts edits."""


class RoundLimitReachedError(PreconditionError):
    """The game already has its maximum number of rounds."""

    def __init__(self, max_rounds: int) -> None:
        self.max_rounds = max_rounds
        super().__init__(f"round limit reached ({max_rounds} rounds)")


class InvalidRoundError(PreconditionError):
    """Round number is outside the current round dimension, or the last round would be removed."""


class UnknownPlayerError(PreconditionError):
    """Player id is not one of the game's scoring players."""


class RenameNotAllowedError(PreconditionError):
    """Only anonymous display-name players can be renamed."""


class InvalidPlayerNameError(PreconditionError):
    """New player name is blank or looks like a registered identity."""


class DuplicatePlayerError(PreconditionError):
    """New player name collides with an existing player in the game."""


class LastPlayerError(PreconditionError):
    """A game must keep at least one player."""


class GameIncompleteError(PreconditionError):
    """The game cannot be completed until every cell has an entered score."""


class InvalidScoreInputError(ScoreboardError):
    """Score input text is neither a custom rule letter nor an integer."""


class InvalidCustomRulesError(ScoreboardError):
    """Custom rule set has duplicate or malformed letters, or duplicate values."""


class GameGoneError(ScoreboardError):
    """The game no longer exists in the record store.

    Local state has been cleared; the caller should leave the scoreboard
    rather than retry.
    """

    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        super().__init__(f"game '{game_id}' no longer exists")


class RefreshTimeoutError(ScoreboardError):
    """Refresh did not finish in time; the previous state is untouched."""


class GamePersistError(ScoreboardError):
    """Persisting the game record failed and local changes were reverted."""


class RenameFailedError(GamePersistError):
    """Persisting a renamed game failed; every identity key was rolled back."""
