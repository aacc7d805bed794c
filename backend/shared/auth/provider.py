"""Accessor for the identity of the signed-in user."""

from typing import Protocol


class CurrentUserProvider(Protocol):
    """Resolve the opaque id of the current user, or None when nobody is signed in."""

    async def current_user_id(self) -> str | None: ...


class StaticUserProvider:
    """Provider returning a fixed identity (embedded clients, tests, scripts)."""

    def __init__(self, user_id: str | None) -> None:
        self._user_id = user_id

    async def current_user_id(self) -> str | None:
        return self._user_id
