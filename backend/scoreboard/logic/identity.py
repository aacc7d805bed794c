"""Player identity classification and display-name resolution.

A game's player ids are loosely-typed strings: bare display names for
anonymous players, ``guest_``-prefixed ids, Cognito-style UUIDs, or
``"<uuid>:<username>"`` composites carrying a cached name. The id is
classified once into a PlayerIdentity variant so callers match on the
variant instead of re-inspecting the string.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from scoreboard.logic.settings import LEADERBOARD_FULL_NAME_LENGTH, SHORT_ID_LENGTH

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from shared.dal.models import UserRecord

GUEST_PREFIX = "guest_"
REGISTERED_PREFIX = "user_"
COMPOSITE_SEPARATOR = ":"
_UUID_LENGTH = 36


class AnonymousPlayer(BaseModel):
    """Display-name-only player; the id is the name."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["anonymous"] = "anonymous"
    player_id: str


class GuestPlayer(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["guest"] = "guest"
    player_id: str
    user_id: str
    cached_name: str | None = None


class AuthenticatedPlayer(BaseModel):
    """Registered account, optionally with a username cached in the id."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["authenticated"] = "authenticated"
    player_id: str
    user_id: str
    cached_name: str | None = None


PlayerIdentity = Annotated[AnonymousPlayer | GuestPlayer | AuthenticatedPlayer, Field(discriminator="kind")]


def _is_uuid_shaped(value: str) -> bool:
    return len(value) == _UUID_LENGTH and "-" in value


def parse_player_identity(player_id: str) -> PlayerIdentity:
    """Classify a raw player id string."""
    head, separator, tail = player_id.partition(COMPOSITE_SEPARATOR)
    cached_name = (tail.strip() or None) if separator else None
    user_id = head if separator else player_id

    if player_id.startswith(GUEST_PREFIX):
        return GuestPlayer(player_id=player_id, user_id=user_id, cached_name=cached_name)
    if _is_uuid_shaped(player_id):
        return AuthenticatedPlayer(player_id=player_id, user_id=player_id)
    if separator and _is_uuid_shaped(head):
        return AuthenticatedPlayer(player_id=player_id, user_id=head, cached_name=cached_name)
    if "@" in player_id or player_id.startswith(REGISTERED_PREFIX):
        return AuthenticatedPlayer(player_id=player_id, user_id=user_id, cached_name=cached_name)
    return AnonymousPlayer(player_id=player_id)


def is_rename_eligible(identity: PlayerIdentity) -> bool:
    return isinstance(identity, AnonymousPlayer)


def short_id(player_id: str) -> str:
    return player_id[:SHORT_ID_LENGTH]


def usernames_by_id(users: Iterable[UserRecord]) -> dict[str, str]:
    return {user.id: user.username for user in users if user.username}


def resolve_display_name(
    identity: PlayerIdentity,
    usernames: Mapping[str, str],
) -> str:
    """Name shown for a player on the scoreboard.

    Anonymous players show their id. Registered identities prefer the
    name cached in a composite id, then the user directory, then a
    short id prefix.
    """
    if isinstance(identity, AnonymousPlayer):
        return identity.player_id
    if identity.cached_name:
        return identity.cached_name
    username = usernames.get(identity.user_id)
    if username:
        return username
    return short_id(identity.user_id)


def leaderboard_name(player_id: str, usernames: Mapping[str, str]) -> str:
    """Leaderboard nickname: directory name, else the id itself when short, else its prefix."""
    username = usernames.get(player_id)
    if username:
        return username
    if len(player_id) <= LEADERBOARD_FULL_NAME_LENGTH:
        return player_id
    return short_id(player_id)


def needs_directory_lookup(identity: PlayerIdentity) -> bool:
    """Whether the user directory is needed to name this player."""
    return not isinstance(identity, AnonymousPlayer) and identity.cached_name is None
