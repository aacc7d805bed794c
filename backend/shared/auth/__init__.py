"""Current-user identity resolution."""

from shared.auth.provider import CurrentUserProvider, StaticUserProvider

__all__ = [
    "CurrentUserProvider",
    "StaticUserProvider",
]
