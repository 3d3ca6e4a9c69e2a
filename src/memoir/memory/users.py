"""User lookup used by the memory jobs."""

from typing import Any, Protocol

from .models import UserProfile


class UserDirectory(Protocol):
    """Resolves user ids to profiles."""

    def get(self, user_id: Any) -> UserProfile | None:
        """Return the profile for user_id, or None if unknown."""
        ...


class InMemoryUserDirectory:
    """Directory backed by an explicit set of registered users."""

    def __init__(self, users: list[UserProfile] | None = None) -> None:
        self._users: dict[str, UserProfile] = {}
        for user in users or []:
            self.add(user)

    def add(self, user: UserProfile) -> None:
        self._users[str(user.id)] = user

    def get(self, user_id: Any) -> UserProfile | None:
        return self._users.get(str(user_id))


class PassthroughUserDirectory:
    """Treats every non-blank id as a known user named after the id.

    Used when an upstream service has already authenticated the user.
    """

    def get(self, user_id: Any) -> UserProfile | None:
        if user_id is None or not str(user_id).strip():
            return None
        return UserProfile(id=str(user_id), username=str(user_id))
