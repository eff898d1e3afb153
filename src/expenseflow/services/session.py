"""The signed-in identity for one application session."""

from __future__ import annotations

from typing import Optional

from ..errors import NotAuthenticatedError
from ..models.user import User


class SessionContext:
    """Single slot holding a detached copy of the active user.

    Created at session start, replaced on sign-in, cleared on sign-out. The
    identity store keeps the copy in sync whenever the matching account changes.
    """

    def __init__(self, user: Optional[User] = None):
        self._user = user

    @property
    def current_user(self) -> Optional[User]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def is_admin(self) -> bool:
        return self._user is not None and self._user.is_admin

    def sign_in(self, user: User) -> None:
        self._user = user

    def clear(self) -> None:
        self._user = None

    def require_user(self, message: str = "You must be logged in to do that") -> User:
        """Return the active user or raise :class:`NotAuthenticatedError`."""

        if self._user is None:
            raise NotAuthenticatedError(message)
        return self._user
