"""User repository: the user directory backing authentication."""

from __future__ import annotations

from sqlalchemy import select

from skillpath.models.user import User
from skillpath.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    Lookups by email normalise the input the same way the model does, so
    callers may pass raw user input. It NEVER handles tokens or sessions.
    """

    model = User

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == self._normalize_email(email))
        return self.session.execute(stmt).scalars().first()

    def get_by_username(self, username: str) -> User | None:
        stmt = select(User).where(User.username == username.strip())
        return self.session.execute(stmt).scalars().first()

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when a user with the provided email exists."""
        stmt = select(User.id).where(User.email == self._normalize_email(email))
        return self.session.execute(stmt).first() is not None

    def exists_by_username(self, username: str) -> bool:
        """Return ``True`` when the username is already taken."""
        stmt = select(User.id).where(User.username == username.strip())
        return self.session.execute(stmt).first() is not None
