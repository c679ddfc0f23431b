"""
Abstract Unit of Work contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from skillpath.repositories.user import UserRepository


class UnitOfWork(ABC):
    """
    Transactional boundary for one auth use case.

    Login stamps ``last_login_at`` and registration inserts a user inside a
    single scope; token and session state lives in the cache and is never
    part of the transaction.

    Responsibilities:
    - Expose the user directory bound to the scope's session.
    - Commit on success, rollback on error.
    """

    users: UserRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...
