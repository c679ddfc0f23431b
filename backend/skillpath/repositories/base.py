"""Generic repository base for SQLAlchemy 2.x.

Repositories are thin and persistence-focused:

- They never implement use cases or domain policies.
- They never call commit/rollback; services own the Unit of Work.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar, cast

from sqlalchemy.orm import Session

from skillpath.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Generic, persistence-only repository for a single aggregate.

    Subclasses MUST define ``model``: the SQLAlchemy mapped class.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """Initialise the repository with an optional SQLAlchemy session.

        When no explicit session is provided the repository falls back to the
        Flask-scoped session exposed by ``skillpath.core.extensions``.

        :param session: Session shared across the Unit of Work scope.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        self._session: Session | None = session

    # ------------------------------ Session access ---------------------------

    @property
    def session(self) -> Session:
        """Return the injected session, or the Flask-scoped one."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    # ------------------------------ CRUD -------------------------------------

    def add(self, instance: E) -> E:
        """Stage ``instance`` for insertion and flush to assign its key.

        :raises sqlalchemy.exc.IntegrityError: On constraint violations.
        """
        self.session.add(instance)
        self.session.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        """Return the entity with primary key ``entity_id`` or ``None``."""
        return self.session.get(self.model, entity_id)

    def flush(self) -> None:
        self.session.flush()
