"""Persistence-only repository base (SQLAlchemy 2.x).

Repositories read and stage rows. They flush so primary keys materialise, but
committing and rolling back is left to the Unit of Work.
"""

from __future__ import annotations

from typing import Any, ClassVar, Generic, TypeVar, cast

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from shiftpay.core.extensions import db

E = TypeVar("E")


class BaseRepository(Generic[E]):
    """
    CRUD helpers for one mapped model.

    Parameters
    ----------
    session : Session | None, optional
        Session of the surrounding Unit of Work. When omitted, the
        Flask-scoped ``db.session`` is used.

    Notes
    -----
    Subclasses set ``model`` and list the attributes usable as equality
    filters in ``filterable``. Filter keys outside that list are dropped.
    """

    model: type[E]
    filterable: ClassVar[tuple[str, ...]] = ()

    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else cast(Session, db.session)

    def _where(self, stmt: Select[Any], filters: dict[str, Any]) -> Select[Any]:
        for key, value in filters.items():
            if key in self.filterable:
                stmt = stmt.where(getattr(self.model, key) == value)
        return stmt

    def add(self, instance: E) -> E:
        """Stage ``instance`` and flush so its primary key is assigned."""
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        """
        Load an entity by primary key.

        :param entity_id: Primary-key value.
        :returns: The entity, or ``None`` when absent.
        """
        return self.session.get(self.model, entity_id)

    def find_one(self, **filters: Any) -> E | None:
        stmt = self._where(select(self.model), filters).limit(1)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def exists(self, **filters: Any) -> bool:
        """``True`` when at least one row matches the whitelisted filters."""
        subquery = self._where(select(self.model), filters).exists()
        return bool(self.session.execute(select(subquery)).scalar())

    def delete(self, instance: E) -> None:
        self.session.delete(instance)
        self.flush()

    def flush(self) -> None:
        self.session.flush()
