"""
SQLAlchemy implementations of :class:`~shiftpay.uow.base.UnitOfWork`.

Both units of work run on the Flask-scoped ``db.session`` and expose the
repositories the auth service needs.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from shiftpay.core.extensions import db
from shiftpay.repositories import UserRepository
from shiftpay.uow.base import UnitOfWork

log = logging.getLogger(__name__)

# Dialects that understand SET TRANSACTION directives
_TXN_DIRECTIVE_DIALECTS = frozenset({"postgresql", "mysql", "mariadb"})

_ISOLATION_LEVELS = frozenset(
    {"READ UNCOMMITTED", "READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE"}
)

# First SQL keyword of statements a read-only scope refuses to run
_WRITE_KEYWORDS = (
    "insert",
    "update",
    "delete",
    "merge",
    "replace",
    "create",
    "alter",
    "drop",
    "truncate",
    "grant",
    "revoke",
)


class _Repositories:
    """Repositories bound to one session."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=session)


class SQLAlchemyUnitOfWork(_Repositories, UnitOfWork):
    """
    Read-write unit of work.

    Commits when the ``with`` block exits cleanly and rolls back when it
    raises (including when the commit itself fails).
    """

    def __init__(self) -> None:
        super().__init__(db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except Exception:
            self.rollback()
            raise

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class _WriteGuard:
    """Event listeners that make a session refuse writes while installed.

    ``before_flush`` rejects pending ORM changes; ``before_cursor_execute``
    rejects raw DML/DDL on the connection.
    """

    def __init__(self, session: Session, connection: Connection) -> None:
        self._session = session
        self._connection = connection
        self._active = False

    @staticmethod
    def _on_flush(session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError(
                "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
            )

    @staticmethod
    def _on_execute(conn, cursor, statement, parameters, context, executemany) -> None:
        keyword = statement.lstrip().split(None, 1)[0].lower() if statement else ""
        if keyword.startswith(_WRITE_KEYWORDS):
            raise RuntimeError(f"Read-only UnitOfWork: SQL statement blocked: {keyword.upper()}")

    def install(self) -> None:
        if self._active:
            return
        event.listen(self._session, "before_flush", self._on_flush)
        event.listen(self._connection, "before_cursor_execute", self._on_execute)
        self._active = True

    def remove(self) -> None:
        if not self._active:
            return
        with suppress(InvalidRequestError):
            event.remove(self._session, "before_flush", self._on_flush)
        with suppress(InvalidRequestError):
            event.remove(self._connection, "before_cursor_execute", self._on_execute)
        self._active = False


class SQLAlchemyReadOnlyUnitOfWork(_Repositories, UnitOfWork):
    """
    Read-only unit of work.

    On entry it begins its own transaction when the session is idle, or joins
    the one already running (e.g. the SAVEPOINT of a test fixture). Write
    guards are installed either way and removed on exit. Only an owned
    transaction is rolled back, and only an owned transaction on PostgreSQL
    or MySQL receives ``SET TRANSACTION`` directives. :meth:`commit` always
    raises.

    Parameters
    ----------
    isolation_level:
        Isolation level applied to an owned transaction, or ``None`` for the
        connection default.
    enforce_db_readonly:
        Also send ``SET TRANSACTION READ ONLY`` where supported.
    """

    def __init__(
        self,
        *,
        isolation_level: str | None = "READ COMMITTED",
        enforce_db_readonly: bool = True,
    ) -> None:
        super().__init__(db.session)
        self.isolation_level = isolation_level
        self.enforce_db_readonly = enforce_db_readonly
        self._owned: SessionTransaction | None = None
        self._guard: _WriteGuard | None = None

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        self._owned = self._begin_if_idle()
        connection = self.session.connection()

        self._guard = _WriteGuard(self.session, connection)
        self._guard.install()

        if self._owned is not None and connection.dialect.name in _TXN_DIRECTIVE_DIALECTS:
            self._apply_directives()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            owned, self._owned = self._owned, None
            if owned is not None:
                with suppress(SQLAlchemyError):
                    self.session.rollback()
                owned.__exit__(exc_type, exc, tb)
        finally:
            if self._guard is not None:
                self._guard.remove()
                self._guard = None

    def commit(self) -> None:
        """
        Refuse to commit.

        :raises RuntimeError: always.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()

    # ------------------------------------------------------------------ #

    def _begin_if_idle(self) -> SessionTransaction | None:
        try:
            txn = self.session.begin()
        except InvalidRequestError:
            # Already inside a transaction; join it
            return None
        txn.__enter__()
        return txn

    def _apply_directives(self) -> None:
        try:
            if self.isolation_level:
                level = self.isolation_level.upper().strip()
                if level not in _ISOLATION_LEVELS:
                    log.warning("uow.readonly.unknown_isolation level=%s", level)
                self.session.execute(text(f"SET TRANSACTION ISOLATION LEVEL {level}"))
            if self.enforce_db_readonly:
                self.session.execute(text("SET TRANSACTION READ ONLY"))
        except SQLAlchemyError as exc:
            log.warning("uow.readonly.directives_failed error=%s", exc.__class__.__name__)
