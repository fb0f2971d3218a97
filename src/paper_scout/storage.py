"""Relational storage handle shared by the library, summary cache, and approvals.

Everything above this module talks to ``SqlStore``: parameterized SQL in,
rows (as dicts) out. ``SQLiteStore`` is the default engine; a single store
instance owns one connection and serializes every statement through a lock so
one user's library is never written concurrently.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from platformdirs import user_config_dir

from paper_scout.errors import ConstraintViolationError, DatabaseError
from paper_scout.models import CONFIG_APP_NAME

logger = logging.getLogger(__name__)

LIBRARY_DB_FILENAME = "library.db"

Row = dict[str, Any]


@runtime_checkable
class SqlStore(Protocol):
    """Transactional relational store exposing parameterized SQL."""

    def execute(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        """Run one statement and return its rows (empty for writes)."""
        ...

    def transaction(self) -> Any:
        """Context manager grouping statements into one atomic unit."""
        ...


def get_library_db_path() -> Path:
    """Get the path to the library SQLite database."""
    config_dir = Path(user_config_dir(CONFIG_APP_NAME))
    return config_dir / LIBRARY_DB_FILENAME


class SQLiteStore:
    """``SqlStore`` backed by one serialized SQLite connection.

    Integrity failures surface as ``ConstraintViolationError``; every other
    ``sqlite3.Error`` surfaces as ``DatabaseError``.
    """

    __slots__ = ("_conn", "_lock", "_path", "_depth")

    def __init__(self, db_path: Path | str = ":memory:") -> None:
        self._path = str(db_path)
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(
                self._path,
                check_same_thread=False,
                isolation_level=None,  # autocommit; transaction() issues BEGIN explicitly
            )
        except sqlite3.Error as exc:
            raise DatabaseError(f"Could not open database {self._path}: {exc}") from exc
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._depth = 0

    @property
    def path(self) -> str:
        """Filesystem path of the database (``:memory:`` for in-memory stores)."""
        return self._path

    def execute(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        with self._lock:
            try:
                cursor = self._conn.execute(sql, tuple(params))
                return [dict(row) for row in cursor.fetchall()]
            except sqlite3.IntegrityError as exc:
                raise ConstraintViolationError(str(exc)) from exc
            except sqlite3.Error as exc:
                raise DatabaseError(str(exc)) from exc

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Hold the store lock for the duration and commit or roll back atomically.

        Nested use joins the outer transaction.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            self.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield
                self.execute("COMMIT")
            except BaseException:
                try:
                    self._conn.execute("ROLLBACK")
                except sqlite3.Error:
                    logger.warning("Rollback failed on %s", self._path, exc_info=True)
                raise
            finally:
                self._depth = 0

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> SQLiteStore:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


__all__ = [
    "LIBRARY_DB_FILENAME",
    "Row",
    "SQLiteStore",
    "SqlStore",
    "get_library_db_path",
]
