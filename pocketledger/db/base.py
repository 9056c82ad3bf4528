"""
Persistence adapter with connection management and transaction scoping.

Owns the single SQLite connection used by the ledger and reporting layers
and exposes execute/run/query primitives plus an all-or-nothing
transaction scope.
"""

import functools
import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Sequence, TypeVar, Union

from pocketledger.config import DB_TIMEOUT, ERROR_MESSAGES, get_db_path
from pocketledger.errors import LedgerError, OperationResult, StorageFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MEMORY_DB = ":memory:"

Params = Sequence[Any]


@dataclass(frozen=True)
class RunResult:
    """Affected-row information for a write statement."""

    last_row_id: Optional[int]
    changes: int


class Database:
    """
    SQLite connection holder shared by all repository classes.

    The connection is opened lazily, exactly once, and runs in autocommit
    mode; grouped writes go through :meth:`transaction`, which opens the
    scope with ``BEGIN IMMEDIATE`` so the write lock is held from the first
    read until commit or rollback. A re-entrant lock serializes callers
    sharing this handle across threads.
    """

    def __init__(
        self,
        db_path: Optional[Union[Path, str]] = None,
        timeout: float = DB_TIMEOUT,
    ):
        """
        Initialize the adapter.

        Args:
            db_path: Path to the SQLite database file, or ":memory:".
                Defaults to the configured path.
            timeout: Seconds to wait for a locked database
        """
        if db_path is None:
            db_path = get_db_path()
        self.db_path = db_path if str(db_path) == MEMORY_DB else Path(db_path)
        self.timeout = timeout
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._depth = 0
        self._ensure_db_directory()

    def _ensure_db_directory(self):
        """Ensure the database directory exists."""
        if not isinstance(self.db_path, Path):
            return
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Database directory ensured: {self.db_path.parent}")
        except Exception as e:
            logger.error(f"Failed to create database directory: {e}", exc_info=True)
            raise

    def connect(self) -> sqlite3.Connection:
        """Open the connection on first use and return it."""
        with self._lock:
            if self._conn is None:
                conn = sqlite3.connect(
                    str(self.db_path),
                    timeout=self.timeout,
                    isolation_level=None,
                    check_same_thread=False,
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA foreign_keys = ON")
                self._conn = conn
                logger.debug(f"Opened database connection: {self.db_path}")
            return self._conn

    def close(self):
        """Close the underlying connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug(f"Closed database connection: {self.db_path}")

    def __enter__(self) -> "Database":
        self.connect()
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    # =========================================================================
    # Statement primitives
    # =========================================================================

    @contextmanager
    def _statement(self, label: Optional[str], sql: str, params: Params = ()):
        """Log a statement and its failure, if any, under a label."""
        tag = label or "sql"
        logger.debug(f"[DB] {tag}: {sql.strip()} params={tuple(params)}")
        with self._lock:
            try:
                yield self.connect()
            except sqlite3.IntegrityError as e:
                logger.warning(f"[DB] {tag} constraint violation: {e}")
                raise
            except sqlite3.Error as e:
                logger.error(f"[DB] {tag} failed: {e}", exc_info=True)
                raise

    def execute(self, sql: str, label: Optional[str] = None) -> None:
        """Execute a single statement that takes no parameters (DDL, pragmas)."""
        with self._statement(label, sql) as conn:
            conn.execute(sql)

    def run(self, sql: str, params: Params = (), label: Optional[str] = None) -> RunResult:
        """Execute a write statement and report the affected rows."""
        with self._statement(label, sql, params) as conn:
            cursor = conn.execute(sql, tuple(params))
            return RunResult(last_row_id=cursor.lastrowid, changes=cursor.rowcount)

    def query_one(
        self, sql: str, params: Params = (), label: Optional[str] = None
    ) -> Optional[sqlite3.Row]:
        """Return the first row of a query, or None."""
        with self._statement(label, sql, params) as conn:
            return conn.execute(sql, tuple(params)).fetchone()

    def query_all(
        self, sql: str, params: Params = (), label: Optional[str] = None
    ) -> list[sqlite3.Row]:
        """Return every row of a query."""
        with self._statement(label, sql, params) as conn:
            return conn.execute(sql, tuple(params)).fetchall()

    # =========================================================================
    # Transactions
    # =========================================================================

    @contextmanager
    def transaction(self, label: Optional[str] = None) -> Iterator[sqlite3.Connection]:
        """
        All-or-nothing scope for grouped writes.

        Commits when the block exits normally and rolls back on any
        exception, which is then re-raised. A nested scope joins the
        enclosing one.
        """
        tag = label or "transaction"
        with self._lock:
            conn = self.connect()
            if self._depth > 0:
                self._depth += 1
                try:
                    yield conn
                finally:
                    self._depth -= 1
                return

            conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            logger.debug(f"[DB] {tag}: BEGIN")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                logger.debug(f"[DB] {tag}: ROLLBACK")
                raise
            else:
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error as e:
                    logger.error(f"[DB] {tag}: COMMIT failed: {e}", exc_info=True)
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
                logger.debug(f"[DB] {tag}: COMMIT")
            finally:
                self._depth = 0

    def with_transaction(self, fn: Callable[[], T], label: Optional[str] = None) -> T:
        """Run ``fn`` inside a transaction and return its result."""
        with self.transaction(label):
            return fn()


def ledger_operation(label: str):
    """
    Wrap a repository method as a boundary operation.

    The wrapped method runs only once the schema is ready. Its return value
    becomes a successful ``OperationResult``; a ``LedgerError`` or any
    ``sqlite3.Error`` becomes a failed one. Rollback has already happened
    by then, since methods open their transaction scope inside the call.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs) -> OperationResult:
            try:
                self.schema.ensure_ready()
                value = fn(self, *args, **kwargs)
            except LedgerError as e:
                logger.warning(f"{label} rejected ({e.kind.value}): {e.message}")
                return OperationResult.fail(e)
            except sqlite3.Error as e:
                logger.error(f"{label} storage failure: {e}", exc_info=True)
                return OperationResult.fail(
                    StorageFailureError(
                        f"{ERROR_MESSAGES['storage_failure']} ({e})", cause=e
                    )
                )
            return OperationResult.ok(value)

        return wrapper

    return decorator
