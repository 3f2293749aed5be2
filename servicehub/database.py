"""
Local Database Connection.

The client keeps exactly one local SQLite file: the backing store of the
encrypted key-value items written by ``SecureStorageService``.  This
module only manages the raw connection and its write lock; it contains
no query logic.

Usage (dependency injection at app startup)::

    from servicehub.database import DatabaseManager
    from servicehub.logger import StructuredLogger

    db = DatabaseManager(
        sqlite_path=Path(config.SECURE_STORE_PATH),
        logger=StructuredLogger(name="servicehub.database"),
    )
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

from servicehub.logger import StructuredLogger


class DatabaseManager:
    """Owns the local SQLite connection.

    The connection is opened with ``check_same_thread=False`` because
    storage calls are dispatched to worker threads via
    ``asyncio.to_thread``; every write must hold :pyattr:`write_lock`.

    Parameters
    ----------
    sqlite_path:
        Filesystem path for the local SQLite database file.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    """

    def __init__(self, sqlite_path: Path, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger
        self._write_lock: threading.RLock = threading.RLock()
        self._closed: bool = False
        self._sqlite_conn: sqlite3.Connection = self._connect_sqlite(sqlite_path)

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Return the initialised SQLite connection."""
        return self._sqlite_conn

    @property
    def write_lock(self) -> threading.RLock:
        """Return the write lock for thread-safe SQLite operations.

        All code that performs SQLite writes should acquire it first::

            with db.write_lock:
                db.sqlite.execute("INSERT ...")
                db.sqlite.commit()
        """
        return self._write_lock

    def close(self) -> None:
        """Close the local SQLite connection.

        Safe to call multiple times; subsequent calls are no-ops.
        """
        with self._write_lock:
            if self._closed:
                return
            try:
                self._sqlite_conn.close()
                self._logger.info("SQLite connection closed.")
            except sqlite3.ProgrammingError:
                pass
            self._closed = True

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect_sqlite(self, path: Path) -> sqlite3.Connection:
        """Open (or create) the SQLite database.

        Raises
        ------
        PermissionError
            If the OS denies access to the database file or its directory,
            re-raised with a message the caller can show as-is.
        """
        try:
            conn = sqlite3.connect(str(path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL;")
            self._logger.info("SQLite database opened at %s", path)
            return conn
        except PermissionError as exc:
            msg = (
                f"Cannot open the local database at '{path}'. "
                "The file or its directory may be read-only or locked by "
                "another process.  Please check file permissions and try again."
            )
            self._logger.error(msg)
            raise PermissionError(msg) from exc
