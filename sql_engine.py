"""
SQL Engine Module: Embedded Query Engine Loader
================================================
The price dataset ships as a raw SQLite file that is opened straight into
memory. The engine becomes usable once a loader publishes its factory:

- EngineLoader: one-shot readiness signal + cached engine handle
- SQLEngine: opens in-memory databases from raw bytes
- DatabaseHandle: a single open in-memory database
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Callable, List, Optional, Tuple

log = logging.getLogger(__name__)


class EngineError(RuntimeError):
    """The SQL engine could not be loaded or used."""


class EngineUnavailableError(EngineError):
    """No engine factory was published in time."""


class DatabaseHandle:
    """In-memory database opened from a raw SQLite blob."""

    def __init__(self, connection: sqlite3.Connection):
        self._conn = connection
        self._lock = threading.Lock()
        self.closed = False

    def execute(self, query: str) -> Tuple[List[str], List[tuple]]:
        """
        Run a statement and materialize the whole result.

        Returns:
            tuple: (column names, rows)

        Raises:
            sqlite3.Error: malformed query, missing table, closed handle
        """
        with self._lock:
            if self.closed:
                raise sqlite3.ProgrammingError("Cannot operate on a closed database.")
            cursor = self._conn.execute(query)
            try:
                rows = cursor.fetchall()
                columns = [d[0] for d in cursor.description or ()]
            finally:
                cursor.close()
        return columns, rows

    def close(self) -> None:
        with self._lock:
            if not self.closed:
                self._conn.close()
                self.closed = True

    def __enter__(self) -> "DatabaseHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SQLEngine:
    """Initialized query engine, able to open databases from bytes."""

    def __init__(self, sqlite_version: str):
        self.sqlite_version = sqlite_version

    @classmethod
    def initialize(cls) -> "SQLEngine":
        # Connection.deserialize arrived in Python 3.11 and needs a SQLite
        # build with serialization enabled
        if not hasattr(sqlite3.Connection, "deserialize"):
            raise EngineError(
                f"SQLite {sqlite3.sqlite_version} cannot open databases from memory"
            )
        log.info(f"[ENGINE] SQLite {sqlite3.sqlite_version} ready")
        return cls(sqlite3.sqlite_version)

    def open_database(self, raw: bytes) -> DatabaseHandle:
        """
        Open a fresh in-memory database holding a copy of `raw`.

        Args:
            raw (bytes): Complete SQLite database file contents

        Returns:
            DatabaseHandle: Independent handle, caller owns and closes it
        """
        conn = sqlite3.connect(":memory:", check_same_thread=False)
        try:
            conn.deserialize(bytes(raw))
        except sqlite3.Error as e:
            conn.close()
            raise EngineError(f"Could not open database from {len(raw)} bytes: {e}") from e
        log.info(f"[ENGINE] Opened in-memory database ({len(raw):,} bytes)")
        return DatabaseHandle(conn)


EngineFactory = Callable[[], SQLEngine]


class EngineLoader:
    """
    Hands out a single SQL engine once a factory has been published.

    Whoever loads the engine calls publish(factory) exactly once. Callers of
    acquire_engine() wait for that signal, the first of them runs the
    factory and every caller gets the same cached handle afterwards.
    """

    def __init__(self):
        self._published = threading.Event()
        self._lock = threading.Lock()
        self._factory: Optional[EngineFactory] = None
        self._engine: Optional[SQLEngine] = None

    @property
    def is_published(self) -> bool:
        return self._published.is_set()

    @property
    def engine(self) -> Optional[SQLEngine]:
        """Cached engine, None until acquire_engine() succeeded."""
        return self._engine

    def publish(self, factory: EngineFactory) -> None:
        with self._lock:
            if self._factory is not None:
                raise EngineError("Engine factory already published")
            self._factory = factory
        log.info("[ENGINE] Factory published")
        self._published.set()

    def acquire_engine(self, timeout: Optional[float] = None) -> SQLEngine:
        """
        Wait for the factory and return the engine.

        Args:
            timeout (float): Seconds to wait, None waits forever

        Returns:
            SQLEngine: The same handle on every call

        Raises:
            EngineUnavailableError: timeout elapsed before publish()
        """
        if not self._published.wait(timeout):
            raise EngineUnavailableError(f"SQL engine not available after {timeout}s")

        with self._lock:
            if self._engine is None:
                log.info("[ENGINE] Initializing SQL engine")
                # a raising factory leaves nothing cached
                self._engine = self._factory()
            return self._engine


def start_background_load(loader: EngineLoader,
                          factory: EngineFactory = SQLEngine.initialize) -> threading.Thread:
    """Publish the engine factory from a daemon thread, like an async script tag."""

    def _load() -> None:
        log.info(f"[ENGINE] Loading SQL engine module (sqlite3 {sqlite3.sqlite_version})")
        loader.publish(factory)

    thread = threading.Thread(target=_load, name="sql-engine-loader", daemon=True)
    thread.start()
    return thread
