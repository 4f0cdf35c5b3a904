"""
Dataset Module: Local Price Database
====================================
Reads the local SQLite file, binds it to the SQL engine and runs the
price query against it.
"""

from __future__ import annotations

import hashlib
import logging
import os
import sqlite3
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from config import DatasetConfig as Config
from config import EngineConfig
from sql_engine import DatabaseHandle, SQLEngine

log = logging.getLogger(__name__)


class DatasetError(RuntimeError):
    """Dataset missing or unreadable."""


class QueryExecutionError(DatasetError):
    """The engine rejected the query (bad SQL, missing table...)."""


@dataclass(frozen=True)
class QueryResult:
    """Whole result of one statement, column-oriented like the engine returns it."""

    columns: List[str]
    values: List[tuple] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.values)


def read_dataset_bytes(path: str = Config.DB_PATH) -> bytes:
    """Load the dataset file into memory."""
    if not os.path.exists(path):
        raise DatasetError(f"Dataset not found: {path}")
    with open(path, "rb") as f:
        raw = f.read()
    log.info(f"[DATASET] Read {len(raw):,} bytes from {path}")
    return raw


class DatasetBinder:
    """
    Keeps one open database for the current (engine, bytes) pair.

    Binding the same engine with byte-identical data again returns the handle
    that is already open. Any other pair closes the old handle and opens a
    new one.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._key: Optional[Tuple[int, str]] = None
        self._engine: Optional[SQLEngine] = None
        self._db: Optional[DatabaseHandle] = None
        self.bind_count = 0

    @property
    def database(self) -> Optional[DatabaseHandle]:
        return self._db

    def bind(self, engine: Optional[SQLEngine], raw: Optional[bytes]) -> Optional[DatabaseHandle]:
        """
        Return the database for `raw` opened with `engine`.

        Args:
            engine (SQLEngine): Initialized engine, may be None while loading
            raw (bytes): Dataset contents, may be None while loading

        Returns:
            DatabaseHandle: Open database, or None when an input is missing
        """
        if engine is None or raw is None:
            return None

        if bytes(raw[:len(EngineConfig.SQLITE_HEADER)]) != EngineConfig.SQLITE_HEADER:
            raise DatasetError("Dataset is not a SQLite database file")

        key = (id(engine), hashlib.sha256(raw).hexdigest())
        with self._lock:
            # engine identity is checked too, id() values can be reused
            if self._db is not None and self._key == key and self._engine is engine:
                return self._db

            if self._db is not None:
                log.info("[DATASET] Inputs changed, closing previous database")
                self._db.close()

            self._db = engine.open_database(raw)
            self._engine = engine
            self._key = key
            self.bind_count += 1
            return self._db

    def close(self) -> None:
        with self._lock:
            if self._db is not None:
                self._db.close()
            self._db = None
            self._engine = None
            self._key = None


def run_query(db: Optional[DatabaseHandle], query: str = Config.PRICES_QUERY) -> Optional[QueryResult]:
    """
    Execute `query` against `db` and materialize every row.

    Returns:
        QueryResult: Rows in dataset order, or None when db is None

    Raises:
        QueryExecutionError: the engine failed to run the query
    """
    if db is None:
        return None

    log.info(f"[QUERY] Running query {query}")
    try:
        columns, values = db.execute(query)
    except sqlite3.Error as e:
        raise QueryExecutionError(f"Query failed: {query!r}: {e}") from e

    log.info(f"[QUERY] {len(values):,} rows")
    return QueryResult(columns=columns, values=values)


class QueryRunner:
    """
    Keeps the last query result and reruns only when the database handle or
    the query text changes.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._db: Optional[DatabaseHandle] = None
        self._query: Optional[str] = None
        self._result: Optional[QueryResult] = None
        self.run_count = 0

    def run(self, db: Optional[DatabaseHandle], query: str = Config.PRICES_QUERY) -> Optional[QueryResult]:
        with self._lock:
            if db is self._db and query == self._query:
                return self._result

            result = run_query(db, query)
            if db is not None:
                self.run_count += 1
            self._db, self._query, self._result = db, query, result
            return result
