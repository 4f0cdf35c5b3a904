import os
import sqlite3
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sql_engine import SQLEngine

# First days of the exported history (epoch seconds, USD)
PRICE_ROWS = [
    (1279324800, 0.0858),
    (1279411200, 0.0808),
    (1279497600, 0.0747),
    (1279584000, 0.0792),
]


def _write_dataset(path, rows, table="prices"):
    conn = sqlite3.connect(path)
    try:
        conn.execute(f"CREATE TABLE {table} (date INTEGER, price REAL)")
        conn.executemany(f"INSERT INTO {table} VALUES (?, ?)", rows)
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def make_dataset(tmp_path):
    def _make(rows=PRICE_ROWS, name="data.sqlite3", table="prices"):
        return _write_dataset(str(tmp_path / name), rows, table)
    return _make


@pytest.fixture
def dataset_path(make_dataset):
    return make_dataset()


@pytest.fixture
def dataset_bytes(dataset_path):
    with open(dataset_path, "rb") as f:
        return f.read()


@pytest.fixture
def engine():
    return SQLEngine.initialize()
