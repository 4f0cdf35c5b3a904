import sqlite3

import pytest

from config import DatasetConfig
from dataset import (
    DatasetBinder,
    DatasetError,
    QueryExecutionError,
    QueryResult,
    QueryRunner,
    read_dataset_bytes,
    run_query,
)
from sql_engine import SQLEngine


def test_read_dataset_bytes(dataset_path, dataset_bytes):
    raw = read_dataset_bytes(dataset_path)
    assert raw == dataset_bytes
    assert raw.startswith(b"SQLite format 3\x00")


def test_read_missing_dataset(tmp_path):
    with pytest.raises(DatasetError):
        read_dataset_bytes(str(tmp_path / "missing.sqlite3"))


def test_bind_needs_both_inputs(engine, dataset_bytes):
    binder = DatasetBinder()

    assert binder.bind(None, dataset_bytes) is None
    assert binder.bind(engine, None) is None
    assert binder.bind(None, None) is None
    assert binder.bind_count == 0
    assert binder.database is None


def test_bind_same_pair_reuses_handle(engine, dataset_bytes):
    binder = DatasetBinder()

    db = binder.bind(engine, dataset_bytes)
    # equal content, different object
    again = binder.bind(engine, bytes(bytearray(dataset_bytes)))

    assert again is db
    assert binder.bind_count == 1
    assert not db.closed


def test_bind_new_bytes_closes_old_handle(engine, dataset_bytes, make_dataset):
    other_path = make_dataset(rows=[(1, 1.0)], name="other.sqlite3")
    with open(other_path, "rb") as f:
        other_bytes = f.read()
    binder = DatasetBinder()

    first = binder.bind(engine, dataset_bytes)
    second = binder.bind(engine, other_bytes)

    assert second is not first
    assert first.closed
    assert binder.bind_count == 2
    assert run_query(second).values == [(1, 1.0)]


def test_bind_new_engine_rebinds(engine, dataset_bytes):
    binder = DatasetBinder()

    first = binder.bind(engine, dataset_bytes)
    second = binder.bind(SQLEngine.initialize(), dataset_bytes)

    assert second is not first
    assert first.closed
    assert binder.bind_count == 2


def test_bind_rejects_non_sqlite_bytes(engine):
    with pytest.raises(DatasetError):
        DatasetBinder().bind(engine, b"definitely not a database")


def test_binder_close(engine, dataset_bytes):
    binder = DatasetBinder()
    db = binder.bind(engine, dataset_bytes)

    binder.close()

    assert db.closed
    assert binder.database is None
    assert binder.bind(engine, dataset_bytes) is not db


def test_run_query_without_database():
    assert run_query(None, DatasetConfig.PRICES_QUERY) is None


def test_run_query_returns_rows_in_dataset_order(engine, dataset_bytes):
    db = DatasetBinder().bind(engine, dataset_bytes)

    result = run_query(db, DatasetConfig.PRICES_QUERY)

    assert isinstance(result, QueryResult)
    assert result.columns == ["date", "price"]
    assert [r[0] for r in result.values] == [1279324800, 1279411200, 1279497600, 1279584000]
    assert len(result) == 4


def test_run_query_malformed_sql_propagates(engine, dataset_bytes):
    db = DatasetBinder().bind(engine, dataset_bytes)

    with pytest.raises(QueryExecutionError) as exc:
        run_query(db, "SELEC date FROM prices;")
    assert isinstance(exc.value.__cause__, sqlite3.Error)


def test_run_query_missing_table(engine, make_dataset):
    path = make_dataset(table="quotes", name="quotes.sqlite3")
    db = DatasetBinder().bind(engine, read_dataset_bytes(path))

    with pytest.raises(QueryExecutionError):
        run_query(db, DatasetConfig.PRICES_QUERY)


def test_query_runner_reuses_result_for_same_db_and_query(engine, dataset_bytes):
    db = DatasetBinder().bind(engine, dataset_bytes)
    runner = QueryRunner()

    first = runner.run(db)
    second = runner.run(db)

    assert second is first
    assert runner.run_count == 1


def test_query_runner_reruns_on_new_query_or_db(engine, dataset_bytes):
    binder = DatasetBinder()
    db = binder.bind(engine, dataset_bytes)
    runner = QueryRunner()

    runner.run(db)
    count = runner.run(db, "SELECT COUNT(*) FROM prices;")
    assert count.values == [(4,)]
    assert runner.run_count == 2

    other = engine.open_database(dataset_bytes)
    assert len(runner.run(other)) == 4
    assert runner.run_count == 3
    other.close()


def test_query_runner_without_db():
    runner = QueryRunner()

    assert runner.run(None) is None
    assert runner.run_count == 0
