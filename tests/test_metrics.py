from decimal import Decimal

import pandas as pd
import pytest

from dataset import QueryResult
from metrics import AllTimeHigh, AllTimeHighTracker, Currency, compute_series, convert_value

T1, T2, T3 = 1609459200, 1609545600, 1609632000  # 2021-01-01 .. 2021-01-03 UTC


@pytest.mark.parametrize("holdings,price", [
    (1, 100.0),
    ("0.5", 29374.15),
    ("0.00000001", 68789.63),
    ("21000000", 0.0858),
])
def test_usd_value_is_holdings_times_price(holdings, price):
    value = convert_value(holdings, price, Currency.USD, 0.9)
    assert float(value) == pytest.approx(float(holdings) * price)


def test_usd_value_is_exact_in_decimal():
    assert convert_value(Decimal("0.1"), 30000.1, "USD") == Decimal("3000.01")


def test_eur_value_applies_rate():
    value = convert_value(2, 100.0, Currency.EUR, 0.9)
    assert value == Decimal("180.0")
    assert float(value) == pytest.approx(2 * 100.0 * 0.9)


def test_eur_without_rate_falls_back_to_usd():
    assert convert_value(2, 100.0, Currency.EUR, None) == convert_value(2, 100.0, Currency.USD)


def test_all_time_high_example():
    rows = [(T1, 100.0), (T2, 300.0), (T3, 200.0)]

    series, ath = compute_series(rows, 1, Currency.USD)

    assert ath == AllTimeHigh(value=Decimal("300.0"), timestamp=T2)
    assert ath.date == pd.Timestamp("2021-01-02", tz="UTC").to_pydatetime()
    assert list(series["value"]) == [100.0, 300.0, 200.0]


def test_all_time_high_first_of_equal_maxima_wins():
    _, ath = compute_series([(T1, 300.0), (T2, 300.0), (T3, 100.0)], 1)
    assert ath.timestamp == T1


@pytest.mark.parametrize("rows", [None, [], QueryResult(columns=["date", "price"], values=[])])
def test_empty_input_has_no_all_time_high(rows):
    series, ath = compute_series(rows, 1, Currency.USD)

    assert ath is None
    assert series.empty
    assert list(series.columns) == ["timestamp", "date", "value", "price", "display_price"]


def test_series_keeps_row_order_and_source_price():
    rows = QueryResult(columns=["date", "price"], values=[(T3, 200.0), (T1, 100.0)])

    series, _ = compute_series(rows, "0.5", Currency.EUR, 0.9)

    assert list(series["timestamp"]) == [T3, T1]
    assert list(series["price"]) == [200.0, 100.0]
    assert list(series["value"]) == pytest.approx([90.0, 45.0])
    assert list(series["display_price"]) == pytest.approx([180.0, 90.0])
    assert str(series["date"].dt.tz) == "UTC"


def test_recompute_is_idempotent():
    rows = [(T1, 100.0), (T2, 300.0), (T3, 200.0)]

    first = compute_series(rows, "1.5", Currency.EUR, 0.92)
    second = compute_series(rows, "1.5", Currency.EUR, 0.92)

    pd.testing.assert_frame_equal(first[0], second[0])
    assert first[1] == second[1]


def test_currency_change_moves_all_time_high_value():
    rows = [(T1, 100.0), (T2, 300.0)]

    _, usd = compute_series(rows, 1, Currency.USD, 0.5)
    _, eur = compute_series(rows, 1, Currency.EUR, 0.5)

    assert usd.value == Decimal("300.0")
    assert eur.value == Decimal("150.00")
    assert usd.timestamp == eur.timestamp == T2


def test_tracker_incremental_updates():
    tracker = AllTimeHighTracker()
    assert tracker.high is None

    assert tracker.update(T1, Decimal("10"))
    assert not tracker.update(T2, Decimal("10"))
    assert tracker.update(T3, Decimal("11"))

    assert tracker.high == AllTimeHigh(value=Decimal("11"), timestamp=T3)
