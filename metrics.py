"""
Metrics Module: Holdings Value Series
======================================
Turns (timestamp, price) rows into the holdings value series shown on the
chart and finds its all-time high.

Money math runs on Decimal. Floats coming from the database or the
exchange-rate API are converted through their shortest repr, so 0.1 BTC at
$30,000.1 is exactly $3,000.01.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Iterable, Iterator, Optional, Tuple, Union

import pandas as pd

from dataset import QueryResult


class Currency(Enum):
    USD = "USD"
    EUR = "EUR"


Number = Union[Decimal, float, int, str]
Rows = Union[QueryResult, Iterable[Tuple[int, float]], None]


def to_decimal(x: Number) -> Decimal:
    if isinstance(x, Decimal):
        return x
    if isinstance(x, float):
        return Decimal(repr(x))
    return Decimal(str(x))


def convert_value(holdings: Number, price: Number,
                  currency: Union[Currency, str] = Currency.USD,
                  rate: Optional[Number] = None) -> Decimal:
    """
    Value of `holdings` BTC at `price` USD, in `currency`.

    EUR without a known rate falls back to the USD value.
    """
    value = to_decimal(holdings) * to_decimal(price)
    if Currency(currency) is Currency.EUR and rate:
        value = value * to_decimal(rate)
    return value


@dataclass(frozen=True)
class AllTimeHigh:
    value: Decimal
    timestamp: int

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


class AllTimeHighTracker:
    """Running maximum over a value series. Ties keep the first point."""

    def __init__(self):
        self.value: Optional[Decimal] = None
        self.timestamp: Optional[int] = None

    def update(self, timestamp: int, value: Decimal) -> bool:
        """Feed one point, returns True when it set a new high."""
        if self.value is None or value > self.value:
            self.value = value
            self.timestamp = timestamp
            return True
        return False

    @property
    def high(self) -> Optional[AllTimeHigh]:
        if self.value is None:
            return None
        return AllTimeHigh(value=self.value, timestamp=self.timestamp)


def _iter_rows(rows: Rows) -> Iterator[Tuple[int, Number]]:
    if rows is None:
        return iter(())
    if isinstance(rows, QueryResult):
        return ((r[0], r[1]) for r in rows.values)
    return ((r[0], r[1]) for r in rows)


def compute_series(rows: Rows, holdings: Number,
                   currency: Union[Currency, str] = Currency.USD,
                   rate: Optional[Number] = None) -> Tuple[pd.DataFrame, Optional[AllTimeHigh]]:
    """
    Build the holdings value series and its all-time high.

    Args:
        rows: QueryResult or iterable of (epoch seconds, USD price), in date order
        holdings: BTC amount
        currency: USD or EUR
        rate: EUR per USD, None when unknown

    Returns:
        tuple: (DataFrame [timestamp, date, value, price, display_price],
                AllTimeHigh or None for an empty series)
    """
    currency = Currency(currency)
    holdings = to_decimal(holdings)
    tracker = AllTimeHighTracker()

    timestamps, values, prices, display_prices = [], [], [], []
    for ts, price in _iter_rows(rows):
        ts = int(ts)
        value = convert_value(holdings, price, currency, rate)
        tracker.update(ts, value)

        timestamps.append(ts)
        values.append(float(value))
        prices.append(float(price))
        display_prices.append(float(convert_value(1, price, currency, rate)))

    series = pd.DataFrame({
        "timestamp": pd.Series(timestamps, dtype="int64"),
        "date": pd.to_datetime(pd.Series(timestamps, dtype="int64"), unit="s", utc=True),
        "value": pd.Series(values, dtype="float64"),
        "price": pd.Series(prices, dtype="float64"),
        "display_price": pd.Series(display_prices, dtype="float64"),
    })
    return series, tracker.high
